"""
macro.py — Macroscopic Recovery
================================
Density and velocity from populations, plus the running time averages.

Per site:
  REFINED          → rho = 0, u = 0   (no meaning on this level)
  SOLID variants   → rho = 1, u = 0   (no-slip by convention)
  everything else  → rho = Σ_v f_v
                     rho·u = Σ_v c_v f_v + rho · ½ · 2^(-level) · F

The ½ F term is the second half of Guo forcing; finer levels take half the
time step of their parent, hence the 2^(-level).

Running averages use the incremental mean with t = completed steps before
this one:

  avg' = (avg · t + new) / (t + 1)

applied to rho, every u_p, and every product u_p u_q with q ≥ p
(dims + dims(dims-1)/2 products).
"""

import numpy as np

from .sites import SiteKind, is_solid


def _density_velocity(f, c, force, level):
    rho = np.asarray(f.sum(axis=-1))
    momentum = f @ c + rho[..., None] * (0.5 / 2 ** level) * force
    return rho, momentum / rho[..., None]


def compute_macroscopic(grid):
    """
    Recompute rho and u everywhere and fold them into the time averages.

    Args:
        grid : LatticeGrid, modified in place (rho, u, *_timeav)
    """
    c = grid.lattice.c.astype(np.float64)
    refined = grid.kinds == SiteKind.REFINED
    solid = is_solid(grid.kinds)
    live = ~refined & ~solid

    rho, u = _density_velocity(grid.f[live], c, grid.force_xyz[live], grid.level)
    grid.rho[live] = rho
    grid.u[live] = u

    grid.rho[refined] = 0.0
    grid.u[refined] = 0.0
    grid.rho[solid] = 1.0
    grid.u[solid] = 0.0

    update_time_averages(grid)


def update_time_averages(grid):
    """Fold the current rho/u into the running means using grid.t as the count."""
    t = float(grid.t)
    scale = 1.0 / (t + 1.0)

    grid.rho_timeav[...] = (grid.rho_timeav * t + grid.rho) * scale
    grid.ui_timeav[...] = (grid.ui_timeav * t + grid.u) * scale

    k = 0
    for p in range(grid.dims):
        for q in range(p, grid.dims):
            product = grid.u[..., p] * grid.u[..., q]
            grid.uiuj_timeav[..., k] = (grid.uiuj_timeav[..., k] * t + product) * scale
            k += 1


def update_site_macroscopic(grid, index: tuple):
    """
    Refresh rho/u of a single site without touching the time averages.

    Used after halo data lands on a boundary-adjacent site so the next
    collision sees consistent macroscopic values.

    Args:
        grid  : LatticeGrid
        index : Site index tuple, e.g. (i, j) or (i, j, k)
    """
    index = tuple(index)
    kind = grid.kinds[index]
    if kind == SiteKind.REFINED:
        grid.rho[index] = 0.0
        grid.u[index] = 0.0
    elif kind in (SiteKind.SOLID, SiteKind.SOLID_REFINED):
        grid.rho[index] = 1.0
        grid.u[index] = 0.0
    else:
        c = grid.lattice.c.astype(np.float64)
        rho, u = _density_velocity(grid.f[index], c, grid.force_xyz[index], grid.level)
        grid.rho[index] = rho
        grid.u[index] = u
