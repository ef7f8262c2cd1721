"""
collision.py — Collision Stage (BGK / MRT)
===========================================
Relaxes populations toward the local equilibrium.

Equilibrium (second-order Maxwell-Boltzmann truncation):

  feq_v = rho * w_v * (1 + A/cs² + B/(2 cs⁴))
  A = c_v · u
  B = Q_vab u_a u_b = Σ_d (c_vd² - cs²) u_d² + 2 Σ_{d<d'} c_vd c_vd' u_d u_d'

Two strategies, picked once per grid (grid.collision) and never mixed:

  BGK : f' = f - ω (f - feq) + F_i
  MRT : m = M f, meq = M feq
        m'_q = m_q - s_q (m_q - meq_q)
        f' = M⁻¹ m' + F_i

REFINED and TRANSITION_TO_COARSE sites are left untouched: the first belong
to the child grid, the second are refreshed from the parent by explode.
Every update reads the pre-collision field, so the result does not depend
on site order.
"""

import numpy as np

from .sites import SiteKind, kinds_mask

COLLISION_BGK = "BGK"
COLLISION_MRT = "MRT"
COLLISION_MODELS = (COLLISION_BGK, COLLISION_MRT)


def equilibrium(rho: np.ndarray, u: np.ndarray, lattice) -> np.ndarray:
    """
    Equilibrium populations for every site.

    Args:
        rho     : Density, shape (*shape,)
        u       : Velocity, shape (*shape, dims)
        lattice : Velocity set

    Returns:
        feq of shape (*shape, Q)
    """
    cs2 = lattice.cs2
    rho = np.asarray(rho, dtype=np.float64)
    u = np.asarray(u, dtype=np.float64)
    c = lattice.c.astype(np.float64)

    # A: c_v · u for every direction → (*shape, Q)
    A = u @ c.T

    # B: (c_v · u)² - cs² |u|², the quadratic form Q_vab u_a u_b written out
    usq = (u * u).sum(axis=-1)
    B = A * A - cs2 * usq[..., None]

    return rho[..., None] * lattice.w * (1.0 + A / cs2 + B / (2.0 * cs2 * cs2))


def collide(grid) -> np.ndarray:
    """
    Run the grid's collision strategy in place.

    Args:
        grid : LatticeGrid (f, rho, u and force_i must be current)

    Returns:
        Boolean mask of the sites that were collided.
    """
    if grid.collision == COLLISION_BGK:
        relax = _relax_bgk
    elif grid.collision == COLLISION_MRT:
        relax = _relax_mrt
    else:
        raise ValueError(f"Unknown collision model: {grid.collision}. Use 'BGK' or 'MRT'.")

    active = ~kinds_mask(grid.kinds, SiteKind.REFINED, SiteKind.TRANSITION_TO_COARSE)

    feq = equilibrium(grid.rho, grid.u, grid.lattice)
    grid.feq[active] = feq[active]

    f_new = grid.f.copy()
    f_new[active] = relax(grid, grid.f[active], feq[active]) + grid.force_i[active]
    grid.f = f_new
    return active


def _relax_bgk(grid, f: np.ndarray, feq: np.ndarray) -> np.ndarray:
    """Single relaxation time: every direction decays at rate ω."""
    return f - grid.omega * (f - feq)


def _relax_mrt(grid, f: np.ndarray, feq: np.ndarray) -> np.ndarray:
    """Multiple relaxation time: relax in moment space, one rate per moment."""
    return mrt_relax(f, feq, grid.lattice, grid.mrt_rates)


def mrt_relax(f: np.ndarray, feq: np.ndarray, lattice, rates: np.ndarray) -> np.ndarray:
    """
    Moment-space relaxation of a batch of sites.

    Args:
        f, feq  : (..., Q) populations and their equilibria
        lattice : Velocity set providing M and M_inv
        rates   : (Q,) relaxation rate per moment

    Returns:
        Post-collision populations, shape (..., Q)
    """
    m = f @ lattice.M.T
    meq = feq @ lattice.M.T
    m_post = m - rates * (m - meq)
    return m_post @ lattice.M_inv.T


def to_moments(f: np.ndarray, lattice) -> np.ndarray:
    """m = M f for (..., Q) populations."""
    return f @ lattice.M.T


def from_moments(m: np.ndarray, lattice) -> np.ndarray:
    """f = M⁻¹ m for (..., Q) moments."""
    return m @ lattice.M_inv.T
