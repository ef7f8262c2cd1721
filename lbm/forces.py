"""
forces.py — Forcing Stage (Guo scheme + gravity)
=================================================
Turns the Cartesian body force on each site into one force term per
lattice direction, which the collision stage adds to the populations.

Guo et al. (2002), discrete form:

  beta_v   = (1/cs²) · (c_v · u)
  lambda_v = (1 - ω/2) · w_v / cs²
  F_v      = lambda_v · Σ_d F_d · ( c_vd (1 + beta_v) - u_d )

The other half of the scheme, +½ F in the momentum, lives in macro.py.

force_xyz holds whatever the immersed boundary spread onto the grid; gravity
(rho · g along one axis) is added on top. It must be rebuilt every
sub-step from the current velocity, never cached.
"""

import numpy as np

from .sites import is_solid


def compute_forces(grid, reset_only: bool = False, gravity: float = 0.0, gravity_axis: int = 0):
    """
    Fill grid.force_i from grid.force_xyz (or clear both).

    Args:
        grid         : LatticeGrid, modified in place
        reset_only   : Zero force_xyz and force_i and stop
        gravity      : Gravitational acceleration in lattice units (0 = off)
        gravity_axis : Axis gravity acts along

    Modifies: grid.force_xyz (gravity), grid.force_i
    """
    if reset_only:
        grid.force_xyz[...] = 0.0
        grid.force_i[...] = 0.0
        return

    lattice = grid.lattice
    cs2 = lattice.cs2
    fluid = ~is_solid(grid.kinds)

    if gravity:
        grid.force_xyz[..., gravity_axis][fluid] += grid.rho[fluid] * gravity

    u = grid.u[fluid]                      # (n, dims)
    F = grid.force_xyz[fluid]              # (n, dims)
    c = lattice.c.astype(np.float64)       # (Q, dims)

    beta = (u @ c.T) / cs2                 # (n, Q)
    lam = (1.0 - 0.5 * grid.omega) * lattice.w / cs2

    # Σ_d F_d (c_vd (1 + beta_v) - u_d) = (F · c_v)(1 + beta_v) - F · u
    F_dot_c = F @ c.T
    F_dot_u = (F * u).sum(axis=-1)
    force_i = lam * (F_dot_c * (1.0 + beta) - F_dot_u[:, None])

    grid.force_i[...] = 0.0
    grid.force_i[fluid] = force_i
