"""
boundary.py — Boundary Conditions
==================================
The apply-BC states of the time step. Each one is a no-op on grids without
the matching site kind.

  before collision : velocity inlet  (VELOCITY_INLET → equilibrium at u_inlet)
  before streaming : bounce-back     (SOLID → swap every population with its opposite)
  after streaming  : outlet          (OUTLET → copy populations from x-1)

Do-nothing inlets need no step of their own; streaming already leaves them
alone.
"""

import numpy as np

from .collision import equilibrium
from .sites import SiteKind


def apply_velocity_inlet(grid):
    """
    Reset inlet sites to equilibrium at the imposed velocity.

    Density is taken from the last macroscopic update so mass can still
    adjust at the inlet.

    Modifies: grid.f, grid.u at VELOCITY_INLET sites
    """
    inlet = grid.kinds == SiteKind.VELOCITY_INLET
    if not inlet.any():
        return
    grid.u[inlet] = grid.inlet_velocity
    grid.f[inlet] = equilibrium(grid.rho[inlet], grid.u[inlet], grid.lattice)


def apply_bounce_back(grid):
    """
    Full-way bounce-back: reverse every population on solid sites.

    Streaming then carries them back into the fluid they came from, which
    gives no-slip at the wall.

    Modifies: grid.f at SOLID sites
    """
    solid = grid.kinds == SiteKind.SOLID
    if not solid.any():
        return
    grid.f[solid] = grid.f[solid][:, grid.lattice.opposite]


def apply_outlet(grid):
    """
    Zero-gradient outlet along axis 0: copy all populations from the upstream neighbour.

    Modifies: grid.f at OUTLET sites
    """
    outlet = np.nonzero(grid.kinds == SiteKind.OUTLET)
    if not outlet[0].size:
        return
    upstream = (np.maximum(outlet[0] - 1, 0),) + outlet[1:]
    grid.f[outlet] = grid.f[upstream]
