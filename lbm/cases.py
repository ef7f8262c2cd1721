"""
cases.py — Ready-Made Grid Hierarchies
=======================================
Setup code for the standard runs used by main.py, the data pipeline and
the tests. Every builder returns an initialised level-0 LatticeGrid;
refined runs come back with their children already attached.

  cavity   : lid-driven cavity, solid walls + moving lid (velocity inlet row)
  periodic : fully periodic box, optional initial shear wave
  channel  : inlet → outlet channel with a refined patch around a cylinder
"""

import logging

import numpy as np

from .collision import COLLISION_BGK
from .errors import ConfigurationError
from .grid import LatticeGrid
from .sites import SiteKind

logger = logging.getLogger("lbm.cases")


def lid_driven_cavity(nx: int = 64, ny: int = 64, u_lid: float = 0.05, omega: float = 1.0,
                      collision: str = COLLISION_BGK, refine=None) -> LatticeGrid:
    """
    Square cavity: no-slip walls left, right and bottom, lid sliding along +x.

    Args:
        nx, ny    : Sites per axis (walls included)
        u_lid     : Lid velocity in lattice units
        omega     : Relaxation rate of the coarse grid
        collision : "BGK" or "MRT"
        refine    : Optional inclusive ((x0, x1), (y0, y1)) window to refine
    """
    grid = LatticeGrid((nx, ny), omega=omega, collision=collision)
    grid.kinds[0, :] = SiteKind.SOLID
    grid.kinds[-1, :] = SiteKind.SOLID
    grid.kinds[:, 0] = SiteKind.SOLID
    grid.kinds[1:-1, -1] = SiteKind.VELOCITY_INLET
    grid.inlet_velocity[...] = (u_lid, 0.0)
    grid.initialise(rho=1.0)

    if refine is not None:
        grid.add_child(refine)

    logger.debug("Built lid-driven cavity %dx%d (u_lid=%.3f, %s)", nx, ny, u_lid, collision)
    return grid


def periodic_box(shape=(32, 32), omega: float = 1.0, collision: str = COLLISION_BGK,
                 shear_amplitude: float = 0.0) -> LatticeGrid:
    """
    All-fluid box meant to run with SolverConfig(periodic=True).

    With `shear_amplitude` > 0 the box starts from a sinusoidal shear wave
    u_x = A sin(2π y / ny), which decays at the fluid viscosity.
    """
    grid = LatticeGrid(shape, omega=omega, collision=collision)
    u = np.zeros(grid.shape + (grid.dims,))
    if shear_amplitude:
        ny = grid.shape[1]
        wave = shear_amplitude * np.sin(2.0 * np.pi * np.arange(ny) / ny)
        u[..., 0] = wave.reshape((1, ny) + (1,) * (grid.dims - 2))
    grid.initialise(rho=1.0, u=u)
    return grid


def refined_channel(nx: int = 96, ny: int = 32, u_in: float = 0.04, omega: float = 1.0,
                    collision: str = COLLISION_BGK, refine=None, cylinder: bool = True) -> LatticeGrid:
    """
    2D channel: velocity inlet at x=0, outlet at x=nx-1, walls top and bottom.

    A refined patch sits a quarter of the way down the channel, with an
    optional cylinder of radius ny/8 in its centre (solid on both levels).

    Args:
        nx, ny    : Coarse sites per axis
        u_in      : Inlet velocity along +x
        omega     : Relaxation rate of the coarse grid
        collision : "BGK" or "MRT"
        refine    : Inclusive ((x0, x1), (y0, y1)) window; defaults to a
                    centred patch a quarter of the way down the channel
        cylinder  : Place a solid cylinder in the middle of the patch
    """
    if ny < 8 or nx < 8:
        raise ConfigurationError(f"Channel needs at least 8x8 sites, got {nx}x{ny}")

    grid = LatticeGrid((nx, ny), omega=omega, collision=collision)
    grid.kinds[:, 0] = SiteKind.SOLID
    grid.kinds[:, -1] = SiteKind.SOLID
    grid.kinds[0, 1:-1] = SiteKind.VELOCITY_INLET
    grid.kinds[-1, 1:-1] = SiteKind.OUTLET
    grid.inlet_velocity[...] = (u_in, 0.0)

    if refine is None:
        x0 = nx // 8
        refine = ((x0, x0 + ny // 2 - 1), (ny // 4, 3 * ny // 4 - 1))

    if cylinder:
        (x0, x1), (y0, y1) = refine
        cx, cy = 0.5 * (x0 + x1 + 1), 0.5 * (y0 + y1 + 1)
        radius = ny / 8.0
        X, Y = np.meshgrid(np.arange(nx) + 0.5, np.arange(ny) + 0.5, indexing="ij")
        disk = (X - cx) ** 2 + (Y - cy) ** 2 <= radius ** 2
        grid.kinds[disk & (grid.kinds == SiteKind.FLUID)] = SiteKind.SOLID

    u0 = np.zeros((nx, ny, 2))
    u0[..., 0] = np.where(grid.kinds == SiteKind.SOLID, 0.0, u_in)
    grid.initialise(rho=1.0, u=u0)
    grid.add_child(refine)

    logger.debug("Built refined channel %dx%d, patch %s", nx, ny, refine)
    return grid


CASES = {
    "cavity"  : lid_driven_cavity,
    "periodic": periodic_box,
    "channel" : refined_channel,
}


def build_case(name: str, **kwargs) -> LatticeGrid:
    """Look up a case by name and build it."""
    if name not in CASES:
        raise ValueError(f"Unknown case: {name}. Use one of {sorted(CASES)}.")
    return CASES[name](**kwargs)
