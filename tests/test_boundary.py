"""
Unit tests for bounce-back, velocity inlet and outlet.
"""

import numpy as np

from lbm.boundary import apply_bounce_back, apply_outlet, apply_velocity_inlet
from lbm.collision import equilibrium
from lbm.grid import LatticeGrid
from lbm.sites import SiteKind
from lbm.stream import stream


def test_bounce_back_reverses_solid_populations(box, rng):
    """Solid sites swap every population with its opposite; fluid is untouched."""
    box.f[...] = rng.random(box.f.shape)
    box.kinds[2, 2] = SiteKind.SOLID
    before = box.f.copy()

    apply_bounce_back(box)

    np.testing.assert_array_equal(box.f[2, 2], before[2, 2][box.lattice.opposite])
    np.testing.assert_array_equal(box.f[1, 1], before[1, 1])


def test_bounce_back_returns_population_to_sender():
    """Fluid → wall → bounce-back → stream brings the population home reversed."""
    grid = LatticeGrid((4, 3))
    grid.f[...] = 0.0
    grid.kinds[2, 1] = SiteKind.SOLID
    grid.f[1, 1, 1] = 0.6                 # heading +x into the wall

    stream(grid)
    apply_bounce_back(grid)
    stream(grid)

    assert grid.f[1, 1, 3] == 0.6         # back at the sender, heading -x


def test_bounce_back_no_solids_is_noop(box):
    """Grids without solid sites are left alone."""
    before = box.f.copy()
    apply_bounce_back(box)
    np.testing.assert_array_equal(box.f, before)


def test_velocity_inlet_sets_equilibrium():
    """Inlet sites get u = u_inlet and f = feq(rho, u_inlet)."""
    grid = LatticeGrid((4, 4))
    grid.initialise(rho=1.02)
    grid.kinds[0, :] = SiteKind.VELOCITY_INLET
    grid.inlet_velocity[...] = (0.05, 0.0)

    apply_velocity_inlet(grid)

    np.testing.assert_allclose(grid.u[0, :, 0], 0.05)
    expected = equilibrium(np.array([1.02]), np.array([[0.05, 0.0]]), grid.lattice)[0]
    np.testing.assert_allclose(grid.f[0, 2], expected)
    assert not grid.u[1:].any()


def test_outlet_copies_upstream(rng):
    """Outlet sites take the populations of their x-1 neighbour."""
    grid = LatticeGrid((4, 3))
    grid.f[...] = rng.random(grid.f.shape)
    grid.kinds[-1, :] = SiteKind.OUTLET

    apply_outlet(grid)

    np.testing.assert_array_equal(grid.f[3], grid.f[2])
