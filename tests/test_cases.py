"""
Unit tests for the ready-made grid hierarchies.
"""

import numpy as np
import pytest

from lbm.cases import CASES, build_case, lid_driven_cavity, periodic_box, refined_channel
from lbm.config import SolverConfig
from lbm.errors import ConfigurationError
from lbm.simulation import LBMSimulation
from lbm.sites import SiteKind


def test_cavity_layout():
    """Walls on three sides, a velocity-inlet lid on top."""
    grid = lid_driven_cavity(10, 8, u_lid=0.1)
    assert (grid.kinds[0, :] == SiteKind.SOLID).all()
    assert (grid.kinds[-1, :] == SiteKind.SOLID).all()
    assert (grid.kinds[:, 0] == SiteKind.SOLID).all()
    assert (grid.kinds[1:-1, -1] == SiteKind.VELOCITY_INLET).all()
    np.testing.assert_allclose(grid.inlet_velocity, (0.1, 0.0))
    assert grid.children == []


def test_cavity_lid_drives_flow():
    """After a few steps the fluid under the lid moves along +x."""
    grid = lid_driven_cavity(12, 12, u_lid=0.05)
    LBMSimulation(grid).run(5)
    assert (grid.u[2:-2, -2, 0] > 0).all()


def test_periodic_box_shear_wave():
    """The initial shear wave is u_x = A sin(2π y / ny)."""
    grid = periodic_box((4, 8), shear_amplitude=0.02)
    np.testing.assert_allclose(grid.u[0, 2, 0], 0.02)
    np.testing.assert_allclose(grid.u[3, 6, 0], -0.02)
    assert not grid.u[..., 1].any()


def test_periodic_box_3d():
    """A 3D box uses D3Q19 and the wave varies along y only."""
    grid = periodic_box((3, 8, 2), shear_amplitude=0.01)
    assert grid.lattice.name == "D3Q19"
    np.testing.assert_allclose(grid.u[:, 2, :, 0], 0.01)


def test_refined_channel_layout():
    """Inlet, outlet, walls, a refined patch and a cylinder on both levels."""
    grid = refined_channel(nx=48, ny=16)
    child = grid.find(1, 0)
    assert (grid.kinds[0, 1:-1] == SiteKind.VELOCITY_INLET).all()
    assert (grid.kinds[-1, 1:-1] == SiteKind.OUTLET).all()
    assert (grid.kinds[:, 0] == SiteKind.SOLID).all()
    assert np.count_nonzero(grid.kinds == SiteKind.SOLID_REFINED) > 0
    assert np.count_nonzero(child.kinds == SiteKind.SOLID) > 0
    assert child.coarse_limits == ((6, 13), (4, 11))


def test_refined_channel_runs():
    """The refined channel steps without diverging and keeps flowing downstream."""
    grid = refined_channel(nx=48, ny=16, collision="MRT")
    sim = LBMSimulation(grid, SolverConfig(collision="MRT"))
    sim.run(4)
    assert grid.find(1, 0).t == 8
    assert all(g.is_finite() for g in grid.walk())
    assert grid.u[1:4, 1:-1, 0].mean() > 0.0


def test_refined_channel_too_small():
    """Channels below 8x8 cannot host a refined patch."""
    with pytest.raises(ConfigurationError):
        refined_channel(nx=6, ny=6)


def test_build_case():
    """Cases are looked up by name; unknown names raise ValueError."""
    assert set(CASES) == {"cavity", "periodic", "channel"}
    grid = build_case("periodic", shape=(4, 4))
    assert grid.shape == (4, 4)
    with pytest.raises(ValueError):
        build_case("pipe")
