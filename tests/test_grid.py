"""
Unit tests for LatticeGrid and the refinement tree.
"""

import numpy as np
import pytest

from lbm.errors import ConfigurationError, HierarchyError
from lbm.grid import LatticeGrid, upsample
from lbm.lattice import D3Q19
from lbm.sites import HaloLayout, SiteKind


def test_grid_init_shapes():
    """Field shapes follow the site-major, direction-last layout."""
    grid = LatticeGrid((5, 4, 3))
    assert grid.lattice is D3Q19
    assert grid.f.shape == (5, 4, 3, 19)
    assert grid.u.shape == (5, 4, 3, 3)
    assert grid.uiuj_timeav.shape == (5, 4, 3, 6)
    assert (grid.kinds == SiteKind.FLUID).all()
    assert grid.t == 0


@pytest.mark.parametrize("kwargs", [
    {"shape": (4,)},
    {"shape": (4, 0)},
    {"shape": (4, 4), "omega": 2.0},
    {"shape": (4, 4), "omega": 0.0},
    {"shape": (4, 4), "collision": "TRT"},
    {"shape": (4, 4, 4), "lattice": LatticeGrid((2, 2)).lattice},
])
def test_grid_rejects_bad_setup(kwargs):
    """Invalid shape, omega, collision or lattice raise ConfigurationError."""
    with pytest.raises(ConfigurationError):
        LatticeGrid(**kwargs)


def test_initialise_sets_equilibrium(box):
    """After initialise, populations sum to rho and f == feq."""
    np.testing.assert_allclose(box.f.sum(axis=-1), 1.0)
    np.testing.assert_array_equal(box.f, box.feq)
    np.testing.assert_allclose(box.f[0, 0], box.lattice.w)


def test_positions_are_cell_centres():
    """Site i sits at origin + dx (i + 1/2)."""
    grid = LatticeGrid((4, 2), dx=0.5, origin=(1.0, 0.0))
    np.testing.assert_allclose(grid.positions[0], [1.25, 1.75, 2.25, 2.75])
    np.testing.assert_allclose(grid.positions[1], [0.25, 0.75])


def test_upsample_keeps_trailing_axes():
    """Only spatial axes are doubled when spatial_dims is given."""
    u = np.arange(2 * 3 * 2, dtype=float).reshape(2, 3, 2)
    fine = upsample(u, 2)
    assert fine.shape == (4, 6, 2)
    np.testing.assert_array_equal(fine[2:4, 4:6], np.broadcast_to(u[1, 2], (2, 2, 2)))


def test_add_child_geometry(refined):
    """Child has twice the window extent, half the spacing and the Rohde omega."""
    grid, child = refined
    assert child.shape == (8, 8)
    assert child.level == 1 and child.region == 0
    assert child.coarse_limits == ((2, 5), (2, 5))
    assert child.dx == pytest.approx(0.5)
    assert child.origin == (2.0, 2.0)
    assert child.omega == pytest.approx(1.0 / (2.0 / grid.omega - 0.5))
    assert grid.children == [child]


def test_add_child_tags(refined):
    """Coarse ring → TRANSITION_TO_FINE, interior → REFINED, child band → TRANSITION_TO_COARSE."""
    grid, child = refined
    window = grid.kinds[2:6, 2:6]
    assert (window[1:3, 1:3] == SiteKind.REFINED).all()
    assert np.count_nonzero(window == SiteKind.TRANSITION_TO_FINE) == 12
    assert (grid.kinds[:2] == SiteKind.FLUID).all()

    assert np.count_nonzero(child.kinds == SiteKind.TRANSITION_TO_COARSE) == 64 - 16
    assert (child.kinds[2:6, 2:6] == SiteKind.FLUID).all()


def test_add_child_inherits_solids():
    """Solid coarse sites become SOLID_REFINED on the parent and solid blocks on the child."""
    grid = LatticeGrid((8, 8))
    grid.kinds[3, 3] = SiteKind.SOLID
    grid.initialise()
    child = grid.add_child(((2, 5), (2, 5)))
    assert grid.kinds[3, 3] == SiteKind.SOLID_REFINED
    assert (child.kinds[2:4, 2:4] == SiteKind.SOLID).all()


def test_add_child_seeds_from_parent():
    """Child starts at equilibrium with the parent's density and velocity."""
    grid = LatticeGrid((6, 6))
    grid.initialise(rho=1.1, u=(0.02, -0.01))
    child = grid.add_child(((1, 4), (1, 4)))
    np.testing.assert_allclose(child.rho, 1.1)
    np.testing.assert_allclose(child.u[..., 0], 0.02)
    np.testing.assert_allclose(child.f, grid.f[0, 0] * np.ones(child.shape + (9,)))


@pytest.mark.parametrize("limits", [
    ((2, 8), (2, 5)),     # out of bounds
    ((5, 2), (2, 5)),     # reversed
    ((2, 5),),            # wrong dimensionality
])
def test_add_child_bad_window(limits):
    """Windows that do not fit raise HierarchyError."""
    grid = LatticeGrid((8, 8))
    with pytest.raises(HierarchyError):
        grid.add_child(limits)


def test_add_child_overlap_and_duplicate_region(refined):
    """Overlapping windows and reused region ids are rejected."""
    grid, _ = refined
    with pytest.raises(HierarchyError):
        grid.add_child(((4, 7), (4, 7)))
    with pytest.raises(HierarchyError):
        grid.add_child(((6, 7), (6, 7)), region=0)


def test_find_and_walk(refined):
    """find() locates any grid in the tree; a missing one raises HierarchyError."""
    grid, child = refined
    grandchild = child.add_child(((3, 4), (3, 4)))
    assert grid.find(0, 0) is grid
    assert grid.find(1, 0) is child
    assert grid.find(2, 0) is grandchild
    assert [g.level for g in grid.walk()] == [0, 1, 2]
    assert grid.get_child(0) is child
    with pytest.raises(HierarchyError):
        grid.find(1, 7)
    with pytest.raises(HierarchyError):
        grid.get_child(3)


def test_save_and_load_state(box, rng):
    """load_state restores every evolving field, and the snapshot holds copies."""
    state = box.save_state()
    box.f[...] = rng.random(box.f.shape)
    box.rho_timeav[...] = 5.0
    box.t = 17
    assert not np.shares_memory(state["f"], box.f)

    box.load_state(state)
    assert box.t == 0
    np.testing.assert_allclose(box.f.sum(axis=-1), 1.0)
    np.testing.assert_array_equal(box.rho_timeav, 0.0)


def test_total_mass_excludes_refined(refined):
    """Sites owned by the child do not count toward the parent's mass."""
    grid, _ = refined
    assert grid.total_mass() == pytest.approx(64 - 4)


def test_set_halo_checks_shape(box):
    """A halo layout with the wrong shape is rejected."""
    box.set_halo(HaloLayout.empty(box.shape))
    with pytest.raises(ConfigurationError):
        box.set_halo(HaloLayout.empty((2, 2)))


def test_repr(box):
    """repr mentions level, lattice and collision model."""
    text = repr(box)
    assert "level=0" in text and "D2Q9" in text and "BGK" in text
