"""
Shared fixtures for the solver tests.

matplotlib is switched to the Agg backend before anything imports pyplot,
so the viewer tests run on machines without a display.
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from lbm.grid import LatticeGrid


# ──────────────────────────────────────────────────────────────
# Fixtures
# ──────────────────────────────────────────────────────────────

@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def box():
    """Small all-fluid 2D grid at rest."""
    grid = LatticeGrid((6, 5), omega=1.2)
    grid.initialise(rho=1.0)
    return grid


@pytest.fixture
def refined():
    """8x8 coarse grid at rest with a 4x4 window refined into an 8x8 child."""
    grid = LatticeGrid((8, 8), omega=1.0)
    grid.initialise(rho=1.0)
    child = grid.add_child(((2, 5), (2, 5)))
    return grid, child


@pytest.fixture(autouse=True)
def close_figures():
    yield
    import matplotlib.pyplot as plt
    plt.close("all")
