"""
Unit tests for the snapshot writer.
"""

import json

import numpy as np
import pytest

from data_pipeline import SnapshotWriter
from lbm.cases import lid_driven_cavity
from lbm.simulation import LBMSimulation


@pytest.fixture
def sim():
    return LBMSimulation(lid_driven_cavity(12, 12, refine=((3, 8), (3, 8))))


def test_record_run_writes_snapshots(sim, tmp_path):
    """Snapshots land in run_XXX with one file per grid and field."""
    writer = SnapshotWriter(output_dir=tmp_path)
    meta = writer.record_run(sim, run_id=1, n_steps=4, save_every=2)

    run_dir = tmp_path / "run_001"
    assert meta["saved_steps"] == [2, 4]
    assert (run_dir / "step_00002_L0R0_rho.npy").exists()
    assert (run_dir / "step_00004_L1R0_uiuj_timeav.npy").exists()

    rho = np.load(run_dir / "step_00004_L0R0_rho.npy")
    u_fine = np.load(run_dir / "step_00004_L1R0_u.npy")
    assert rho.shape == (12, 12)
    assert u_fine.shape == (12, 12, 2)
    np.testing.assert_array_equal(rho, sim.grid.rho)


def test_metadata_json(sim, tmp_path):
    """metadata.json describes the run and the full grid hierarchy."""
    writer = SnapshotWriter(output_dir=tmp_path, fields=("rho",))
    writer.record_run(sim, run_id=3, n_steps=2, save_every=1)

    meta = json.loads((tmp_path / "metadata.json").read_text())
    assert meta["fields"] == ["rho"]
    run = meta["runs"][0]
    assert run["run_id"] == 3
    assert run["config"]["collision"] == "BGK"
    assert [(g["level"], g["region"]) for g in run["grids"]] == [(0, 0), (1, 0)]
    assert run["grids"][1]["coarse_limits"] == [[3, 8], [3, 8]]
    assert not (tmp_path / "run_003" / "step_00001_L0R0_u.npy").exists()


def test_write_snapshot_is_read_only(sim, tmp_path):
    """Writing a snapshot leaves the solver state untouched."""
    sim.step()
    before = sim.grid.f.copy()
    written = SnapshotWriter(output_dir=tmp_path).write_snapshot(sim.get_snapshot(), tmp_path / "x")
    assert len(written) == 2 * 5
    np.testing.assert_array_equal(sim.grid.f, before)


def test_save_every_must_be_positive(sim, tmp_path):
    """A zero snapshot interval is rejected."""
    with pytest.raises(ValueError):
        SnapshotWriter(output_dir=tmp_path).record_run(sim, run_id=1, n_steps=1, save_every=0)
