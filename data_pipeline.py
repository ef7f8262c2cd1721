"""
data_pipeline.py — Snapshot Writer
===================================
Captures solver state and saves it as .npy files plus a JSON index.

Dataset structure on disk:
  data/
    run_001/
      step_00050_L0R0_rho.npy          ← shape (nx, ny)
      step_00050_L0R0_u.npy            ← shape (nx, ny, 2)
      step_00050_L0R0_rho_timeav.npy
      step_00050_L0R0_ui_timeav.npy
      step_00050_L1R0_rho.npy          ← refined patch, shape (2·wx, 2·wy)
      ...
    run_002/
      ...
    metadata.json                      ← grid hierarchy, omega, saved steps

Loading one field back:
  rho = np.load("data/run_001/step_00050_L0R0_rho.npy")

The writer only ever sees LBMSimulation.get_snapshot(), which hands out
copies, so writing can never disturb the run.
"""

import json
import logging
from pathlib import Path

import numpy as np

logger = logging.getLogger("lbm.data")

SAVED_FIELDS = ("rho", "u", "rho_timeav", "ui_timeav", "uiuj_timeav")


class SnapshotWriter:
    """
    Steps a simulation and writes periodic snapshots of every grid.

    Usage:
        writer = SnapshotWriter(output_dir="data/")
        writer.record_run(sim, run_id=1, n_steps=2000, save_every=100)
    """

    def __init__(self, output_dir: str = "data", fields: tuple = SAVED_FIELDS):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.fields = tuple(fields)
        self.metadata = {"fields": list(self.fields), "runs": []}

    def write_snapshot(self, snapshot: dict, run_dir: Path) -> list:
        """
        Save one snapshot (as returned by get_snapshot()).

        Returns:
            Paths of the files written.
        """
        run_dir = Path(run_dir)
        run_dir.mkdir(parents=True, exist_ok=True)
        written = []
        for (level, region), state in snapshot["grids"].items():
            prefix = run_dir / f"step_{snapshot['step']:05d}_L{level}R{region}"
            for name in self.fields:
                path = Path(f"{prefix}_{name}.npy")
                np.save(path, state[name])
                written.append(path)
        return written

    def record_run(self, sim, run_id: int, n_steps: int = 1000, save_every: int = 50) -> dict:
        """
        Advance `sim` by `n_steps` and save every `save_every` steps.

        Args:
            sim        : LBMSimulation to drive
            run_id     : Integer ID for this run (used in folder name)
            n_steps    : Coarse steps to simulate
            save_every : Snapshot interval in coarse steps

        Returns:
            The run's metadata entry.
        """
        if save_every < 1:
            raise ValueError(f"save_every must be >= 1, got {save_every}")

        run_dir = self.output_dir / f"run_{run_id:03d}"
        run_dir.mkdir(parents=True, exist_ok=True)

        logger.info("Starting run %03d | %d steps | snapshot every %d", run_id, n_steps, save_every)

        saved_steps = []
        for _ in range(n_steps):
            metrics = sim.step()
            if metrics["step"] % save_every == 0:
                self.write_snapshot(sim.get_snapshot(), run_dir)
                saved_steps.append(metrics["step"])
                logger.info("  Step %05d | mass=%.6f | |u|max=%.5f",
                            metrics["step"], metrics["mass_total"], metrics["max_velocity"])

        logger.info("Run %03d done. Saved %d snapshots → %s", run_id, len(saved_steps), run_dir)

        run_meta = {
            "run_id"      : run_id,
            "n_steps"     : n_steps,
            "save_every"  : save_every,
            "saved_steps" : saved_steps,
            "config"      : {
                "collision": sim.config.collision,
                "periodic" : sim.config.periodic,
                "gravity"  : sim.config.gravity,
                "ibm"      : sim.config.ibm,
            },
            "grids"       : [
                {
                    "level"        : g.level,
                    "region"       : g.region,
                    "shape"        : list(g.shape),
                    "lattice"      : g.lattice.name,
                    "omega"        : g.omega,
                    "dx"           : g.dx,
                    "origin"       : list(g.origin),
                    "coarse_limits": [list(lim) for lim in g.coarse_limits] if g.coarse_limits else None,
                }
                for g in sim.grid.walk()
            ],
            "directory"   : str(run_dir),
        }
        self.metadata["runs"].append(run_meta)

        meta_path = self.output_dir / "metadata.json"
        with open(meta_path, "w") as f:
            json.dump(self.metadata, f, indent=2)

        return run_meta
