"""
simulation.py — Multi-Grid Orchestrator
========================================
Sequences the stages on every grid of the hierarchy. One call to `step()`
advances the coarsest grid by one time step.

Sub-step on one grid:
  1. Reset forces (skipped on the level-0 corrector pass)
  2. Velocity inlet
  3. Forcing (Guo + gravity)
  4. Collision
  5. For each child: explode → two child sub-steps (recursive)
  6. Bounce-back
  7. Streaming
  8. For each child: coalesce
  9. Outlet
 10. Macroscopic recovery + time averages, then t += 1

Level 0 runs one sub-step per step; every finer level runs two sub-steps
per parent sub-step (2:1 time refinement), depth first.

Immersed boundary (level 0 only): predictor pass → body forces spread onto
the grid → every grid rewound to the start of the step → corrector pass
with those forces → bodies moved. The step counter only moves by one.

After the step, halos of every grid are exchanged once (distributed runs)
and the populations are checked for divergence.
"""

import logging
import time
from typing import Protocol

import numpy as np

from .boundary import apply_bounce_back, apply_outlet, apply_velocity_inlet
from .collision import collide
from .config import SolverConfig
from .coupling import check_alignment, coalesce, explode
from .errors import ConfigurationError, SimulationDiverged
from .forces import compute_forces
from .macro import compute_macroscopic
from .stream import stream

logger = logging.getLogger("lbm.simulation")


class BodyCollaborator(Protocol):
    """Immersed-boundary side of the predictor-corrector cycle."""

    def apply_forcing(self, grid) -> None:
        """Spread restorative forces into grid.force_xyz, reading grid.u."""

    def move_bodies(self, grid) -> None:
        """Advance marker positions after a completed predictor-corrector pair."""


class TransportCollaborator(Protocol):
    """Distributed halo exchange. Blocking; returns once the halo is consistent."""

    def exchange_halos(self, level: int, region: int) -> None:
        ...


class LBMSimulation:
    """
    Drives a grid hierarchy through time.

    Usage:
        grid = lid_driven_cavity(64, 64)
        sim = LBMSimulation(grid, SolverConfig(collision="MRT"))
        for _ in range(1000):
            metrics = sim.step()
        rho = sim.grid.rho
    """

    def __init__(self, grid, config: SolverConfig = None, body: BodyCollaborator = None,
                 transport: TransportCollaborator = None):
        """
        Args:
            grid      : Coarsest LatticeGrid (level 0); owns the rest of the tree
            config    : SolverConfig, defaults to SolverConfig()
            body      : Immersed-boundary collaborator (required when config.ibm)
            transport : Halo-exchange collaborator for distributed runs
        """
        self.grid = grid
        self.config = config if config is not None else SolverConfig()
        self.body = body
        self.transport = transport
        self.perf_log = []
        self.timeav_step_ms = 0.0

        self._validate()

    def _validate(self):
        cfg = self.config
        if self.grid.level != 0:
            raise ConfigurationError(
                f"Simulation must be driven from the coarsest grid, got level {self.grid.level}"
            )
        if cfg.ibm and self.body is None:
            raise ConfigurationError("Immersed boundary enabled but no body collaborator given")
        if self.body is not None and not cfg.ibm:
            logger.warning("Body collaborator given but config.ibm is False; it will not be called")
        if cfg.gravity and cfg.gravity_axis >= self.grid.dims:
            raise ConfigurationError(
                f"gravity_axis={cfg.gravity_axis} does not exist on a {self.grid.dims}D grid"
            )
        for grid in self.grid.walk():
            if grid.collision != cfg.collision:
                raise ConfigurationError(
                    f"Grid level={grid.level} region={grid.region} was built for {grid.collision} "
                    f"but the run is configured for {cfg.collision}"
                )
            for child in grid.children:
                check_alignment(grid, child)

    # ──────────────────────────────────────────────────────────────────────
    # Time stepping
    # ──────────────────────────────────────────────────────────────────────

    def step(self) -> dict:
        """
        Advance the coarsest grid by one time step.

        Returns:
            Metrics dict (also appended to perf_log)

        Raises:
            SimulationDiverged if populations went non-finite.
        """
        t_start = time.perf_counter()
        predictor_ms = 0.0

        if self.config.ibm:
            predictor_ms = self._predictor_corrector()
        else:
            self._advance(self.grid, reset_forces=True)

        # ── Halo exchange: once per grid, after all local recursion ────────
        if self.transport is not None:
            for grid in self.grid.walk():
                self.transport.exchange_halos(grid.level, grid.region)

        step = self.grid.t
        if self.config.check_every and step % self.config.check_every == 0:
            self._check_divergence()

        # ── Bookkeeping ────────────────────────────────────────────────────
        total_ms = (time.perf_counter() - t_start) * 1000
        self.timeav_step_ms = (self.timeav_step_ms * (len(self.perf_log)) + total_ms) / (len(self.perf_log) + 1)
        if self.config.log_every and step % self.config.log_every == 0:
            logger.info("Time stepping taking an average of %.3f ms", self.timeav_step_ms)

        metrics = {
            "step"         : step,
            "total_ms"     : total_ms,
            "predictor_ms" : predictor_ms,
            "corrector_ms" : total_ms - predictor_ms if self.config.ibm else 0.0,
            "mass_total"   : self.grid.total_mass(),
            "max_velocity" : max(g.max_velocity() for g in self.grid.walk()),
            "ibm"          : self.config.ibm,
        }
        self.perf_log.append(metrics)
        return metrics

    def run(self, n_steps: int) -> list:
        """Run `n_steps` steps and return their metrics."""
        return [self.step() for _ in range(n_steps)]

    def _predictor_corrector(self) -> float:
        """Immersed-boundary step. Returns the predictor wall time in ms."""
        t0 = time.perf_counter()
        saved = [(grid, grid.save_state()) for grid in self.grid.walk()]

        logger.debug("Prediction step...")
        self._advance(self.grid, reset_forces=True)
        predictor_ms = (time.perf_counter() - t0) * 1000

        compute_forces(self.grid, reset_only=True)
        self.body.apply_forcing(self.grid)

        # Rewind the whole tree; level 0 drops back by exactly one step
        for grid, state in saved:
            grid.load_state(state)

        logger.debug("Correction step...")
        self._advance(self.grid, reset_forces=False)

        self.body.move_bodies(self.grid)
        return predictor_ms

    def _advance(self, grid, reset_forces: bool):
        passes = 1 if grid.level == 0 else 2
        for _ in range(passes):
            self._sub_step(grid, reset_forces)

    def _sub_step(self, grid, reset_forces: bool):
        cfg = self.config

        if reset_forces:
            compute_forces(grid, reset_only=True)

        apply_velocity_inlet(grid)
        compute_forces(grid, gravity=cfg.gravity, gravity_axis=cfg.gravity_axis)
        collide(grid)

        for child in grid.children:
            explode(grid, child)
            self._advance(child, reset_forces=True)

        apply_bounce_back(grid)
        stream(grid, periodic=cfg.periodic)

        for child in grid.children:
            coalesce(grid, child)

        apply_outlet(grid)
        compute_macroscopic(grid)
        grid.t += 1

    def _check_divergence(self):
        for grid in self.grid.walk():
            if not grid.is_finite():
                logger.error(
                    "Non-finite populations on level %d region %d at step %d",
                    grid.level, grid.region, self.grid.t,
                )
                raise SimulationDiverged(self.grid.t, grid.level, grid.region)

    # ──────────────────────────────────────────────────────────────────────
    # Output
    # ──────────────────────────────────────────────────────────────────────

    def get_snapshot(self) -> dict:
        """
        Copies of every grid's evolving fields, keyed by (level, region).

        Output writers get this instead of the live arrays so they can never
        mutate solver state.
        """
        return {
            "step" : self.grid.t,
            "grids": {(g.level, g.region): g.save_state() for g in self.grid.walk()},
        }

    def print_status(self):
        """Pretty-print current simulation state."""
        print(f"\n{'='*50}")
        print(f"  Step: {self.grid.t}  |  IBM: {'on' if self.config.ibm else 'off'}  "
              f"|  Periodic: {'on' if self.config.periodic else 'off'}")
        for g in self.grid.walk():
            owned = g.rho[g.rho > 0]
            rho_min = owned.min() if owned.size else np.nan
            rho_max = owned.max() if owned.size else np.nan
            print(f"  L{g.level}/R{g.region} {g.shape} {g.collision:<3}: "
                  f"rho=[{rho_min:.4f}, {rho_max:.4f}]  |u|max={g.max_velocity():.5f}  t={g.t}")
        if self.perf_log:
            last = self.perf_log[-1]
            print(f"  Perf      : {last['total_ms']:.1f}ms/step (avg {self.timeav_step_ms:.1f}ms)")
        print(f"{'='*50}")
