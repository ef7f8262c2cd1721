"""
config.py — Solver Configuration
=================================
Run-wide switches, fixed once at setup and never changed mid-run.

Anything grid-specific (shape, omega, collision model) lives on the grid;
this struct only holds what the orchestrator needs to sequence the stages.
"""

from dataclasses import dataclass, fields

from .collision import COLLISION_MODELS, COLLISION_BGK
from .errors import ConfigurationError


@dataclass
class SolverConfig:
    """
    Attributes:
        collision    : Collision model for grids built from this config ("BGK" / "MRT")
        periodic     : Periodic wrap of off-grid streams on level 0
        gravity      : Gravitational acceleration in lattice units (0 = off)
        gravity_axis : Axis gravity acts along
        ibm          : Run the immersed-boundary predictor-corrector cycle
        check_every  : Divergence check interval in coarse steps (0 = never)
        log_every    : Interval for the average step-time log line (0 = never)
    """
    collision: str = COLLISION_BGK
    periodic: bool = False
    gravity: float = 0.0
    gravity_axis: int = 1
    ibm: bool = False
    check_every: int = 1
    log_every: int = 100

    def __post_init__(self):
        if self.collision not in COLLISION_MODELS:
            raise ConfigurationError(
                f"Unknown collision model: {self.collision}. Use one of {COLLISION_MODELS}."
            )
        if self.gravity_axis not in (0, 1, 2):
            raise ConfigurationError(f"gravity_axis must be 0, 1 or 2, got {self.gravity_axis}")
        if self.check_every < 0 or self.log_every < 0:
            raise ConfigurationError("check_every and log_every must be >= 0")

    @classmethod
    def from_dict(cls, values: dict) -> "SolverConfig":
        """Build from a plain dict, rejecting keys the solver does not know."""
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**values)
