"""
errors.py — Exception Types
============================
Everything the solver raises on purpose.

There is no recoverable-error path in the time-stepping kernel: a bad grid
hierarchy is a setup bug, and non-finite populations mean the run is dead.
Both surface immediately and nothing retries.
"""


class LBMError(Exception):
    """Base class for all solver errors."""


class ConfigurationError(LBMError, ValueError):
    """Invalid solver configuration (bad values, IBM on a refined level, ...)."""


class HierarchyError(ConfigurationError):
    """Grid hierarchy is malformed: missing child or misaligned coarse/fine windows."""


class SimulationDiverged(LBMError, RuntimeError):
    """
    Populations went non-finite (usually an unstable relaxation rate).

    Attributes:
        step   : Completed step count of the coarsest grid when detected
        level  : Refinement level of the offending grid
        region : Region id of the offending grid
    """

    def __init__(self, step: int, level: int, region: int):
        self.step = step
        self.level = level
        self.region = region
        super().__init__(
            f"Simulation diverged at step {step}: non-finite populations "
            f"on grid level={level} region={region}"
        )
