"""
Unit tests for SolverConfig.
"""

import pytest

from lbm.config import SolverConfig
from lbm.errors import ConfigurationError


def test_defaults():
    """Defaults: BGK, no periodicity, no gravity, no IBM, check every step."""
    cfg = SolverConfig()
    assert cfg.collision == "BGK"
    assert not cfg.periodic and not cfg.ibm
    assert cfg.gravity == 0.0
    assert cfg.check_every == 1
    assert cfg.log_every == 100


def test_from_dict():
    """from_dict builds a config from plain values."""
    cfg = SolverConfig.from_dict({"collision": "MRT", "periodic": True, "gravity": -1e-6})
    assert cfg.collision == "MRT"
    assert cfg.periodic
    assert cfg.gravity == -1e-6


def test_from_dict_rejects_unknown_keys():
    """Typos in config keys are not silently ignored."""
    with pytest.raises(ConfigurationError, match="perodic"):
        SolverConfig.from_dict({"perodic": True})


@pytest.mark.parametrize("kwargs", [
    {"collision": "TRT"},
    {"gravity_axis": 3},
    {"check_every": -1},
    {"log_every": -5},
])
def test_invalid_values(kwargs):
    """Out-of-range values raise ConfigurationError, which is also a ValueError."""
    with pytest.raises(ValueError):
        SolverConfig(**kwargs)
    with pytest.raises(ConfigurationError):
        SolverConfig(**kwargs)
