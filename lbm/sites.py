"""
sites.py — Site Classifier
===========================
Every lattice site carries exactly one SiteKind. Every other stage branches
on it, so this is the one place the codes are defined.

How a refined region looks from both sides (2:1 refinement):

  coarse grid                         fine (child) grid
  ┌───────────────────┐               ┌───────────────────────┐
  │ F  F  F  F  F  F  │               │ TC TC TC TC TC TC TC TC│
  │ F  TF TF TF TF F  │   explode →   │ TC TC TC TC TC TC TC TC│
  │ F  TF R  R  TF F  │               │ TC TC F  F  F  F  TC TC│
  │ F  TF TF TF TF F  │  ← coalesce   │ ...                    │
  └───────────────────┘               └───────────────────────┘
  F = FLUID, TF = TRANSITION_TO_FINE, R = REFINED, TC = TRANSITION_TO_COARSE

The coarse TRANSITION_TO_FINE ring and the fine TRANSITION_TO_COARSE band
cover the same physical space. Data crosses levels only there.
"""

from dataclasses import dataclass
from enum import IntEnum

import numpy as np

from .errors import ConfigurationError


class SiteKind(IntEnum):
    SOLID = 0                   # wall / obstacle
    FLUID = 1                   # ordinary fluid
    REFINED = 2                 # covered by a child grid; owned by the child
    TRANSITION_TO_COARSE = 3    # fine-level band fed from the parent
    TRANSITION_TO_FINE = 4      # coarse-level ring overlapping a child's band
    SOLID_REFINED = 5           # solid site inside a refined window
    VELOCITY_INLET = 6          # equilibrium inlet with a fixed velocity
    DO_NOTHING_INLET = 7        # keeps its own populations, never overwritten
    OUTLET = 8                  # zero-gradient outlet


SOLID_KINDS = (SiteKind.SOLID, SiteKind.SOLID_REFINED)


def kinds_mask(kinds: np.ndarray, *selected: SiteKind) -> np.ndarray:
    """Boolean mask of sites whose kind is any of `selected`."""
    return np.isin(kinds, [int(k) for k in selected])


def is_solid(kinds: np.ndarray) -> np.ndarray:
    """Both solid variants."""
    return kinds_mask(kinds, *SOLID_KINDS)


@dataclass
class HaloLayout:
    """
    Halo classification of a grid in a distributed run.

    All three are boolean arrays with the grid's shape.

    Attributes:
        recv     : sites in a receive layer (filled by the neighbour rank)
        send     : sites in a send layer (packed for the neighbour rank)
        periodic : recv sites whose layer wraps a periodic neighbour rank
    """
    recv: np.ndarray
    send: np.ndarray
    periodic: np.ndarray

    @classmethod
    def empty(cls, shape: tuple) -> "HaloLayout":
        return cls(
            recv=np.zeros(shape, dtype=bool),
            send=np.zeros(shape, dtype=bool),
            periodic=np.zeros(shape, dtype=bool),
        )

    def check_shape(self, shape: tuple):
        for name in ("recv", "send", "periodic"):
            if getattr(self, name).shape != tuple(shape):
                raise ConfigurationError(
                    f"HaloLayout.{name} has shape {getattr(self, name).shape}, "
                    f"expected {tuple(shape)}"
                )
