"""
coupling.py — Level Coupling (Explode / Coalesce)
==================================================
Keeps a child grid and its parent consistent across the refinement
interface, following Rohde et al.'s volumetric scheme.

Index mapping (2:1 per axis), for a child covering parent window
[start, end] along an axis:

  coarse i  →  fine 2·(i - start) and 2·(i - start) + 1

so every coarse site covers a 2x2 block (2D) or 2x2x2 block (3D).

  explode  (coarse → fine, before the child runs)
      coarse TRANSITION_TO_FINE site whose fine block sits in the child's
      TRANSITION_TO_COARSE band → copy all populations into the block.

  coalesce (fine → coarse, after the child's two sub-steps and the
      parent's own stream)
      coarse TRANSITION_TO_FINE / TRANSITION_TO_COARSE / SOLID_REFINED
      site: every direction that came out of streaming empty (exactly 0)
      gets the mean of the block's values for that direction.
"""

import numpy as np

from .errors import HierarchyError
from .grid import upsample
from .sites import SiteKind, kinds_mask


def check_alignment(coarse, fine) -> tuple:
    """
    Verify `fine` is an exact 2:1 refinement of a window of `coarse`.

    Returns:
        Tuple of slices selecting the window on the coarse grid.

    Raises:
        HierarchyError on any mismatch.
    """
    if fine.coarse_limits is None:
        raise HierarchyError(f"Grid level={fine.level} region={fine.region} has no coarse limits")
    if fine.level != coarse.level + 1:
        raise HierarchyError(
            f"Levels {coarse.level} and {fine.level} are not parent and child"
        )
    if len(fine.coarse_limits) != coarse.dims or fine.dims != coarse.dims:
        raise HierarchyError("Coarse and fine grids have different dimensionality")

    window = []
    for d, (lo, hi) in enumerate(fine.coarse_limits):
        if lo < 0 or hi >= coarse.shape[d] or hi < lo:
            raise HierarchyError(
                f"Coarse limits {fine.coarse_limits} fall outside grid of shape {coarse.shape}"
            )
        if fine.shape[d] != 2 * (hi - lo + 1):
            raise HierarchyError(
                f"Fine grid extent {fine.shape[d]} on axis {d} does not match "
                f"coarse window [{lo}, {hi}] at refinement ratio 2"
            )
        window.append(slice(lo, hi + 1))
    return tuple(window)


def block_mean(fine_field: np.ndarray, dims: int) -> np.ndarray:
    """Average each 2^dims block of a fine field down to one coarse site."""
    shape = []
    for n in fine_field.shape[:dims]:
        shape += [n // 2, 2]
    blocks = fine_field.reshape(tuple(shape) + fine_field.shape[dims:])
    return blocks.mean(axis=tuple(range(1, 2 * dims, 2)))


def explode(coarse, fine):
    """
    Seed the child's transition band from the parent's post-collision populations.

    Modifies: fine.f (in place, transition band only)
    """
    window = check_alignment(coarse, fine)
    dims = coarse.dims

    corners = fine.kinds[tuple(slice(0, None, 2) for _ in range(dims))]
    feeds = ((coarse.kinds[window] == SiteKind.TRANSITION_TO_FINE)
             & (corners == SiteKind.TRANSITION_TO_COARSE))
    if not feeds.any():
        return

    fine_mask = upsample(feeds)
    fine.f[fine_mask] = upsample(coarse.f[window], dims)[fine_mask]


def coalesce(coarse, fine):
    """
    Fill the parent's unresolved interface populations from the child.

    Modifies: coarse.f (in place, only exact-zero entries at interface sites)
    """
    window = check_alignment(coarse, fine)

    interface = kinds_mask(
        coarse.kinds[window],
        SiteKind.TRANSITION_TO_FINE,
        SiteKind.TRANSITION_TO_COARSE,
        SiteKind.SOLID_REFINED,
    )
    f_window = coarse.f[window]
    missing = interface[..., None] & (f_window == 0.0)
    if not missing.any():
        return

    f_window[missing] = block_mean(fine.f, coarse.dims)[missing]
