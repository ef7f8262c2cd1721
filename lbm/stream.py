"""
stream.py — Streaming Stage
============================
Moves every population one hop along its lattice velocity.

The stage writes into a fresh zeroed buffer and swaps it in at the end, so
no site ever reads a value another site already overwrote.

Decision order for a population leaving site `src` along direction v:

  1. Source exclusions
       REFINED           → streams nothing (the child grid owns it)
       DO_NOTHING_INLET  → keeps its own value, no propagation
  2. Destination off-grid
       periodic, level 0, FLUID → FLUID   → wrap around the axis
       anything else                      → keep the incoming value at src
                                            along the opposite direction
  3. Halo guard (distributed runs only)
       src in a periodic recv layer and dest in a send layer:
       stream only when periodic BCs are on and both sites are FLUID,
       otherwise the destination keeps its current value
  4. Destination exclusions
       TRANSITION_TO_FINE → TRANSITION_TO_FINE  → skip (coalesce fills it)
       any → DO_NOTHING_INLET                   → skip
       any → REFINED                            → skip (owned by the child)
     otherwise copy.

Each (destination, direction) slot has exactly one possible source, so
each direction is handled as one vectorised batch instead of a site loop.
"""

import numpy as np

from .sites import SiteKind


def stream(grid, periodic: bool = False) -> np.ndarray:
    """
    Stream grid.f in place (by replacement).

    Args:
        grid     : LatticeGrid
        periodic : Periodic boundaries enabled for this run. Off-grid wrap
                   only happens on level 0 of a single-process grid.

    Returns:
        The new population array (also stored as grid.f)
    """
    f = grid.f
    kinds = grid.kinds
    lattice = grid.lattice
    shape = grid.shape
    halo = grid.halo

    f_new = np.zeros_like(f)
    coords = np.indices(shape)

    fluid = kinds == SiteKind.FLUID
    inlet = kinds == SiteKind.DO_NOTHING_INLET
    to_fine = kinds == SiteKind.TRANSITION_TO_FINE
    refined = kinds == SiteKind.REFINED
    wrap = periodic and grid.level == 0 and halo is None

    # ── Source exclusions ─────────────────────────────────────────────────
    f_new[inlet] = f[inlet]
    movers = ~inlet & ~refined

    for v in range(lattice.Q):
        cv = lattice.c[v]
        opp = lattice.opposite[v]

        off_grid = np.zeros(shape, dtype=bool)
        for d in range(grid.dims):
            dest_d = coords[d] + cv[d]
            off_grid |= (dest_d < 0) | (dest_d >= shape[d])

        # ── Off-grid: periodic wrap or retain incoming value ───────────────
        src = np.nonzero(movers & off_grid)
        if src[0].size:
            if wrap:
                wrapped = tuple((s + cv[d]) % shape[d] for d, s in enumerate(src))
                ok = fluid[src] & fluid[wrapped]
                f_new[tuple(w[ok] for w in wrapped) + (v,)] = f[src + (v,)][ok]
                src = tuple(s[~ok] for s in src)
            f_new[src + (opp,)] = f[src + (opp,)]

        # ── On-grid ────────────────────────────────────────────────────────
        src = np.nonzero(movers & ~off_grid)
        if not src[0].size:
            continue
        dst = tuple(s + cv[d] for d, s in enumerate(src))

        allowed = ~(to_fine[src] & to_fine[dst]) & ~inlet[dst]

        if halo is not None:
            guarded = halo.recv[src] & halo.send[dst] & halo.periodic[src]
            periodic_ok = periodic & fluid[src] & fluid[dst]
            retain = guarded & ~periodic_ok & ~refined[dst]
            if retain.any():
                kept = tuple(d_[retain] for d_ in dst) + (v,)
                f_new[kept] = f[kept]
            allowed = np.where(guarded, periodic_ok, allowed)

        allowed &= ~refined[dst]

        f_new[tuple(d_[allowed] for d_ in dst) + (v,)] = f[tuple(s[allowed] for s in src) + (v,)]

    grid.f = f_new
    return f_new
