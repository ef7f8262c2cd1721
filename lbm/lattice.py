"""
lattice.py — Discrete Velocity Sets (D2Q9, D3Q19)
==================================================
The lattice is the fixed "alphabet" every stage of the solver speaks.

For each direction v we store:
  - c[v]  : integer velocity vector (how far a population hops per step)
  - w[v]  : quadrature weight (equilibrium share at rest)
  - opposite[v] : index of -c[v] (used by bounce-back and off-grid streaming)

Plus the two fixed matrices of the MRT collision model:
  - M     : forward transform, populations → moments   (m = M · f)
  - M_inv : inverse transform, moments → populations   (f = M_inv · m)

The rows of M are the standard orthogonal moment polynomials
(Lallemand & Luo 2000 for D2Q9, d'Humières et al. 2002 for D3Q19), so they
are written as functions of the velocity components instead of as literal
tables. That keeps them correct for whatever direction ordering we pick.

Lattice sound speed: cs = 1/sqrt(3) for both sets.
"""

from dataclasses import dataclass

import numpy as np

CS = 1.0 / np.sqrt(3.0)
CS2 = 1.0 / 3.0


@dataclass(frozen=True)
class Lattice:
    """
    One discrete velocity set. Shared, read-only, one per dimensionality.

    Attributes:
        name      : "D2Q9" or "D3Q19"
        c         : (Q, dims) int array of lattice velocities
        w         : (Q,) float array of weights, sums to 1
        opposite  : (Q,) int array, opposite[v] is the direction of -c[v]
        M, M_inv  : (Q, Q) MRT forward / inverse moment transforms
        conserved : indices of the conserved moments (density, momentum)
    """
    name: str
    c: np.ndarray
    w: np.ndarray
    opposite: np.ndarray
    M: np.ndarray
    M_inv: np.ndarray
    conserved: tuple

    @property
    def dims(self) -> int:
        return self.c.shape[1]

    @property
    def Q(self) -> int:
        return self.c.shape[0]

    @property
    def cs(self) -> float:
        return CS

    @property
    def cs2(self) -> float:
        return CS2

    def mrt_rates(self, omega: float) -> np.ndarray:
        """
        Default per-moment relaxation rates for a given shear rate omega.

        Stress moments relax with omega (sets the viscosity); the ghost and
        energy moments use the usual tuned constants; conserved moments get 1.0
        (their value is irrelevant because m == meq for them).
        """
        if self.name == "D2Q9":
            # rho, e, eps, jx, qx, jy, qy, pxx, pxy
            s = [1.0, 1.4, 1.4, 1.0, 1.2, 1.0, 1.2, omega, omega]
        else:
            # rho, e, eps, jx, qx, jy, qy, jz, qz,
            # 3pxx, 3pixx, pww, piww, pxy, pyz, pxz, mx, my, mz
            s = [1.0, 1.19, 1.4, 1.0, 1.2, 1.0, 1.2, 1.0, 1.2,
                 omega, 1.4, omega, 1.4, omega, omega, omega, 1.98, 1.98, 1.98]
        return np.array(s, dtype=np.float64)


def _opposites(c: np.ndarray) -> np.ndarray:
    """Find, for every direction, the direction pointing the other way."""
    opp = np.empty(len(c), dtype=np.intp)
    for v, cv in enumerate(c):
        opp[v] = np.flatnonzero((c == -cv).all(axis=1))[0]
    return opp


def _d2q9_moments(c: np.ndarray) -> np.ndarray:
    cx, cy = c[:, 0].astype(np.float64), c[:, 1].astype(np.float64)
    c2 = cx**2 + cy**2
    rows = [
        np.ones_like(cx),                     # rho
        -4.0 + 3.0 * c2,                      # e   (energy)
        4.0 - 10.5 * c2 + 4.5 * c2**2,        # eps (energy squared)
        cx,                                   # jx
        (3.0 * c2 - 5.0) * cx,                # qx  (heat flux)
        cy,                                   # jy
        (3.0 * c2 - 5.0) * cy,                # qy
        cx**2 - cy**2,                        # pxx
        cx * cy,                              # pxy
    ]
    return np.array(rows)


def _d3q19_moments(c: np.ndarray) -> np.ndarray:
    cx, cy, cz = (c[:, d].astype(np.float64) for d in range(3))
    c2 = cx**2 + cy**2 + cz**2
    rows = [
        np.ones_like(cx),                                  # rho
        19.0 * c2 - 30.0,                                  # e
        (21.0 * c2**2 - 53.0 * c2 + 24.0) / 2.0,           # eps
        cx, (5.0 * c2 - 9.0) * cx,                         # jx, qx
        cy, (5.0 * c2 - 9.0) * cy,                         # jy, qy
        cz, (5.0 * c2 - 9.0) * cz,                         # jz, qz
        3.0 * cx**2 - c2,                                  # 3pxx
        (3.0 * c2 - 5.0) * (3.0 * cx**2 - c2),             # 3pixx
        cy**2 - cz**2,                                     # pww
        (3.0 * c2 - 5.0) * (cy**2 - cz**2),                # piww
        cx * cy, cy * cz, cx * cz,                         # pxy, pyz, pxz
        (cy**2 - cz**2) * cx,                              # mx
        (cz**2 - cx**2) * cy,                              # my
        (cx**2 - cy**2) * cz,                              # mz
    ]
    return np.array(rows)


def _build(name, c, w, moments, conserved) -> Lattice:
    c = np.array(c, dtype=np.int64)
    w = np.array(w, dtype=np.float64)
    M = moments(c)
    return Lattice(
        name=name,
        c=c,
        w=w,
        opposite=_opposites(c),
        M=M,
        M_inv=np.linalg.inv(M),
        conserved=conserved,
    )


# ── D2Q9: rest, 4 axis neighbours, 4 diagonals ───────────────────────────────
D2Q9 = _build(
    "D2Q9",
    c=[(0, 0),
       (1, 0), (0, 1), (-1, 0), (0, -1),
       (1, 1), (-1, 1), (-1, -1), (1, -1)],
    w=[4 / 9] + [1 / 9] * 4 + [1 / 36] * 4,
    moments=_d2q9_moments,
    conserved=(0, 3, 5),
)

# ── D3Q19: rest, 6 faces, 12 edges ───────────────────────────────────────────
D3Q19 = _build(
    "D3Q19",
    c=[(0, 0, 0),
       (1, 0, 0), (-1, 0, 0), (0, 1, 0), (0, -1, 0), (0, 0, 1), (0, 0, -1),
       (1, 1, 0), (-1, -1, 0), (1, -1, 0), (-1, 1, 0),
       (1, 0, 1), (-1, 0, -1), (1, 0, -1), (-1, 0, 1),
       (0, 1, 1), (0, -1, -1), (0, 1, -1), (0, -1, 1)],
    w=[1 / 3] + [1 / 18] * 6 + [1 / 36] * 12,
    moments=_d3q19_moments,
    conserved=(0, 3, 5, 7),
)


def lattice_for_dims(dims: int) -> Lattice:
    """Default velocity set for a 2D or 3D grid."""
    if dims == 2:
        return D2Q9
    if dims == 3:
        return D3Q19
    raise ValueError(f"Unsupported dimensionality: {dims}. Use 2 or 3.")
