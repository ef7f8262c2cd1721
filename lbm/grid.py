"""
grid.py — Lattice Grid + Refinement Tree
=========================================
One LatticeGrid per refinement level per sub-region. This is the single
source of truth every stage reads and writes in place.

Field layout (site-major, direction last):
  - f, feq, force_i          → shape (*shape, Q)
  - rho, rho_timeav          → shape (*shape,)
  - u, force_xyz, ui_timeav  → shape (*shape, dims)
  - uiuj_timeav              → shape (*shape, dims*(dims+1)/2)
  - kinds                    → shape (*shape,)  SiteKind codes

Refinement is an explicit tree: a grid owns its children, and each child
records the inclusive window of parent indices it covers (coarse_limits).
Refinement ratio is always 2 per level, in space and in time.
"""

import numpy as np

from .collision import COLLISION_MODELS, COLLISION_BGK, equilibrium
from .errors import ConfigurationError, HierarchyError
from .lattice import Lattice, lattice_for_dims
from .sites import SiteKind, HaloLayout, is_solid, kinds_mask


class LatticeGrid:
    """
    Populations, macroscopic fields and site classification of one grid.

    Usage:
        grid = LatticeGrid((64, 32), omega=1.2)
        grid.kinds[:, 0] = SiteKind.SOLID
        grid.initialise(rho=1.0)
        child = grid.add_child(((20, 35), (8, 20)))
    """

    def __init__(self, shape: tuple, omega: float = 1.0, level: int = 0, region: int = 0,
                 lattice: Lattice = None, dx: float = 1.0, origin: tuple = None,
                 collision: str = COLLISION_BGK, mrt_rates=None):
        """
        Args:
            shape     : Site count per axis, (nx, ny) or (nx, ny, nz)
            omega     : BGK relaxation rate 1/tau (0 < omega < 2)
            level     : Refinement level (0 = coarsest)
            region    : Region id among the siblings of this level
            lattice   : Velocity set; defaults to D2Q9 / D3Q19 by dimension
            dx        : Lattice spacing in physical units
            origin    : Physical position of the lower grid corner
            collision : "BGK" or "MRT", fixed for the lifetime of the grid
            mrt_rates : Per-moment relaxation rates (MRT only); defaults from omega
        """
        shape = tuple(int(n) for n in shape)
        if len(shape) not in (2, 3) or min(shape) < 1:
            raise ConfigurationError(f"Grid shape must be 2D or 3D with positive sizes, got {shape}")
        if not 0.0 < omega < 2.0:
            raise ConfigurationError(f"Relaxation rate omega={omega} outside the stable range (0, 2)")
        if collision not in COLLISION_MODELS:
            raise ConfigurationError(f"Unknown collision model: {collision}. Use one of {COLLISION_MODELS}.")

        self.shape = shape
        self.dims = len(shape)
        self.lattice = lattice if lattice is not None else lattice_for_dims(self.dims)
        if self.lattice.dims != self.dims:
            raise ConfigurationError(f"{self.lattice.name} cannot drive a {self.dims}D grid")

        self.omega = float(omega)
        self.collision = collision
        self.mrt_rates = (np.asarray(mrt_rates, dtype=np.float64) if mrt_rates is not None
                          else self.lattice.mrt_rates(self.omega))
        self.level = level
        self.region = region
        self.t = 0

        # ── Geometry: cell-centred coordinates along each axis ─────────────
        self.dx = float(dx)
        self.origin = tuple(origin) if origin is not None else (0.0,) * self.dims
        self.positions = tuple(
            self.origin[d] + self.dx * (np.arange(n) + 0.5) for d, n in enumerate(shape)
        )

        Q, dims = self.lattice.Q, self.dims
        n_products = dims * (dims + 1) // 2

        # ── Site classification ────────────────────────────────────────────
        self.kinds = np.full(shape, SiteKind.FLUID, dtype=np.int8)

        # ── Populations ────────────────────────────────────────────────────
        self.f   = np.zeros(shape + (Q,), dtype=np.float64)
        self.feq = np.zeros(shape + (Q,), dtype=np.float64)

        # ── Macroscopic + forcing fields ───────────────────────────────────
        self.rho       = np.ones(shape, dtype=np.float64)
        self.u         = np.zeros(shape + (dims,), dtype=np.float64)
        self.force_xyz = np.zeros(shape + (dims,), dtype=np.float64)
        self.force_i   = np.zeros(shape + (Q,), dtype=np.float64)

        # ── Running time averages ──────────────────────────────────────────
        self.rho_timeav  = np.zeros(shape, dtype=np.float64)
        self.ui_timeav   = np.zeros(shape + (dims,), dtype=np.float64)
        self.uiuj_timeav = np.zeros(shape + (n_products,), dtype=np.float64)

        # Velocity imposed at VELOCITY_INLET sites
        self.inlet_velocity = np.zeros(dims, dtype=np.float64)

        # ── Hierarchy + distribution ───────────────────────────────────────
        self.children = []
        self.coarse_limits = None
        self.halo = None

    # ──────────────────────────────────────────────────────────────────────
    # Setup
    # ──────────────────────────────────────────────────────────────────────

    def initialise(self, rho=1.0, u=None):
        """
        Set density/velocity and put every population at equilibrium.

        Args:
            rho : Scalar or array of shape `grid.shape`
            u   : None (fluid at rest), a velocity vector, or an array (*shape, dims)
        """
        self.rho[...] = rho
        if u is None:
            self.u[...] = 0.0
        else:
            self.u[...] = u
        self.f[...] = equilibrium(self.rho, self.u, self.lattice)
        self.feq[...] = self.f

    def set_halo(self, halo: HaloLayout):
        """Attach the recv/send layer classification for a distributed run."""
        halo.check_shape(self.shape)
        self.halo = halo

    def add_child(self, limits, region: int = None) -> "LatticeGrid":
        """
        Refine a window of this grid by a factor of 2.

        Tags the window on this grid (outer ring → TRANSITION_TO_FINE,
        interior → REFINED, solids → SOLID_REFINED) and builds the child with
        a TRANSITION_TO_COARSE band along its edge, one coarse site wide.

        Args:
            limits : Inclusive (start, end) pair of parent indices per axis
            region : Region id of the child; defaults to the next free one

        Returns:
            The new child grid (already initialised from this grid's fields).
        """
        limits = tuple((int(lo), int(hi)) for lo, hi in limits)
        if len(limits) != self.dims:
            raise HierarchyError(f"Refinement window needs {self.dims} axis limits, got {len(limits)}")
        for d, (lo, hi) in enumerate(limits):
            if lo < 0 or hi >= self.shape[d] or hi < lo:
                raise HierarchyError(
                    f"Refinement window {limits} does not fit inside grid of shape {self.shape}"
                )

        window = tuple(slice(lo, hi + 1) for lo, hi in limits)
        coarse_kinds = self.kinds[window]
        allowed = kinds_mask(coarse_kinds, SiteKind.FLUID, SiteKind.SOLID)
        if not allowed.all():
            raise HierarchyError(
                f"Refinement window {limits} overlaps sites that are neither FLUID nor SOLID"
            )

        if region is None:
            region = len(self.children)
        if any(child.region == region for child in self.children):
            raise HierarchyError(f"Level {self.level + 1} already has a region {region}")

        fine_shape = tuple(2 * (hi - lo + 1) for lo, hi in limits)
        fine_omega = 1.0 / (2.0 / self.omega - 0.5)   # tau_f = 2 tau_c - 1/2
        child = LatticeGrid(
            fine_shape,
            omega=fine_omega,
            level=self.level + 1,
            region=region,
            lattice=self.lattice,
            dx=self.dx / 2.0,
            origin=tuple(self.origin[d] + lo * self.dx for d, (lo, _) in enumerate(limits)),
            collision=self.collision,
        )
        child.coarse_limits = limits
        child.inlet_velocity[...] = self.inlet_velocity

        # ── Tag the child: solids inherited, outer band talks to the parent ─
        solid = coarse_kinds == SiteKind.SOLID
        fine_solid = upsample(solid)
        child.kinds[fine_solid] = SiteKind.SOLID
        band = np.ones(fine_shape, dtype=bool)
        band[tuple(slice(2, n - 2) for n in fine_shape)] = False
        child.kinds[band & ~fine_solid] = SiteKind.TRANSITION_TO_COARSE

        # ── Tag the parent window ──────────────────────────────────────────
        ring = np.ones(coarse_kinds.shape, dtype=bool)
        ring[tuple(slice(1, n - 1) for n in coarse_kinds.shape)] = False
        tagged = np.where(ring, SiteKind.TRANSITION_TO_FINE, SiteKind.REFINED)
        tagged = np.where(solid, SiteKind.SOLID_REFINED, tagged)
        self.kinds[window] = tagged

        # ── Seed the child from the parent's current state ─────────────────
        child.initialise(rho=upsample(self.rho[window]), u=upsample(self.u[window], self.dims))

        self.children.append(child)
        return child

    # ──────────────────────────────────────────────────────────────────────
    # Hierarchy lookup
    # ──────────────────────────────────────────────────────────────────────

    def walk(self):
        """Yield this grid and every descendant, parents before children."""
        yield self
        for child in self.children:
            yield from child.walk()

    def get_child(self, region: int) -> "LatticeGrid":
        for child in self.children:
            if child.region == region:
                return child
        raise HierarchyError(f"Grid level={self.level} region={self.region} has no child region {region}")

    def find(self, level: int, region: int) -> "LatticeGrid":
        """
        Look up the grid at (level, region) anywhere under this one.

        Raises:
            HierarchyError if no such grid exists.
        """
        for grid in self.walk():
            if grid.level == level and grid.region == region:
                return grid
        raise HierarchyError(f"No grid at level={level} region={region}")

    # ──────────────────────────────────────────────────────────────────────
    # State
    # ──────────────────────────────────────────────────────────────────────

    def save_state(self) -> dict:
        """
        Copy of everything a time step mutates.

        Used by the IBM predictor-corrector (snapshot + rewind) and by output
        writers, which must never hold references into live arrays.
        """
        return {
            "t":           self.t,
            "f":           self.f.copy(),
            "rho":         self.rho.copy(),
            "u":           self.u.copy(),
            "rho_timeav":  self.rho_timeav.copy(),
            "ui_timeav":   self.ui_timeav.copy(),
            "uiuj_timeav": self.uiuj_timeav.copy(),
        }

    def load_state(self, state: dict):
        """Restore a dict produced by save_state()."""
        self.t = state["t"]
        np.copyto(self.f, state["f"])
        np.copyto(self.rho, state["rho"])
        np.copyto(self.u, state["u"])
        np.copyto(self.rho_timeav, state["rho_timeav"])
        np.copyto(self.ui_timeav, state["ui_timeav"])
        np.copyto(self.uiuj_timeav, state["uiuj_timeav"])

    def is_finite(self) -> bool:
        return bool(np.isfinite(self.f).all())

    def total_mass(self) -> float:
        """Sum of all populations on sites this level owns (REFINED excluded)."""
        owned = self.kinds != SiteKind.REFINED
        return float(self.f[owned].sum())

    def max_velocity(self) -> float:
        return float(np.sqrt((self.u ** 2).sum(axis=-1)).max())

    def __repr__(self):
        fluid = ~is_solid(self.kinds) & (self.kinds != SiteKind.REFINED)
        rho = self.rho[fluid] if fluid.any() else self.rho
        return (
            f"LatticeGrid(level={self.level}, region={self.region}, shape={self.shape}, "
            f"{self.lattice.name}, {self.collision}, omega={self.omega:.4f}, t={self.t})\n"
            f"  density  : min={rho.min():.4f}, max={rho.max():.4f}, mass={self.total_mass():.4f}\n"
            f"  velocity : max_magnitude={self.max_velocity():.5f}\n"
            f"  children : {len(self.children)}"
        )


def upsample(coarse: np.ndarray, spatial_dims: int = None) -> np.ndarray:
    """
    Repeat every coarse site 2x along each spatial axis.

    Trailing non-spatial axes (directions, vector components) are left alone
    when `spatial_dims` is given.
    """
    if spatial_dims is None:
        spatial_dims = coarse.ndim
    out = coarse
    for axis in range(spatial_dims):
        out = np.repeat(out, 2, axis=axis)
    return out
