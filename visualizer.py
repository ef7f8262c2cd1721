"""
visualizer.py — Flow Field Viewer
==================================
Renders the coarsest grid as two panels:
  - velocity magnitude |u|
  - density rho
with the outline of every refined patch drawn on top.

3D grids are shown as the mid-plane slice along z.

Uses matplotlib FuncAnimation for real-time updates; `save_figure` writes a
single still for reports.
"""

import numpy as np
import matplotlib.pyplot as plt
import matplotlib.animation as animation
from matplotlib.colors import LinearSegmentedColormap
from matplotlib.patches import Rectangle

from lbm.sites import SiteKind, is_solid

# Flow colormap: black → deep blue → cyan → white
FLOW_COLORS = ["#000000", "#0b1a4a", "#1f8fd1", "#ffffff"]
flow_cmap = LinearSegmentedColormap.from_list("flow", FLOW_COLORS)


def plane(field: np.ndarray) -> np.ndarray:
    """2D view of a scalar site field: itself in 2D, the z mid-plane in 3D."""
    if field.ndim == 3:
        field = field[:, :, field.shape[2] // 2]
    return field.T   # transpose so x is horizontal


class FlowVisualizer:
    """
    Real-time viewer of an LBMSimulation.

    Usage (standalone):
        from lbm import LBMSimulation, lid_driven_cavity
        from visualizer import FlowVisualizer

        sim = LBMSimulation(lid_driven_cavity(64, 64))
        viz = FlowVisualizer(sim)
        viz.run()  # Opens live window
    """

    def __init__(self, simulation, steps_per_frame: int = 10, u_max: float = None):
        """
        Args:
            simulation      : LBMSimulation instance
            steps_per_frame : Solver steps between redraws
            u_max           : Colour scale limit for |u|; defaults to the
                              largest inlet speed in the hierarchy
        """
        self.sim = simulation
        self.steps_per_frame = steps_per_frame
        if u_max is None:
            inlet = max(float(np.linalg.norm(g.inlet_velocity)) for g in simulation.grid.walk())
            u_max = inlet * 1.5 if inlet > 0 else 0.1
        self.u_max = u_max

        self._setup_figure()

    def _setup_figure(self):
        """Initialize the matplotlib figure with 2 subplots."""
        grid = self.sim.grid
        self.fig, self.axes = plt.subplots(1, 2, figsize=(12, 5))
        self.fig.patch.set_facecolor('#0a0a0a')

        nx, ny = grid.shape[0], grid.shape[1]
        x0, y0 = grid.origin[0], grid.origin[1]
        extent = (x0, x0 + nx * grid.dx, y0, y0 + ny * grid.dx)

        titles = ["|u| (level 0)", "rho (level 0)"]
        limits = [(0.0, self.u_max), (0.98, 1.02)]
        cmaps = [flow_cmap, "RdBu_r"]
        self.imgs = []

        dummy = np.zeros((ny, nx))

        for ax, title, (vmin, vmax), cmap in zip(self.axes, titles, limits, cmaps):
            ax.set_facecolor('#0a0a0a')
            ax.set_title(title, color='#aaaaaa', fontsize=9, fontfamily='monospace')
            ax.set_xticks([])
            ax.set_yticks([])
            for spine in ax.spines.values():
                spine.set_edgecolor('#333333')

            img = ax.imshow(
                dummy, cmap=cmap,
                vmin=vmin, vmax=vmax,
                interpolation='nearest',
                origin='lower',
                extent=extent,
                aspect='equal'
            )
            self.imgs.append(img)

            # Outline every refined patch in physical coordinates
            for g in grid.walk():
                if g.level == 0:
                    continue
                ax.add_patch(Rectangle(
                    (g.origin[0], g.origin[1]), g.shape[0] * g.dx, g.shape[1] * g.dx,
                    fill=False, edgecolor='#ffcc00', linewidth=0.8,
                ))

        self.title_text = self.fig.suptitle(
            "LBM — Step 0",
            color='#cccccc', fontsize=10, fontfamily='monospace'
        )

        plt.tight_layout()

    def _get_planes(self) -> tuple:
        """Velocity magnitude and density planes of the coarsest grid, solids masked."""
        grid = self.sim.grid
        speed = np.sqrt((grid.u ** 2).sum(axis=-1))
        hidden = is_solid(grid.kinds) | (grid.kinds == SiteKind.REFINED)
        rho = np.where(hidden, np.nan, grid.rho)
        speed = np.where(hidden, np.nan, speed)
        return plane(speed), plane(rho)

    def draw(self, metrics: dict = None):
        """Refresh the images from the current solver state."""
        for img, p in zip(self.imgs, self._get_planes()):
            img.set_data(p)

        step = self.sim.grid.t
        if metrics is None:
            self.title_text.set_text(f"LBM — Step {step}")
        else:
            self.title_text.set_text(
                f"LBM — Step {step} | {metrics['total_ms']:.1f}ms/step | "
                f"|u|max={metrics['max_velocity']:.4f}"
            )
        return self.imgs + [self.title_text]

    def update(self, frame_num):
        """Called by FuncAnimation each frame. Steps sim and updates plots."""
        metrics = None
        for _ in range(self.steps_per_frame):
            metrics = self.sim.step()
        return self.draw(metrics)

    def run(self, fps: int = 20, frames: int = 500):
        """
        Start the live animation window.

        Args:
            fps    : Target animation frame rate
            frames : Total frames to render
        """
        interval_ms = 1000 // fps
        self.anim = animation.FuncAnimation(
            self.fig,
            self.update,
            frames=frames,
            interval=interval_ms,
            blit=True
        )
        plt.show()

    def save_figure(self, path: str = "lbm_flow.png", dpi: int = 120):
        """Save the current state as a still image."""
        self.draw()
        self.fig.savefig(path, dpi=dpi, facecolor=self.fig.get_facecolor())
        return path

    def save_gif(self, path: str = "lbm_flow.gif", fps: int = 10, frames: int = 100):
        """Save animation as a GIF (for reports and demos)."""
        print(f"Rendering {frames} frames to {path}...")
        self.anim = animation.FuncAnimation(
            self.fig, self.update, frames=frames, interval=100, blit=True
        )
        writer = animation.PillowWriter(fps=fps)
        self.anim.save(path, writer=writer)
        print(f"Saved: {path}")
