"""
main.py — Master Entry Point
=============================
Top-level script that runs the solver on one of the canned cases.

Usage:
    python main.py                              # Headless lid-driven cavity (default)
    python main.py --case channel --refine      # Refined channel around a cylinder
    python main.py --mode benchmark             # Per-step timing breakdown
    python main.py --mode data --output data    # Write .npy snapshots + metadata.json
    python main.py --mode live                  # Live matplotlib viewer
"""

import argparse
import logging

import numpy as np

logger = logging.getLogger("lbm")


def setup_logging(verbose: bool) -> None:
    """
    Configure global logging.

    Args:
        verbose: If True, set DEBUG level, otherwise INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%H:%M:%S",
    )

    # Reduce noise from libraries
    logging.getLogger("matplotlib").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def build_simulation(case: str = "cavity", nx: int = 64, ny: int = 64, omega: float = 1.0,
                     collision: str = "BGK", refine: bool = False):
    """Build the grid hierarchy for `case` and wrap it in an LBMSimulation."""
    from lbm import LBMSimulation, SolverConfig, build_case

    config = SolverConfig(collision=collision, periodic=(case == "periodic"))
    kwargs = {"omega": omega, "collision": config.collision}

    if case == "periodic":
        kwargs.update(shape=(nx, ny), shear_amplitude=0.05)
    elif case == "cavity":
        kwargs.update(nx=nx, ny=ny)
        if refine:
            kwargs["refine"] = ((nx // 4, 3 * nx // 4 - 1), (ny // 2, ny - 4))
    else:
        kwargs.update(nx=nx, ny=ny)

    grid = build_case(case, **kwargs)
    return LBMSimulation(grid, config)


def run_live(sim, steps: int = 500):
    """Live interactive visualization."""
    from visualizer import FlowVisualizer

    print("Starting live simulation...")
    print("Close the window to exit.\n")

    viz = FlowVisualizer(sim)
    viz.run(fps=20, frames=steps)


def run_headless(sim, steps: int = 1000):
    """Run without display, printing stats every tenth of the run."""
    print(f"\nHeadless simulation | {sim.grid.shape} | {steps} steps")
    print(f"{'─'*60}")

    every = max(steps // 10, 1)
    total_times = []

    for n in range(steps):
        metrics = sim.step()
        total_times.append(metrics["total_ms"])

        if n % every == 0:
            print(f"  Step {metrics['step']:05d} | {metrics['total_ms']:6.2f}ms | "
                  f"mass={metrics['mass_total']:.6f} | "
                  f"|u|max={metrics['max_velocity']:.5f}")

    print(f"\n{'─'*60}")
    print(f"  Average: {np.mean(total_times):.2f}ms/step")
    print(f"  Min:     {np.min(total_times):.2f}ms")
    print(f"  Max:     {np.max(total_times):.2f}ms")
    sim.print_status()


def run_benchmark(sim, steps: int = 200):
    """
    Per-stage timing of the level-0 sub-step.

    Times each stage function directly on the coarsest grid so the numbers
    can be compared between BGK and MRT or between resolutions.
    """
    import time

    from lbm.boundary import apply_bounce_back
    from lbm.collision import collide
    from lbm.forces import compute_forces
    from lbm.macro import compute_macroscopic
    from lbm.stream import stream

    grid = sim.grid
    cfg = sim.config
    stages = {
        "forces_ms"   : lambda: compute_forces(grid, gravity=cfg.gravity, gravity_axis=cfg.gravity_axis),
        "collide_ms"  : lambda: collide(grid),
        "bounce_ms"   : lambda: apply_bounce_back(grid),
        "stream_ms"   : lambda: stream(grid, periodic=cfg.periodic),
        "macro_ms"    : lambda: compute_macroscopic(grid),
    }

    print(f"\n{'='*60}")
    print(f"  LBM BENCHMARK | {grid.shape} {grid.collision} | {steps} steps")
    print(f"{'='*60}")

    # Warm up
    sim.run(5)

    # Stages alone skip level coupling, so rewind afterwards
    saved = grid.save_state()
    logs = {k: [] for k in stages}
    for _ in range(steps):
        for name, stage in stages.items():
            t0 = time.perf_counter()
            stage()
            logs[name].append((time.perf_counter() - t0) * 1000)
    grid.load_state(saved)

    full = [m["total_ms"] for m in sim.run(steps)]

    print(f"\n{'Stage':<20} {'Mean':>8} {'Min':>8} {'Max':>8}")
    print(f"{'─'*50}")
    for name, vals in logs.items():
        print(f"  {name:<18} {np.mean(vals):>7.3f}ms {np.min(vals):>7.3f}ms {np.max(vals):>7.3f}ms")

    print(f"\n{'─'*50}")
    print(f"  Full step (all levels): {np.mean(full):.3f}ms")
    print(f"  Site updates / s (level 0): {grid.f[..., 0].size / (np.mean(full) / 1000):.3e}")


def run_data_generation(sim, steps: int = 1000, output: str = "data", save_every: int = 50):
    """Write snapshots of every grid to `output`."""
    from data_pipeline import SnapshotWriter

    print("\nData generation mode")
    print(f"  {steps} steps, snapshot every {save_every}")
    print(f"  Saving to: {output}/\n")

    writer = SnapshotWriter(output_dir=output)
    writer.record_run(sim, run_id=1, n_steps=steps, save_every=save_every)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Multi-resolution Lattice Boltzmann solver")
    parser.add_argument(
        "--mode", choices=["live", "headless", "benchmark", "data"],
        default="headless",
        help="Run mode (default: headless)"
    )
    parser.add_argument("--case", choices=["cavity", "periodic", "channel"], default="cavity",
                        help="Flow case (default: cavity)")
    parser.add_argument("--nx",        type=int,   default=64,   help="Coarse sites along x (default: 64)")
    parser.add_argument("--ny",        type=int,   default=64,   help="Coarse sites along y (default: 64)")
    parser.add_argument("--steps",     type=int,   default=1000, help="Number of coarse time steps")
    parser.add_argument("--omega",     type=float, default=1.0,  help="Coarse relaxation rate (0, 2)")
    parser.add_argument("--collision", choices=["BGK", "MRT"], default="BGK", help="Collision model")
    parser.add_argument("--refine",    action="store_true", help="Add a refined patch (cavity)")
    parser.add_argument("--output",    type=str,   default="data", help="Output directory for --mode data")
    parser.add_argument("--verbose",   action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    sim = build_simulation(
        case=args.case, nx=args.nx, ny=args.ny, omega=args.omega,
        collision=args.collision, refine=args.refine,
    )
    logger.info("Grid hierarchy: %d grid(s)", sum(1 for _ in sim.grid.walk()))

    if args.mode == "live":
        run_live(sim, steps=args.steps)
    elif args.mode == "headless":
        run_headless(sim, steps=args.steps)
    elif args.mode == "benchmark":
        run_benchmark(sim, steps=args.steps)
    elif args.mode == "data":
        run_data_generation(sim, steps=args.steps, output=args.output)
    return sim


if __name__ == "__main__":
    main()
