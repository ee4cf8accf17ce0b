import sys
import argparse
import logging
from pathlib import Path

from ECHO.config import Config, ConfigurationError
from ECHO.src.core.algorithms import ReconstructionOrchestrator, finalize_result
from ECHO.src.core.storage import load_pattern, save_pattern, save_reconstruction
from ECHO.src.core.types import ReconstructionResult, Window

logger = logging.getLogger("ECHO")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Reconstruct homogeneous point patterns.")
    parser.add_argument("pattern", type=Path, help="CSV file with x,y[,mark] columns")
    parser.add_argument("--window", type=float, nargs=4, metavar=("XMIN", "XMAX", "YMIN", "YMAX"),
                        help="Observation window (default: bounding box of the points)")
    parser.add_argument("--config", type=Path, help="JSON config file (default: ~/.echo_config.json)")
    parser.add_argument("--n-random", type=int, help="Number of reconstructions")
    parser.add_argument("--max-runs", type=int, help="Maximum number of iterations per reconstruction")
    parser.add_argument("--n-points", type=int, help="Number of points to simulate")
    parser.add_argument("--seed", type=int, help="Seed for reproducible reconstructions")
    parser.add_argument("--workers", type=int, help="Number of reconstructions run in parallel")
    parser.add_argument("--output", type=Path, default=Path("reconstruction"), help="Output directory")
    parser.add_argument("--plot", action="store_true", help="Show the live plot window")
    parser.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    return parser.parse_args(argv)


def build_config(args) -> Config:
    config = Config.load(args.config)
    overrides = {
        "N_RANDOM": args.n_random,
        "MAX_RUNS": args.max_runs,
        "N_POINTS": args.n_points,
        "SEED": args.seed,
        "N_WORKERS": args.workers,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)
    if args.plot:
        config.PLOT = True
    if args.quiet:
        config.VERBOSE = False
    config.normalize()
    return config


def run_headless(config: Config, pattern, window):
    return ReconstructionOrchestrator(config).run(pattern, window)


def run_with_plot(config: Config, pattern, window):
    from PyQt5 import QtWidgets
    import pyqtgraph as pg

    from ECHO.src.core.worker import ReconstructionWorker
    from ECHO.src.ui.live_plot import LivePlotWindow

    app = QtWidgets.QApplication(sys.argv)
    pg.setConfigOptions(antialias=True)

    worker = ReconstructionWorker(config, pattern, window)
    plot_window = LivePlotWindow(worker, config)
    plot_window.show()
    worker.start()

    app.exec_()
    worker.wait()
    return worker.result


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = build_config(args)
    window = Window(*args.window) if args.window else None

    try:
        config.validate()
        pattern = load_pattern(args.pattern, window)
    except (ConfigurationError, OSError, ValueError) as e:
        logger.error("%s", e)
        return 2

    try:
        if config.PLOT:
            result = run_with_plot(config, pattern, window)
        else:
            result = run_headless(config, pattern, window)
    except ConfigurationError as e:
        logger.error("%s", e)
        return 2

    if result is None:
        logger.error("Reconstruction did not finish.")
        return 1

    save_reconstruction(result, args.output)
    final = finalize_result(result, config.RETURN_INPUT, config.SIMPLIFY, config.VERBOSE)
    if isinstance(final, ReconstructionResult):
        for name, res in final.randomized.items():
            logger.info("%s: %d iterations, energy = %.5f, stop: %s",
                        name, res.iterations, res.final_energy, res.stop_criterion)
    else:
        save_pattern(final, args.output / "reconstructed.csv")
        logger.info("Single reconstruction written to %s", args.output / "reconstructed.csv")
    return 0


if __name__ == "__main__":
    sys.exit(main())
