"""Reading observed patterns and writing reconstruction results."""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Optional

import matplotlib
import matplotlib.pyplot as plt
import numpy as np

from ECHO.src.core.types import PointPattern, ReconstructionResult, Window

matplotlib.use("Agg")

logger = logging.getLogger(__name__)


def load_pattern(path: Path, window: Optional[Window] = None) -> PointPattern:
    """
    Read a point pattern from a CSV file with `x`, `y` and an optional `mark` column.
    Without an explicit window the bounding box of the points is used.
    """
    path = Path(path)
    xs: list[float] = []
    ys: list[float] = []
    marks: list[str] = []

    with path.open(newline="") as f:
        reader = csv.DictReader(f)
        header = [name.strip().lower() for name in (reader.fieldnames or [])]
        if "x" not in header or "y" not in header:
            raise ValueError(f"{path.name}: expected 'x' and 'y' columns, found {header}")
        reader.fieldnames = header
        has_marks = "mark" in header

        for line_no, row in enumerate(reader, start=2):
            try:
                xs.append(float(row["x"]))
                ys.append(float(row["y"]))
            except (TypeError, ValueError):
                raise ValueError(f"{path.name}:{line_no}: invalid coordinates {row}") from None
            if has_marks:
                marks.append(row["mark"])

    if not xs:
        raise ValueError(f"{path.name}: no points found")

    points = np.column_stack((xs, ys)).astype(np.float64)
    if window is None:
        window = Window.bounding_box(points)
    return PointPattern(points, window, np.asarray(marks) if marks else None)


def save_pattern(pattern: PointPattern, path: Path) -> None:
    with Path(path).open("w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["x", "y"])
        writer.writerows(pattern.points.tolist())


def save_reconstruction(result: ReconstructionResult, out_dir: Path) -> Path:
    """Write point files, energy histories, a JSON summary and a diagnostic figure."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    for name, res in result.randomized.items():
        save_pattern(res.pattern, out_dir / f"{name}.csv")

    with (out_dir / "energy.csv").open("w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["run", "i", "energy"])
        for name, res in result.randomized.items():
            for i, energy in res.history():
                writer.writerow([name, int(i), float(energy)])

    summary = {
        "method": result.method,
        "fast": result.fast,
        "r_max": float(result.r[-1]),
        "r_length": int(result.r.size),
        "meta": result.meta,
        "runs": {
            name: {
                "iterations": res.iterations,
                "stop_criterion": res.stop_criterion,
                "final_energy": res.final_energy,
            }
            for name, res in result.randomized.items()
        },
        "failed": result.failed,
    }
    (out_dir / "summary.json").write_text(json.dumps(summary, indent=2, default=str))

    plot_path = out_dir / "reconstruction.png"
    _save_figure(result, plot_path)
    logger.info("Results saved to %s", out_dir)
    return plot_path


def _save_figure(result: ReconstructionResult, plot_path: Path) -> None:
    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(10, 12))

    for name, res in result.randomized.items():
        ax1.plot(np.arange(1, res.iterations + 1), res.energy, lw=1.2, label=name)
    ax1.set_title("Energy during reconstruction")
    ax1.set_xlabel("Iteration")
    ax1.set_ylabel("Energy")
    ax1.grid(True, which="both", linestyle="-", alpha=0.6)
    if len(result.randomized) <= 10:
        ax1.legend()

    ax2.plot(result.r, result.observed_curves.pcf, "k-", lw=2.0, label="observed")
    for res in result.randomized.values():
        ax2.plot(res.curves.r, res.curves.pcf, "r-", lw=0.8, alpha=0.6)
    ax2.plot([], [], "r-", label="reconstructed")
    ax2.axhline(1.0, color="grey", linestyle="--")
    ax2.set_title("Pair correlation function")
    ax2.set_xlabel("r")
    ax2.set_ylabel("g(r)")
    ax2.grid(True, which="both", linestyle="-", alpha=0.6)
    ax2.legend()

    plt.tight_layout()
    plt.savefig(plot_path)
    plt.close(fig)
