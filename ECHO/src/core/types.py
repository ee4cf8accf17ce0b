"""Shared core data structures used across estimation and orchestration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple, Optional

import numpy as np


class StopCriterion:
    MAX_RUNS = "max_runs"
    ENERGY = "e_threshold/no_change"


class Window(NamedTuple):
    """Rectangular observation window."""

    xmin: float
    xmax: float
    ymin: float
    ymax: float

    @property
    def width(self) -> float:
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def shortside(self) -> float:
        return min(self.width, self.height)

    def eroded_area(self, dist: np.ndarray) -> np.ndarray:
        """Area of the window eroded by each distance in `dist`."""
        dist = np.asarray(dist, dtype=np.float64)
        return np.clip(self.width - 2 * dist, 0.0, None) * np.clip(self.height - 2 * dist, 0.0, None)

    def boundary_distance(self, points: np.ndarray) -> np.ndarray:
        """Distance from each point to the nearest window edge."""
        x = points[:, 0]
        y = points[:, 1]
        return np.minimum.reduce([x - self.xmin, self.xmax - x, y - self.ymin, self.ymax - y])

    @classmethod
    def bounding_box(cls, points: np.ndarray) -> "Window":
        return cls(
            float(np.min(points[:, 0])),
            float(np.max(points[:, 0])),
            float(np.min(points[:, 1])),
            float(np.max(points[:, 1])),
        )


class PointPattern(NamedTuple):
    """Planar point pattern: (n, 2) coordinates inside a window, optionally marked."""

    points: np.ndarray
    window: Window
    marks: Optional[np.ndarray] = None

    @property
    def n(self) -> int:
        return int(self.points.shape[0])

    @property
    def is_marked(self) -> bool:
        return self.marks is not None

    @property
    def intensity(self) -> float:
        return self.n / self.window.area

    def unmark(self) -> "PointPattern":
        return PointPattern(self.points, self.window)

    def relocate(self, index: int, xy: np.ndarray) -> "PointPattern":
        """Copy of the pattern with point `index` moved to `xy`."""
        points = self.points.copy()
        points[index] = xy
        return PointPattern(points, self.window, self.marks)


class SummaryCurves(NamedTuple):
    """G(r) and g(r) evaluated on a shared distance grid."""

    r: np.ndarray
    gest: np.ndarray
    pcf: np.ndarray


class PerturbationPlan(NamedTuple):
    """Randomness drawn ahead of a run: one relocation per potential iteration."""

    rp_id: np.ndarray
    rp_coords: np.ndarray
    random_annealing: np.ndarray


class RunResult(NamedTuple):
    run_index: int
    pattern: PointPattern
    energy: np.ndarray
    iterations: int
    stop_criterion: str
    curves: SummaryCurves

    @property
    def final_energy(self) -> float:
        return float(self.energy[-1])

    def history(self) -> np.ndarray:
        """Table of (iteration, accepted energy) rows."""
        i = np.arange(1, self.iterations + 1, dtype=np.float64)
        return np.column_stack((i, self.energy))


@dataclass
class ReconstructionResult:
    randomized: dict[str, RunResult]
    observed: Optional[PointPattern]
    r: np.ndarray
    observed_curves: SummaryCurves
    method: str = "reconstruct_pattern_homo"
    fast: bool = False
    meta: dict = field(default_factory=dict)
    # Runs that raised, by name, with the error message.
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def energy(self) -> dict[str, np.ndarray]:
        return {name: res.history() for name, res in self.randomized.items()}

    @property
    def iterations(self) -> dict[str, int]:
        return {name: res.iterations for name, res in self.randomized.items()}

    @property
    def stop_criterion(self) -> dict[str, str]:
        return {name: res.stop_criterion for name, res in self.randomized.items()}


def randomization_name(run_index: int) -> str:
    return f"randomized_{run_index}"
