"""Relocation proposals and annealing draws, generated ahead of a run."""

from __future__ import annotations

import numpy as np

from ECHO.src.core.types import PerturbationPlan, Window
from ECHO.src.drivers.sampler import UniformSampler


class PerturbationGenerator:
    def __init__(self, sampler: UniformSampler, rng: np.random.Generator):
        self.sampler = sampler
        self.rng = rng

    def generate(self, n_points: int, window: Window, max_runs: int, annealing: float) -> PerturbationPlan:
        """
        Draw, in this order: `max_runs` point indices (uniform, with replacement),
        `max_runs` candidate coordinates inside `window`, and `max_runs` annealing
        thresholds on [0, 1).

        With annealing == 0 the thresholds are a constant 1.0, which no
        probability in [0, 1] exceeds, so worse proposals are never kept.
        """
        rp_id = self.rng.integers(0, n_points, size=max_runs)
        rp_coords = self.sampler.sample(max_runs, window, self.rng).points

        if annealing != 0:
            random_annealing = self.rng.uniform(0.0, 1.0, size=max_runs)
        else:
            random_annealing = np.ones(max_runs, dtype=np.float64)

        return PerturbationPlan(rp_id, rp_coords, random_annealing)
