"""Per-iteration progress reporting for reconstruction runs."""

from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger(__name__)

# Called once per iteration with (run_index, iteration, accepted energy).
Observer = Callable[[int, int, float], None]


class ProgressLogger:
    def __init__(self, n_random: int, max_runs: int, every: int = 100):
        self.n_random = int(n_random)
        self.max_runs = int(max_runs)
        self.every = max(1, int(every))
        self._reported = {}

    def __call__(self, run_index: int, iteration: int, energy: float) -> None:
        if iteration % self.every and iteration != self.max_runs:
            return
        self._report(run_index, iteration, energy)

    def finish(self, run_index: int, iteration: int, energy: float) -> None:
        """Report the last iteration of a run that stopped between intervals."""
        if self._reported.get(run_index) != iteration:
            self._report(run_index, iteration, energy)

    def _report(self, run_index: int, iteration: int, energy: float) -> None:
        self._reported[run_index] = iteration
        logger.info(
            "Progress: n_random: %d/%d || max_runs: %d%% || energy = %.5f",
            run_index,
            self.n_random,
            iteration * 100 // self.max_runs,
            energy,
        )


def chain_observers(*observers: Observer) -> Observer:
    """Fan one iteration event out to several observers, skipping None."""
    active = [obs for obs in observers if obs is not None]

    def notify(run_index: int, iteration: int, energy: float) -> None:
        for obs in active:
            obs(run_index, iteration, energy)

    return notify
