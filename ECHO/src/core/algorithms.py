"""Pattern reconstruction: the annealing loop and its multi-run orchestration."""

from __future__ import annotations

import dataclasses
import logging
from multiprocessing.pool import ThreadPool
from typing import Optional, Union

import numpy as np

from ECHO.config import Config, ConfigurationError
from ECHO.src.core.energy import calculate_energy
from ECHO.src.core.perturbation import PerturbationGenerator
from ECHO.src.core.progress import Observer, ProgressLogger, chain_observers
from ECHO.src.core.types import (
    PerturbationPlan,
    PointPattern,
    ReconstructionResult,
    RunResult,
    StopCriterion,
    SummaryCurves,
    Window,
    randomization_name,
)
from ECHO.src.drivers.sampler import RectangleSampler, UniformSampler
from ECHO.src.drivers.statistics import SpatialStatistics, SummaryStatisticProvider, rmax_rule

logger = logging.getLogger(__name__)


class AnnealingLoop:
    """Relocates one point per iteration and keeps the move if the energy drops."""

    def __init__(
        self,
        config: Config,
        provider: SummaryStatisticProvider,
        r: np.ndarray,
        observed_curves: SummaryCurves,
        fast: bool = False,
        observer: Optional[Observer] = None,
    ):
        self.config = config
        self.provider = provider
        self.r = r
        self.observed_curves = observed_curves
        self.fast = fast
        self.observer = observer

    def evaluate(self, pattern: PointPattern) -> tuple[float, SummaryCurves]:
        curves = self.provider.evaluate(pattern, self.r, self.fast)
        return calculate_energy(self.observed_curves, curves, self.config.weights), curves

    def run(self, simulated: PointPattern, plan: PerturbationPlan, run_index: int = 1) -> RunResult:
        max_runs = int(self.config.MAX_RUNS)
        annealing = float(self.config.ANNEALING)
        e_threshold = float(self.config.E_THRESHOLD)
        no_change = self.config.NO_CHANGE

        if len(plan.rp_id) < max_runs:
            raise ValueError(f"Perturbation plan covers {len(plan.rp_id)} of {max_runs} iterations.")

        energy_current, curves_current = self.evaluate(simulated)
        energy_hist = np.full(max_runs, np.nan)
        energy_counter = 0
        iterations = 0
        stop_criterion = StopCriterion.MAX_RUNS

        for i in range(max_runs):
            relocated = simulated.relocate(int(plan.rp_id[i]), plan.rp_coords[i])
            energy_relocated, curves_relocated = self.evaluate(relocated)

            if energy_relocated < energy_current or plan.random_annealing[i] < annealing:
                simulated = relocated
                energy_current = energy_relocated
                curves_current = curves_relocated
                energy_counter = 0
            else:
                energy_counter += 1

            iterations += 1
            energy_hist[i] = energy_current

            if self.observer:
                self.observer(run_index, iterations, energy_current)

            if energy_current <= e_threshold or energy_counter > no_change:
                stop_criterion = StopCriterion.ENERGY
                break

        return RunResult(
            run_index,
            simulated,
            energy_hist[:iterations],
            iterations,
            stop_criterion,
            curves_current,
        )


class ReconstructionOrchestrator:
    """Runs `N_RANDOM` independent reconstructions of one observed pattern."""

    def __init__(
        self,
        config: Config,
        provider: Optional[SummaryStatisticProvider] = None,
        sampler: Optional[UniformSampler] = None,
        observer: Optional[Observer] = None,
    ):
        self.config = config
        self.provider = provider or SpatialStatistics.from_config(config)
        self.sampler = sampler or RectangleSampler()
        self.observer = observer

    def run(self, pattern: PointPattern, window: Optional[Window] = None) -> ReconstructionResult:
        cfg = self.config
        cfg.validate()

        if pattern.is_marked:
            pattern = pattern.unmark()
            if cfg.VERBOSE:
                logger.warning("Unmarked provided input pattern; marks are not reconstructed.")

        n_points = cfg.N_POINTS
        if n_points is None:
            logger.info("Using number of points of 'pattern'.")
            n_points = pattern.n
        if n_points < 1:
            raise ConfigurationError("Number of points must be positive.")

        if window is None:
            logger.info("Using window of 'pattern'.")
            window = pattern.window
        if window.width <= 0 or window.height <= 0:
            raise ConfigurationError(f"Window has no area: {window}")

        intensity = n_points / window.area

        fast = n_points > cfg.COMP_FAST
        if fast and cfg.VERBOSE:
            logger.info("Using fast computation of summary functions.")

        r_max = cfg.R_MAX if cfg.R_MAX is not None else rmax_rule(window, intensity)
        r = np.linspace(0.0, r_max, int(cfg.R_LENGTH))
        r.setflags(write=False)

        observed_curves = self.provider.evaluate(pattern, r, fast)

        progress = None
        if cfg.VERBOSE:
            progress = ProgressLogger(cfg.N_RANDOM, cfg.MAX_RUNS, cfg.PROGRESS_EVERY)
        observer = chain_observers(progress, self.observer)

        loop = AnnealingLoop(cfg, self.provider, r, observed_curves, fast=fast, observer=observer)
        seeds = np.random.SeedSequence(cfg.SEED).spawn(cfg.N_RANDOM)
        tasks = [(loop, k + 1, seed, n_points, window, progress) for k, seed in enumerate(seeds)]

        if cfg.N_WORKERS > 1 and cfg.N_RANDOM > 1:
            with ThreadPool(processes=min(cfg.N_WORKERS, cfg.N_RANDOM)) as pool:
                outcomes = pool.starmap(self._attempt_one, tasks)
        else:
            outcomes = [self._attempt_one(*task) for task in tasks]

        randomized, failed = {}, {}
        for (_, run_index, *_), outcome in zip(tasks, outcomes):
            name = randomization_name(run_index)
            if isinstance(outcome, RunResult):
                randomized[name] = outcome
            else:
                failed[name] = f"{type(outcome).__name__}: {outcome}"

        if not randomized:
            raise RuntimeError(f"All {cfg.N_RANDOM} reconstruction runs failed.") from outcomes[-1]
        if failed:
            logger.warning("%d of %d runs failed: %s", len(failed), cfg.N_RANDOM, ", ".join(failed))

        return ReconstructionResult(
            randomized=randomized,
            observed=pattern,
            r=r,
            observed_curves=observed_curves,
            fast=fast,
            meta={"n_points": n_points, "window": tuple(window), "intensity": intensity, "seed": cfg.SEED},
            failed=failed,
        )

    def _attempt_one(self, loop: AnnealingLoop, run_index: int, *args) -> Union[RunResult, Exception]:
        """Run one reconstruction; a failure is returned instead of raised so sibling runs finish."""
        try:
            return self._reconstruct_one(loop, run_index, *args)
        except Exception as e:
            logger.exception("Run %d/%d failed", run_index, self.config.N_RANDOM)
            return e

    def _reconstruct_one(
        self,
        loop: AnnealingLoop,
        run_index: int,
        seed: np.random.SeedSequence,
        n_points: int,
        window: Window,
        progress: Optional[ProgressLogger] = None,
    ) -> RunResult:
        rng = np.random.default_rng(seed)
        simulated = self.sampler.sample(n_points, window, rng)
        plan = PerturbationGenerator(self.sampler, rng).generate(
            n_points, window, self.config.MAX_RUNS, self.config.ANNEALING
        )
        res = loop.run(simulated, plan, run_index)
        if progress:
            progress.finish(run_index, res.iterations, res.final_energy)
        logger.info(
            "Run %d/%d finished: %d iterations, energy = %.5f (%s)",
            run_index,
            self.config.N_RANDOM,
            res.iterations,
            res.final_energy,
            res.stop_criterion,
        )
        return res


def finalize_result(
    result: ReconstructionResult,
    return_input: bool = True,
    simplify: bool = False,
    verbose: bool = True,
) -> Union[ReconstructionResult, PointPattern]:
    """Optionally drop the observed pattern and unwrap a single reconstruction."""
    if return_input:
        if simplify and verbose:
            logger.warning("'simplify' not possible while the input pattern is returned.")
        return result

    result = dataclasses.replace(result, observed=None)
    if simplify:
        if len(result.randomized) > 1:
            if verbose:
                logger.warning("'simplify' not possible for more than one randomization.")
        else:
            return next(iter(result.randomized.values())).pattern
    return result
