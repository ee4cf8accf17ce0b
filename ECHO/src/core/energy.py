"""Energy between the summary functions of two point patterns."""

from __future__ import annotations

import logging

import numpy as np

from ECHO.src.core.types import SummaryCurves

logger = logging.getLogger(__name__)


def mean_abs_difference(a: np.ndarray, b: np.ndarray) -> float:
    """Mean |a - b| over grid points where both curves are defined.

    A curve pair without a single comparable point contributes 0.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    valid = np.isfinite(a) & np.isfinite(b)
    if not np.any(valid):
        logger.debug("No comparable grid points; statistic contributes 0.")
        return 0.0
    return float(np.mean(np.abs(a[valid] - b[valid])))


def calculate_energy(
    observed: SummaryCurves, simulated: SummaryCurves, weights: tuple[float, float]
) -> float:
    """Weighted sum of the G(r) and g(r) deviations."""
    w_gest, w_pcf = weights
    return (
        mean_abs_difference(observed.gest, simulated.gest) * w_gest
        + mean_abs_difference(observed.pcf, simulated.pcf) * w_pcf
    )
