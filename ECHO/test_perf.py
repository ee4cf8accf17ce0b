import time
import numpy as np
from ECHO.config import Config
from ECHO.src.core.types import Window
from ECHO.src.drivers.sampler import RectangleSampler
from ECHO.src.drivers.statistics import SpatialStatistics, rmax_rule

def test_perf():
    config = Config()
    stats = SpatialStatistics.from_config(config)
    sampler = RectangleSampler()
    rng = np.random.default_rng(0)
    window = Window(0.0, 1.0, 0.0, 1.0)

    # Pattern at the exact/fast switch point
    n = config.COMP_FAST
    print(f"Creating {n} point pattern...")
    pattern = sampler.sample(n, window, rng)
    r = np.linspace(0.0, rmax_rule(window, pattern.intensity), config.R_LENGTH)

    print("Starting exact estimation...")
    start = time.time()
    exact = stats.evaluate(pattern, r, fast=False)
    end = time.time()
    print(f"Exact Time: {end - start:.4f} seconds")

    print("Starting fast estimation...")
    start = time.time()
    fast = stats.evaluate(pattern, r, fast=True)
    end = time.time()
    print(f"Fast Time: {end - start:.4f} seconds")

    band = (r > 0.05) & (r < 0.2)
    print(f"Mean g(r) exact: {np.nanmean(exact.pcf[band]):.3f} | fast: {np.nanmean(fast.pcf[band]):.3f} (CSR ~1)")

    if end - start > 1.0:
        print("FAIL: Fast estimation too slow!")
    else:
        print("PASS: Fast estimation within budget.")

    print("\nStarting estimation (LARGE PATTERN)...")
    pattern = sampler.sample(10 * n, window, rng)
    r = np.linspace(0.0, rmax_rule(window, pattern.intensity), config.R_LENGTH)

    start = time.time()
    stats.evaluate(pattern, r, fast=True)
    end = time.time()
    print(f"Large Fast Time: {end - start:.4f} seconds")

if __name__ == "__main__":
    test_perf()
