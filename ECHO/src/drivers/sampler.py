import numpy as np
from abc import ABC, abstractmethod

from ECHO.src.core.types import PointPattern, Window

class UniformSampler(ABC):
    @abstractmethod
    def sample(self, count: int, window: Window, rng: np.random.Generator) -> PointPattern: pass

class RectangleSampler(UniformSampler):
    """Complete spatial randomness: `count` independent uniform points in a rectangle."""

    def sample(self, count: int, window: Window, rng: np.random.Generator) -> PointPattern:
        x = rng.uniform(window.xmin, window.xmax, count)
        y = rng.uniform(window.ymin, window.ymax, count)
        return PointPattern(np.column_stack((x, y)), window)
