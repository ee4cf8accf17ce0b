"""Reconstruction configuration with simple JSON persistence."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Raised when a reconstruction is configured with invalid values."""


# Field annotations are strings under postponed evaluation.
_COERCE = {
    "bool": bool,
    "int": int,
    "float": float,
    "Optional[int]": int,
    "Optional[float]": float,
}


@dataclass
class Config:
    # Reconstruction
    N_RANDOM: int = 1
    E_THRESHOLD: float = 0.01
    MAX_RUNS: int = 1000
    NO_CHANGE: float = math.inf
    ANNEALING: float = 0.01
    N_POINTS: Optional[int] = None
    SEED: Optional[int] = None
    N_WORKERS: int = 1

    # Energy
    WEIGHT_GEST: float = 0.5
    WEIGHT_PCF: float = 0.5

    # Summary functions
    COMP_FAST: int = 1000
    R_LENGTH: int = 250
    R_MAX: Optional[float] = None
    PCF_STOYAN: float = 0.15
    PCF_SPAR: float = 0.5

    # Output
    RETURN_INPUT: bool = True
    SIMPLIFY: bool = False
    VERBOSE: bool = True
    PLOT: bool = False
    PROGRESS_EVERY: int = 100

    @property
    def weights(self) -> tuple[float, float]:
        return float(self.WEIGHT_GEST), float(self.WEIGHT_PCF)

    @staticmethod
    def default_path() -> Path:
        return Path.home() / ".echo_config.json"

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        cfg = cls()
        cfg_path = path or cls.default_path()
        if not cfg_path.exists():
            return cfg

        try:
            data = json.loads(cfg_path.read_text())
        except Exception:
            logger.exception("Failed to read config file: %s", cfg_path)
            return cfg

        for f in fields(cfg):
            if f.name not in data:
                continue
            raw = data[f.name]
            try:
                if raw is None and f.type.startswith("Optional"):
                    val = None
                else:
                    val = _COERCE.get(f.type, lambda v: v)(raw)
                setattr(cfg, f.name, val)
            except Exception:
                logger.warning("Ignoring invalid config value for %s", f.name)

        cfg.normalize()
        return cfg

    def save(self, path: Optional[Path] = None) -> None:
        cfg_path = path or self.default_path()
        cfg_path.write_text(json.dumps(asdict(self), indent=2, sort_keys=True))

    def normalize(self) -> None:
        if self.NO_CHANGE is None:
            self.NO_CHANGE = math.inf
        if self.N_WORKERS < 1:
            self.N_WORKERS = 1
        if self.PROGRESS_EVERY < 1:
            self.PROGRESS_EVERY = 1

    def validate(self) -> None:
        """Raise ConfigurationError for values no reconstruction can run with."""
        if self.N_RANDOM < 1:
            raise ConfigurationError("N_RANDOM must be >= 1.")
        if self.MAX_RUNS < 1:
            raise ConfigurationError("MAX_RUNS must be >= 1.")

        w_gest, w_pcf = self.weights
        if w_gest < 0 or w_pcf < 0:
            raise ConfigurationError("Weights must be non-negative.")
        if w_gest + w_pcf > 1 or w_gest + w_pcf == 0:
            raise ConfigurationError("The sum of weights must be 0 < sum(weights) <= 1.")

        if not 0.0 <= self.ANNEALING <= 1.0:
            raise ConfigurationError("ANNEALING must be a probability in [0, 1].")
        if self.NO_CHANGE < 0:
            raise ConfigurationError("NO_CHANGE must be >= 0.")
        if self.R_LENGTH < 2:
            raise ConfigurationError("R_LENGTH must be >= 2.")
        if self.R_MAX is not None and self.R_MAX <= 0:
            raise ConfigurationError("R_MAX must be positive.")
        if self.N_POINTS is not None and self.N_POINTS < 1:
            raise ConfigurationError("N_POINTS must be positive.")
