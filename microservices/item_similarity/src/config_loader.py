"""
Configuration loader for the item-similarity microservice.

Provides a single entry point for reading the YAML job config, with
sensible defaults for every section, and the validated
:class:`SimilarityConfig` that is injected into the pipeline.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any, Mapping

import yaml

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_PATH = "microservices/item_similarity/config/item_similarity_config.yaml"

# Recognised option names → SimilarityConfig attribute.
_OPTION_ALIASES: dict[str, str] = {
    "min_num_raters": "min_num_raters",
    "minNumRaters": "min_num_raters",
    "max_num_raters": "max_num_raters",
    "maxNumRaters": "max_num_raters",
    "min_intersection": "min_intersection",
    "minIntersection": "min_intersection",
    "prior_count": "prior_count",
    "priorCount": "prior_count",
    "prior_correlation": "prior_correlation",
    "priorCorrelation": "prior_correlation",
}


class ConfigurationError(Exception):
    """Raised when similarity options are outside their sane ranges."""


class SimilarityConfig:
    """Validated thresholds and regularisation parameters.

    Parameters
    ----------
    min_num_raters : int
        Lower bound (inclusive) of the popularity band.
    max_num_raters : int
        Upper bound (inclusive) of the popularity band.
    min_intersection : int
        Minimum number of co-raters for a pair to be kept.
    prior_count : float
        Virtual pseudo-count used to shrink correlation.
    prior_correlation : float
        Shrinkage target.

    Raises
    ------
    ConfigurationError
        On wrong types, negative thresholds, an inverted popularity band,
        a negative prior count or a prior correlation outside [-1, 1].
    """

    def __init__(
        self,
        min_num_raters: int = 3,
        max_num_raters: int = 10000,
        min_intersection: int = 50,
        prior_count: float = 10.0,
        prior_correlation: float = 0.0,
    ) -> None:
        self.min_num_raters = _require_int("min_num_raters", min_num_raters)
        self.max_num_raters = _require_int("max_num_raters", max_num_raters)
        self.min_intersection = _require_int("min_intersection", min_intersection)
        self.prior_count = _require_float("prior_count", prior_count)
        self.prior_correlation = _require_float("prior_correlation", prior_correlation)

        if self.min_num_raters > self.max_num_raters:
            raise ConfigurationError(
                f"[config] min_num_raters ({self.min_num_raters}) > "
                f"max_num_raters ({self.max_num_raters})"
            )
        if self.prior_count < 0:
            raise ConfigurationError(
                f"[config] prior_count must be >= 0, got {self.prior_count}"
            )
        if not -1.0 <= self.prior_correlation <= 1.0:
            raise ConfigurationError(
                f"[config] prior_correlation must be in [-1, 1], "
                f"got {self.prior_correlation}"
            )

    @classmethod
    def from_dict(cls, options: Mapping[str, Any] | None) -> "SimilarityConfig":
        """Build a config from a mapping of snake_case or camelCase options."""
        kwargs: dict[str, Any] = {}
        for key, value in (options or {}).items():
            if key not in _OPTION_ALIASES:
                raise ConfigurationError(f"[config] Unknown similarity option: {key!r}")
            name = _OPTION_ALIASES[key]
            if name in kwargs:
                raise ConfigurationError(f"[config] Option {name!r} given twice")
            kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "min_num_raters": self.min_num_raters,
            "max_num_raters": self.max_num_raters,
            "min_intersection": self.min_intersection,
            "prior_count": self.prior_count,
            "prior_correlation": self.prior_correlation,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SimilarityConfig):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in self.to_dict().items())
        return f"SimilarityConfig({args})"


def _require_int(name: str, value: Any) -> int:
    # bool is an int subclass; a YAML "yes" must not pass as 1.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(
            f"[config] {name} must be an integer, got {value!r}"
        )
    if value < 0:
        raise ConfigurationError(f"[config] {name} must be >= 0, got {value}")
    return value


def _require_float(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(
            f"[config] {name} must be a number, got {value!r}"
        )
    if not math.isfinite(value):
        raise ConfigurationError(f"[config] {name} must be finite, got {value}")
    return float(value)


def load_config(path: str | None = None) -> dict[str, Any]:
    """Read ``item_similarity_config.yaml`` and return the parsed dict.

    Parameters
    ----------
    path : str | None
        Explicit path.  Falls back to *_DEFAULT_CONFIG_PATH*.

    Returns
    -------
    dict[str, Any]
        The full configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If the YAML file does not exist.
    yaml.YAMLError
        If the file is not valid YAML.
    """
    config_path = path or _DEFAULT_CONFIG_PATH
    p = Path(config_path)

    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(p, "r", encoding="utf-8") as fh:
        cfg = yaml.safe_load(fh) or {}

    logger.info("[config] Loaded configuration from %s", config_path)
    return _apply_defaults(cfg)


def _apply_defaults(cfg: dict[str, Any]) -> dict[str, Any]:
    """Merge user config with sensible defaults."""
    cfg.setdefault("spark", {})
    cfg["spark"].setdefault("app_name", "item-similarity")
    cfg["spark"].setdefault("config", {})

    src = cfg.setdefault("source", {})
    src.setdefault("delimiter", "\t")
    src.setdefault("has_header", False)
    src.setdefault("user_column", 0)
    src.setdefault("item_column", 1)
    src.setdefault("rating_column", 2)
    src.setdefault("id_type", "string")

    tgt = cfg.setdefault("target", {})
    tgt.setdefault("format", "tsv")
    tgt.setdefault("mode", "overwrite")

    # Thresholds fall back to the SimilarityConfig defaults.
    cfg.setdefault("similarity", {})

    dq = cfg.setdefault("data_quality", {})
    dq.setdefault("enabled", True)
    dq.setdefault("min_row_count", 0)

    lin = cfg.setdefault("lineage", {})
    lin.setdefault("enabled", True)
    lin.setdefault("pipeline_version", "1.0.0")
    lin.setdefault("output_dir", "lineage")

    return cfg
