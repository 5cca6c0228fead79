"""Utilities for loading reputation scoring parameters."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping

import yaml

from arc_trust.reputation.domain.scoring import DEFAULT_PARAMS, ScoringParams
from arc_trust.settings import settings

logger = logging.getLogger(__name__)


def _section(data: Mapping[str, object], key: str) -> Mapping[str, object]:
    spec = data.get(key, {})
    if spec is None:
        return {}
    if not isinstance(spec, dict):
        raise ValueError(f"scoring config section '{key}' must be a mapping")
    return spec


def _float(spec: Mapping[str, object], key: str, default: float) -> float:
    if key not in spec:
        return default
    try:
        return float(spec[key])  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValueError(f"scoring config value '{key}' must be a number") from None


def _int(spec: Mapping[str, object], key: str, default: int) -> int:
    if key not in spec:
        return default
    value = spec[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"scoring config value '{key}' must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"scoring config value '{key}' must be an integer")
    return int(value)


def validate_params(params: ScoringParams) -> ScoringParams:
    if not params.decay_scale_days > 0:
        raise ValueError("decay.scale_days must be positive")
    if not 0.0 <= params.disputed_multiplier <= 1.0:
        raise ValueError("dispute.multiplier must be within [0, 1]")
    if not params.prior_strength > 0:
        raise ValueError("prior.strength must be positive")
    if not 0.0 <= params.prior_mean <= 1.0:
        raise ValueError("prior.mean must be within [0, 1]")
    if params.min_events < 0:
        raise ValueError("buckets.min_events must not be negative")
    if not 0 <= params.caution_max < params.mixed_max <= 100:
        raise ValueError("buckets must satisfy 0 <= caution_max < mixed_max <= 100")
    return params


def params_from_mapping(data: Mapping[str, object]) -> ScoringParams:
    decay = _section(data, "decay")
    dispute = _section(data, "dispute")
    prior = _section(data, "prior")
    buckets = _section(data, "buckets")
    params = ScoringParams(
        decay_scale_days=_float(decay, "scale_days", DEFAULT_PARAMS.decay_scale_days),
        disputed_multiplier=_float(dispute, "multiplier", DEFAULT_PARAMS.disputed_multiplier),
        prior_strength=_float(prior, "strength", DEFAULT_PARAMS.prior_strength),
        prior_mean=_float(prior, "mean", DEFAULT_PARAMS.prior_mean),
        min_events=_int(buckets, "min_events", DEFAULT_PARAMS.min_events),
        caution_max=_int(buckets, "caution_max", DEFAULT_PARAMS.caution_max),
        mixed_max=_int(buckets, "mixed_max", DEFAULT_PARAMS.mixed_max),
    )
    return validate_params(params)


def load_scoring_params(path: str | Path) -> ScoringParams:
    with open(path, "r", encoding="utf-8") as handle:
        loaded = yaml.safe_load(handle) or {}
        if not isinstance(loaded, dict):
            raise ValueError("scoring config must be a mapping")
    params = params_from_mapping(loaded)
    logger.info("reputation scoring params loaded", extra={"config_path": str(path)})
    return params


def params_from_settings() -> ScoringParams:
    """Scoring params for the running service; defaults when no file is configured."""

    path = settings.reputation_scoring_config
    if not path:
        return DEFAULT_PARAMS
    return load_scoring_params(path)
