"""Lightweight service container for the reputation domain."""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from arc_trust.reputation.domain.scoring import ScoringParams
from arc_trust.reputation.domain.scoring_config import load_scoring_params, params_from_settings
from arc_trust.reputation.domain.service import (
    FeedbackRepository,
    InMemoryFeedbackRepository,
    ReputationRecomputeService,
)
from arc_trust.settings import settings

_repository: FeedbackRepository = InMemoryFeedbackRepository()
_params: ScoringParams | None = None
_service: ReputationRecomputeService | None = None


def _stale_after() -> timedelta:
    return timedelta(hours=max(0, settings.reputation_refresh_stale_hours))


def configure(
    *,
    repository: Optional[FeedbackRepository] = None,
    params: Optional[ScoringParams] = None,
    scoring_config_path: Optional[str] = None,
) -> ReputationRecomputeService:
    """Swap the backing repository and/or scoring params and rebuild the service."""

    global _repository, _params, _service
    if repository is not None:
        _repository = repository
    if scoring_config_path is not None:
        params = load_scoring_params(scoring_config_path)
    if params is not None:
        _params = params
    if _params is None:
        _params = params_from_settings()
    _service = ReputationRecomputeService(repository=_repository, params=_params, stale_after=_stale_after())
    return _service


def get_recompute_service() -> ReputationRecomputeService:
    if _service is None:
        return configure()
    return _service


def get_repository() -> FeedbackRepository:
    return _repository


def reset() -> None:
    global _repository, _params, _service
    _repository = InMemoryFeedbackRepository()
    _params = None
    _service = None
