"""Reputation domain: models, scorer, disputes and recompute service."""

from arc_trust.reputation.domain.models import (
    DisputeResolution,
    FeedbackEvent,
    FeedbackOutcome,
    FeedbackStatus,
    InvalidFeedbackError,
    ReputationScoringError,
    ScoreBucket,
    ScoreResult,
    SubjectScore,
)
from arc_trust.reputation.domain.scoring import DEFAULT_PARAMS, ScoringParams, compute

__all__ = [
    "DEFAULT_PARAMS",
    "DisputeResolution",
    "FeedbackEvent",
    "FeedbackOutcome",
    "FeedbackStatus",
    "InvalidFeedbackError",
    "ReputationScoringError",
    "ScoreBucket",
    "ScoreResult",
    "ScoringParams",
    "SubjectScore",
    "compute",
]
