"""Value types shared by reputation scoring, disputes and recomputation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class FeedbackOutcome(str, Enum):
    """Verdict a submitter left about a subject."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    CAUTION = "caution"


class FeedbackStatus(str, Enum):
    """Moderation state of a feedback event."""

    ACTIVE = "active"
    DISPUTED = "disputed"
    REMOVED = "removed"


class ScoreBucket(str, Enum):
    """Coarse label derived from score and evidence count, used for display."""

    INSUFFICIENT_DATA = "insufficient_data"
    MOSTLY_CAUTION = "mostly_caution"
    MIXED = "mixed"
    MOSTLY_POSITIVE = "mostly_positive"


class DisputeResolution(str, Enum):
    UPHELD = "upheld"
    REJECTED = "rejected"
    PARTIAL = "partial"


@dataclass(frozen=True, slots=True)
class FeedbackEvent:
    """Immutable feedback record owned by the ingestion layer.

    ``outcome`` and ``status`` are usually enum members but raw strings coming
    straight from storage are accepted and validated at scoring time.
    """

    outcome: FeedbackOutcome | str
    created_at: datetime
    weight_applied: float
    status: FeedbackStatus | str = FeedbackStatus.ACTIVE
    event_id: str | None = None


@dataclass(frozen=True, slots=True)
class ScoreResult:
    score: int
    bucket: ScoreBucket


@dataclass(frozen=True, slots=True)
class Aggregate:
    """Weighted totals over the non-removed events of one subject."""

    weighted_sum: float
    total_weight: float
    count: int
    mean: float = 0.0


@dataclass(slots=True)
class SubjectScore:
    """Stored reputation snapshot for a subject."""

    subject_id: str
    score: int
    bucket: ScoreBucket
    event_count: int
    computed_at: datetime


class ReputationScoringError(Exception):
    """Base class for reputation scoring failures."""


class InvalidFeedbackError(ReputationScoringError, ValueError):
    """Raised when a feedback event cannot be scored."""

    code: str = "invalid_feedback"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.code)


class UnknownOutcomeError(InvalidFeedbackError):
    code = "unknown_outcome"


class NegativeWeightError(InvalidFeedbackError):
    code = "negative_weight"


class UnknownStatusError(InvalidFeedbackError):
    code = "unknown_status"


class InvalidStatusTransitionError(ReputationScoringError):
    pass


class FeedbackEventNotFoundError(ReputationScoringError):
    pass
