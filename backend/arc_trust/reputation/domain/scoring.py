"""Reputation score recomputation.

Scores are a time-decayed weighted mean of feedback outcomes, shrunk toward a
neutral prior so that a handful of early events cannot produce an extreme
score. The result is an integer in [0, 100] plus a coarse bucket.

Everything here is pure: the caller supplies the events and the evaluation
time, and the same inputs always produce the same result.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from arc_trust.reputation.domain.models import (
    Aggregate,
    FeedbackEvent,
    FeedbackOutcome,
    FeedbackStatus,
    NegativeWeightError,
    ScoreBucket,
    ScoreResult,
    UnknownOutcomeError,
    UnknownStatusError,
)

DECAY_SCALE_DAYS = 180.0
DISPUTED_MULTIPLIER = 0.25
PRIOR_STRENGTH = 8.0
PRIOR_MEAN = 0.5
MIN_EVENTS_FOR_BUCKET = 3
MOSTLY_CAUTION_MAX_SCORE = 34
MIXED_MAX_SCORE = 64

NEUTRAL_FRACTION = 0.5
SECONDS_PER_DAY = 86400.0

OUTCOME_VALUES: dict[FeedbackOutcome, float] = {
    FeedbackOutcome.POSITIVE: 1.0,
    FeedbackOutcome.NEUTRAL: 0.0,
    FeedbackOutcome.CAUTION: -1.0,
}


@dataclass(frozen=True, slots=True)
class ScoringParams:
    """Tunable constants of the scoring formula."""

    decay_scale_days: float = DECAY_SCALE_DAYS
    disputed_multiplier: float = DISPUTED_MULTIPLIER
    prior_strength: float = PRIOR_STRENGTH
    prior_mean: float = PRIOR_MEAN
    min_events: int = MIN_EVENTS_FOR_BUCKET
    caution_max: int = MOSTLY_CAUTION_MAX_SCORE
    mixed_max: int = MIXED_MAX_SCORE


DEFAULT_PARAMS = ScoringParams()


def clamp(value: int, minimum: int = 0, maximum: int = 100) -> int:
    return max(minimum, min(maximum, value))


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def coerce_outcome(outcome: FeedbackOutcome | str) -> FeedbackOutcome:
    try:
        return FeedbackOutcome(outcome)
    except ValueError:
        raise UnknownOutcomeError(f"unknown feedback outcome: {outcome!r}") from None


def coerce_status(status: FeedbackStatus | str) -> FeedbackStatus:
    try:
        return FeedbackStatus(status)
    except ValueError:
        raise UnknownStatusError(f"unknown feedback status: {status!r}") from None


def outcome_value(outcome: FeedbackOutcome | str) -> float:
    """Map an outcome to +1.0, 0.0 or -1.0."""

    return OUTCOME_VALUES[coerce_outcome(outcome)]


def validate_weight(weight: float) -> float:
    try:
        value = float(weight)
    except (TypeError, ValueError):
        raise NegativeWeightError(f"weight_applied is not a number: {weight!r}") from None
    if not math.isfinite(value) or value < 0:
        raise NegativeWeightError(f"weight_applied must be a finite non-negative number, got {weight!r}")
    return value


def age_in_days(created_at: datetime, now: datetime) -> float:
    """Age of an event in fractional days; clock skew clamps to zero."""

    seconds = (_as_utc(now) - _as_utc(created_at)).total_seconds()
    return max(0.0, seconds / SECONDS_PER_DAY)


def decay_factor(age_days: float, *, params: ScoringParams = DEFAULT_PARAMS) -> float:
    return math.exp(-max(0.0, age_days) / params.decay_scale_days)


def status_multiplier(status: FeedbackStatus | str, *, params: ScoringParams = DEFAULT_PARAMS) -> float:
    resolved = coerce_status(status)
    if resolved is FeedbackStatus.DISPUTED:
        return params.disputed_multiplier
    return 1.0


def effective_weight(event: FeedbackEvent, now: datetime, *, params: ScoringParams = DEFAULT_PARAMS) -> float:
    """Base weight scaled by time decay and dispute dampening."""

    base = validate_weight(event.weight_applied)
    decay = decay_factor(age_in_days(event.created_at, now), params=params)
    return base * decay * status_multiplier(event.status, params=params)


def aggregate(
    events: Iterable[FeedbackEvent],
    now: datetime,
    *,
    params: ScoringParams = DEFAULT_PARAMS,
) -> Aggregate:
    """Sum weights and weighted outcome values of all non-removed events.

    Removed events are dropped before any validation so they never influence
    the result. Any other event with an unknown outcome or status, or with an
    invalid weight, aborts the whole computation.
    """

    weights: list[float] = []
    values: list[float] = []
    for event in events:
        if coerce_status(event.status) is FeedbackStatus.REMOVED:
            continue
        values.append(outcome_value(event.outcome))
        weights.append(effective_weight(event, now, params=params))
    scale = max(weights, default=0.0)
    if scale <= 0:
        return Aggregate(weighted_sum=0.0, total_weight=0.0, count=len(weights))
    # Sums run over weights scaled into [0, 1] so the mean stays finite even
    # when the raw totals overflow.
    scaled_total = math.fsum(weight / scale for weight in weights)
    scaled_sum = math.fsum(weight / scale * value for weight, value in zip(weights, values))
    return Aggregate(
        weighted_sum=scaled_sum * scale,
        total_weight=scaled_total * scale,
        count=len(weights),
        mean=scaled_sum / scaled_total,
    )


def normalised_mean(totals: Aggregate) -> float:
    """Weighted mean outcome mapped from [-1, 1] onto [0, 1]."""

    if totals.total_weight <= 0:
        return NEUTRAL_FRACTION
    return min(1.0, max(0.0, (totals.mean + 1.0) / 2.0))


def shrink(p: float, total_weight: float, *, params: ScoringParams = DEFAULT_PARAMS) -> float:
    """Pull ``p`` toward the prior mean in proportion to how little evidence there is."""

    if not math.isfinite(total_weight):
        return p
    numerator = params.prior_strength * params.prior_mean + total_weight * p
    return numerator / (params.prior_strength + total_weight)


def to_score(fraction: float) -> int:
    # Half-up rounding; Python's round() would send 0.5 ties to even.
    return clamp(math.floor(100.0 * fraction + 0.5))


def classify(score: int, count: int, *, params: ScoringParams = DEFAULT_PARAMS) -> ScoreBucket:
    if count < params.min_events:
        return ScoreBucket.INSUFFICIENT_DATA
    if score <= params.caution_max:
        return ScoreBucket.MOSTLY_CAUTION
    if score <= params.mixed_max:
        return ScoreBucket.MIXED
    return ScoreBucket.MOSTLY_POSITIVE


def score_aggregate(totals: Aggregate, *, params: ScoringParams = DEFAULT_PARAMS) -> ScoreResult:
    fraction = shrink(normalised_mean(totals), totals.total_weight, params=params)
    score = to_score(fraction)
    return ScoreResult(score=score, bucket=classify(score, totals.count, params=params))


def compute(
    events: Iterable[FeedbackEvent],
    now: datetime,
    *,
    params: ScoringParams = DEFAULT_PARAMS,
) -> ScoreResult:
    """Recompute the score and bucket for one subject's feedback at ``now``."""

    return score_aggregate(aggregate(events, now, params=params), params=params)
