"""Feedback dispute state transitions."""

from __future__ import annotations

from arc_trust.reputation.domain.models import (
    DisputeResolution,
    FeedbackStatus,
    InvalidStatusTransitionError,
)
from arc_trust.reputation.domain.scoring import coerce_status

# A partially upheld dispute leaves the event disputed, so it keeps counting
# at the dampened weight instead of being removed or fully restored.
RESOLUTION_STATUS: dict[DisputeResolution, FeedbackStatus] = {
    DisputeResolution.UPHELD: FeedbackStatus.REMOVED,
    DisputeResolution.REJECTED: FeedbackStatus.ACTIVE,
    DisputeResolution.PARTIAL: FeedbackStatus.DISPUTED,
}


def open_dispute(status: FeedbackStatus | str) -> FeedbackStatus:
    current = coerce_status(status)
    if current is FeedbackStatus.REMOVED:
        raise InvalidStatusTransitionError("event_removed")
    return FeedbackStatus.DISPUTED


def status_after_resolution(resolution: DisputeResolution | str) -> FeedbackStatus:
    try:
        return RESOLUTION_STATUS[DisputeResolution(resolution)]
    except ValueError:
        raise InvalidStatusTransitionError(f"unknown_resolution:{resolution}") from None


def resolve_dispute(status: FeedbackStatus | str, resolution: DisputeResolution | str) -> FeedbackStatus:
    """Return the status a disputed event moves to once the dispute is decided."""

    current = coerce_status(status)
    if current is not FeedbackStatus.DISPUTED:
        raise InvalidStatusTransitionError(f"not_disputed:{current.value}")
    return status_after_resolution(resolution)
