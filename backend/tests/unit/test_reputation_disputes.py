import pytest

from arc_trust.reputation.domain import disputes
from arc_trust.reputation.domain.models import (
    DisputeResolution,
    FeedbackStatus,
    InvalidStatusTransitionError,
    UnknownStatusError,
)


def test_open_dispute_from_active() -> None:
    assert disputes.open_dispute(FeedbackStatus.ACTIVE) is FeedbackStatus.DISPUTED


def test_open_dispute_is_idempotent() -> None:
    assert disputes.open_dispute("disputed") is FeedbackStatus.DISPUTED


def test_removed_events_cannot_be_disputed() -> None:
    with pytest.raises(InvalidStatusTransitionError):
        disputes.open_dispute(FeedbackStatus.REMOVED)


@pytest.mark.parametrize(
    "resolution,expected",
    [
        (DisputeResolution.UPHELD, FeedbackStatus.REMOVED),
        (DisputeResolution.REJECTED, FeedbackStatus.ACTIVE),
        (DisputeResolution.PARTIAL, FeedbackStatus.DISPUTED),
        ("upheld", FeedbackStatus.REMOVED),
    ],
)
def test_resolution_outcomes(resolution, expected) -> None:
    assert disputes.resolve_dispute(FeedbackStatus.DISPUTED, resolution) is expected


def test_resolving_a_non_disputed_event_fails() -> None:
    with pytest.raises(InvalidStatusTransitionError):
        disputes.resolve_dispute(FeedbackStatus.ACTIVE, DisputeResolution.UPHELD)


def test_unknown_resolution_fails() -> None:
    with pytest.raises(InvalidStatusTransitionError):
        disputes.resolve_dispute(FeedbackStatus.DISPUTED, "maybe")


def test_unknown_status_fails() -> None:
    with pytest.raises(UnknownStatusError):
        disputes.open_dispute("frozen")
