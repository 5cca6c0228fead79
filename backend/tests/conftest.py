import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from arc_trust.reputation.domain import container
from arc_trust.reputation.domain.models import FeedbackEvent, FeedbackOutcome, FeedbackStatus
from arc_trust.reputation.domain.service import InMemoryFeedbackRepository, ReputationRecomputeService

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_event(
	outcome: FeedbackOutcome | str = FeedbackOutcome.POSITIVE,
	*,
	weight: float = 1.0,
	age_days: float = 0.0,
	status: FeedbackStatus | str = FeedbackStatus.ACTIVE,
	event_id: str | None = None,
	now: datetime = NOW,
) -> FeedbackEvent:
	return FeedbackEvent(
		outcome=outcome,
		created_at=now - timedelta(days=age_days),
		weight_applied=weight,
		status=status,
		event_id=event_id,
	)


@pytest.fixture
def now() -> datetime:
	return NOW


@pytest.fixture
def repo() -> InMemoryFeedbackRepository:
	return InMemoryFeedbackRepository()


@pytest.fixture
def service(repo: InMemoryFeedbackRepository) -> ReputationRecomputeService:
	return ReputationRecomputeService(repository=repo)


@pytest.fixture(autouse=True)
def reset_container():
	container.reset()
	try:
		yield
	finally:
		container.reset()


@pytest.fixture(name="make_event")
def make_event_fixture():
	return make_event
