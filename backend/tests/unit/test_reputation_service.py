import logging
import sys
from datetime import timedelta

import pytest
from prometheus_client import REGISTRY

from arc_trust.reputation.domain import scoring
from arc_trust.reputation.domain.models import (
    DisputeResolution,
    FeedbackEventNotFoundError,
    FeedbackOutcome,
    FeedbackStatus,
    InvalidStatusTransitionError,
    ScoreBucket,
    SubjectScore,
    UnknownOutcomeError,
)
from arc_trust.reputation.jobs import rep_refresh


def _metric(name: str, labels: dict[str, str] | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


def _seed_subject(repo, make_event, subject_id: str = "s1") -> None:
    for idx in range(3):
        repo.add_event(subject_id, make_event(FeedbackOutcome.POSITIVE, event_id=f"p{idx}"))
    repo.add_event(subject_id, make_event(FeedbackOutcome.CAUTION, weight=2.0, event_id="c1"))


@pytest.mark.asyncio
async def test_recompute_persists_snapshot(repo, service, make_event, now) -> None:
    _seed_subject(repo, make_event)
    repo.add_event("s1", make_event(FeedbackOutcome.CAUTION, status=FeedbackStatus.REMOVED, event_id="r1"))
    before = _metric("arc_reputation_recomputes_total", {"bucket": "mixed"})

    snapshot = await service.recompute("s1", now=now)

    assert snapshot == SubjectScore(subject_id="s1", score=54, bucket=ScoreBucket.MIXED, event_count=4, computed_at=now)
    assert await service.get_score("s1") == snapshot
    assert _metric("arc_reputation_recomputes_total", {"bucket": "mixed"}) == before + 1


@pytest.mark.asyncio
async def test_recompute_unknown_subject_is_neutral(service, now) -> None:
    snapshot = await service.recompute("ghost", now=now)
    assert snapshot.score == 50
    assert snapshot.bucket is ScoreBucket.INSUFFICIENT_DATA
    assert snapshot.event_count == 0


@pytest.mark.asyncio
async def test_recompute_many_loads_events_once(repo, service, make_event, now) -> None:
    _seed_subject(repo, make_event, "s1")
    repo.add_event("s2", make_event(FeedbackOutcome.CAUTION))

    results = await service.recompute_many(["s1", "s2", "s1", "missing"], now=now)

    assert [item.subject_id for item in results] == ["s1", "s2", "missing"]
    assert repo.batch_loads == 1
    assert repo.single_loads == 0
    assert results[0].score == 54
    assert results[1].score == 44
    assert results[2].score == 50


@pytest.mark.asyncio
async def test_recompute_many_with_no_subjects(repo, service) -> None:
    assert await service.recompute_many([]) == []
    assert repo.batch_loads == 0


@pytest.mark.asyncio
async def test_older_snapshot_does_not_replace_newer(repo, service, make_event, now) -> None:
    _seed_subject(repo, make_event)
    newer = await service.recompute("s1", now=now + timedelta(hours=1))
    stored = await service.recompute("s1", now=now)
    assert stored is newer
    assert (await service.get_score("s1")).computed_at == now + timedelta(hours=1)


@pytest.mark.asyncio
async def test_invalid_feedback_is_logged_counted_and_raised(repo, service, make_event, now, caplog) -> None:
    repo.add_event("s1", make_event("bogus"))
    before = _metric("arc_reputation_invalid_feedback_total", {"reason": "unknown_outcome"})

    with caplog.at_level(logging.WARNING):
        with pytest.raises(UnknownOutcomeError):
            await service.recompute("s1", now=now)

    assert await service.get_score("s1") is None
    assert _metric("arc_reputation_invalid_feedback_total", {"reason": "unknown_outcome"}) == before + 1
    assert any(record.getMessage() == "reputation feedback rejected" for record in caplog.records)


# ============================================================================
# DISPUTES
# ============================================================================

@pytest.mark.asyncio
async def test_open_dispute_dampens_event(repo, service, make_event, now) -> None:
    _seed_subject(repo, make_event)
    snapshot = await service.open_dispute("s1", "c1", now=now)
    event = await repo.get_event("s1", "c1")
    assert event.status is FeedbackStatus.DISPUTED
    assert snapshot.score == 61
    assert snapshot.event_count == 4


@pytest.mark.asyncio
async def test_upheld_dispute_removes_event(repo, service, make_event, now) -> None:
    _seed_subject(repo, make_event)
    await service.open_dispute("s1", "c1", now=now)

    snapshot = await service.resolve_dispute("s1", "c1", DisputeResolution.UPHELD, now=now)

    assert (await repo.get_event("s1", "c1")).status is FeedbackStatus.REMOVED
    assert snapshot.score == 64
    assert snapshot.event_count == 3
    remaining = [event for event in repo.events["s1"] if event.event_id != "c1"]
    assert snapshot.score == scoring.compute(remaining, now).score


@pytest.mark.asyncio
async def test_rejected_dispute_restores_event(repo, service, make_event, now) -> None:
    _seed_subject(repo, make_event)
    await service.open_dispute("s1", "c1", now=now)
    snapshot = await service.resolve_dispute("s1", "c1", "rejected", now=now)
    assert (await repo.get_event("s1", "c1")).status is FeedbackStatus.ACTIVE
    assert snapshot.score == 54


@pytest.mark.asyncio
async def test_partial_dispute_keeps_event_dampened(repo, service, make_event, now) -> None:
    _seed_subject(repo, make_event)
    await service.open_dispute("s1", "c1", now=now)
    snapshot = await service.resolve_dispute("s1", "c1", DisputeResolution.PARTIAL, now=now)
    assert (await repo.get_event("s1", "c1")).status is FeedbackStatus.DISPUTED
    assert snapshot.score == 61


@pytest.mark.asyncio
async def test_resolving_undisputed_event_fails(repo, service, make_event, now) -> None:
    _seed_subject(repo, make_event)
    with pytest.raises(InvalidStatusTransitionError):
        await service.resolve_dispute("s1", "c1", DisputeResolution.UPHELD, now=now)
    assert (await repo.get_event("s1", "c1")).status is FeedbackStatus.ACTIVE


@pytest.mark.asyncio
async def test_reopening_disputed_event_is_quiet(repo, service, make_event, now, caplog) -> None:
    _seed_subject(repo, make_event)
    await service.open_dispute("s1", "c1", now=now)
    before = _metric("arc_reputation_dispute_transitions_total", {"transition": "opened"})
    caplog.clear()

    with caplog.at_level(logging.INFO):
        snapshot = await service.open_dispute("s1", "c1", now=now + timedelta(minutes=1))

    assert snapshot.score == 61
    assert (await repo.get_event("s1", "c1")).status is FeedbackStatus.DISPUTED
    assert _metric("arc_reputation_dispute_transitions_total", {"transition": "opened"}) == before
    assert not any(record.getMessage() == "feedback dispute opened" for record in caplog.records)


@pytest.mark.asyncio
async def test_dispute_on_unknown_event_fails(repo, service, make_event, now) -> None:
    _seed_subject(repo, make_event)
    with pytest.raises(FeedbackEventNotFoundError):
        await service.open_dispute("s1", "nope", now=now)


# ============================================================================
# REFRESH JOB
# ============================================================================

@pytest.mark.asyncio
async def test_refresh_pass_recomputes_stale_subjects(repo, service, make_event, now) -> None:
    _seed_subject(repo, make_event, "stale")
    _seed_subject(repo, make_event, "fresh")
    repo.add_event("broken", make_event(FeedbackOutcome.POSITIVE, weight=-1.0))
    await service.recompute("fresh", now=now)

    refreshed = await service.run_refresh_pass(now=now + timedelta(hours=1))

    assert [item.subject_id for item in refreshed] == ["stale"]
    assert repo.batch_loads == 1
    assert await service.get_score("broken") is None


@pytest.mark.asyncio
async def test_refresh_job_reports_updated_count(repo, service, make_event, now) -> None:
    _seed_subject(repo, make_event, "a")
    _seed_subject(repo, make_event, "b")
    await service.recompute("a", now=now)
    await service.recompute("b", now=now)
    before = _metric("arc_reputation_refresh_subjects_total")

    later = now + timedelta(days=60)
    assert await rep_refresh.run(service, now=later) == 2
    assert await rep_refresh.run(service, now=later) == 0

    snapshot = await service.get_score("a")
    assert snapshot.computed_at == later
    assert snapshot.score < 54
    assert _metric("arc_reputation_refresh_subjects_total") == before + 2


@pytest.mark.asyncio
async def test_refresh_pass_handles_overflowing_weights(repo, service, make_event, now) -> None:
    for idx in range(3):
        repo.add_event("heavy", make_event(FeedbackOutcome.POSITIVE, weight=sys.float_info.max, event_id=f"h{idx}"))
    _seed_subject(repo, make_event, "normal")

    refreshed = await service.run_refresh_pass(now=now)

    assert [item.subject_id for item in refreshed] == ["heavy", "normal"]
    assert refreshed[0].score == 100
    assert refreshed[0].event_count == 3
