"""Recompute and store subject reputation from feedback events."""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Iterable, Mapping, Protocol, Sequence

from arc_trust.obs import metrics as obs_metrics
from arc_trust.obs.logging import bind_context, reset_context
from arc_trust.reputation.domain import disputes, scoring
from arc_trust.reputation.domain.models import (
    DisputeResolution,
    FeedbackEvent,
    FeedbackEventNotFoundError,
    FeedbackStatus,
    InvalidFeedbackError,
    SubjectScore,
)
from arc_trust.reputation.domain.scoring import DEFAULT_PARAMS, ScoringParams

logger = logging.getLogger(__name__)

DEFAULT_STALE_AFTER = timedelta(hours=24)


class FeedbackRepository(Protocol):
    """Storage layer contract for feedback events and score snapshots."""

    async def list_events(self, subject_id: str) -> Sequence[FeedbackEvent]:
        ...

    async def list_events_for_subjects(self, subject_ids: Sequence[str]) -> Mapping[str, Sequence[FeedbackEvent]]:
        ...

    async def get_event(self, subject_id: str, event_id: str) -> FeedbackEvent | None:
        ...

    async def update_event_status(self, subject_id: str, event_id: str, status: FeedbackStatus) -> FeedbackEvent | None:
        ...

    async def get_score(self, subject_id: str) -> SubjectScore | None:
        ...

    async def save_score(self, score: SubjectScore) -> SubjectScore:
        ...

    async def list_stale_subjects(self, before: datetime) -> Sequence[str]:
        ...


class ReputationRecomputeService:
    """Loads feedback, runs the scorer and persists the resulting snapshot."""

    def __init__(
        self,
        repository: FeedbackRepository,
        *,
        params: ScoringParams = DEFAULT_PARAMS,
        stale_after: timedelta = DEFAULT_STALE_AFTER,
    ) -> None:
        self._repo = repository
        self._params = params
        self._stale_after = stale_after

    @property
    def params(self) -> ScoringParams:
        return self._params

    def _score(self, subject_id: str, events: Sequence[FeedbackEvent], now: datetime) -> SubjectScore:
        tokens = bind_context(subject_id=subject_id)
        try:
            totals = scoring.aggregate(events, now, params=self._params)
            result = scoring.score_aggregate(totals, params=self._params)
        except InvalidFeedbackError as exc:
            obs_metrics.inc_invalid_feedback(exc.code)
            logger.warning("reputation feedback rejected", extra={"reason": exc.code, "detail": str(exc)})
            raise
        finally:
            reset_context(tokens)
        obs_metrics.inc_recompute(result.bucket.value)
        return SubjectScore(
            subject_id=subject_id,
            score=result.score,
            bucket=result.bucket,
            event_count=totals.count,
            computed_at=now,
        )

    async def get_score(self, subject_id: str) -> SubjectScore | None:
        return await self._repo.get_score(subject_id)

    async def recompute(self, subject_id: str, *, now: datetime | None = None) -> SubjectScore:
        """Recompute one subject from its full event history."""

        now = now or datetime.now(timezone.utc)
        started = time.perf_counter()
        events = await self._repo.list_events(subject_id)
        snapshot = self._score(subject_id, events, now)
        stored = await self._repo.save_score(snapshot)
        obs_metrics.observe_recompute("single", time.perf_counter() - started)
        return stored

    async def recompute_many(self, subject_ids: Iterable[str], *, now: datetime | None = None) -> list[SubjectScore]:
        """Recompute several subjects with a single batched event load."""

        now = now or datetime.now(timezone.utc)
        unique_ids = list(dict.fromkeys(subject_ids))
        if not unique_ids:
            return []
        started = time.perf_counter()
        batch = await self._repo.list_events_for_subjects(unique_ids)
        snapshots = [self._score(subject_id, batch.get(subject_id, ()), now) for subject_id in unique_ids]
        results = [await self._repo.save_score(snapshot) for snapshot in snapshots]
        obs_metrics.observe_recompute("batch", time.perf_counter() - started)
        return results

    async def open_dispute(self, subject_id: str, event_id: str, *, now: datetime | None = None) -> SubjectScore:
        event = await self._require_event(subject_id, event_id)
        status = disputes.open_dispute(event.status)
        if scoring.coerce_status(event.status) is not FeedbackStatus.DISPUTED:
            await self._repo.update_event_status(subject_id, event_id, status)
            obs_metrics.inc_dispute_transition("opened")
            logger.info("feedback dispute opened", extra={"subject": subject_id, "event_id": event_id})
        return await self.recompute(subject_id, now=now)

    async def resolve_dispute(
        self,
        subject_id: str,
        event_id: str,
        resolution: DisputeResolution | str,
        *,
        now: datetime | None = None,
    ) -> SubjectScore:
        event = await self._require_event(subject_id, event_id)
        status = disputes.resolve_dispute(event.status, resolution)
        await self._repo.update_event_status(subject_id, event_id, status)
        resolved = DisputeResolution(resolution)
        obs_metrics.inc_dispute_transition(resolved.value)
        logger.info(
            "feedback dispute resolved",
            extra={"subject": subject_id, "event_id": event_id, "resolution": resolved.value, "status": status.value},
        )
        return await self.recompute(subject_id, now=now)

    async def run_refresh_pass(self, *, now: datetime | None = None) -> list[SubjectScore]:
        """Recompute snapshots old enough that decay has moved them.

        Subjects whose feedback fails validation are skipped so one corrupt
        record cannot block the sweep; the rejection is already logged and
        counted by the scorer wrapper.
        """

        now = now or datetime.now(timezone.utc)
        subject_ids = list(dict.fromkeys(await self._repo.list_stale_subjects(now - self._stale_after)))
        if not subject_ids:
            return []
        batch = await self._repo.list_events_for_subjects(subject_ids)
        results: list[SubjectScore] = []
        for subject_id in subject_ids:
            try:
                snapshot = self._score(subject_id, batch.get(subject_id, ()), now)
            except InvalidFeedbackError:
                continue
            results.append(await self._repo.save_score(snapshot))
        obs_metrics.inc_refresh_subjects(len(results))
        return results

    async def _require_event(self, subject_id: str, event_id: str) -> FeedbackEvent:
        event = await self._repo.get_event(subject_id, event_id)
        if event is None:
            raise FeedbackEventNotFoundError(event_id)
        return event


class InMemoryFeedbackRepository(FeedbackRepository):
    """Reference repository used in tests and developer environments."""

    def __init__(self) -> None:
        self.events: dict[str, list[FeedbackEvent]] = {}
        self.scores: dict[str, SubjectScore] = {}
        self.batch_loads = 0
        self.single_loads = 0

    def add_event(self, subject_id: str, event: FeedbackEvent) -> FeedbackEvent:
        self.events.setdefault(subject_id, []).append(event)
        return event

    async def list_events(self, subject_id: str) -> Sequence[FeedbackEvent]:
        self.single_loads += 1
        return list(self.events.get(subject_id, ()))

    async def list_events_for_subjects(self, subject_ids: Sequence[str]) -> Mapping[str, Sequence[FeedbackEvent]]:
        self.batch_loads += 1
        return {subject_id: list(self.events.get(subject_id, ())) for subject_id in subject_ids}

    async def get_event(self, subject_id: str, event_id: str) -> FeedbackEvent | None:
        for event in self.events.get(subject_id, ()):
            if event.event_id == event_id:
                return event
        return None

    async def update_event_status(self, subject_id: str, event_id: str, status: FeedbackStatus) -> FeedbackEvent | None:
        events = self.events.get(subject_id, [])
        for idx, event in enumerate(events):
            if event.event_id == event_id:
                events[idx] = replace(event, status=status)
                return events[idx]
        return None

    async def get_score(self, subject_id: str) -> SubjectScore | None:
        return self.scores.get(subject_id)

    async def save_score(self, score: SubjectScore) -> SubjectScore:
        existing = self.scores.get(score.subject_id)
        if existing and existing.computed_at > score.computed_at:
            return existing
        self.scores[score.subject_id] = score
        return score

    async def list_stale_subjects(self, before: datetime) -> Sequence[str]:
        stale: list[str] = []
        for subject_id in self.events:
            current = self.scores.get(subject_id)
            if current is None or current.computed_at < before:
                stale.append(subject_id)
        return stale
