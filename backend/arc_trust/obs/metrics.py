"""Central registry for Prometheus metrics used by the reputation backend."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REPUTATION_RECOMPUTES_TOTAL = Counter(
	"arc_reputation_recomputes_total",
	"Reputation score recomputations by resulting bucket",
	["bucket"],
)

REPUTATION_RECOMPUTE_SECONDS = Histogram(
	"arc_reputation_recompute_duration_seconds",
	"Latency of a reputation recompute including repository calls",
	["mode"],
	buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

REPUTATION_INVALID_FEEDBACK_TOTAL = Counter(
	"arc_reputation_invalid_feedback_total",
	"Feedback events rejected during scoring",
	["reason"],
)

REPUTATION_DISPUTES_TOTAL = Counter(
	"arc_reputation_dispute_transitions_total",
	"Feedback dispute transitions",
	["transition"],
)

REPUTATION_REFRESH_SUBJECTS_TOTAL = Counter(
	"arc_reputation_refresh_subjects_total",
	"Subjects refreshed by the periodic refresh job",
)


def inc_recompute(bucket: str) -> None:
	REPUTATION_RECOMPUTES_TOTAL.labels(bucket=bucket).inc()


def observe_recompute(mode: str, elapsed_seconds: float) -> None:
	REPUTATION_RECOMPUTE_SECONDS.labels(mode=mode).observe(max(0.0, elapsed_seconds))


def inc_invalid_feedback(reason: str) -> None:
	REPUTATION_INVALID_FEEDBACK_TOTAL.labels(reason=reason).inc()


def inc_dispute_transition(transition: str) -> None:
	REPUTATION_DISPUTES_TOTAL.labels(transition=transition).inc()


def inc_refresh_subjects(count: int = 1) -> None:
	if count > 0:
		REPUTATION_REFRESH_SUBJECTS_TOTAL.inc(count)
