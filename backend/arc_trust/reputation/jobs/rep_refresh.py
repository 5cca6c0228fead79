"""Background job that refreshes reputation snapshots as decay moves them."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from arc_trust.obs.logging import bind_context, reset_context
from arc_trust.reputation.domain.service import ReputationRecomputeService

logger = logging.getLogger(__name__)


async def run(service: ReputationRecomputeService, *, now: datetime | None = None) -> int:
    """Run a single refresh sweep and return the number of subjects updated."""

    now = now or datetime.now(timezone.utc)
    tokens = bind_context(job="rep_refresh")
    try:
        updated = await service.run_refresh_pass(now=now)
        logger.info("reputation refresh complete", extra={"refreshed": len(updated)})
    finally:
        reset_context(tokens)
    return len(updated)
