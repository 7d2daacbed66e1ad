"""
Per-stage idempotency claims.

Two triggers racing on the same application can both find a stage due.
A claim keyed by (application id, sequence, stage, run start) lets at most
one of them dispatch. Without a registry, both fire.

The run start is the application's followUpStartedAt, so re-entering a
sequence after a restart is a fresh run and can claim its stages again.
"""

import logging
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Any, Optional, Tuple

from lead_scoring.application import ensure_utc, utcnow

logger = logging.getLogger(__name__)

ClaimKey = Tuple[str, str, int, str]

DEFAULT_MAX_CLAIMS = 10000
DEFAULT_TTL_HOURS = 24 * 30


def claim_key(
    application_id: str,
    sequence: Any,
    stage: int,
    started_at: Optional[datetime] = None
) -> ClaimKey:
    run = ensure_utc(started_at).isoformat() if started_at else ""
    return (str(application_id), str(getattr(sequence, "value", sequence)), int(stage), run)


class StageClaimRegistry:
    """
    Bounded in-process claim set.

    Claims expire after ttl_hours and the oldest claims are evicted once
    max_claims is reached. claim() does not await, so check-and-set is
    atomic on the event loop.
    """

    def __init__(
        self,
        max_claims: int = DEFAULT_MAX_CLAIMS,
        ttl_hours: Optional[float] = DEFAULT_TTL_HOURS
    ):
        if max_claims < 1:
            raise ValueError("max_claims must be at least 1")
        self.max_claims = max_claims
        self.ttl = timedelta(hours=ttl_hours) if ttl_hours else None
        self._claims: "OrderedDict[ClaimKey, datetime]" = OrderedDict()

    def claim(
        self,
        application_id: str,
        sequence: str,
        stage: int,
        started_at: Optional[datetime] = None,
        now: Optional[datetime] = None
    ) -> bool:
        """
        Try to claim a stage of one sequence run.

        Returns:
            True if this caller owns the stage, False if already claimed
        """
        now = ensure_utc(now) if now else utcnow()
        self._expire(now)

        key = claim_key(application_id, sequence, stage, started_at)
        if key in self._claims:
            logger.warning(f"Duplicate stage action suppressed: {key}")
            return False

        self._claims[key] = now
        while len(self._claims) > self.max_claims:
            evicted, _ = self._claims.popitem(last=False)
            logger.debug(f"Stage claim evicted: {evicted}")
        return True

    def is_claimed(
        self,
        application_id: str,
        sequence: str,
        stage: int,
        started_at: Optional[datetime] = None,
        now: Optional[datetime] = None
    ) -> bool:
        self._expire(ensure_utc(now) if now else utcnow())
        return claim_key(application_id, sequence, stage, started_at) in self._claims

    def _expire(self, now: datetime) -> None:
        if self.ttl is None:
            return
        # Insertion order is claim order, so expired claims sit at the front
        while self._claims:
            key, claimed_at = next(iter(self._claims.items()))
            if now - claimed_at < self.ttl:
                break
            del self._claims[key]

    def __len__(self) -> int:
        return len(self._claims)
