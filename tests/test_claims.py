"""Tests for per-stage claims."""

from datetime import timedelta

import pytest

from followup.claims import StageClaimRegistry
from followup.sequences import SequenceName


class TestStageClaimRegistry:
    def test_second_claim_suppressed(self, now):
        claims = StageClaimRegistry()
        assert claims.claim("a1", "new_lead", 0, now=now) is True
        assert claims.claim("a1", SequenceName.NEW_LEAD, 0, now=now) is False
        assert claims.claim("a1", "new_lead", 1, now=now) is True
        assert len(claims) == 2

    def test_new_run_can_reclaim(self, now):
        claims = StageClaimRegistry()
        first_run = now - timedelta(days=10)
        assert claims.claim("a1", "stale_lead", 0, started_at=first_run, now=now)
        assert not claims.claim("a1", "stale_lead", 0, started_at=first_run, now=now)
        assert claims.claim("a1", "stale_lead", 0, started_at=now, now=now)

    def test_oldest_evicted_at_capacity(self, now):
        claims = StageClaimRegistry(max_claims=2)
        claims.claim("a1", "new_lead", 0, now=now)
        claims.claim("a2", "new_lead", 0, now=now)
        claims.claim("a3", "new_lead", 0, now=now)

        assert len(claims) == 2
        assert not claims.is_claimed("a1", "new_lead", 0, now=now)
        assert claims.is_claimed("a3", "new_lead", 0, now=now)
        assert claims.claim("a1", "new_lead", 0, now=now) is True

    def test_claims_expire(self, now):
        claims = StageClaimRegistry(ttl_hours=24)
        claims.claim("a1", "new_lead", 0, now=now)

        assert claims.is_claimed("a1", "new_lead", 0, now=now + timedelta(hours=23))
        assert claims.claim("a1", "new_lead", 0, now=now + timedelta(hours=24)) is True
        assert len(claims) == 1

    def test_no_ttl_keeps_claims(self, now):
        claims = StageClaimRegistry(ttl_hours=None)
        claims.claim("a1", "new_lead", 0, now=now)
        assert not claims.claim("a1", "new_lead", 0, now=now + timedelta(days=365))

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            StageClaimRegistry(max_claims=0)
