"""Tests for abandonment detection."""

from datetime import timedelta

import pytest

from followup.abandonment import (
    AbandonmentDetector,
    AbandonmentType,
    hours_since_activity,
    lifecycle_phase,
)
from followup.sequences import SequenceName


def _ago(now, hours):
    return (now - timedelta(hours=hours)).isoformat()


class TestAbandonmentDetector:
    def setup_method(self):
        self.detector = AbandonmentDetector()

    def test_intake_below_threshold(self, make_application, now):
        app = make_application(createdAt=_ago(now, 0.99))
        assert self.detector.detect(app, now).is_abandoned is False

    def test_intake_at_threshold(self, make_application, now):
        app = make_application(createdAt=_ago(now, 1.0))
        detection = self.detector.detect(app, now)
        assert detection.is_abandoned
        assert detection.abandonment_type == AbandonmentType.INTAKE_STARTED
        assert detection.recommended_action == (
            "User started intake 1 hours ago but didn't complete. Send completion reminder."
        )
        assert detection.recovery_sequence == SequenceName.INCOMPLETE_APP

    def test_intake_completed(self, make_application, now):
        app = make_application(isCompleted=True, createdAt=_ago(now, 30))
        detection = self.detector.detect(app, now)
        assert detection.abandonment_type == AbandonmentType.INTAKE_COMPLETED
        assert detection.recovery_sequence == SequenceName.INCOMPLETE_APP

    def test_full_application_needs_docs(self, make_application, now):
        app = make_application(
            isCompleted=True, isFullApplicationCompleted=True, createdAt=_ago(now, 50)
        )
        detection = self.detector.detect(app, now)
        assert detection.abandonment_type == AbandonmentType.FULL_APP_COMPLETED
        assert detection.recovery_sequence == SequenceName.DOCS_NEEDED
        assert "50 hours ago" in detection.recommended_action

    def test_full_application_within_threshold(self, make_application, now):
        # 30h is past the intake thresholds but the full-app phase waits 48h
        app = make_application(
            isCompleted=True, isFullApplicationCompleted=True, createdAt=_ago(now, 30)
        )
        assert not self.detector.detect(app, now).is_abandoned

    def test_stale_after_a_week(self, make_application, now):
        app = make_application(
            isCompleted=True, isFullApplicationCompleted=True, plaidItemId="item",
            createdAt=_ago(now, 200), lastActivityAt=_ago(now, 168),
        )
        detection = self.detector.detect(app, now)
        assert detection.abandonment_type == AbandonmentType.STALE
        assert detection.recovery_sequence == SequenceName.STALE_LEAD
        assert detection.recommended_action == "No activity for 168 hours. Consider re-engagement campaign."

    def test_uses_latest_timestamp(self, make_application, now):
        app = make_application(
            createdAt=_ago(now, 100), updatedAt=_ago(now, 50), lastActivityAt=_ago(now, 0.5)
        )
        assert hours_since_activity(app, now) == pytest.approx(0.5)
        assert not self.detector.detect(app, now).is_abandoned

    def test_no_timestamps(self, make_application, now):
        app = make_application(createdAt=None)
        assert hours_since_activity(app, now) == 0.0
        assert not self.detector.detect(app, now).is_abandoned

    def test_custom_thresholds(self, make_application, now):
        detector = AbandonmentDetector({AbandonmentType.INTAKE_STARTED: 5})
        assert not detector.detect(make_application(createdAt=_ago(now, 2)), now).is_abandoned

    def test_to_dict(self, make_application, now):
        data = self.detector.detect(make_application(createdAt=_ago(now, 3)), now).to_dict()
        assert data["isAbandoned"] is True
        assert data["abandonmentType"] == "intake_started"
        assert data["hoursSinceActivity"] == pytest.approx(3.0)


class TestLifecyclePhase:
    @pytest.mark.parametrize("record,phase", [
        ({}, AbandonmentType.INTAKE_STARTED),
        ({"isCompleted": True}, AbandonmentType.INTAKE_COMPLETED),
        ({"isCompleted": True, "isFullApplicationCompleted": True}, AbandonmentType.FULL_APP_COMPLETED),
        ({"isCompleted": True, "isFullApplicationCompleted": True, "plaidItemId": "i"}, AbandonmentType.STALE),
    ])
    def test_single_phase(self, make_application, record, phase):
        assert lifecycle_phase(make_application(**record)) == phase


class TestShouldSkip:
    def test_paused(self, make_application, now):
        app = make_application(followUpPausedUntil=(now + timedelta(days=1)).isoformat())
        assert AbandonmentDetector().should_skip(app, now)

    def test_pause_expired(self, make_application, now):
        app = make_application(followUpPausedUntil=(now - timedelta(days=1)).isoformat())
        assert not AbandonmentDetector().should_skip(app, now)

    def test_opted_out(self, make_application, now):
        assert AbandonmentDetector().should_skip(make_application(lastContactResponse="opted_out"), now)
