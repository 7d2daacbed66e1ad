"""
Abandonment detection.

Classifies applications stalled at a lifecycle phase beyond that phase's
inactivity threshold, and maps each abandonment type to a recovery sequence.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from lead_scoring.application import ApplicationSnapshot, ensure_utc, utcnow

from .sequences import SequenceName

logger = logging.getLogger(__name__)


class AbandonmentType(str, Enum):
    """Lifecycle phase an application stalled in."""
    INTAKE_STARTED = "intake_started"
    INTAKE_COMPLETED = "intake_completed"
    FULL_APP_COMPLETED = "full_app_completed"
    STALE = "stale"


# Hours of inactivity before each phase counts as abandoned
ABANDONMENT_THRESHOLDS: Dict[AbandonmentType, float] = {
    AbandonmentType.INTAKE_STARTED: 1,
    AbandonmentType.INTAKE_COMPLETED: 24,
    AbandonmentType.FULL_APP_COMPLETED: 48,
    AbandonmentType.STALE: 168,
}

RECOVERY_SEQUENCES: Dict[AbandonmentType, SequenceName] = {
    AbandonmentType.INTAKE_STARTED: SequenceName.INCOMPLETE_APP,
    AbandonmentType.INTAKE_COMPLETED: SequenceName.INCOMPLETE_APP,
    AbandonmentType.FULL_APP_COMPLETED: SequenceName.DOCS_NEEDED,
    AbandonmentType.STALE: SequenceName.STALE_LEAD,
}

RECOMMENDED_ACTIONS: Dict[AbandonmentType, str] = {
    AbandonmentType.INTAKE_STARTED:
        "User started intake {hours} hours ago but didn't complete. Send completion reminder.",
    AbandonmentType.INTAKE_COMPLETED:
        "User completed intake {hours} hours ago but hasn't started full application. Send application prompt.",
    AbandonmentType.FULL_APP_COMPLETED:
        "User completed application {hours} hours ago but hasn't uploaded bank statements. Send document request.",
    AbandonmentType.STALE:
        "No activity for {hours} hours. Consider re-engagement campaign.",
}


@dataclass(frozen=True)
class AbandonmentDetection:
    """Abandonment check result. Recomputed on every check, never stored."""
    is_abandoned: bool
    hours_since_activity: float
    abandonment_type: Optional[AbandonmentType] = None
    recommended_action: Optional[str] = None

    @property
    def recovery_sequence(self) -> Optional[SequenceName]:
        if self.abandonment_type is None:
            return None
        return RECOVERY_SEQUENCES[self.abandonment_type]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isAbandoned": self.is_abandoned,
            "abandonmentType": self.abandonment_type.value if self.abandonment_type else None,
            "hoursSinceActivity": self.hours_since_activity,
            "recommendedAction": self.recommended_action,
        }


def hours_since_activity(application: ApplicationSnapshot, now: Optional[datetime] = None) -> float:
    """Hours since the latest of lastActivityAt, updatedAt and createdAt; 0 when none is known."""
    stamps = [
        ensure_utc(t)
        for t in (application.last_activity_at, application.updated_at, application.created_at)
        if t is not None
    ]
    if not stamps:
        return 0.0
    now = ensure_utc(now) if now else utcnow()
    return (now - max(stamps)).total_seconds() / 3600


def lifecycle_phase(application: ApplicationSnapshot) -> AbandonmentType:
    """
    The single phase whose threshold applies to this application.

    A completed full application implies a completed intake, whatever the
    intake flag says.
    """
    if application.full_application_completed:
        if application.has_financial_connection:
            return AbandonmentType.STALE
        return AbandonmentType.FULL_APP_COMPLETED
    if application.intake_completed:
        return AbandonmentType.INTAKE_COMPLETED
    return AbandonmentType.INTAKE_STARTED


class AbandonmentDetector:
    """Threshold-based abandonment classifier."""

    def __init__(self, thresholds: Optional[Dict[AbandonmentType, float]] = None):
        self.thresholds = dict(ABANDONMENT_THRESHOLDS)
        if thresholds:
            self.thresholds.update(thresholds)

    def should_skip(self, application: ApplicationSnapshot, now: Optional[datetime] = None) -> bool:
        """Paused or opted-out applications are never evaluated."""
        return application.is_paused(now) or application.is_opted_out

    def detect(
        self,
        application: ApplicationSnapshot,
        now: Optional[datetime] = None
    ) -> AbandonmentDetection:
        """
        Classify one application.

        Only the threshold of the application's current lifecycle phase is
        evaluated.
        """
        hours = hours_since_activity(application, now)
        phase = lifecycle_phase(application)

        if hours >= self.thresholds[phase]:
            rounded = int(math.floor(hours + 0.5))
            return AbandonmentDetection(
                is_abandoned=True,
                hours_since_activity=hours,
                abandonment_type=phase,
                recommended_action=RECOMMENDED_ACTIONS[phase].format(hours=rounded),
            )

        return AbandonmentDetection(is_abandoned=False, hours_since_activity=hours)
