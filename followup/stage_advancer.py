"""
Stage advancement state machine.

States: not started, stage i (0..N-1), complete. Transitions only happen
when the caller runs a check; the advancer never mutates application state.
Advancing followUpStage after a due action is the caller's job.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from lead_scoring.application import ApplicationSnapshot, ensure_utc, utcnow

from .sequences import SequenceStage, get_sequence

logger = logging.getLogger(__name__)


class StageStatus(str, Enum):
    """Outcome of an advancement check."""
    NOT_STARTED = "not_started"  # no timestamps: stage 0 is due now
    DUE = "due"
    NOT_DUE = "not_due"
    COMPLETE = "complete"


@dataclass(frozen=True)
class StageDecision:
    """Result of checking one application against one sequence."""
    status: StageStatus
    sequence: str
    stage: int
    stage_definition: Optional[SequenceStage] = None
    hours_elapsed: Optional[float] = None
    hours_remaining: Optional[float] = None

    @property
    def should_act(self) -> bool:
        return self.status in (StageStatus.NOT_STARTED, StageStatus.DUE)


def hours_between(start: datetime, end: datetime) -> float:
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / 3600


class StageAdvancer:
    """Decides whether the current stage of a sequence is due."""

    def check(
        self,
        sequence: str,
        current_stage: int = 0,
        started_at: Optional[datetime] = None,
        last_follow_up_at: Optional[datetime] = None,
        now: Optional[datetime] = None
    ) -> StageDecision:
        """
        Check a sequence position.

        Args:
            sequence: Sequence name
            current_stage: Next pending stage index
            started_at: When the sequence started
            last_follow_up_at: When the last stage was dispatched
            now: Reference time

        Returns:
            StageDecision

        Raises:
            UnknownSequenceError: for an undefined sequence
        """
        stages = get_sequence(sequence)
        name = getattr(sequence, "value", sequence)
        current_stage = max(0, current_stage or 0)

        if current_stage >= len(stages):
            return StageDecision(StageStatus.COMPLETE, name, current_stage)

        anchors = [t for t in (started_at, last_follow_up_at) if t is not None]
        if not anchors:
            return StageDecision(StageStatus.NOT_STARTED, name, 0, stages[0])

        anchor = max(ensure_utc(t) for t in anchors)
        elapsed = hours_between(anchor, now or utcnow())
        definition = stages[current_stage]

        if elapsed >= definition.delay_hours:
            return StageDecision(StageStatus.DUE, name, current_stage, definition, elapsed, 0.0)

        return StageDecision(
            StageStatus.NOT_DUE,
            name,
            current_stage,
            definition,
            elapsed,
            definition.delay_hours - elapsed,
        )

    def check_application(
        self,
        application: ApplicationSnapshot,
        sequence: str,
        now: Optional[datetime] = None
    ) -> StageDecision:
        """Check an application's stored sequencing state against a sequence."""
        decision = self.check(
            sequence,
            application.follow_up_stage,
            application.follow_up_started_at,
            application.last_follow_up_at,
            now,
        )
        logger.debug(
            f"Stage check app={application.id} sequence={decision.sequence} "
            f"stage={decision.stage} status={decision.status.value}"
        )
        return decision
