"""
Follow-Up Sequencing Module.

This module decides, per application:
- which outreach sequence applies
- whether the next stage is due
- whether the application was abandoned
and emits CRM payloads for the result.
"""

from .abandonment import AbandonmentDetection, AbandonmentDetector, AbandonmentType
from .claims import StageClaimRegistry
from .composer import MessageComposer, PersonalizedMessage
from .dispatcher import CRMDispatcher, DispatchResult, WebhookConfig, WebhookTarget
from .orchestrator import FollowUpAction, FollowUpOrchestrator, ProcessingResult
from .selector import Trigger, determine_sequence
from .sequences import (
    SEQUENCES,
    Channel,
    MessagePurpose,
    SequenceName,
    SequenceStage,
    UnknownSequenceError,
    get_sequence,
)
from .stage_advancer import StageAdvancer, StageDecision, StageStatus
from .tasks import DetachedTaskQueue

__all__ = [
    "AbandonmentDetection",
    "AbandonmentDetector",
    "AbandonmentType",
    "StageClaimRegistry",
    "MessageComposer",
    "PersonalizedMessage",
    "CRMDispatcher",
    "DispatchResult",
    "WebhookConfig",
    "WebhookTarget",
    "FollowUpAction",
    "FollowUpOrchestrator",
    "ProcessingResult",
    "Trigger",
    "determine_sequence",
    "SEQUENCES",
    "Channel",
    "MessagePurpose",
    "SequenceName",
    "SequenceStage",
    "UnknownSequenceError",
    "get_sequence",
    "StageAdvancer",
    "StageDecision",
    "StageStatus",
    "DetachedTaskQueue",
]
