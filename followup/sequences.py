"""
Follow-up sequence definitions.

Each sequence is an ordered, immutable tuple of stages. A stage's delay is
measured from the previous stage's dispatch, or from the sequence start for
stage 0.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


class UnknownSequenceError(KeyError):
    """A sequence name has no definition."""


class Channel(str, Enum):
    """Outbound contact channel."""
    SMS = "sms"
    EMAIL = "email"
    BOTH = "both"


class MessagePurpose(str, Enum):
    """Why a contact is being made."""
    INITIAL_FOLLOWUP = "initial_followup"
    DOCUMENT_REMINDER = "document_reminder"
    STALE_LEAD = "stale_lead"
    APPLICATION_INCOMPLETE = "application_incomplete"
    BANK_STATEMENT_NEEDED = "bank_statement_needed"
    APPROVAL_NOTIFICATION = "approval_notification"
    CUSTOM = "custom"


class SequenceName(str, Enum):
    """Named outreach sequences."""
    NEW_LEAD = "new_lead"
    STALE_LEAD = "stale_lead"
    INCOMPLETE_APP = "incomplete_app"
    DOCS_NEEDED = "docs_needed"
    NURTURE = "nurture"


@dataclass(frozen=True)
class SequenceStage:
    """One timed step of a sequence."""
    delay_hours: float
    channel: Channel
    purpose: MessagePurpose
    is_last_stage: bool = False

    @property
    def channels(self) -> Tuple[Channel, ...]:
        """Concrete channels this stage sends on."""
        if self.channel == Channel.BOTH:
            return (Channel.SMS, Channel.EMAIL)
        return (self.channel,)


def _stage(delay, channel, purpose, last=False) -> SequenceStage:
    return SequenceStage(delay, Channel(channel), MessagePurpose(purpose), last)


SEQUENCES: Mapping[str, Tuple[SequenceStage, ...]] = MappingProxyType({
    SequenceName.NEW_LEAD.value: (
        _stage(0, "sms", "initial_followup"),      # immediate
        _stage(2, "email", "initial_followup"),
        _stage(24, "sms", "initial_followup"),     # day 1
        _stage(72, "email", "initial_followup"),   # day 3
        _stage(168, "both", "stale_lead", last=True),  # day 7
    ),
    SequenceName.STALE_LEAD.value: (
        _stage(0, "sms", "stale_lead"),
        _stage(48, "email", "stale_lead"),
        _stage(120, "sms", "stale_lead"),          # day 5
        _stage(240, "email", "stale_lead", last=True),  # day 10 break-up
    ),
    SequenceName.INCOMPLETE_APP.value: (
        _stage(1, "sms", "application_incomplete"),
        _stage(24, "email", "application_incomplete"),
        _stage(72, "sms", "application_incomplete"),
        _stage(168, "email", "application_incomplete", last=True),
    ),
    SequenceName.DOCS_NEEDED.value: (
        _stage(0, "sms", "bank_statement_needed"),
        _stage(24, "email", "bank_statement_needed"),
        _stage(72, "sms", "document_reminder"),
        _stage(120, "email", "document_reminder"),
        _stage(168, "both", "document_reminder", last=True),
    ),
    SequenceName.NURTURE.value: (
        _stage(336, "email", "stale_lead"),        # 2 weeks
        _stage(672, "email", "stale_lead"),        # 4 weeks
        _stage(1344, "email", "stale_lead", last=True),  # 8 weeks
    ),
})

# Purpose used for the pre-rendered messages in a sequence's dispatch payload
SEQUENCE_PURPOSES: Mapping[str, MessagePurpose] = MappingProxyType({
    SequenceName.NEW_LEAD.value: MessagePurpose.INITIAL_FOLLOWUP,
    SequenceName.STALE_LEAD.value: MessagePurpose.STALE_LEAD,
    SequenceName.INCOMPLETE_APP.value: MessagePurpose.APPLICATION_INCOMPLETE,
    SequenceName.DOCS_NEEDED.value: MessagePurpose.BANK_STATEMENT_NEEDED,
    SequenceName.NURTURE.value: MessagePurpose.STALE_LEAD,
})


def _key(name) -> str:
    return name.value if isinstance(name, SequenceName) else str(name)


def get_sequence(name) -> Tuple[SequenceStage, ...]:
    """
    Look up a sequence by name.

    Raises:
        UnknownSequenceError: if the name is not defined
    """
    try:
        return SEQUENCES[_key(name)]
    except KeyError:
        raise UnknownSequenceError(name) from None


def get_stage(name, stage: int) -> Optional[SequenceStage]:
    """Stage definition, or None past the end of the sequence."""
    stages = get_sequence(name)
    if 0 <= stage < len(stages):
        return stages[stage]
    return None


def purpose_for_sequence(name) -> MessagePurpose:
    return SEQUENCE_PURPOSES.get(_key(name), MessagePurpose.INITIAL_FOLLOWUP)
