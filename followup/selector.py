"""
Sequence selection.

Maps an application's lifecycle state and the triggering event onto the
outreach sequence it belongs to. Pure: no I/O, no mutation.
"""

from enum import Enum
from typing import Union

from lead_scoring.application import ApplicationSnapshot

from .sequences import SequenceName


class Trigger(str, Enum):
    """Events that start processing for an application."""
    NEW_APPLICATION = "new_application"
    INTAKE_COMPLETED = "intake_completed"
    FULL_APP_COMPLETED = "full_app_completed"
    BANK_DOCS_UPLOADED = "bank_docs_uploaded"
    ACTIVITY = "activity"
    SCHEDULED_CHECK = "scheduled_check"

    @property
    def is_first_contact(self) -> bool:
        return self in (Trigger.NEW_APPLICATION, Trigger.INTAKE_COMPLETED)


# Contact attempts beyond which an unfinished application is treated as stale
MAX_INCOMPLETE_ATTEMPTS = 3


def determine_sequence(
    application: ApplicationSnapshot,
    trigger: Union[Trigger, str]
) -> SequenceName:
    """
    Select the sequence for an application.

    Priority (first match wins):
    1. Financial connection, or bank docs just uploaded -> nurture
    2. Full application without a connection -> docs_needed
    3. Intake only -> incomplete_app, or stale_lead after 3+ attempts
    4. First-contact trigger -> new_lead
    5. Otherwise -> stale_lead
    """
    trigger = Trigger(trigger)

    if application.has_financial_connection or trigger == Trigger.BANK_DOCS_UPLOADED:
        return SequenceName.NURTURE

    if application.full_application_completed:
        return SequenceName.DOCS_NEEDED

    if application.intake_completed:
        if application.contact_attempts > MAX_INCOMPLETE_ATTEMPTS:
            return SequenceName.STALE_LEAD
        return SequenceName.INCOMPLETE_APP

    if trigger.is_first_contact:
        return SequenceName.NEW_LEAD

    return SequenceName.STALE_LEAD
