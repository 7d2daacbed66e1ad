"""
Application snapshot consumed by the scoring and follow-up engine.

The application store owns these records; the engine only reads them and
proposes updates. Construction is permissive: malformed values become None
rather than raising.
"""

import logging
import math
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse a datetime or ISO-8601 string; anything else becomes None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return ensure_utc(datetime.fromisoformat(text))
        except ValueError:
            logger.debug(f"Unparseable timestamp: {value!r}")
            return None
    return None


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a number, tolerating currency symbols and thousands separators.

    NaN, infinities and values beyond float range become None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        raw = value
    elif isinstance(value, str):
        raw = value.strip().replace(",", "").replace("$", "")
        if not raw:
            return None
    else:
        return None

    try:
        number = float(raw)
    except (ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        logger.debug(f"Non-finite number ignored: {value!r}")
        return None
    return number


def parse_int(value: Any) -> Optional[int]:
    number = parse_number(value)
    return int(number) if number is not None else None


def parse_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "yes", "1", "y"):
            return True
        if text in ("false", "no", "0", "n", ""):
            return False
    return None


def parse_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


# Alternate source keys (camelCase store names) for snapshot fields
ALIASES: Dict[str, tuple] = {
    "intake_completed": ("isCompleted", "intakeCompleted", "is_completed"),
    "full_application_completed": (
        "isFullApplicationCompleted", "fullApplicationCompleted", "is_full_application_completed",
    ),
    "crm_contact_id": ("ghlContactId", "crmContactId", "ghl_contact_id"),
    "doing_business_as": ("doingBusinessAs", "dba"),
    "company_website": ("companyWebsite", "website"),
    "mca_balance_amount": ("mcaBalanceAmount", "mcaBalance"),
    "processes_credit_cards": ("doYouProcessCreditCards", "processesCreditCards"),
}

DATETIME_FIELDS = {
    "created_at", "updated_at", "last_activity_at", "follow_up_started_at",
    "last_follow_up_at", "follow_up_paused_until",
}
NUMBER_FIELDS = {
    "monthly_revenue", "average_monthly_revenue", "requested_amount",
    "outstanding_loans_amount", "mca_balance_amount",
}
INT_FIELDS = {"contact_attempts", "follow_up_stage", "current_step"}
BOOL_FIELDS = {
    "intake_completed", "full_application_completed", "has_outstanding_loans",
    "processes_credit_cards",
}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass(frozen=True)
class ApplicationSnapshot:
    """Read-only view of a loan application record."""

    # Identity
    id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    full_name: Optional[str] = None
    crm_contact_id: Optional[str] = None

    # Business
    business_name: Optional[str] = None
    legal_business_name: Optional[str] = None
    doing_business_as: Optional[str] = None
    industry: Optional[str] = None
    business_type: Optional[str] = None
    time_in_business: Optional[str] = None
    company_website: Optional[str] = None
    state_of_incorporation: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None

    # Financial
    monthly_revenue: Optional[float] = None
    average_monthly_revenue: Optional[float] = None
    requested_amount: Optional[float] = None
    credit_score: Optional[str] = None
    personal_credit_score_range: Optional[str] = None
    fico_score_exact: Optional[str] = None
    has_outstanding_loans: Optional[bool] = None
    outstanding_loans_amount: Optional[float] = None
    mca_balance_amount: Optional[float] = None
    processes_credit_cards: Optional[bool] = None
    funding_urgency: Optional[str] = None
    use_of_funds: Optional[str] = None

    # Lifecycle
    intake_completed: bool = False
    full_application_completed: bool = False
    plaid_item_id: Optional[str] = None
    current_step: Optional[int] = None

    # Contact metadata
    contact_attempts: int = 0
    agent_name: Optional[str] = None
    agent_email: Optional[str] = None
    referral_source: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_activity_at: Optional[datetime] = None

    # Sequencing state
    follow_up_sequence: Optional[str] = None
    follow_up_stage: int = 0
    follow_up_started_at: Optional[datetime] = None
    last_follow_up_at: Optional[datetime] = None
    follow_up_paused_until: Optional[datetime] = None
    last_contact_response: Optional[str] = None

    @property
    def has_financial_connection(self) -> bool:
        return bool(self.plaid_item_id)

    @property
    def display_business_name(self) -> Optional[str]:
        return self.business_name or self.legal_business_name

    @property
    def effective_monthly_revenue(self) -> Optional[float]:
        return self.monthly_revenue or self.average_monthly_revenue

    @property
    def credit_indicator(self) -> Optional[str]:
        return self.credit_score or self.personal_credit_score_range or self.fico_score_exact

    @property
    def first_name(self) -> str:
        if not self.full_name or not self.full_name.strip():
            return "there"
        return self.full_name.split()[0]

    @property
    def is_opted_out(self) -> bool:
        return self.last_contact_response == "opted_out"

    def is_paused(self, now: Optional[datetime] = None) -> bool:
        if self.follow_up_paused_until is None:
            return False
        return self.follow_up_paused_until > (now or utcnow())

    def lead_profile(self) -> Dict[str, Any]:
        """Business, financial and status facts for generative prompts, without contact identity."""
        return {
            # Business
            "businessName": self.display_business_name,
            "dba": self.doing_business_as,
            "industry": self.industry,
            "businessType": self.business_type,
            "timeInBusiness": self.time_in_business,
            "website": self.company_website,
            "stateOfIncorporation": self.state_of_incorporation,

            # Financial
            "monthlyRevenue": self.effective_monthly_revenue,
            "requestedAmount": self.requested_amount,
            "creditScore": self.credit_indicator,
            "hasOutstandingLoans": self.has_outstanding_loans,
            "outstandingLoansAmount": self.outstanding_loans_amount,
            "mcaBalance": self.mca_balance_amount,
            "processesCreditCards": self.processes_credit_cards,

            # Status
            "intakeCompleted": self.intake_completed,
            "fullApplicationCompleted": self.full_application_completed,
            "hasBankConnection": self.has_financial_connection,
            "fundingUrgency": self.funding_urgency,
            "useOfFunds": self.use_of_funds,

            # Location and referral
            "city": self.city,
            "state": self.state,
            "referralSource": self.referral_source,
            "agentName": self.agent_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApplicationSnapshot":
        """
        Build a snapshot from a store record.

        Accepts snake_case or camelCase keys, plus the store's own names for
        lifecycle flags (isCompleted, isFullApplicationCompleted) and the CRM
        contact id (ghlContactId). Unknown keys are ignored.

        Args:
            data: Application record mapping

        Returns:
            ApplicationSnapshot
        """
        values: Dict[str, Any] = {}

        for f in fields(cls):
            candidates = (f.name, _camel(f.name)) + ALIASES.get(f.name, ())
            raw = None
            for key in candidates:
                if key in data and data[key] is not None:
                    raw = data[key]
                    break
            if raw is None:
                continue

            if f.name in DATETIME_FIELDS:
                value = parse_datetime(raw)
            elif f.name in NUMBER_FIELDS:
                value = parse_number(raw)
            elif f.name in INT_FIELDS:
                value = parse_int(raw)
            elif f.name in BOOL_FIELDS:
                value = parse_bool(raw)
            else:
                value = parse_text(raw)

            if value is not None:
                values[f.name] = value

        # A connection flag without an item id still counts as connected
        connected = parse_bool(data.get("hasFinancialConnection", data.get("has_financial_connection")))
        if connected and not values.get("plaid_item_id"):
            values["plaid_item_id"] = "connected"

        return cls(**values)
