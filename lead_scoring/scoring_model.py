"""
Rule-based Lead Scoring Model.

Deterministic scorer used whenever generative enrichment is unavailable.
Scores start at a base of 50 and are adjusted by ordered rule groups; the
first matching rule in each group applies.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from .application import ApplicationSnapshot

logger = logging.getLogger(__name__)


class QualityTier(str, Enum):
    """Lead quality tiers."""
    HOT = "hot"    # Score >= 80
    WARM = "warm"  # Score 50-79
    COLD = "cold"  # Score < 50


class UrgencyLevel(str, Enum):
    """Stated funding urgency."""
    IMMEDIATE = "immediate"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


HOT_THRESHOLD = 80
WARM_THRESHOLD = 50

MIN_SCORE = 1
MAX_SCORE = 100


def tier_for_score(score: float) -> QualityTier:
    """Map a score onto the fixed 50/80 tier boundaries."""
    if score >= HOT_THRESHOLD:
        return QualityTier.HOT
    if score >= WARM_THRESHOLD:
        return QualityTier.WARM
    return QualityTier.COLD


def clamp_score(score: float) -> int:
    return int(min(MAX_SCORE, max(MIN_SCORE, score)))


@dataclass(frozen=True)
class FundingRange:
    """Estimated fundable amount."""
    min: int
    max: int

    def to_dict(self) -> Dict[str, int]:
        return {"min": self.min, "max": self.max}


def round_to_5k(amount: float) -> int:
    """Round half-up to the nearest 5,000."""
    return int(math.floor(amount / 5000 + 0.5) * 5000)


DEFAULT_REQUESTED_AMOUNT = 50000.0


def estimate_funding_range(
    requested_amount: Optional[float],
    monthly_revenue: Optional[float]
) -> FundingRange:
    """
    Estimate a funding range from the requested amount and revenue.

    min is half the request; max is the lesser of 1.5x the request and a
    year of revenue, never below min. Without revenue, max is the request.
    Non-finite inputs count as missing.
    """
    if _is_positive(requested_amount):
        requested = requested_amount
    else:
        requested = DEFAULT_REQUESTED_AMOUNT
    low = round_to_5k(requested * 0.5)

    ceiling = requested
    if _is_positive(monthly_revenue):
        ceiling = min(requested * 1.5, monthly_revenue * 12)
    if not math.isfinite(ceiling):
        ceiling = requested
    high = round_to_5k(ceiling)

    return FundingRange(min=low, max=max(low, high))


def _is_positive(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0


_NUMBER = re.compile(r"\d+(?:\.\d+)?")


def parse_years_in_business(text: Optional[str]) -> Optional[float]:
    """
    Parse a time-in-business answer into years.

    Handles "5+ years", "2-3 years", "18 months", "less than 1 year" and
    "more than 5 years". Ranges use their lower bound.
    """
    if not text:
        return None
    lowered = text.lower()
    match = _NUMBER.search(lowered)
    if not match:
        if "more" in lowered:
            return 5.0
        return None

    value = float(match.group())
    if "month" in lowered and "year" not in lowered:
        value = value / 12
    if "less" in lowered or "under" in lowered:
        value = max(0.0, value - 0.5)
    return value


def parse_credit_score(text: Optional[str]) -> Optional[int]:
    """First plausible FICO number in a credit answer ("650-719", "720+")."""
    if not text:
        return None
    for match in _NUMBER.finditer(text):
        value = int(float(match.group()))
        if 300 <= value <= 850:
            return value
    return None


@dataclass
class ScoringSignals:
    """Normalized inputs the rules evaluate."""
    years_in_business: Optional[float] = None
    monthly_revenue: float = 0.0
    credit_text: str = ""
    credit_score: Optional[int] = None
    has_debt: bool = False
    full_application: bool = False
    intake_completed: bool = False

    @classmethod
    def from_application(cls, application: ApplicationSnapshot) -> "ScoringSignals":
        credit_text = (application.credit_indicator or "").lower()
        return cls(
            years_in_business=parse_years_in_business(application.time_in_business),
            monthly_revenue=application.effective_monthly_revenue or 0.0,
            credit_text=credit_text,
            credit_score=parse_credit_score(credit_text),
            has_debt=bool(application.has_outstanding_loans or application.mca_balance_amount),
            full_application=application.full_application_completed,
            intake_completed=application.intake_completed,
        )


@dataclass(frozen=True)
class ScoringRule:
    """One adjustment: applies when its predicate matches."""
    name: str
    predicate: Callable[[ScoringSignals], bool]
    delta: int = 0
    insight: Optional[str] = None
    risk: Optional[str] = None
    products: Tuple[str, ...] = ()


def _years_at_least(years: float) -> Callable[[ScoringSignals], bool]:
    return lambda s: s.years_in_business is not None and s.years_in_business >= years


def _revenue_at_least(amount: float) -> Callable[[ScoringSignals], bool]:
    return lambda s: s.monthly_revenue >= amount


# Rule groups are evaluated in order; within a group the first match wins.
RULE_GROUPS: List[Tuple[str, List[ScoringRule]]] = [
    ("time_in_business", [
        ScoringRule(
            "tib_established", _years_at_least(5), 15,
            insight="Established business with 5+ years of history",
            products=("SBA Loan", "Business Line of Credit"),
        ),
        ScoringRule(
            "tib_solid", _years_at_least(2), 10,
            insight="Solid operating history",
            products=("Business Line of Credit", "Revenue-Based Financing"),
        ),
        ScoringRule(
            "tib_young", _years_at_least(1), 5,
            products=("MCA", "Revenue-Based Financing"),
        ),
        ScoringRule(
            "tib_limited", lambda s: True, 0,
            risk="Limited business history",
            products=("MCA",),
        ),
    ]),
    ("monthly_revenue", [
        ScoringRule(
            "revenue_100k", _revenue_at_least(100000), 20,
            insight="Strong monthly revenue over $100K",
        ),
        ScoringRule(
            "revenue_50k", _revenue_at_least(50000), 15,
            insight="Healthy revenue of $50K+/month",
        ),
        ScoringRule("revenue_25k", _revenue_at_least(25000), 10),
        ScoringRule(
            "revenue_low", lambda s: s.monthly_revenue > 0, 5,
            risk="Lower revenue may limit funding options",
        ),
    ]),
    ("credit", [
        ScoringRule(
            "credit_excellent",
            lambda s: "above" in s.credit_text or (s.credit_score is not None and s.credit_score >= 720),
            10,
            insight="Excellent personal credit",
        ),
        ScoringRule(
            "credit_good",
            lambda s: s.credit_score is not None and s.credit_score >= 650,
            5,
        ),
        ScoringRule(
            "credit_challenged",
            lambda s: "below" in s.credit_text or (s.credit_score is not None and s.credit_score < 600),
            0,
            risk="Credit challenges may affect terms",
        ),
    ]),
    ("existing_debt", [
        ScoringRule(
            "existing_debt", lambda s: s.has_debt, -5,
            risk="Has existing business debt",
        ),
    ]),
    ("completeness", [
        ScoringRule(
            "full_application", lambda s: s.full_application, 10,
            insight="Full application completed - high intent",
        ),
        ScoringRule(
            "intake_only", lambda s: s.intake_completed, 5,
            insight="Intake form completed",
        ),
    ]),
]

BASE_SCORE = 50

DEFAULT_INSIGHTS = ["Standard business funding inquiry"]
DEFAULT_RISKS = ["No major risk factors identified"]
DEFAULT_PRODUCTS = ["Business Line of Credit", "MCA"]


def classify_urgency(funding_urgency: Optional[str]) -> UrgencyLevel:
    text = (funding_urgency or "").lower()
    if "asap" in text or "immediate" in text or "week" in text:
        return UrgencyLevel.IMMEDIATE
    if "month" in text:
        return UrgencyLevel.HIGH
    if "quarter" in text:
        return UrgencyLevel.MEDIUM
    return UrgencyLevel.LOW


def next_best_action(application: ApplicationSnapshot) -> str:
    if application.full_application_completed:
        return "Request bank statements for underwriting"
    if application.intake_completed:
        return "Follow up to complete full application"
    return "Encourage completion of intake form"


@dataclass
class FallbackScore:
    """Result of rule-based scoring."""
    score: int
    tier: QualityTier
    urgency: UrgencyLevel
    insights: List[str] = field(default_factory=list)
    risk_factors: List[str] = field(default_factory=list)
    recommended_products: List[str] = field(default_factory=list)
    funding_range: FundingRange = field(default_factory=lambda: FundingRange(0, 0))
    next_best_action: str = ""
    score_breakdown: Dict[str, int] = field(default_factory=dict)


class FallbackScorer:
    """
    Scores applications from their business and lifecycle facts.

    Adjustments (from base 50):
    - Time in business: +15 (5+ years), +10 (2+), +5 (1+)
    - Monthly revenue: +20 (100k+), +15 (50k+), +10 (25k+), +5 (any)
    - Credit: +10 (720+ or "above"), +5 (650+)
    - Existing debt: -5
    - Completeness: +10 (full application), +5 (intake only)

    The final score is clamped to [1, 100].
    """

    def __init__(self, rule_groups: Optional[List[Tuple[str, List[ScoringRule]]]] = None):
        self.rule_groups = rule_groups if rule_groups is not None else RULE_GROUPS

    def score(self, application: ApplicationSnapshot) -> FallbackScore:
        """
        Score an application.

        Args:
            application: Application snapshot

        Returns:
            FallbackScore with score, tier and supporting signals
        """
        signals = ScoringSignals.from_application(application)

        score = BASE_SCORE
        breakdown: Dict[str, int] = {}
        insights: List[str] = []
        risks: List[str] = []
        products: List[str] = []

        for _group, rules in self.rule_groups:
            for rule in rules:
                if not rule.predicate(signals):
                    continue
                score += rule.delta
                if rule.delta:
                    breakdown[rule.name] = rule.delta
                if rule.insight:
                    insights.append(rule.insight)
                if rule.risk:
                    risks.append(rule.risk)
                products.extend(rule.products)
                break

        urgency = classify_urgency(application.funding_urgency)
        if urgency == UrgencyLevel.IMMEDIATE:
            insights.append("Urgent funding need - prioritize contact")

        score = clamp_score(score)

        return FallbackScore(
            score=score,
            tier=tier_for_score(score),
            urgency=urgency,
            insights=insights or list(DEFAULT_INSIGHTS),
            risk_factors=risks or list(DEFAULT_RISKS),
            recommended_products=products or list(DEFAULT_PRODUCTS),
            funding_range=estimate_funding_range(
                application.requested_amount, signals.monthly_revenue
            ),
            next_best_action=next_best_action(application),
            score_breakdown=breakdown,
        )
