"""Tests for the rule-based fallback scorer."""

import pytest

from lead_scoring.application import ApplicationSnapshot
from lead_scoring.scoring_model import (
    FallbackScorer,
    QualityTier,
    UrgencyLevel,
    clamp_score,
    estimate_funding_range,
    parse_credit_score,
    parse_years_in_business,
    round_to_5k,
    tier_for_score,
)


@pytest.fixture
def scorer():
    return FallbackScorer()


class TestTiers:
    @pytest.mark.parametrize("score,tier", [
        (1, QualityTier.COLD),
        (49, QualityTier.COLD),
        (50, QualityTier.WARM),
        (79, QualityTier.WARM),
        (80, QualityTier.HOT),
        (100, QualityTier.HOT),
    ])
    def test_boundaries(self, score, tier):
        assert tier_for_score(score) == tier

    def test_clamp(self):
        assert clamp_score(-20) == 1
        assert clamp_score(150) == 100
        assert clamp_score(64) == 64


class TestFallbackScorer:
    def test_empty_application_scores_base(self, scorer):
        result = scorer.score(ApplicationSnapshot())
        assert result.score == 50
        assert result.tier == QualityTier.WARM
        assert result.insights == ["Standard business funding inquiry"]
        assert result.risk_factors == ["Limited business history"]
        assert result.recommended_products == ["MCA"]
        assert result.urgency == UrgencyLevel.LOW
        assert result.next_best_action == "Encourage completion of intake form"

    def test_exactly_eighty_is_hot(self, scorer):
        app = ApplicationSnapshot(time_in_business="2-3 years", monthly_revenue=50000, intake_completed=True)
        result = scorer.score(app)
        assert result.score == 80
        assert result.tier == QualityTier.HOT

    def test_strong_application_clamped(self, scorer):
        app = ApplicationSnapshot(
            time_in_business="5+ years",
            monthly_revenue=150000,
            credit_score="720+",
            intake_completed=True,
            full_application_completed=True,
        )
        result = scorer.score(app)
        assert result.score == 100
        assert "Established business with 5+ years of history" in result.insights
        assert "Full application completed - high intent" in result.insights
        assert result.recommended_products == ["SBA Loan", "Business Line of Credit"]
        assert result.next_best_action == "Request bank statements for underwriting"

    def test_first_match_wins_within_group(self, scorer):
        result = scorer.score(ApplicationSnapshot(time_in_business="10 years"))
        assert result.score_breakdown == {"tib_established": 15}
        assert result.score == 65

    def test_existing_debt(self, scorer):
        result = scorer.score(ApplicationSnapshot(time_in_business="3 years", has_outstanding_loans=True))
        assert result.score == 55
        assert "Has existing business debt" in result.risk_factors

    def test_mca_balance_counts_as_debt(self, scorer):
        result = scorer.score(ApplicationSnapshot(mca_balance_amount=20000))
        assert result.score_breakdown.get("existing_debt") == -5

    def test_intake_only_bonus(self, scorer):
        result = scorer.score(ApplicationSnapshot(intake_completed=True))
        assert result.score == 55
        assert result.next_best_action == "Follow up to complete full application"

    def test_low_credit_adds_risk_without_bonus(self, scorer):
        result = scorer.score(ApplicationSnapshot(credit_score="Below 600"))
        assert result.score == 50
        assert "Credit challenges may affect terms" in result.risk_factors

    def test_good_credit(self, scorer):
        result = scorer.score(ApplicationSnapshot(personal_credit_score_range="650-719"))
        assert result.score == 55

    def test_low_revenue_risk(self, scorer):
        result = scorer.score(ApplicationSnapshot(monthly_revenue=8000))
        assert result.score == 55
        assert "Lower revenue may limit funding options" in result.risk_factors

    def test_revenue_monotonic(self, scorer):
        revenues = [0, 10000, 24999, 25000, 49999, 50000, 99999, 100000, 250000]
        scores = [
            scorer.score(ApplicationSnapshot(time_in_business="2 years", monthly_revenue=r)).score
            for r in revenues
        ]
        assert scores == sorted(scores)
        assert scores[0] < scores[-1]

    @pytest.mark.parametrize("text,level", [
        ("ASAP", UrgencyLevel.IMMEDIATE),
        ("Within a week", UrgencyLevel.IMMEDIATE),
        ("Within a month", UrgencyLevel.HIGH),
        ("This quarter", UrgencyLevel.MEDIUM),
        ("Just exploring", UrgencyLevel.LOW),
        (None, UrgencyLevel.LOW),
    ])
    def test_urgency(self, scorer, text, level):
        result = scorer.score(ApplicationSnapshot(funding_urgency=text))
        assert result.urgency == level

    def test_urgent_need_insight(self, scorer):
        result = scorer.score(ApplicationSnapshot(funding_urgency="asap"))
        assert "Urgent funding need - prioritize contact" in result.insights

    def test_score_always_in_range(self, scorer):
        samples = [
            ApplicationSnapshot(),
            ApplicationSnapshot(has_outstanding_loans=True, credit_score="500"),
            ApplicationSnapshot(time_in_business="20 years", monthly_revenue=1e7, credit_score="800",
                                full_application_completed=True, funding_urgency="asap"),
        ]
        for app in samples:
            result = scorer.score(app)
            assert 1 <= result.score <= 100
            assert result.tier == tier_for_score(result.score)


class TestFundingRange:
    def test_default_requested_amount(self):
        funding = estimate_funding_range(None, None)
        assert (funding.min, funding.max) == (25000, 50000)

    def test_capped_by_annual_revenue(self):
        funding = estimate_funding_range(100000, 5000)
        assert (funding.min, funding.max) == (50000, 60000)

    def test_capped_by_requested(self):
        funding = estimate_funding_range(100000, 50000)
        assert (funding.min, funding.max) == (50000, 150000)

    def test_max_never_below_min(self):
        funding = estimate_funding_range(100000, 2000)
        assert funding.min == 50000
        assert funding.max == 50000

    def test_min_le_max_and_monotonic(self):
        for revenue in (None, 0, 1000, 8000, 40000, 250000):
            previous = None
            for requested in range(5000, 500001, 7500):
                funding = estimate_funding_range(requested, revenue)
                assert funding.min <= funding.max
                if previous is not None:
                    assert funding.min >= previous.min
                    assert funding.max >= previous.max
                previous = funding

    @pytest.mark.parametrize("requested,revenue", [
        (float("inf"), None),
        (float("nan"), float("nan")),
        (100000, float("inf")),
        (1e308, 1e308),
    ])
    def test_non_finite_inputs_count_as_missing(self, requested, revenue):
        funding = estimate_funding_range(requested, revenue)
        assert funding.min <= funding.max

    def test_infinite_request_uses_default(self):
        funding = estimate_funding_range(float("inf"), 10000)
        assert (funding.min, funding.max) == (25000, 75000)

    def test_round_half_up(self):
        assert round_to_5k(2500) == 5000
        assert round_to_5k(7499) == 5000
        assert round_to_5k(12500) == 15000


class TestParsing:
    @pytest.mark.parametrize("text,years", [
        ("5+ years", 5.0),
        ("2-3 years", 2.0),
        ("18 months", 1.5),
        ("Less than 1 year", 0.5),
        ("More than five years", 5.0),
        (None, None),
        ("n/a", None),
    ])
    def test_years_in_business(self, text, years):
        assert parse_years_in_business(text) == years

    def test_credit_score(self):
        assert parse_credit_score("720+") == 720
        assert parse_credit_score("650-719") == 650
        assert parse_credit_score("excellent") is None
