"""Tests for application snapshot parsing."""

from datetime import datetime, timedelta, timezone

import pytest

from lead_scoring.application import ApplicationSnapshot, parse_datetime, parse_int, parse_number


class TestFromDict:
    def test_store_field_names(self):
        app = ApplicationSnapshot.from_dict({
            "id": "a1",
            "isCompleted": True,
            "isFullApplicationCompleted": False,
            "plaidItemId": "item-9",
            "ghlContactId": "crm-42",
            "monthlyRevenue": "75,000",
            "contactAttempts": 4,
        })
        assert app.intake_completed is True
        assert app.full_application_completed is False
        assert app.has_financial_connection is True
        assert app.crm_contact_id == "crm-42"
        assert app.monthly_revenue == 75000.0
        assert app.contact_attempts == 4

    def test_snake_case_keys(self):
        app = ApplicationSnapshot.from_dict({
            "intake_completed": True,
            "full_application_completed": True,
            "requested_amount": 120000,
            "follow_up_sequence": "docs_needed",
            "follow_up_stage": 2,
        })
        assert app.intake_completed and app.full_application_completed
        assert app.requested_amount == 120000.0
        assert app.follow_up_sequence == "docs_needed"
        assert app.follow_up_stage == 2

    def test_timestamps_are_utc(self):
        app = ApplicationSnapshot.from_dict({
            "createdAt": "2026-03-01T10:00:00Z",
            "lastActivityAt": "2026-03-01T12:00:00",
        })
        assert app.created_at == datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
        assert app.last_activity_at.tzinfo is not None

    def test_malformed_values_do_not_raise(self):
        app = ApplicationSnapshot.from_dict({
            "monthlyRevenue": "lots",
            "createdAt": "yesterday",
            "contactAttempts": "many",
            "isCompleted": "maybe",
            "requestedAmount": {"value": 5},
        })
        assert app.monthly_revenue is None
        assert app.created_at is None
        assert app.contact_attempts == 0
        assert app.intake_completed is False
        assert app.requested_amount is None

    @pytest.mark.parametrize("raw", ["nan", "inf", "-inf", "1e400", "Infinity", float("nan"), float("inf")])
    def test_non_finite_numbers_are_dropped(self, raw):
        app = ApplicationSnapshot.from_dict({
            "contactAttempts": raw,
            "followUpStage": raw,
            "currentStep": raw,
            "requestedAmount": raw,
            "monthlyRevenue": raw,
        })
        assert app.contact_attempts == 0
        assert app.follow_up_stage == 0
        assert app.current_step is None
        assert app.requested_amount is None
        assert app.monthly_revenue is None

    def test_unknown_keys_ignored(self):
        app = ApplicationSnapshot.from_dict({"id": "a1", "somethingElse": 1})
        assert app.id == "a1"

    def test_financial_connection_flag(self):
        app = ApplicationSnapshot.from_dict({"hasFinancialConnection": True})
        assert app.has_financial_connection is True
        assert ApplicationSnapshot.from_dict({}).has_financial_connection is False


class TestDerivedFields:
    def test_first_name(self):
        assert ApplicationSnapshot(full_name="Jane Q Doe").first_name == "Jane"
        assert ApplicationSnapshot().first_name == "there"
        assert ApplicationSnapshot(full_name="   ").first_name == "there"

    def test_business_name_falls_back_to_legal_name(self):
        app = ApplicationSnapshot(legal_business_name="Acme LLC")
        assert app.display_business_name == "Acme LLC"

    def test_revenue_falls_back_to_average(self):
        app = ApplicationSnapshot(average_monthly_revenue=30000.0)
        assert app.effective_monthly_revenue == 30000.0

    def test_lead_profile_has_no_contact_identity(self, make_application):
        profile = make_application(monthlyRevenue=40000).lead_profile()
        assert "email" not in profile
        assert "phone" not in profile
        assert "name" not in profile
        assert "jane@example.com" not in str(profile)
        assert profile["businessName"] == "Acme Bakery"
        assert profile["monthlyRevenue"] == 40000.0

    def test_pause_and_opt_out(self, now):
        paused = ApplicationSnapshot(follow_up_paused_until=now + timedelta(hours=1))
        expired = ApplicationSnapshot(follow_up_paused_until=now - timedelta(hours=1))
        assert paused.is_paused(now) is True
        assert expired.is_paused(now) is False
        assert ApplicationSnapshot(last_contact_response="opted_out").is_opted_out is True


class TestParsers:
    def test_parse_number(self):
        assert parse_number("$1,250.50") == 1250.5
        assert parse_number(True) is None
        assert parse_number("") is None

    def test_parse_number_rejects_non_finite(self):
        assert parse_number("nan") is None
        assert parse_number("-inf") is None
        assert parse_number("1e400") is None
        assert parse_number(float("inf")) is None
        assert parse_number(10 ** 400) is None
        assert parse_number("1e300") == 1e300

    def test_parse_int_overflowing_strings(self):
        assert parse_int("1e400") is None
        assert parse_int("NaN") is None
        assert parse_int("3.0") == 3

    def test_parse_datetime_naive_is_utc(self):
        value = parse_datetime(datetime(2026, 1, 1, 8, 0))
        assert value.tzinfo == timezone.utc
