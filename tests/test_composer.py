"""Tests for message composition."""

import pytest

from followup.composer import MessageComposer
from followup.sequences import Channel, MessagePurpose


class TestFallbackMessages:
    def setup_method(self):
        self.composer = MessageComposer()

    @pytest.mark.asyncio
    async def test_initial_sms_exact_text(self, make_application):
        message = await self.composer.compose(make_application(), "sms", "initial_followup")
        assert message.body == (
            "Hi Jane! Thanks for your interest in funding for Acme Bakery. "
            "I'd love to discuss your options. When's a good time to chat? - Today Capital Group"
        )
        assert message.source == "fallback"
        assert message.tone == "friendly"
        assert message.follow_up_timing == "2 days"
        assert message.subject is None

    @pytest.mark.asyncio
    async def test_email_has_subject(self, make_application):
        message = await self.composer.compose(make_application(), Channel.EMAIL, MessagePurpose.STALE_LEAD)
        assert message.subject == "Jane, checking in on your funding needs"
        assert message.body.startswith("Hi Jane,\n\n")
        assert message.body.endswith("Best,\nToday Capital Group")
        assert message.tone == "professional"
        assert message.to_dict()["subject"] == message.subject

    @pytest.mark.asyncio
    async def test_agent_signs_message(self, make_application):
        app = make_application(agentName="Sam Rivera")
        message = await self.composer.compose(app, "sms", "document_reminder")
        assert message.body.endswith("- Sam Rivera")

    @pytest.mark.asyncio
    async def test_explicit_agent_overrides_assigned(self, make_application):
        app = make_application(agentName="Sam Rivera")
        message = await self.composer.compose(app, "sms", "custom", agent_name="Alex")
        assert message.body.endswith("- Alex")

    @pytest.mark.asyncio
    async def test_defaults_without_name_or_business(self, make_application):
        app = make_application(fullName=None, businessName=None)
        message = await self.composer.compose(app, "sms", "application_incomplete")
        assert message.body.startswith("Hi there!")
        assert "your business funding application" in message.body

    @pytest.mark.asyncio
    async def test_legal_name_used_when_no_business_name(self, make_application):
        app = make_application(businessName=None, legalBusinessName="Acme Bakery LLC")
        message = await self.composer.compose(app, "sms", "approval_notification")
        assert "Acme Bakery LLC has been pre-approved" in message.body

    @pytest.mark.asyncio
    async def test_both_is_rejected(self, make_application):
        with pytest.raises(ValueError):
            await self.composer.compose(make_application(), "both", "custom")

    @pytest.mark.asyncio
    async def test_every_purpose_renders(self, make_application):
        app = make_application()
        for purpose in MessagePurpose:
            sms = await self.composer.compose(app, "sms", purpose)
            email = await self.composer.compose(app, "email", purpose)
            assert "Jane" in sms.body and "Acme Bakery" in sms.body
            assert email.subject


class TestGeneratedMessages:
    @pytest.mark.asyncio
    async def test_ai_message_used(self, make_application, fake_provider):
        provider = fake_provider([{"body": "Hey Jane, quick question about Acme!", "tone": "friendly"}])
        message = await MessageComposer(provider=provider).compose(make_application(), "sms", "stale_lead")
        assert message.source == "ai"
        assert message.body == "Hey Jane, quick question about Acme!"
        assert message.follow_up_timing == "2 days"
        assert "SMS" in provider.calls[0]["prompt"]
        assert provider.calls[0]["temperature"] == 0.7

    @pytest.mark.asyncio
    async def test_custom_context_in_prompt(self, make_application, fake_provider):
        provider = fake_provider([{"body": "Hi", "subject": "Hello"}])
        composer = MessageComposer(provider=provider)
        await composer.compose(make_application(), "email", "custom", custom_context="Rates dropped")
        assert "ADDITIONAL CONTEXT: Rates dropped" in provider.calls[0]["prompt"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("channel,response", [
        ("sms", {"body": "x" * 400}),
        ("email", {"body": "No subject here"}),
        ("sms", "garbage"),
        ("sms", {"body": ""}),
    ])
    async def test_invalid_output_falls_back(self, make_application, fake_provider, channel, response):
        provider = fake_provider([response])
        message = await MessageComposer(provider=provider).compose(make_application(), channel, "custom")
        assert message.source == "fallback"

    @pytest.mark.asyncio
    async def test_provider_error_falls_back(self, make_application, fake_provider):
        provider = fake_provider(error=TimeoutError("slow"))
        message = await MessageComposer(provider=provider).compose(make_application(), "sms", "custom")
        assert message.source == "fallback"
        assert message.body.startswith("Hi Jane!")

    @pytest.mark.asyncio
    async def test_compose_pair(self, make_application):
        sms, email = await MessageComposer().compose_pair(make_application(), "bank_statement_needed")
        assert sms.channel == Channel.SMS
        assert email.channel == Channel.EMAIL
        assert email.subject == "Last step for Acme Bakery: Bank statements needed"
