"""
Message composition.

Requests a personalized SMS or email from the generative provider and falls
back to fixed per-purpose templates when generation is unavailable or the
response fails verification. Composition never raises.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from lead_scoring.application import ApplicationSnapshot
from llm.guardrails import ResponseParseError, ResponseVerifier, parse_json_response
from llm.prompt_templates import DEFAULT_COMPANY, PromptTemplates, PromptType

from .sequences import Channel, MessagePurpose

logger = logging.getLogger(__name__)


FALLBACK_STYLE = {
    Channel.SMS: ("friendly", "2 days"),
    Channel.EMAIL: ("professional", "3 days"),
}


@dataclass
class PersonalizedMessage:
    """A rendered outbound message."""
    channel: Channel
    body: str
    tone: str
    follow_up_timing: str
    subject: Optional[str] = None
    source: str = "fallback"  # ai | fallback

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "body": self.body,
            "tone": self.tone,
            "channel": self.channel.value,
            "followUpTiming": self.follow_up_timing,
        }
        if self.channel == Channel.EMAIL:
            data["subject"] = self.subject or ""
        return data


class MessageComposer:
    """
    Composes outreach messages for a channel and purpose.

    Messages reference the applicant's first name and business name and are
    signed by the assigned agent, or the company when no agent is assigned.
    """

    def __init__(
        self,
        provider: Optional[Any] = None,
        verifier: Optional[ResponseVerifier] = None,
        temperature: float = 0.7,
        company_name: str = DEFAULT_COMPANY
    ):
        self.provider = provider
        self.verifier = verifier or ResponseVerifier()
        self.temperature = temperature
        self.company_name = company_name

    async def compose(
        self,
        application: ApplicationSnapshot,
        channel: Union[Channel, str],
        purpose: Union[MessagePurpose, str],
        custom_context: Optional[str] = None,
        agent_name: Optional[str] = None
    ) -> PersonalizedMessage:
        """
        Compose one message.

        Args:
            application: Application snapshot
            channel: sms or email
            purpose: Contact purpose
            custom_context: Free-text context for the custom purpose
            agent_name: Sender override

        Returns:
            PersonalizedMessage (never raises)
        """
        channel = Channel(channel)
        purpose = MessagePurpose(purpose)
        if channel == Channel.BOTH:
            raise ValueError("compose() takes a single channel; use compose_pair() for both")

        agent_name = agent_name or application.agent_name

        if self.provider is None:
            return self.fallback(application, channel, purpose, agent_name)

        prompt = PromptTemplates.build_message_prompt(
            profile=application.lead_profile(),
            channel=channel.value,
            purpose=purpose.value,
            first_name=application.first_name,
            business_name=application.display_business_name or "their business",
            agent_name=agent_name,
            company_name=self.company_name,
            custom_context=custom_context,
        )
        system = PromptTemplates.get_system_prompt(PromptType.MESSAGE_GENERATION, self.company_name)

        try:
            content = await self.provider.agenerate(
                prompt, system=system, temperature=self.temperature, json_mode=True
            )
            data = parse_json_response(content)

            verification = self.verifier.verify_message(data, channel.value)
            if not verification.passed:
                raise ResponseParseError(f"Message failed validation: {verification.flags}")

            default_tone, default_timing = FALLBACK_STYLE[channel]
            message = PersonalizedMessage(
                channel=channel,
                body=data["body"].strip(),
                tone=data.get("tone") or default_tone,
                follow_up_timing=data.get("followUpTiming") or default_timing,
                subject=data.get("subject") if channel == Channel.EMAIL else None,
                source="ai",
            )
            logger.info(f"Generated {channel.value} message for {purpose.value} (app={application.id})")
            return message

        except Exception as e:
            logger.error(
                f"Message generation failed for app={application.id} "
                f"({channel.value}/{purpose.value}), using template: {e}"
            )
            return self.fallback(application, channel, purpose, agent_name)

    def fallback(
        self,
        application: ApplicationSnapshot,
        channel: Union[Channel, str],
        purpose: Union[MessagePurpose, str],
        agent_name: Optional[str] = None
    ) -> PersonalizedMessage:
        """Deterministic template message."""
        channel = Channel(channel)
        purpose = MessagePurpose(purpose)
        sender = agent_name or application.agent_name or self.company_name

        rendered = PromptTemplates.render_fallback(
            purpose.value,
            channel.value,
            first_name=application.first_name,
            business_name=application.display_business_name or "your business",
            sender=sender,
        )
        tone, timing = FALLBACK_STYLE[channel]

        return PersonalizedMessage(
            channel=channel,
            body=rendered["body"],
            tone=tone,
            follow_up_timing=timing,
            subject=rendered.get("subject"),
            source="fallback",
        )

    async def compose_pair(
        self,
        application: ApplicationSnapshot,
        purpose: Union[MessagePurpose, str],
        agent_name: Optional[str] = None
    ) -> Tuple[PersonalizedMessage, PersonalizedMessage]:
        """Compose the sms and email for a purpose concurrently."""
        sms, email = await asyncio.gather(
            self.compose(application, Channel.SMS, purpose, agent_name=agent_name),
            self.compose(application, Channel.EMAIL, purpose, agent_name=agent_name),
        )
        return sms, email
