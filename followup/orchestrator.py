"""
Follow-Up Orchestrator.

On a trigger event: enrich the application, select its sequence, build the
canonical CRM payload, and decide whether a stage action fires now. First
contact events fire stage 0 immediately; scheduled checks fire only when the
stage advancer reports a due stage. Abandonment sweeps re-enter through the
recovery path.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from config.credentials import StaticCredentials
from config.settings import Settings
from lead_scoring.application import ApplicationSnapshot, ensure_utc, utcnow
from lead_scoring.enrichment import EnrichmentResult, LeadEnricher

from .abandonment import AbandonmentDetection, AbandonmentDetector
from .claims import StageClaimRegistry
from .composer import MessageComposer
from .dispatcher import CRMDispatcher, WebhookConfig, WebhookTarget
from .payloads import (
    ABANDONMENT_RECOVERY_TRIGGER,
    build_application_updates,
    build_dispatch_payload,
    build_hot_lead_alert,
    with_abandonment,
)
from .selector import Trigger, determine_sequence
from .sequences import Channel, MessagePurpose, get_sequence, purpose_for_sequence
from .stage_advancer import StageAdvancer

logger = logging.getLogger(__name__)


@dataclass
class FollowUpAction:
    """What should happen now for an application."""
    sequence: str
    stage: int
    channel: Channel
    purpose: MessagePurpose
    is_hot_lead: bool
    message: Dict[str, Dict[str, str]] = field(default_factory=dict)
    next_stage_in: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "sequence": self.sequence,
            "stage": self.stage,
            "channel": self.channel.value,
            "purpose": self.purpose.value,
            "message": self.message,
            "isHotLead": self.is_hot_lead,
        }
        if self.next_stage_in is not None:
            data["nextStageIn"] = self.next_stage_in
        return data


@dataclass
class ProcessingResult:
    """Outcome of processing one trigger."""
    enrichment: EnrichmentResult
    sequence: str
    dispatch_payload: Dict[str, Any]
    action: Optional[FollowUpAction] = None
    updates: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enrichment": self.enrichment.to_dict(),
            "sequence": self.sequence,
            "action": self.action.to_dict() if self.action else None,
            "dispatchPayload": self.dispatch_payload,
            "updates": self.updates,
        }


@dataclass
class RecoveredApplication:
    id: Optional[str]
    type: str
    action: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "type": self.type, "action": self.action}


@dataclass
class AbandonmentSweepResult:
    processed: int
    recovered: List[RecoveredApplication] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "recovered": [r.to_dict() for r in self.recovered],
        }


class FollowUpOrchestrator:
    """
    Coordinates enrichment, sequencing and CRM dispatch.

    Processing calls are independent and may run concurrently. Per-stage
    dedupe only applies when a claim registry is supplied; without one, two
    racing triggers can both fire the same stage.
    """

    def __init__(
        self,
        enricher: Optional[LeadEnricher] = None,
        composer: Optional[MessageComposer] = None,
        dispatcher: Optional[CRMDispatcher] = None,
        advancer: Optional[StageAdvancer] = None,
        detector: Optional[AbandonmentDetector] = None,
        claims: Optional[StageClaimRegistry] = None
    ):
        self.enricher = enricher or LeadEnricher()
        self.composer = composer or MessageComposer()
        self.dispatcher = dispatcher or CRMDispatcher()
        self.advancer = advancer or StageAdvancer()
        self.detector = detector or AbandonmentDetector()
        self.claims = claims

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        provider: Optional[Any] = None,
        transport: Optional[Any] = None
    ) -> "FollowUpOrchestrator":
        """
        Build an orchestrator from settings.

        Args:
            settings: Application settings
            provider: Generative provider, or None for rule-based only
            transport: httpx transport for CRM dispatch
        """
        return cls(
            enricher=LeadEnricher(
                provider=provider,
                temperature=settings.enrichment_temperature,
                company_name=settings.company_name,
                batch_size=settings.enrichment_batch_size,
            ),
            composer=MessageComposer(
                provider=provider,
                temperature=settings.message_temperature,
                company_name=settings.company_name,
            ),
            dispatcher=CRMDispatcher(
                webhooks=WebhookConfig.from_settings(settings),
                credentials=StaticCredentials(settings.crm_api_key),
                transport=transport,
            ),
            claims=StageClaimRegistry(
                max_claims=settings.stage_claim_capacity,
                ttl_hours=settings.stage_claim_ttl_hours,
            ) if settings.dedupe_stage_actions else None,
        )

    async def process_application(
        self,
        application: ApplicationSnapshot,
        trigger: Union[Trigger, str],
        now: Optional[datetime] = None
    ) -> ProcessingResult:
        """
        Process one trigger for an application.

        Args:
            application: Application snapshot
            trigger: Triggering event
            now: Reference time

        Returns:
            ProcessingResult; action is None when nothing is due

        Raises:
            UnknownSequenceError: if the stored sequence name is undefined
        """
        trigger = Trigger(trigger)
        now = ensure_utc(now) if now else utcnow()
        logger.info(f"Processing application {application.id} - trigger: {trigger.value}")

        # Step 1: enrichment
        enrichment = await self.enricher.enrich(application, now)

        # Step 2: sequence
        sequence = determine_sequence(application, trigger).value
        logger.info(f"Determined sequence for {application.id}: {sequence}")

        # Step 3: immediate action
        action: Optional[FollowUpAction] = None
        if trigger.is_first_contact:
            action = await self.build_follow_up_action(application, enrichment, sequence, 0)
        elif trigger == Trigger.SCHEDULED_CHECK:
            action = await self.check_and_advance_sequence(application, enrichment, sequence, now)

        if action is not None and not self._claim(application, action, now):
            action = None

        # Step 4: payload, built whether or not an action fires. A fired
        # action may belong to the tracked sequence rather than the selected one.
        payload_sequence = action.sequence if action is not None else sequence
        sms, email = await self.composer.compose_pair(application, purpose_for_sequence(payload_sequence))
        payload = build_dispatch_payload(application, enrichment, payload_sequence, trigger, sms, email, now)

        if action is not None:
            if trigger.is_first_contact and enrichment.is_hot_lead:
                await self.send_hot_lead_alert(application, enrichment, now)
            self.dispatcher.dispatch_sequence(action.sequence, payload)
            # Stage 0 always (re)starts a run
            updates = build_application_updates(
                enrichment,
                sequence=action.sequence,
                next_stage=action.stage + 1,
                is_new_sequence=application.follow_up_sequence != action.sequence or action.stage == 0,
                now=now,
            )
        else:
            updates = build_application_updates(enrichment, now=now)

        return ProcessingResult(
            enrichment=enrichment,
            sequence=sequence,
            dispatch_payload=payload,
            action=action,
            updates=updates,
        )

    def _claim(
        self,
        application: ApplicationSnapshot,
        action: FollowUpAction,
        now: Optional[datetime] = None
    ) -> bool:
        if self.claims is None or application.id is None:
            return True
        return self.claims.claim(
            application.id, action.sequence, action.stage,
            started_at=application.follow_up_started_at, now=now,
        )

    async def check_and_advance_sequence(
        self,
        application: ApplicationSnapshot,
        enrichment: EnrichmentResult,
        selected_sequence: str,
        now: Optional[datetime] = None
    ) -> Optional[FollowUpAction]:
        """
        Build the due stage's action for the application's tracked sequence.

        The tracked sequence is the stored one, or the selected one when the
        application has not started any sequence.
        """
        sequence = application.follow_up_sequence or selected_sequence
        decision = self.advancer.check_application(application, sequence, now)

        if not decision.should_act:
            logger.info(
                f"No stage due for {application.id}: {decision.sequence} "
                f"stage {decision.stage} ({decision.status.value})"
            )
            return None

        return await self.build_follow_up_action(application, enrichment, decision.sequence, decision.stage)

    async def build_follow_up_action(
        self,
        application: ApplicationSnapshot,
        enrichment: EnrichmentResult,
        sequence: str,
        stage: int
    ) -> FollowUpAction:
        """Action for one stage, with rendered messages for its channels."""
        stages = get_sequence(sequence)
        definition = stages[stage]
        following = stages[stage + 1] if stage + 1 < len(stages) else None

        messages = await asyncio.gather(*(
            self.composer.compose(application, channel, definition.purpose)
            for channel in definition.channels
        ))

        rendered: Dict[str, Dict[str, str]] = {}
        for message in messages:
            if message.channel == Channel.SMS:
                rendered["sms"] = {"body": message.body}
            else:
                rendered["email"] = {"subject": message.subject or "", "body": message.body}

        return FollowUpAction(
            sequence=getattr(sequence, "value", sequence),
            stage=stage,
            channel=definition.channel,
            purpose=definition.purpose,
            is_hot_lead=enrichment.is_hot_lead,
            message=rendered,
            next_stage_in=following.delay_hours if following else None,
        )

    async def send_hot_lead_alert(
        self,
        application: ApplicationSnapshot,
        enrichment: EnrichmentResult,
        now: Optional[datetime] = None
    ) -> None:
        """Notify the hot-lead workflow."""
        logger.info(f"HOT LEAD ALERT: {application.email} (score {enrichment.lead_score})")
        sms = await self.composer.compose(application, Channel.SMS, MessagePurpose.INITIAL_FOLLOWUP)
        payload = build_hot_lead_alert(application, enrichment, sms.body, now)
        self.dispatcher.dispatch(WebhookTarget.HOT_LEAD_ALERT, payload)

    async def process_abandoned_applications(
        self,
        applications: Iterable[ApplicationSnapshot],
        now: Optional[datetime] = None
    ) -> AbandonmentSweepResult:
        """
        Detect abandoned applications and trigger their recovery sequences.

        Paused and opted-out applications are skipped before detection.
        """
        now = ensure_utc(now) if now else utcnow()
        apps = list(applications)
        recovered: List[RecoveredApplication] = []

        for app in apps:
            if self.detector.should_skip(app, now):
                continue

            detection = self.detector.detect(app, now)
            if not detection.is_abandoned:
                continue

            sequence = detection.recovery_sequence.value
            await self.trigger_recovery_sequence(app, sequence, detection, now)
            recovered.append(RecoveredApplication(
                id=app.id,
                type=detection.abandonment_type.value,
                action=f"Triggered {sequence} sequence",
            ))

        logger.info(f"Abandonment sweep: {len(apps)} processed, {len(recovered)} recovered")
        return AbandonmentSweepResult(processed=len(apps), recovered=recovered)

    async def trigger_recovery_sequence(
        self,
        application: ApplicationSnapshot,
        sequence: str,
        detection: AbandonmentDetection,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Re-enrich and dispatch the recovery payload; returns the payload sent."""
        enrichment = await self.enricher.enrich(application, now)
        sms, email = await self.composer.compose_pair(application, purpose_for_sequence(sequence))
        payload = build_dispatch_payload(
            application, enrichment, sequence, ABANDONMENT_RECOVERY_TRIGGER, sms, email, now
        )
        payload = with_abandonment(payload, detection)
        self.dispatcher.dispatch(WebhookTarget.ABANDONMENT_RECOVERY, payload)
        return payload

    async def enrich_batch(
        self,
        applications: Iterable[ApplicationSnapshot],
        now: Optional[datetime] = None
    ) -> Dict[str, EnrichmentResult]:
        """Windowed batch enrichment."""
        return await self.enricher.enrich_many(applications, now)
