"""
Wire payloads for the CRM collaborator.

The dispatch payload shape is the contract with the CRM workflows: keys are
camelCase and grouped into the ai, sequence, messages, status and
businessData namespaces.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from lead_scoring.application import ApplicationSnapshot, ensure_utc, utcnow
from lead_scoring.enrichment import EnrichmentResult

from .abandonment import AbandonmentDetection
from .composer import PersonalizedMessage

ABANDONMENT_RECOVERY_TRIGGER = "abandonment_recovery"


def isoformat(value: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    value = ensure_utc(value) if value else utcnow()
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _value(item: Any) -> Any:
    return getattr(item, "value", item)


def build_dispatch_payload(
    application: ApplicationSnapshot,
    enrichment: EnrichmentResult,
    sequence: str,
    trigger: str,
    sms: PersonalizedMessage,
    email: PersonalizedMessage,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Build the canonical dispatch payload.

    Args:
        application: Application snapshot
        enrichment: Enrichment for this run
        sequence: Selected sequence name
        trigger: Triggering event name
        sms: Pre-rendered SMS for the sequence purpose
        email: Pre-rendered email for the sequence purpose
        now: Payload timestamp

    Returns:
        JSON-serializable payload
    """
    return {
        # Contact identifiers
        "email": application.email,
        "phone": application.phone,
        "crmContactId": application.crm_contact_id,
        "applicationId": application.id,

        # Contact info
        "firstName": application.first_name,
        "fullName": application.full_name,
        "businessName": application.display_business_name or "your business",

        # Trigger context
        "trigger": _value(trigger),
        "timestamp": isoformat(now),

        "ai": {
            "leadScore": enrichment.lead_score,
            "qualityTier": enrichment.quality_tier.value,
            "urgencyLevel": enrichment.urgency_level.value,
            "isHotLead": enrichment.is_hot_lead,
            "insights": list(enrichment.insights),
            "riskFactors": list(enrichment.risk_factors),
            "recommendedProducts": list(enrichment.recommended_products),
            "estimatedFundingRange": enrichment.estimated_funding_range.to_dict(),
            "nextBestAction": enrichment.next_best_action,
        },

        "sequence": {
            "name": _value(sequence),
            "stage": application.follow_up_stage,
            "contactAttempts": application.contact_attempts,
        },

        # Pre-generated messages the CRM can send as-is
        "messages": {
            "sms": {
                "body": sms.body,
                "tone": sms.tone,
            },
            "email": {
                "subject": email.subject,
                "body": email.body,
                "tone": email.tone,
            },
        },

        "status": {
            "intakeCompleted": application.intake_completed,
            "fullAppCompleted": application.full_application_completed,
            "hasFinancialConnection": application.has_financial_connection,
            "currentStep": application.current_step,
        },

        "businessData": {
            "industry": application.industry,
            "timeInBusiness": application.time_in_business,
            "monthlyRevenue": application.effective_monthly_revenue,
            "requestedAmount": application.requested_amount,
            "creditScore": application.credit_score or application.personal_credit_score_range,
            "fundingUrgency": application.funding_urgency,
            "useOfFunds": application.use_of_funds,
        },
    }


def build_hot_lead_alert(
    application: ApplicationSnapshot,
    enrichment: EnrichmentResult,
    suggested_sms: str,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Alert payload for the hot-lead agent notification workflow."""
    return {
        "alertType": "hot_lead",
        "priority": "immediate",
        "email": application.email,
        "phone": application.phone,
        "crmContactId": application.crm_contact_id,
        "applicationId": application.id,
        "fullName": application.full_name,
        "businessName": application.display_business_name,
        "leadScore": enrichment.lead_score,
        "qualityTier": enrichment.quality_tier.value,
        "urgencyLevel": enrichment.urgency_level.value,
        "insights": list(enrichment.insights),
        "recommendedProducts": list(enrichment.recommended_products),
        "nextBestAction": enrichment.next_best_action,
        "estimatedFundingRange": enrichment.estimated_funding_range.to_dict(),
        "suggestedSms": suggested_sms,
        "agentName": application.agent_name,
        "agentEmail": application.agent_email,
        "timestamp": isoformat(now),
    }


def with_abandonment(payload: Dict[str, Any], detection: AbandonmentDetection) -> Dict[str, Any]:
    """Copy of a dispatch payload extended with the abandonment namespace."""
    extended = dict(payload)
    extended["abandonment"] = {
        "type": _value(detection.abandonment_type),
        "hoursSinceActivity": detection.hours_since_activity,
        "recommendedAction": detection.recommended_action,
    }
    return extended


def build_application_updates(
    enrichment: EnrichmentResult,
    sequence: Optional[str] = None,
    next_stage: Optional[int] = None,
    is_new_sequence: bool = False,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Fields the caller should write back to the application.

    Enrichment fields are always present. Sequencing fields are added only
    when a stage action fired (sequence and next_stage given).
    """
    stamp = isoformat(now)
    updates: Dict[str, Any] = {
        "aiLeadScore": enrichment.lead_score,
        "aiQualityTier": enrichment.quality_tier.value,
        "aiInsights": list(enrichment.insights),
        "aiRiskFactors": list(enrichment.risk_factors),
        "aiRecommendedProducts": list(enrichment.recommended_products),
        "aiUrgencyLevel": enrichment.urgency_level.value,
        "aiNextBestAction": enrichment.next_best_action,
        "aiEnrichedAt": stamp,
    }

    if sequence is not None and next_stage is not None:
        updates.update({
            "followUpSequence": _value(sequence),
            "followUpStage": next_stage,
            "lastFollowUpAt": stamp,
            "lastActivityAt": stamp,
        })
        if is_new_sequence:
            updates["followUpStartedAt"] = stamp

    return updates
