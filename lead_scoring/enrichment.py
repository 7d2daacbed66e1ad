"""
Lead Enrichment for the Funding Follow-Up Engine.

Scores applications with a generative provider when one is configured and
falls back to the rule-based scorer on any failure. Enrichment never raises
past this module.
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from llm.guardrails import ResponseParseError, ResponseVerifier, parse_json_response
from llm.prompt_templates import DEFAULT_COMPANY, PromptTemplates, PromptType

from .application import ApplicationSnapshot, ensure_utc, utcnow
from .scoring_model import (
    FallbackScorer,
    FundingRange,
    QualityTier,
    UrgencyLevel,
    classify_urgency,
    estimate_funding_range,
    next_best_action,
    tier_for_score,
    DEFAULT_INSIGHTS,
    DEFAULT_PRODUCTS,
    DEFAULT_RISKS,
    HOT_THRESHOLD,
)

logger = logging.getLogger(__name__)


@dataclass
class EnrichmentResult:
    """Lead score and supporting signals for one application."""
    lead_score: int
    quality_tier: QualityTier
    urgency_level: UrgencyLevel
    estimated_funding_range: FundingRange
    next_best_action: str
    insights: List[str] = field(default_factory=list)
    risk_factors: List[str] = field(default_factory=list)
    recommended_products: List[str] = field(default_factory=list)
    source: str = "fallback"  # ai | fallback

    @property
    def is_hot_lead(self) -> bool:
        return self.lead_score >= HOT_THRESHOLD

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase wire shape."""
        return {
            "leadScore": self.lead_score,
            "qualityTier": self.quality_tier.value,
            "insights": list(self.insights),
            "riskFactors": list(self.risk_factors),
            "recommendedProducts": list(self.recommended_products),
            "urgencyLevel": self.urgency_level.value,
            "estimatedFundingRange": self.estimated_funding_range.to_dict(),
            "nextBestAction": self.next_best_action,
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        application: Optional[ApplicationSnapshot] = None,
        source: str = "ai"
    ) -> "EnrichmentResult":
        """
        Build a result from a validated generative response.

        The tier is always derived from the score. Fields the response omits
        are filled from the application's rule-based signals.
        """
        application = application or ApplicationSnapshot()
        score = int(round(data["leadScore"]))

        funding = data.get("estimatedFundingRange")
        if funding:
            funding_range = FundingRange(min=int(funding["min"]), max=int(funding["max"]))
        else:
            funding_range = estimate_funding_range(
                application.requested_amount, application.effective_monthly_revenue
            )

        urgency = data.get("urgencyLevel")
        urgency_level = UrgencyLevel(urgency) if urgency else classify_urgency(application.funding_urgency)

        return cls(
            lead_score=score,
            quality_tier=tier_for_score(score),
            urgency_level=urgency_level,
            estimated_funding_range=funding_range,
            next_best_action=data.get("nextBestAction") or next_best_action(application),
            insights=list(data.get("insights") or DEFAULT_INSIGHTS),
            risk_factors=list(data.get("riskFactors") or DEFAULT_RISKS),
            recommended_products=list(data.get("recommendedProducts") or DEFAULT_PRODUCTS),
            source=source,
        )


def application_age(created_at: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Human-readable age of an application."""
    if created_at is None:
        return "Unknown"

    now = ensure_utc(now) if now else utcnow()
    days = math.floor((now - ensure_utc(created_at)).total_seconds() / 86400)

    if days <= 0:
        return "Today"
    if days == 1:
        return "1 day ago"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        return f"{days // 7} weeks ago"
    return f"{days // 30} months ago"


class LeadEnricher:
    """
    Enriches applications with a lead score.

    Uses the generative provider when available; any provider error,
    unparseable response or failed validation falls back to FallbackScorer.
    """

    def __init__(
        self,
        provider: Optional[Any] = None,
        scorer: Optional[FallbackScorer] = None,
        verifier: Optional[ResponseVerifier] = None,
        temperature: float = 0.3,
        company_name: str = DEFAULT_COMPANY,
        batch_size: int = 5
    ):
        """
        Initialize the enricher.

        Args:
            provider: Generative provider exposing agenerate(), or None
            scorer: Rule-based fallback scorer
            verifier: Response verifier
            temperature: Generation temperature
            company_name: Company named in the system prompt
            batch_size: Concurrency window for enrich_many
        """
        self.provider = provider
        self.scorer = scorer or FallbackScorer()
        self.verifier = verifier or ResponseVerifier()
        self.temperature = temperature
        self.company_name = company_name
        self.batch_size = max(1, batch_size)

    @property
    def ai_enabled(self) -> bool:
        return self.provider is not None

    async def enrich(
        self,
        application: ApplicationSnapshot,
        now: Optional[datetime] = None
    ) -> EnrichmentResult:
        """
        Score one application.

        Args:
            application: Application snapshot
            now: Reference time for the application age

        Returns:
            EnrichmentResult (never raises)
        """
        if self.provider is None:
            return self.fallback(application)

        now = ensure_utc(now) if now else utcnow()
        prompt = PromptTemplates.build_enrichment_prompt(
            profile=application.lead_profile(),
            current_date=now.strftime("%m/%d/%Y"),
            application_age=application_age(application.created_at, now),
        )
        system = PromptTemplates.get_system_prompt(PromptType.LEAD_ENRICHMENT, self.company_name)

        try:
            content = await self.provider.agenerate(
                prompt, system=system, temperature=self.temperature, json_mode=True
            )
            data = parse_json_response(content)

            verification = self.verifier.verify_enrichment(data)
            if not verification.passed:
                raise ResponseParseError(f"Enrichment failed validation: {verification.flags}")

            result = EnrichmentResult.from_dict(data, application, source="ai")
            logger.info(
                f"Lead enriched: app={application.id} score={result.lead_score} "
                f"({result.quality_tier.value})"
            )
            return result

        except Exception as e:
            logger.error(f"Lead enrichment failed for app={application.id}, using fallback: {e}")
            return self.fallback(application)

    def fallback(self, application: ApplicationSnapshot) -> EnrichmentResult:
        """Rule-based enrichment."""
        scored = self.scorer.score(application)
        logger.debug(f"Fallback score for app={application.id}: {scored.score} {scored.score_breakdown}")
        return EnrichmentResult(
            lead_score=scored.score,
            quality_tier=scored.tier,
            urgency_level=scored.urgency,
            estimated_funding_range=scored.funding_range,
            next_best_action=scored.next_best_action,
            insights=scored.insights,
            risk_factors=scored.risk_factors,
            recommended_products=scored.recommended_products,
            source="fallback",
        )

    async def enrich_many(
        self,
        applications: Iterable[ApplicationSnapshot],
        now: Optional[datetime] = None
    ) -> Dict[str, EnrichmentResult]:
        """
        Enrich applications in windows of batch_size.

        Each window is awaited in full before the next one starts.
        Applications without an id are scored but not keyed.

        Returns:
            Mapping of application id to result
        """
        apps = list(applications)
        results: Dict[str, EnrichmentResult] = {}

        for start in range(0, len(apps), self.batch_size):
            window = apps[start:start + self.batch_size]
            enrichments = await asyncio.gather(*(self.enrich(app, now) for app in window))
            for app, enrichment in zip(window, enrichments):
                if app.id:
                    results[app.id] = enrichment

        logger.info(f"Batch enrichment complete: {len(apps)} applications, {len(results)} keyed")
        return results
