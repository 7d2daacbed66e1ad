"""
Lead Scoring Module for the Funding Follow-Up Engine.

This module provides lead qualification and scoring capabilities:
- Application snapshots parsed from store records
- Rule-based fallback scoring (1-100 scale)
- Generative enrichment with fallback and batch windows
"""

from .application import ApplicationSnapshot
from .scoring_model import FallbackScorer, FundingRange, QualityTier, UrgencyLevel, tier_for_score
from .enrichment import EnrichmentResult, LeadEnricher, application_age

__all__ = [
    "ApplicationSnapshot",
    "FallbackScorer",
    "FundingRange",
    "QualityTier",
    "UrgencyLevel",
    "tier_for_score",
    "EnrichmentResult",
    "LeadEnricher",
    "application_age",
]
