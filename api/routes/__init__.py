"""
API Routes for the Funding Follow-Up Engine.
"""

from . import enrichment, followup

__all__ = ["enrichment", "followup"]
