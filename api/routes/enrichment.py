"""
Enrichment and message composition endpoints.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from followup.orchestrator import FollowUpOrchestrator
from followup.sequences import MessagePurpose
from lead_scoring.application import ApplicationSnapshot

from .followup import get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


class EnrichmentRequest(BaseModel):
    application: Dict[str, Any]
    now: Optional[datetime] = None


class BatchEnrichmentRequest(BaseModel):
    applications: List[Dict[str, Any]] = Field(default_factory=list)
    now: Optional[datetime] = None


class ComposeRequest(BaseModel):
    application: Dict[str, Any]
    channel: str = Field(..., pattern="^(sms|email)$")
    purpose: MessagePurpose
    custom_context: Optional[str] = None
    agent_name: Optional[str] = None


@router.post("/enrichment")
async def enrich_application(
    request: EnrichmentRequest,
    orchestrator: FollowUpOrchestrator = Depends(get_orchestrator),
):
    """Score one application."""
    application = ApplicationSnapshot.from_dict(request.application)
    result = await orchestrator.enricher.enrich(application, now=request.now)
    return {"enrichment": result.to_dict(), "source": result.source}


@router.post("/enrichment/batch")
async def enrich_batch(
    request: BatchEnrichmentRequest,
    orchestrator: FollowUpOrchestrator = Depends(get_orchestrator),
):
    """Score many applications in bounded concurrency windows."""
    applications = [ApplicationSnapshot.from_dict(record) for record in request.applications]
    results = await orchestrator.enrich_batch(applications, now=request.now)
    return {
        "processed": len(applications),
        "results": {app_id: r.to_dict() for app_id, r in results.items()},
    }


@router.post("/messages/compose")
async def compose_message(
    request: ComposeRequest,
    orchestrator: FollowUpOrchestrator = Depends(get_orchestrator),
):
    """Compose one personalized message."""
    application = ApplicationSnapshot.from_dict(request.application)
    message = await orchestrator.composer.compose(
        application,
        request.channel,
        request.purpose,
        custom_context=request.custom_context,
        agent_name=request.agent_name,
    )
    return {"message": message.to_dict(), "source": message.source}
