"""
Follow-up trigger endpoints.

The application store calls these on lifecycle events, and a scheduler
calls them for periodic stage checks and abandonment sweeps.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from followup.orchestrator import FollowUpOrchestrator
from followup.selector import Trigger
from lead_scoring.application import ApplicationSnapshot

from ..services import get_services

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Models ────────────────────────────────────────────────────────

class ProcessRequest(BaseModel):
    application: Dict[str, Any] = Field(..., description="Application record (camelCase or snake_case)")
    trigger: Trigger
    now: Optional[datetime] = None


class AbandonmentScanRequest(BaseModel):
    applications: List[Dict[str, Any]] = Field(default_factory=list)
    now: Optional[datetime] = None


# ── Dependencies ──────────────────────────────────────────────────

def get_orchestrator() -> FollowUpOrchestrator:
    services = get_services()
    if not services.is_ready:
        raise HTTPException(status_code=503, detail="Follow-up services not initialized")
    return services.orchestrator


# ── Endpoints ─────────────────────────────────────────────────────

@router.post("/followup/process")
async def process_application(
    request: ProcessRequest,
    orchestrator: FollowUpOrchestrator = Depends(get_orchestrator),
):
    """
    Process a trigger for one application.

    Returns the enrichment, the selected sequence, the CRM payload, the
    stage action (null when nothing is due) and the fields to write back.
    """
    application = ApplicationSnapshot.from_dict(request.application)
    result = await orchestrator.process_application(application, request.trigger, now=request.now)
    return result.to_dict()


@router.post("/followup/abandonment/scan")
async def scan_abandonment(
    request: AbandonmentScanRequest,
    orchestrator: FollowUpOrchestrator = Depends(get_orchestrator),
):
    """Detect abandoned applications and trigger recovery sequences."""
    applications = [ApplicationSnapshot.from_dict(record) for record in request.applications]
    result = await orchestrator.process_abandoned_applications(applications, now=request.now)
    return result.to_dict()
