"""
Report routes for the Verified Visuals API
"""

from typing import Any, Dict, List

import structlog
from fastapi import APIRouter, Depends, HTTPException

from verified_visuals.contracts import AUDIENCE_OPTIONS
from verified_visuals.core.dependencies import OrchestratorFactory, get_orchestrator_factory
from verified_visuals.models.reports import AudienceOption, ReportRequest
from verified_visuals.services.errors import ProviderConfigurationError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/audiences", response_model=List[AudienceOption])
async def list_audiences() -> List[AudienceOption]:
    """Audience picker options, in display order."""
    return [
        AudienceOption(value=audience, label=meta["label"], icon=meta["icon"])
        for audience, meta in AUDIENCE_OPTIONS.items()
    ]


@router.post("")
async def create_report(
    body: ReportRequest,
    orchestrator_factory: OrchestratorFactory = Depends(get_orchestrator_factory),
) -> Dict[str, Any]:
    """Run the research pipeline once and return its terminal snapshot.

    A pipeline ``error`` is part of the payload (``state == "error"``), not
    an HTTP failure.
    """
    try:
        orchestrator = orchestrator_factory()
    except ProviderConfigurationError as exc:
        logger.error("Provider unavailable", error=str(exc))
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    snapshot = await orchestrator.run(body.topic, body.audience)
    logger.info("Report request finished", run_id=snapshot.run_id, state=snapshot.state.value)
    return snapshot.to_wire()
