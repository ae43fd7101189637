"""
Health check endpoint.

Used by:
  - Docker HEALTHCHECK instruction
  - Load balancers / orchestrators
  - The forensics console, to check API connectivity

Reports whether the model client is live or serving canned mock responses,
so callers can tell "API down" apart from "API up but not calling Gemini".
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from voxguard import __version__
from voxguard.ai import gemini_client as gemini_module
from voxguard.core.config import settings

logger = logging.getLogger(__name__)
router = APIRouter()


class HealthResponse(BaseModel):
    status: str  # Always "ok" if the API process is alive
    version: str
    model_mode: str  # "mock" | "live"
    environment: str


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check() -> HealthResponse:
    """Liveness of the API process plus the model client's runtime mode."""
    # Access via module reference so tests can patch gemini_module.gemini_client
    mode = "mock" if gemini_module.gemini_client.mock_mode else "live"
    return HealthResponse(
        status="ok",
        version=__version__,
        model_mode=mode,
        environment=settings.environment,
    )
