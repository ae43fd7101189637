"""
voice.py — Voice forensics endpoints.

Routes:
  POST /api/voice-detection          — strict public API (single mp3 sample, threshold 0.70)
  POST /api/v1/voice/batch           — multi-sample upload / live-capture analysis
  POST /api/v1/voice/detect-language — language identification for 'Auto' uploads
  POST /api/v1/voice/transcript      — live-call transcript keyword analysis

HOW THE DATA FLOWS
──────────────────
1. The console reads the file with FileReader.readAsDataURL() and strips the
   "data:...;base64," prefix, sending raw base64 as audioBase64.
2. The x-api-key header and body go to the gateway (services/gateway.py),
   which validates, runs the forensic pipeline and signs the result.
3. The HTTP status mirrors the envelope's statusCode, so clients can rely on
   either. Every detection body, success or error, carries an integrity block.

TESTING
───────
  pytest tests/test_voice_routes.py -v

  curl -X POST http://localhost:8000/api/voice-detection \\
    -H 'Content-Type: application/json' -H 'x-api-key: my-secret-key-123' \\
    -d "{\"language\": \"English\", \"audioFormat\": \"mp3\", \"audioBase64\": \"$(base64 -i sample.mp3 | tr -d '\\n')\"}"
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Header, Request
from fastapi.responses import JSONResponse

from voxguard.ai.forensic_pipeline import forensic_pipeline
from voxguard.core.config import settings
from voxguard.core.errors import AuthenticationError
from voxguard.core.rate_limit import limiter
from voxguard.models.voice import (
    AnalysisRequest,
    ApiResponse,
    BatchAnalysisRequest,
    BatchAnalysisResponse,
    LanguageDetectionRequest,
    LanguageDetectionResponse,
    LiveAnalysisResult,
    TranscriptRequest,
)
from voxguard.services.gateway import error_response, handle_batch_analysis, handle_voice_detection
from voxguard.services.validator import authenticate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["voice"])

# Public detection endpoint; main.py signs framework-level errors raised on it.
DETECTION_PATH = "/api/voice-detection"


@router.post(DETECTION_PATH, response_model=ApiResponse, response_model_exclude_none=True)
@limiter.limit(settings.detection_rate_limit)
async def voice_detection(
    request: Request,
    payload: Optional[AnalysisRequest] = Body(default=None),
    x_api_key: Optional[str] = Header(default=None),
):
    """
    Classify one base64 mp3 sample as AI_GENERATED, HUMAN or UNCERTAIN.

    Validation failures come back as signed 401/400 envelopes rather than 422s.
    """
    body = await handle_voice_detection(x_api_key, payload or AnalysisRequest())
    return JSONResponse(status_code=body["statusCode"], content=body)


@router.post("/api/v1/voice/batch", response_model=BatchAnalysisResponse, response_model_exclude_none=True)
@limiter.limit(settings.detection_rate_limit)
async def voice_batch(
    request: Request,
    payload: BatchAnalysisRequest,
    x_api_key: Optional[str] = Header(default=None),
):
    """Analyse several samples in one model call; results follow input order."""
    body = await handle_batch_analysis(x_api_key, payload)
    return JSONResponse(status_code=body["statusCode"], content=body)


@router.post("/api/v1/voice/detect-language", response_model=LanguageDetectionResponse)
@limiter.limit(settings.detection_rate_limit)
async def detect_language(
    request: Request,
    payload: LanguageDetectionRequest,
    x_api_key: Optional[str] = Header(default=None),
):
    """Identify the spoken language; `language` is null when undetermined."""
    try:
        authenticate(x_api_key)
    except AuthenticationError as exc:
        return JSONResponse(status_code=exc.status_code, content=error_response(exc.status_code, exc.message))

    language = await forensic_pipeline.detect_language(payload.audio_base64, payload.audio_format)
    return LanguageDetectionResponse(language=language)


@router.post("/api/v1/voice/transcript", response_model=LiveAnalysisResult, response_model_by_alias=True)
@limiter.limit(settings.detection_rate_limit)
async def analyze_transcript(
    request: Request,
    payload: TranscriptRequest,
    x_api_key: Optional[str] = Header(default=None),
):
    """Summarise a live-call transcript segment and flag fraud keywords."""
    try:
        authenticate(x_api_key)
    except AuthenticationError as exc:
        return JSONResponse(status_code=exc.status_code, content=error_response(exc.status_code, exc.message))

    return await forensic_pipeline.analyze_transcript(payload.text)
