"""
gateway.py — Request/response gateway for voice-forensics calls.

    validate ─┬─ fail ──────────────────────────────► sign(error 401/400)
              └─ ok ─► AudioItem ─► forensic pipeline ─┬─ ok ─► public shape ─► sign(200)
                                                       └─ raises ────────────► sign(error 500)

Stateless: nothing is kept between calls, so handlers are safe to run
concurrently. Every return path goes through sign_response().
"""

import logging
import time
from typing import Any, Optional, Sequence

from voxguard.ai.forensic_pipeline import ForensicPipeline, forensic_pipeline
from voxguard.core.config import settings
from voxguard.core.errors import GatewayError
from voxguard.core.signing import sign_response
from voxguard.models.voice import (
    AnalysisRequest,
    ApiResponse,
    AudioItem,
    BatchAnalysisRequest,
    BatchAnalysisResponse,
    DetectionResult,
    ResponseMeta,
)
from voxguard.services.validator import (
    authenticate,
    normalize_audio_format,
    reject_unparseable,
    validate_request,
)

logger = logging.getLogger(__name__)


def _dump(model: ApiResponse | BatchAnalysisResponse) -> dict[str, Any]:
    return model.model_dump(by_alias=True, exclude_none=True, mode="json")


def error_response(status_code: int, message: str) -> dict[str, Any]:
    """Signed error envelope."""
    return sign_response(_dump(ApiResponse(status="error", status_code=status_code, message=message)))


def reject_request_body(api_key: Optional[str], errors: Sequence[dict[str, Any]]) -> dict[str, Any]:
    """Signed 401/400 for a detection body FastAPI could not parse into an AnalysisRequest."""
    exc = reject_unparseable(api_key, errors)
    logger.info("Rejected unparseable detection request (%d): %s", exc.status_code, exc.message)
    return error_response(exc.status_code, exc.message)


def to_public_response(result: DetectionResult) -> dict[str, Any]:
    """Map a pipeline result onto the public success envelope (unsigned)."""
    return _dump(
        ApiResponse(
            status="success",
            status_code=200,
            language=result.language,
            classification=result.classification,
            confidence_score=round(result.confidence_score, 2),
            explanation=result.explanation,
            meta=ResponseMeta(
                forensic_data=result.forensic_data,
                domain_analysis=result.domain_analysis,
            ),
        )
    )


async def handle_voice_detection(
    api_key: Optional[str],
    request: AnalysisRequest,
    pipeline: Optional[ForensicPipeline] = None,
) -> dict[str, Any]:
    """
    POST /api/voice-detection.

    Returns the signed response body; its statusCode is 200, 400, 401 or 500.
    """
    pipeline = pipeline or forensic_pipeline

    try:
        validate_request(api_key, request)
    except GatewayError as exc:
        logger.info("Rejected detection request (%d): %s", exc.status_code, exc.message)
        return error_response(exc.status_code, exc.message)

    stamp = int(time.time() * 1000)
    audio_format = normalize_audio_format(request.audio_format)
    item = AudioItem(
        id=f"req-{stamp}",
        language=request.language,
        audio_format=audio_format,
        audio_base64=request.audio_base64,
        file_name=f"api_upload_{stamp}.{audio_format}",
    )

    try:
        results = await pipeline.analyze_batch([item], settings.api_confidence_threshold)
    except GatewayError as exc:
        logger.error("Forensic pipeline error (%d): %s", exc.status_code, exc.message)
        return error_response(exc.status_code, exc.message)
    except Exception as exc:
        logger.exception("Unexpected failure in forensic pipeline")
        return error_response(500, "Internal Consensus Engine Failure: " + (str(exc) or "Unknown error"))

    if not results:
        return error_response(500, "Internal Consensus Engine Failure: empty result set")

    result = results[0]
    if result.status == "error":
        return error_response(500, result.explanation)

    return sign_response(to_public_response(result))


async def handle_batch_analysis(
    api_key: Optional[str],
    request: BatchAnalysisRequest,
    pipeline: Optional[ForensicPipeline] = None,
) -> dict[str, Any]:
    """
    POST /api/v1/voice/batch — the upload / live-capture path.

    Accepts 'Auto' language and any declared format; the caller chooses the
    threshold. Same signing and error normalisation as the public API.
    """
    pipeline = pipeline or forensic_pipeline

    try:
        authenticate(api_key)
        results = await pipeline.analyze_batch(request.items, request.threshold)
    except GatewayError as exc:
        logger.error("Batch analysis error (%d): %s", exc.status_code, exc.message)
        return sign_response(
            _dump(BatchAnalysisResponse(status="error", status_code=exc.status_code, message=exc.message))
        )
    except Exception as exc:
        logger.exception("Unexpected failure in batch analysis")
        return sign_response(
            _dump(
                BatchAnalysisResponse(
                    status="error",
                    status_code=500,
                    message="Internal Consensus Engine Failure: " + (str(exc) or "Unknown error"),
                )
            )
        )

    return sign_response(_dump(BatchAnalysisResponse(status="success", results=results)))
