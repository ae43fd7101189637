"""
validator.py — Authentication and input checks for the public detection API.

Checks run in order and the first failure wins:

  1. x-api-key present and ≥ settings.min_api_key_length chars after trim  → 401
  2. language is one of the five supported languages ("Auto" rejected)    → 400
  3. normalised audioFormat equals settings.required_audio_format          → 400
  4. audioBase64 present and ≥ settings.min_audio_b64_length chars         → 400

reject_unparseable() applies the same ordering to bodies FastAPI could not
parse at all (bad JSON, non-string fields).

Failures are raised as GatewayError subclasses; the gateway signs and
returns them without ever reaching the forensic pipeline.
"""

from typing import Any, Optional, Sequence

from voxguard.core.config import settings
from voxguard.core.errors import AuthenticationError, GatewayError, RequestValidationFailed
from voxguard.models.voice import SUPPORTED_LANGUAGES, AnalysisRequest


def normalize_audio_format(audio_format: Optional[str]) -> str:
    """'.MP3 ' → 'mp3'. Only one leading dot is stripped."""
    fmt = (audio_format or "").strip().lower()
    return fmt[1:] if fmt.startswith(".") else fmt


def authenticate(api_key: Optional[str]) -> None:
    if not api_key or len(api_key.strip()) < settings.min_api_key_length:
        raise AuthenticationError("Unauthorized: Missing or invalid x-api-key")


def _invalid_language() -> RequestValidationFailed:
    return RequestValidationFailed(f"Invalid Language. Supported: {', '.join(SUPPORTED_LANGUAGES)}")


def _invalid_format() -> RequestValidationFailed:
    return RequestValidationFailed(f"Invalid format. API requires '{settings.required_audio_format}'.")


def _invalid_payload() -> RequestValidationFailed:
    return RequestValidationFailed("Malformed request body: Invalid audioBase64 string.")


def reject_unparseable(api_key: Optional[str], errors: Sequence[dict[str, Any]]) -> GatewayError:
    """
    Map FastAPI body-parsing errors onto the same checks validate_request runs.

    Used when the body never became an AnalysisRequest (bad JSON, non-string
    fields). The key is still checked first; after that the earliest failing
    field in check order decides the message.
    """
    try:
        authenticate(api_key)
    except AuthenticationError as exc:
        return exc

    fields = {str(err.get("loc", ())[-1]) for err in errors if err.get("loc")}
    if "language" in fields:
        return _invalid_language()
    if fields & {"audioFormat", "audio_format"}:
        return _invalid_format()
    if fields & {"audioBase64", "audio_base64"}:
        return _invalid_payload()
    return RequestValidationFailed("Malformed request body: expected a JSON object.")


def validate_request(api_key: Optional[str], request: AnalysisRequest) -> None:
    """Raise on the first failed check; return None when the request is acceptable."""
    authenticate(api_key)

    if request.language not in SUPPORTED_LANGUAGES:
        raise _invalid_language()

    if normalize_audio_format(request.audio_format) != settings.required_audio_format:
        raise _invalid_format()

    if not request.audio_base64 or len(request.audio_base64) < settings.min_audio_b64_length:
        raise _invalid_payload()
