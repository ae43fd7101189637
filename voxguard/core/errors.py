"""
errors.py — Gateway error taxonomy.

Every failure the gateway can report carries the numeric status code that
ends up in the signed error envelope:

  AuthenticationError      401  missing / short x-api-key
  RequestValidationFailed  400  bad language, format or payload
  TransientRemoteError     500  quota / 5xx / transport failure after retries
  InputLimitError          500  model context window exceeded (never retried)
  InternalError            500  anything else, incl. malformed model output

classify_remote_error() maps a raw SDK exception onto this taxonomy.
"""

import json


class GatewayError(Exception):
    """Base class for errors that are reported to the caller as a signed envelope."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class AuthenticationError(GatewayError):
    status_code = 401


class RequestValidationFailed(GatewayError):
    status_code = 400


class TransientRemoteError(GatewayError):
    status_code = 500


class InputLimitError(GatewayError):
    status_code = 500


class InternalError(GatewayError):
    status_code = 500


class MalformedResponseError(InternalError):
    """The model answered, but not with the array shape we asked for."""


def error_text(exc: BaseException) -> str:
    """
    Best-effort textual form of an exception for signal matching.

    SDK errors often carry the HTTP code / gRPC status only in their args
    or repr, so the message, args and repr are all included.
    """
    parts = [str(exc), repr(exc)]
    try:
        parts.append(json.dumps([str(a) for a in exc.args]))
    except (TypeError, ValueError):
        pass
    return " ".join(parts)


_QUOTA_SIGNALS = ("429", "RESOURCE_EXHAUSTED", "quota")
_TRANSPORT_SIGNALS = ("xhr error", "Rpc failed")


def classify_remote_error(exc: BaseException) -> GatewayError:
    """Translate a remote-call failure into a typed gateway error."""
    if isinstance(exc, GatewayError):
        return exc

    msg = error_text(exc)
    if "input token count exceeds" in msg:
        return InputLimitError(
            "INPUT LIMIT EXCEEDED: The content size (audio or text) exceeds the "
            "neural model's context window. Please try shorter audio clips or less text."
        )
    if any(signal in msg for signal in _QUOTA_SIGNALS):
        return TransientRemoteError("SYSTEM OVERLOAD: API QUOTA EXCEEDED. PLEASE ATTEMPT LATER.")
    if any(signal in msg for signal in _TRANSPORT_SIGNALS):
        return TransientRemoteError(
            "CONNECTION FAILURE: Unable to contact Neural Engine. Please check your network."
        )
    return InternalError("NEURAL ENGINE FAILURE: " + (str(exc) or "Unknown Error"))
