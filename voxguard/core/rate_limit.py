"""
rate_limit.py — Shared slowapi limiter for the model-backed routes.

Buckets are per caller: the x-api-key header when one is sent, otherwise the
client address. Unauthenticated requests are rejected before any model call,
so the address fallback only throttles probing.

Wired into the app in main.py via app.state.limiter; routes opt in with
@limiter.limit(settings.detection_rate_limit) plus a `request: Request` param.
"""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address


def caller_key(request: Request) -> str:
    api_key = (request.headers.get("x-api-key") or "").strip()
    if api_key:
        return f"key:{api_key}"
    return f"addr:{get_remote_address(request)}"


limiter = Limiter(key_func=caller_key)
