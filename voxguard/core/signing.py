"""
signing.py — Integrity signing for every gateway response.

Signature = SHA-256( canonical_json(payload) + timestamp + secret ), hex.

The canonical form is JSON with sorted keys and no insignificant whitespace,
so the same payload always serialises identically. The timestamp is the
ISO-8601 UTC issuance time and is part of the signed input: two signatures
over identical content differ, and the signature proves "this payload was
issued at this time by a holder of the secret". It is not tamper evidence of
the payload on its own unless the timestamp field is trusted as well.

Configuration (secret, algorithm label) lives in voxguard.core.config.settings.
"""

import hashlib
import hmac
import json
from datetime import datetime, timezone
from typing import Any

from voxguard.core.config import settings


def canonicalize(payload: dict[str, Any]) -> str:
    """Deterministic string form of a response payload."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def compute_signature(payload: dict[str, Any], timestamp: str, secret: str | None = None) -> str:
    """Hex SHA-256 digest over canonical payload + timestamp + secret."""
    secret = settings.signing_secret if secret is None else secret
    material = canonicalize(payload) + timestamp + secret
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sign_response(payload: dict[str, Any], timestamp: str | None = None) -> dict[str, Any]:
    """
    Return *payload* plus an `integrity` block.

    Any integrity block already present on *payload* is ignored, so re-signing
    is safe. *timestamp* is only passed explicitly by tests.
    """
    body = {k: v for k, v in payload.items() if k != "integrity"}
    timestamp = timestamp or _utc_timestamp()
    signature = compute_signature(body, timestamp)
    return {
        **body,
        "integrity": {
            "signature": signature,
            "timestamp": timestamp,
            "checksum": signature[:16].upper(),
            "algorithm": settings.signing_algorithm_label,
        },
    }


def verify_signature(response: dict[str, Any], secret: str | None = None) -> bool:
    """Recompute the digest of a signed response and compare in constant time."""
    integrity = response.get("integrity") or {}
    signature = integrity.get("signature")
    timestamp = integrity.get("timestamp")
    if not signature or not timestamp:
        return False
    body = {k: v for k, v in response.items() if k != "integrity"}
    expected = compute_signature(body, timestamp, secret)
    return hmac.compare_digest(expected, signature)
