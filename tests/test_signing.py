"""
test_signing.py — Unit tests for response integrity signing.
"""

import hashlib

from voxguard.core.config import settings
from voxguard.core.signing import canonicalize, compute_signature, sign_response, verify_signature

_PAYLOAD = {"status": "success", "statusCode": 200, "classification": "HUMAN", "confidenceScore": 0.86}
_TS = "2026-01-01T00:00:00.000Z"


class TestCanonicalForm:
    def test_key_order_does_not_matter(self):
        reordered = dict(reversed(list(_PAYLOAD.items())))
        assert canonicalize(_PAYLOAD) == canonicalize(reordered)

    def test_no_whitespace(self):
        assert " " not in canonicalize({"a": 1, "b": [1, 2]})


class TestSignResponse:
    def test_integrity_block_shape(self):
        signed = sign_response(_PAYLOAD)
        integrity = signed["integrity"]
        assert set(integrity) == {"signature", "timestamp", "checksum", "algorithm"}
        assert len(integrity["signature"]) == 64
        assert integrity["algorithm"] == settings.signing_algorithm_label

    def test_checksum_is_upper_prefix_of_signature(self):
        integrity = sign_response(_PAYLOAD)["integrity"]
        assert integrity["checksum"] == integrity["signature"][:16].upper()

    def test_payload_fields_preserved(self):
        signed = sign_response(_PAYLOAD)
        for key, value in _PAYLOAD.items():
            assert signed[key] == value

    def test_digest_matches_definition(self):
        signed = sign_response(_PAYLOAD, timestamp=_TS)
        expected = hashlib.sha256(
            (canonicalize(_PAYLOAD) + _TS + settings.signing_secret).encode("utf-8")
        ).hexdigest()
        assert signed["integrity"]["signature"] == expected

    def test_deterministic_for_same_timestamp(self):
        assert sign_response(_PAYLOAD, timestamp=_TS) == sign_response(_PAYLOAD, timestamp=_TS)

    def test_timestamp_changes_signature(self):
        a = sign_response(_PAYLOAD, timestamp=_TS)["integrity"]["signature"]
        b = sign_response(_PAYLOAD, timestamp="2026-01-01T00:00:01.000Z")["integrity"]["signature"]
        assert a != b

    def test_existing_integrity_block_is_replaced(self):
        once = sign_response(_PAYLOAD, timestamp=_TS)
        twice = sign_response(once, timestamp=_TS)
        assert once == twice


class TestVerifySignature:
    def test_valid_signature_verifies(self):
        assert verify_signature(sign_response(_PAYLOAD)) is True

    def test_tampered_payload_fails(self):
        signed = sign_response(_PAYLOAD)
        signed["classification"] = "AI_GENERATED"
        assert verify_signature(signed) is False

    def test_wrong_secret_fails(self):
        assert verify_signature(sign_response(_PAYLOAD), secret="not-the-secret") is False

    def test_missing_integrity_fails(self):
        assert verify_signature(dict(_PAYLOAD)) is False

    def test_compute_signature_uses_settings_secret_by_default(self):
        assert compute_signature(_PAYLOAD, _TS) == compute_signature(_PAYLOAD, _TS, settings.signing_secret)
