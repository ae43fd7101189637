"""
test_validator.py — Unit tests for authentication and input validation.
"""

import pytest

from voxguard.core.errors import AuthenticationError, RequestValidationFailed
from voxguard.models.voice import AnalysisRequest
from voxguard.services.validator import normalize_audio_format, reject_unparseable, validate_request

from tests.conftest import AUDIO_B64, VALID_KEY


def _request(**overrides) -> AnalysisRequest:
    data = {"language": "English", "audioFormat": "mp3", "audioBase64": AUDIO_B64}
    data.update(overrides)
    return AnalysisRequest.model_validate(data)


class TestNormalizeAudioFormat:
    @pytest.mark.parametrize("raw", ["mp3", "MP3", ".mp3", " .Mp3 "])
    def test_normalises_to_mp3(self, raw):
        assert normalize_audio_format(raw) == "mp3"

    def test_none_becomes_empty(self):
        assert normalize_audio_format(None) == ""

    def test_only_one_dot_stripped(self):
        assert normalize_audio_format("..mp3") == ".mp3"


class TestAuthentication:
    @pytest.mark.parametrize("key", [None, "", "short", "         ", "  123456789  "])
    def test_bad_keys_rejected_with_401(self, key):
        with pytest.raises(AuthenticationError) as excinfo:
            validate_request(key, _request())
        assert excinfo.value.status_code == 401

    def test_ten_chars_after_trim_accepted(self):
        validate_request("  1234567890  ", _request())

    def test_auth_checked_before_body(self):
        with pytest.raises(AuthenticationError):
            validate_request("short", AnalysisRequest())


class TestLanguage:
    @pytest.mark.parametrize("language", ["Tamil", "English", "Hindi", "Malayalam", "Telugu"])
    def test_supported_languages_pass(self, language):
        validate_request(VALID_KEY, _request(language=language))

    @pytest.mark.parametrize("language", ["Auto", "french", "english", "", None])
    def test_other_values_rejected_with_400(self, language):
        with pytest.raises(RequestValidationFailed) as excinfo:
            validate_request(VALID_KEY, _request(language=language))
        assert excinfo.value.status_code == 400
        assert "Invalid Language" in excinfo.value.message


class TestFormat:
    @pytest.mark.parametrize("fmt", ["mp3", ".MP3", "Mp3"])
    def test_mp3_variants_pass(self, fmt):
        validate_request(VALID_KEY, _request(audioFormat=fmt))

    @pytest.mark.parametrize("fmt", ["ogg", "wav", "", None])
    def test_other_formats_rejected_with_400(self, fmt):
        with pytest.raises(RequestValidationFailed) as excinfo:
            validate_request(VALID_KEY, _request(audioFormat=fmt))
        assert excinfo.value.status_code == 400
        assert "mp3" in excinfo.value.message


class TestPayload:
    def test_exactly_100_chars_passes(self):
        validate_request(VALID_KEY, _request(audioBase64="A" * 100))

    @pytest.mark.parametrize("payload", [None, "", "A" * 99])
    def test_short_or_missing_rejected_with_400(self, payload):
        with pytest.raises(RequestValidationFailed) as excinfo:
            validate_request(VALID_KEY, _request(audioBase64=payload))
        assert excinfo.value.status_code == 400
        assert "audioBase64" in excinfo.value.message

    def test_language_checked_before_payload(self):
        with pytest.raises(RequestValidationFailed) as excinfo:
            validate_request(VALID_KEY, _request(language="Auto", audioBase64=None))
        assert "Invalid Language" in excinfo.value.message


def _schema_error(field: str) -> dict:
    return {"type": "string_type", "loc": ("body", field), "msg": "Input should be a valid string"}


class TestRejectUnparseable:
    def test_bad_key_wins(self):
        exc = reject_unparseable("short", [_schema_error("language")])
        assert isinstance(exc, AuthenticationError)
        assert exc.status_code == 401

    def test_language_error_reported_before_format(self):
        exc = reject_unparseable(VALID_KEY, [_schema_error("audioFormat"), _schema_error("language")])
        assert exc.status_code == 400
        assert "Invalid Language" in exc.message

    def test_format_error(self):
        assert "Invalid format" in reject_unparseable(VALID_KEY, [_schema_error("audioFormat")]).message

    def test_payload_error(self):
        assert "audioBase64" in reject_unparseable(VALID_KEY, [_schema_error("audioBase64")]).message

    def test_invalid_json(self):
        errors = [{"type": "json_invalid", "loc": ("body", 1), "msg": "JSON decode error"}]
        exc = reject_unparseable(VALID_KEY, errors)
        assert exc.status_code == 400
        assert exc.message.startswith("Malformed request body")
