"""
GeminiClient — Async wrapper around the Google Generative AI SDK.

Supports two runtime modes (set via AI_MOCK_MODE env var):
  - MOCK mode (default): returns deterministic canned responses.
    Use for tests and local dev without API keys.
  - REAL mode: makes actual Gemini API calls.
    Requires GEMINI_API_KEY to be set.

Two entry points:
  - generate()            — text-only prompt (transcript analysis)
  - generate_with_audio() — interleaved inline-audio + text parts with a
                            system instruction (forensics, language detection)

Extension pattern: add new mock response keys to _MOCK_RESPONSES and
reference them in calls via the response_key parameter.
"""

import logging
import os
from typing import Any

# Python 3.14 + protobuf native extension can fail when importing Gemini deps.
# Keep this as default-only so users can still override it explicitly.
os.environ.setdefault("PROTOCOL_BUFFERS_PYTHON_IMPLEMENTATION", "python")

import google.generativeai as genai

from voxguard.core.config import settings
from voxguard.core.errors import InputLimitError

logger = logging.getLogger(__name__)


# One forensic report per audio sample. In mock mode the client repeats it
# once per inline audio part so batch lengths always line up.
_MOCK_FORENSIC_ITEM = (
    '{"language": "English", "classification": "HUMAN", "confidenceScore": 0.86, '
    '"explanation": "[MOCK] Natural breath continuity and irregular micro-pauses are '
    'consistent with human speech.", '
    '"spectralMarkers": ["Irregular micro-silences", "Natural formant transitions"], '
    '"suspectedAlgorithm": "None", "scamLikelihood": 8, "riskLevel": "LOW", '
    '"intentAnalysis": "Conversational tone with no coercive language.", '
    '"forensicData": {'
    '"profile": {"ageEstimate": {"range": "30-40", "confidence": 72}, '
    '"gender": "MALE", "tonalType": "RESONANT"}, '
    '"emotional": {"primary": "CALM", "driftScore": 41, '
    '"analysis": "Emotion shifts naturally across phrases."}, '
    '"cognitive": {"entropyScore": 63, "scriptedLikelihood": 18, '
    '"analysis": "Hesitations consistent with spontaneous speech."}, '
    '"origin": {"isProbabilistic": true, '
    '"likelihood": {"neuralVocoder": 9, "concatenative": 4, "humanoid": 87}}, '
    '"biomechanics": {"plausibilityScore": 91, "anomalies": [], '
    '"analysis": "Breath intake present between sentences."}, '
    '"technical": {"reversibilityScore": 22, "artifacts": [], '
    '"analysis": "Low temporal symmetry."}, '
    '"silence": {"uniformityScore": 34}, '
    '"risk": {"level": "LOW", "category": ["BENIGN"], "score": 7}, '
    '"integrity": {"hash": "MOCK-7F3A", "verdict": "AUTHENTIC"}}, '
    '"domainAnalysis": {"timeDomain": "Dynamic range varies naturally.", '
    '"frequencyDomain": "Broad harmonic distribution.", '
    '"phaseDomain": "No vocoder discontinuities.", '
    '"prosody": "Irregular rhythm and stress."}}'
)

# Canned responses for mock mode.
# Keys map to response_key arguments in generate*() calls.
_MOCK_RESPONSES: dict[str, str] = {
    "default": (
        "[MOCK] This is a placeholder Gemini response. "
        "Set AI_MOCK_MODE=false and provide GEMINI_API_KEY for real responses."
    ),
    "detect_language": "English",
    "transcript_analysis": (
        '{"summaryPoints": ["[MOCK] Caller asks to confirm account details.", '
        '"[MOCK] Caller requests an urgent transfer."], '
        '"suspiciousKeywords": ['
        '{"word": "urgent", "riskLevel": "MEDIUM", "category": "SOCIAL_ENG"}, '
        '{"word": "OTP", "riskLevel": "HIGH", "category": "PHISHING"}]}'
    ),
}


class GeminiClient:
    """
    Central Gemini interface for the forensics gateway.

    Single place for model selection, payload limits, error logging and mock
    injection. Don't instantiate per-request; use the module-level
    `gemini_client` singleton. Retry policy lives with the caller
    (see voxguard.core.retry) so each call site picks its own budget.
    """

    def __init__(self) -> None:
        self.mock_mode = settings.ai_mock_mode
        self.model_name = settings.gemini_model

        if not self.mock_mode:
            if not settings.gemini_api_key:
                logger.warning(
                    "GEMINI_API_KEY not set — falling back to mock mode. "
                    "Set AI_MOCK_MODE=true to silence this warning."
                )
                self.mock_mode = True
            else:
                genai.configure(api_key=settings.gemini_api_key)
                self._genai = genai

        if self.mock_mode:
            logger.info("GeminiClient initialised in MOCK mode")
        else:
            logger.info("GeminiClient initialised in REAL mode (model: %s)", self.model_name)

    @staticmethod
    def _mock(response_key: str, audio_count: int = 1) -> str:
        if response_key == "voice_forensics":
            return "[" + ", ".join([_MOCK_FORENSIC_ITEM] * max(1, audio_count)) + "]"
        return _MOCK_RESPONSES.get(response_key, _MOCK_RESPONSES["default"])

    async def generate(
        self,
        prompt: str,
        response_key: str = "default",
        json_output: bool = False,
        **generation_kwargs: Any,
    ) -> str:
        """
        Generate text from a text-only prompt.

        Args:
            prompt:             The full prompt string.
            response_key:       Mock response key (ignored in real mode).
            json_output:        Ask the model for application/json output.
            **generation_kwargs: Passed through to GenerativeModel.generate_content_async().

        Raises:
            Exception: Propagates Gemini SDK errors in real mode.
        """
        if self.mock_mode:
            return self._mock(response_key)

        if json_output:
            generation_kwargs.setdefault("generation_config", {"response_mime_type": "application/json"})
        try:
            gemini_model = self._genai.GenerativeModel(self.model_name)
            response = await gemini_model.generate_content_async(prompt, **generation_kwargs)
            return response.text
        except Exception as exc:
            logger.error("Gemini API error (model=%s): %s", self.model_name, exc)
            raise

    async def generate_with_audio(
        self,
        parts: list[dict[str, Any]],
        system_instruction: str | None = None,
        response_key: str = "default",
        json_output: bool = False,
    ) -> str:
        """
        Multimodal call — sends audio bytes inline alongside text parts.

        Args:
            parts:              Ordered content parts, each either
                                {"text": ...} or {"inline_data": {"mime_type": ..., "data": <b64>}}.
            system_instruction: Optional system prompt for the model.
            response_key:       Mock response key (ignored in real mode).
            json_output:        Ask the model for application/json output.

        Raises:
            InputLimitError: an inline audio part exceeds settings.max_inline_audio_b64.
            Exception:       Propagates Gemini SDK errors in real mode.
        """
        audio_parts = [p["inline_data"] for p in parts if "inline_data" in p]
        for blob in audio_parts:
            if len(blob["data"]) > settings.max_inline_audio_b64:
                logger.warning(
                    "Audio too large for inline data (%d chars > %d limit)",
                    len(blob["data"]), settings.max_inline_audio_b64,
                )
                raise InputLimitError(
                    "INPUT LIMIT EXCEEDED: Audio payload is too large for inline analysis. "
                    "Please try shorter audio clips."
                )

        if self.mock_mode:
            return self._mock(response_key, audio_count=len(audio_parts))

        generation_config = {"response_mime_type": "application/json"} if json_output else None
        try:
            gemini_model = self._genai.GenerativeModel(
                self.model_name, system_instruction=system_instruction
            )
            response = await gemini_model.generate_content_async(
                parts, generation_config=generation_config
            )
            return response.text
        except Exception as exc:
            logger.error(
                "Gemini audio API error (model=%s, samples=%d): %s",
                self.model_name, len(audio_parts), exc,
            )
            raise


# Module-level singleton, import and use this everywhere
gemini_client = GeminiClient()
