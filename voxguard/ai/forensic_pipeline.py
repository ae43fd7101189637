"""
forensic_pipeline.py — Batch voice-forensics orchestration over Gemini.

One remote call per batch, however many samples it holds:

  parts = [ audio_0, "[Sample 0] Source: a.mp3. Language: English.",
            audio_1, "[Sample 1] Source: b.webm. Language: DETECT_FROM_AUDIO.",
            ...,
            "Activate Forensic Engines. Report telemetry." ]

The system instruction asks the model to run the ten forensic engines
(age, voice type, emotion + drift, cognitive entropy, origin likelihoods,
biomechanical plausibility, temporal reversibility, silence uniformity,
fatigue drift, threat/risk) and to answer with a JSON array holding exactly
one object per sample, in sample order.

Post-processing (per element, input order preserved):
  - language      → model value if supported, else the item's own language
  - confidence    → clamped to [0, 1]; missing / non-numeric = malformed
  - classification→ UNCERTAIN when confidence < threshold (threshold override),
                    or when the model returns something outside the enum
  - optional keys → documented defaults (see DetectionResult)

A failed remote call (after retries) or a mis-shaped answer raises a
GatewayError subclass; there is no partial per-item recovery.

Also hosts the two smaller model calls used by the console:
detect_language() and analyze_transcript().
"""

import asyncio
import json
import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from voxguard.ai.gemini_client import GeminiClient, gemini_client
from voxguard.core.config import settings
from voxguard.core.errors import GatewayError, MalformedResponseError, classify_remote_error
from voxguard.core.retry import retry
from voxguard.models.voice import (
    CLASSIFICATIONS,
    KEYWORD_CATEGORIES,
    RISK_LEVELS,
    SUPPORTED_LANGUAGES,
    AudioItem,
    DetectionResult,
    DomainAnalysis,
    ForensicData,
    LiveAnalysisResult,
    SuspiciousKeyword,
)
from voxguard.services.validator import normalize_audio_format

logger = logging.getLogger(__name__)

DETECT_SENTINEL = "DETECT_FROM_AUDIO"


# ── MIME type helper ──────────────────────────────────────────────────────────

_AUDIO_MIME_MAP = {
    "mp3":  "audio/mpeg",
    "wav":  "audio/wav",
    "flac": "audio/flac",
    "webm": "audio/webm",
    "ogg":  "audio/ogg",
    "m4a":  "audio/mp4",
}


def mime_from_format(audio_format: str) -> str:
    """Map a declared audio format (e.g. ".MP3", "wav") to its IANA MIME type."""
    return _AUDIO_MIME_MAP.get(normalize_audio_format(audio_format), "audio/mpeg")


# ── Prompts ───────────────────────────────────────────────────────────────────

_FORENSIC_SYSTEM_PROMPT = """\
You are the Principal Forensic AI System, operating as an ensemble of 10 specialised engines.

TARGET LANGUAGES: Tamil, English, Hindi, Malayalam, Telugu.

If a sample's Language is 'DETECT_FROM_AUDIO', identify the language first and return it
in that sample's "language" field.

Run these engines on every audio sample:
1. VOICE AGE ESTIMATION — pitch variability and formant spacing; estimate an age range.
2. VOICE TYPE — gender, resonance and tonal quality (SOFT, NEUTRAL, HARSH, BREATHY, RESONANT).
3. EMOTION — primary emotion plus a drift score; humans shift emotion, AI is often statically neutral.
4. COGNITIVE LOAD & INTENT — hesitation entropy; perfect fluency suggests a script or synthesis.
5. ORIGIN INFERENCE — independent likelihoods of neural vocoder, concatenative and humanoid origin.
6. BIOMECHANICAL FEASIBILITY — breath continuity; plausibility score 0-100.
7. TEMPORAL REVERSIBILITY — synthetic speech is often more time-symmetric than human speech.
8. SILENCE INTELLIGENCE — background-noise uniformity; synthetic silence is often perfectly uniform.
9. FATIGUE DRIFT — micro-fatigue in pitch over time.
10. THREAT & RISK — combine all signals: impersonation, fraud, social engineering, disinformation.

DOMAIN ANALYSIS:
- timeDomain: duration, amplitude dynamic range, gating / cadence / zero-crossing anomalies.
- frequencyDomain: spectral bandwidth and harmonic distribution.
- phaseDomain: phase inversion or vocoder discontinuities.
- prosody: rhythm, stress and intonation.

ARBITRATION:
- If biomechanical plausibility < 50 OR silence uniformity > 90, bias heavily towards AI_GENERATED.
- confidenceScore (0.0-1.0) must reflect the agreement ratio across all engines.

All scores inside forensicData are on a 0-100 scale.

OUTPUT: a JSON array with exactly one object per sample, in sample order:
[{
  "language": "Tamil|English|Hindi|Malayalam|Telugu",
  "classification": "AI_GENERATED|HUMAN|UNCERTAIN",
  "confidenceScore": <0.0-1.0>,
  "explanation": "<2-3 sentences>",
  "spectralMarkers": ["..."],
  "suspectedAlgorithm": "<name or Unknown>",
  "scamLikelihood": <0-100>,
  "riskLevel": "LOW|MEDIUM|HIGH|CRITICAL",
  "intentAnalysis": "<one sentence>",
  "forensicData": {
    "profile": {"ageEstimate": {"range": "30-40", "confidence": <0-100>},
                "gender": "MALE|FEMALE|ANDROGYNOUS", "tonalType": "..."},
    "emotional": {"primary": "NEUTRAL|CALM|STRESSED|ANGRY|SAD|EXCITED", "driftScore": <0-100>, "analysis": "..."},
    "cognitive": {"entropyScore": <0-100>, "scriptedLikelihood": <0-100>, "analysis": "..."},
    "origin": {"isProbabilistic": true,
               "likelihood": {"neuralVocoder": <0-100>, "concatenative": <0-100>, "humanoid": <0-100>}},
    "biomechanics": {"plausibilityScore": <0-100>, "anomalies": ["..."], "analysis": "..."},
    "technical": {"reversibilityScore": <0-100>, "artifacts": ["..."], "analysis": "..."},
    "silence": {"uniformityScore": <0-100>},
    "risk": {"level": "LOW|MEDIUM|HIGH|CRITICAL",
             "category": ["IMPERSONATION|FRAUD|SOCIAL_ENG|DISINFORMATION|BENIGN"], "score": <0-100>},
    "integrity": {"hash": "...", "verdict": "..."}
  },
  "domainAnalysis": {"timeDomain": "...", "frequencyDomain": "...", "phaseDomain": "...", "prosody": "..."}
}]"""

_FORENSIC_TRIGGER = "Activate Forensic Engines. Report telemetry."

_LANGUAGE_SYSTEM_PROMPT = (
    "Identify the primary spoken language from: {languages}. "
    "Return ONLY the language name."
)

_TRANSCRIPT_PROMPT = """\
Analyse this live call segment:
"{text}"

Extract the key discussion points and any suspicious keywords related to fraud.
Categorise each keyword as PHISHING, SOCIAL_ENG, FRAUD or COERCION (UNKNOWN if unsure).

Respond with valid JSON only:
{{
  "summaryPoints": ["point 1", "point 2"],
  "suspiciousKeywords": [
    {{"word": "...", "riskLevel": "LOW|MEDIUM|HIGH|CRITICAL", "category": "PHISHING|SOCIAL_ENG|FRAUD|COERCION|UNKNOWN"}}
  ]
}}"""


# ── Parsing helpers ────────────────────────────────────────────────────────────

def _parse_json(raw: str, pattern: str) -> Any:
    """Parse *raw* as JSON, falling back to the first match of *pattern*."""
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError, ValueError):
        pass
    m = re.search(pattern, raw or "")
    if not m:
        return None
    try:
        return json.loads(m.group())
    except (json.JSONDecodeError, ValueError):
        return None


def _clamp(v: float, hi: float = 1.0) -> float:
    """Clamp into [0, hi]. NaN and infinities raise ValueError instead of saturating."""
    v = float(v)
    if not math.isfinite(v):
        raise ValueError(f"non-finite value: {v}")
    return max(0.0, min(hi, v))


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def apply_threshold(result: DetectionResult, threshold: float) -> DetectionResult:
    """Force UNCERTAIN when confidence is below *threshold*. Idempotent."""
    if result.confidence_score < threshold and result.classification != "UNCERTAIN":
        return result.model_copy(update={"classification": "UNCERTAIN"})
    return result


def normalize_result(raw: Any, item: AudioItem, threshold: float) -> DetectionResult:
    """
    Turn one element of the model's array into a fully-populated DetectionResult.

    Raises:
        MalformedResponseError: element is not an object, lacks a numeric
                                confidenceScore, or has an unusable forensicData block.
    """
    if not isinstance(raw, dict):
        raise MalformedResponseError(f"Forensic result for {item.file_name} is not an object")

    confidence = raw.get("confidenceScore")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float, str)):
        raise MalformedResponseError(f"Forensic result for {item.file_name} has no confidenceScore")
    try:
        confidence = _clamp(confidence)
    except ValueError as exc:
        raise MalformedResponseError(
            f"Forensic result for {item.file_name} has a non-numeric or non-finite confidenceScore"
        ) from exc

    language = raw.get("language")
    if language not in SUPPORTED_LANGUAGES:
        language = item.language

    classification = raw.get("classification")
    if classification not in CLASSIFICATIONS:
        classification = "UNCERTAIN"

    risk_level = str(raw.get("riskLevel") or "LOW").upper()
    if risk_level not in RISK_LEVELS:
        risk_level = "LOW"

    try:
        scam_likelihood = _clamp(raw.get("scamLikelihood") or 0, hi=100.0)
        forensic_data = ForensicData.model_validate(raw.get("forensicData") or {})
        domain_analysis = DomainAnalysis.model_validate(raw.get("domainAnalysis") or {})
    except (TypeError, ValueError, ValidationError) as exc:
        raise MalformedResponseError(
            f"Forensic result for {item.file_name} could not be normalised: {exc}"
        ) from exc

    markers = raw.get("spectralMarkers") or []
    if isinstance(markers, str):
        markers = [markers]

    result = DetectionResult(
        status="success",
        language=language,
        audio_format=item.audio_format,
        classification=classification,
        confidence_score=confidence,
        explanation=str(raw.get("explanation") or "Analysis complete."),
        file_name=item.file_name,
        timestamp=_utc_now(),
        spectral_markers=[str(m) for m in markers],
        suspected_algorithm=str(raw.get("suspectedAlgorithm") or "Unknown"),
        scam_likelihood=scam_likelihood,
        risk_level=risk_level,
        intent_analysis=str(raw.get("intentAnalysis") or "No malicious intent detected."),
        forensic_data=forensic_data,
        domain_analysis=domain_analysis,
    )
    return apply_threshold(result, threshold)


def _normalize_keyword(raw: Any) -> Optional[SuspiciousKeyword]:
    if not isinstance(raw, dict) or not raw.get("word"):
        return None
    risk = str(raw.get("riskLevel") or "LOW").upper()
    category = str(raw.get("category") or "UNKNOWN").upper()
    return SuspiciousKeyword(
        word=str(raw["word"]),
        risk_level=risk if risk in RISK_LEVELS else "LOW",
        category=category if category in KEYWORD_CATEGORIES else "UNKNOWN",
    )


# ── Pipeline ──────────────────────────────────────────────────────────────────

class ForensicPipeline:
    """
    Orchestrates forensic voice analysis using Gemini.

    The client and retry settings can be injected for tests; by default the
    module-level gemini_client singleton and settings.retry_* are used.
    """

    def __init__(
        self,
        client: Optional[GeminiClient] = None,
        max_attempts: Optional[int] = None,
        initial_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._max_attempts = max_attempts
        self._initial_delay = initial_delay
        self._sleep = sleep

    @property
    def client(self) -> GeminiClient:
        return self._client or gemini_client

    async def _with_retry(self, operation: Callable[[], Awaitable[str]]) -> str:
        return await retry(
            operation,
            max_attempts=settings.retry_max_attempts if self._max_attempts is None else self._max_attempts,
            initial_delay=(
                settings.retry_initial_delay_seconds if self._initial_delay is None else self._initial_delay
            ),
            sleep=self._sleep,
        )

    # ── Batch forensics ────────────────────────────────────────────────────────

    @staticmethod
    def build_parts(items: list[AudioItem]) -> list[dict[str, Any]]:
        """Interleave each sample's audio with its positional tag, then the trigger text."""
        parts: list[dict[str, Any]] = []
        for index, item in enumerate(items):
            language = DETECT_SENTINEL if item.language == "Auto" else item.language
            parts.append({"inline_data": {"mime_type": mime_from_format(item.audio_format), "data": item.audio_base64}})
            parts.append({"text": f"[Sample {index}] Source: {item.file_name}. Language: {language}."})
        parts.append({"text": _FORENSIC_TRIGGER})
        return parts

    async def analyze_batch(self, items: list[AudioItem], threshold: float) -> list[DetectionResult]:
        """
        Analyse every item in a single remote call.

        Returns one DetectionResult per item, in input order.

        Raises:
            GatewayError: remote failure (after retries) or malformed model output.
        """
        if not items:
            return []

        logger.info("Starting forensic batch (samples=%d, threshold=%.2f)", len(items), threshold)
        parts = self.build_parts(items)

        try:
            raw = await self._with_retry(
                lambda: self.client.generate_with_audio(
                    parts,
                    system_instruction=_FORENSIC_SYSTEM_PROMPT,
                    response_key="voice_forensics",
                    json_output=True,
                )
            )
        except GatewayError:
            raise
        except Exception as exc:
            logger.error("Forensic batch failed after retries: %s", exc)
            raise classify_remote_error(exc) from exc

        parsed = _parse_json(raw, r"\[[\s\S]*\]")
        if not isinstance(parsed, list):
            raise MalformedResponseError("Neural engine returned an unparseable forensic report.")
        if len(parsed) != len(items):
            raise MalformedResponseError(
                f"Neural engine returned {len(parsed)} results for {len(items)} samples."
            )

        results = [normalize_result(element, item, threshold) for element, item in zip(parsed, items)]

        logger.info(
            "Forensic batch complete: %s",
            ", ".join(f"{r.file_name}={r.classification}({r.confidence_score:.2f})" for r in results),
        )
        return results

    # ── Language detection ─────────────────────────────────────────────────────

    async def detect_language(self, audio_base64: str, audio_format: str) -> Optional[str]:
        """
        Identify the spoken language of a sample.

        Returns one of the supported languages, or None if the model answers
        with anything else or the call fails (callers fall back to 'Auto').
        """
        parts = [
            {"inline_data": {"mime_type": mime_from_format(audio_format), "data": audio_base64}},
            {"text": "Identify the language."},
        ]
        system_instruction = _LANGUAGE_SYSTEM_PROMPT.format(languages=", ".join(SUPPORTED_LANGUAGES))
        try:
            raw = await self._with_retry(
                lambda: self.client.generate_with_audio(
                    parts, system_instruction=system_instruction, response_key="detect_language"
                )
            )
        except Exception as exc:
            logger.warning("Language detection failed, defaulting to Auto: %s", exc)
            return None

        detected = (raw or "").strip().strip(".").strip()
        return detected if detected in SUPPORTED_LANGUAGES else None

    # ── Live transcript analysis ───────────────────────────────────────────────

    async def analyze_transcript(self, text: str) -> LiveAnalysisResult:
        """
        Summarise a live-call transcript segment and flag fraud keywords.

        Background task for the live console: failures are logged and an
        empty result is returned.
        """
        prompt = _TRANSCRIPT_PROMPT.format(text=text)
        try:
            raw = await self._with_retry(
                lambda: self.client.generate(prompt, response_key="transcript_analysis", json_output=True)
            )
        except Exception as exc:
            logger.error("Live transcript analysis failed: %s", exc)
            return LiveAnalysisResult()

        data = _parse_json(raw, r"\{[\s\S]*\}")
        if not isinstance(data, dict):
            logger.warning("Transcript analysis returned unparseable output")
            return LiveAnalysisResult()

        keywords = [_normalize_keyword(k) for k in data.get("suspiciousKeywords") or []]
        return LiveAnalysisResult(
            summary_points=[str(p) for p in data.get("summaryPoints") or []],
            suspicious_keywords=[k for k in keywords if k is not None],
        )


# Module-level singleton
forensic_pipeline = ForensicPipeline()
