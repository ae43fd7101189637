"""
voice.py — Pydantic models for the voice-forensics gateway.

Wire format is camelCase (audioBase64, confidenceScore, ...); Python attributes
are snake_case. Every model accepts either form on input and dumps by alias.

ForensicData is the fixed-shape record produced by the remote model. Every
field has a default and None values are dropped before validation, so a
partial model answer still becomes a fully-populated record. All 0–100
scores are clamped into range.
"""

import math
from typing import Annotated, Any, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# ── Enumerations ──────────────────────────────────────────────────────────────

SupportedLanguage = Literal["Tamil", "English", "Hindi", "Malayalam", "Telugu"]
BatchLanguage = Literal["Tamil", "English", "Hindi", "Malayalam", "Telugu", "Auto"]
Classification = Literal["AI_GENERATED", "HUMAN", "UNCERTAIN"]
RiskLevel = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]
KeywordCategory = Literal["PHISHING", "SOCIAL_ENG", "FRAUD", "COERCION", "UNKNOWN"]

SUPPORTED_LANGUAGES: tuple[str, ...] = ("Tamil", "English", "Hindi", "Malayalam", "Telugu")
CLASSIFICATIONS: tuple[str, ...] = ("AI_GENERATED", "HUMAN", "UNCERTAIN")
RISK_LEVELS: tuple[str, ...] = ("LOW", "MEDIUM", "HIGH", "CRITICAL")
KEYWORD_CATEGORIES: tuple[str, ...] = ("PHISHING", "SOCIAL_ENG", "FRAUD", "COERCION", "UNKNOWN")


def _clamp_score(value: Any) -> float:
    if value is None:
        return 0.0
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"score must be finite, got {value}")
    return max(0.0, min(100.0, value))


def _str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


Score = Annotated[float, BeforeValidator(_clamp_score)]   # 0–100
StrList = Annotated[list[str], BeforeValidator(_str_list)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _ModelOutput(CamelModel):
    """Base for records parsed from model output: unknown keys ignored, nulls mean 'use default'."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


# ── Forensic data (10-engine report) ──────────────────────────────────────────

class AgeEstimate(_ModelOutput):
    range: str = "Unknown"
    confidence: Score = 0.0


class VoiceProfile(_ModelOutput):
    age_estimate: AgeEstimate = Field(default_factory=AgeEstimate)
    gender: str = "ANDROGYNOUS"     # MALE | FEMALE | ANDROGYNOUS
    tonal_type: str = "NEUTRAL"     # SOFT | NEUTRAL | HARSH | BREATHY | RESONANT


class EmotionalSignature(_ModelOutput):
    primary: str = "NEUTRAL"        # NEUTRAL | CALM | STRESSED | ANGRY | SAD | EXCITED
    drift_score: Score = 0.0        # how much emotion shifts over the clip
    analysis: str = ""


class CognitiveLoad(_ModelOutput):
    entropy_score: Score = 0.0      # hesitation / pause entropy
    scripted_likelihood: Score = 0.0
    analysis: str = ""


class OriginLikelihood(_ModelOutput):
    # Independent estimates; not required to sum to 100.
    neural_vocoder: Score = 0.0
    concatenative: Score = 0.0
    humanoid: Score = 0.0


class SyntheticOrigin(_ModelOutput):
    is_probabilistic: bool = True
    likelihood: OriginLikelihood = Field(default_factory=OriginLikelihood)


class Biomechanics(_ModelOutput):
    plausibility_score: Score = 0.0
    anomalies: StrList = Field(default_factory=list)
    analysis: str = ""


class TechnicalArtifacts(_ModelOutput):
    reversibility_score: Score = 0.0
    artifacts: StrList = Field(default_factory=list)
    analysis: str = ""


class SilenceProfile(_ModelOutput):
    uniformity_score: Score = 0.0   # high = suspiciously perfect silence


class RiskAssessment(_ModelOutput):
    level: str = "LOW"
    category: StrList = Field(default_factory=list)
    score: Score = 0.0


class ForensicIntegrity(_ModelOutput):
    hash: str = ""
    verdict: str = ""


class ForensicData(_ModelOutput):
    profile: VoiceProfile = Field(default_factory=VoiceProfile)
    emotional: EmotionalSignature = Field(default_factory=EmotionalSignature)
    cognitive: CognitiveLoad = Field(default_factory=CognitiveLoad)
    origin: SyntheticOrigin = Field(default_factory=SyntheticOrigin)
    biomechanics: Biomechanics = Field(default_factory=Biomechanics)
    technical: TechnicalArtifacts = Field(default_factory=TechnicalArtifacts)
    silence: SilenceProfile = Field(default_factory=SilenceProfile)
    risk: RiskAssessment = Field(default_factory=RiskAssessment)
    integrity: ForensicIntegrity = Field(default_factory=ForensicIntegrity)


class DomainAnalysis(_ModelOutput):
    time_domain: str = "Signal duration analysis pending..."
    frequency_domain: str = "N/A"
    phase_domain: str = "N/A"
    prosody: str = "N/A"


# ── Requests ──────────────────────────────────────────────────────────────────

class AnalysisRequest(CamelModel):
    """
    Body of POST /api/voice-detection.

    Deliberately loose: the gateway validator reports bad values as signed
    400 envelopes, so the schema itself must not reject them with a 422.
    """

    language: Optional[str] = None
    audio_format: Optional[str] = None
    audio_base64: Optional[str] = None


class AudioItem(CamelModel):
    """One audio sample submitted to the forensic pipeline."""

    id: str
    language: BatchLanguage
    audio_format: str
    audio_base64: str = Field(..., min_length=1)
    file_name: str


class BatchAnalysisRequest(CamelModel):
    """Body of POST /api/v1/voice/batch."""

    threshold: float = Field(default=0.75, ge=0.0, le=1.0)
    items: list[AudioItem] = Field(..., min_length=1)


class LanguageDetectionRequest(CamelModel):
    audio_base64: str = Field(..., min_length=1)
    audio_format: str = "mp3"


class TranscriptRequest(CamelModel):
    text: str = Field(..., min_length=1, max_length=20_000)


# ── Results ───────────────────────────────────────────────────────────────────

class DetectionResult(CamelModel):
    """Normalised verdict for a single audio item."""

    status: Literal["success", "error"] = "success"
    language: BatchLanguage
    audio_format: str
    classification: Classification
    confidence_score: float = Field(ge=0.0, le=1.0)
    explanation: str
    file_name: str
    timestamp: str
    spectral_markers: list[str] = Field(default_factory=list)
    suspected_algorithm: str = "Unknown"
    scam_likelihood: float = Field(default=0.0, ge=0.0, le=100.0)
    risk_level: RiskLevel = "LOW"
    intent_analysis: str = "No malicious intent detected."
    forensic_data: ForensicData = Field(default_factory=ForensicData)
    domain_analysis: DomainAnalysis = Field(default_factory=DomainAnalysis)


class SuspiciousKeyword(_ModelOutput):
    word: str = ""
    risk_level: RiskLevel = "LOW"
    category: KeywordCategory = "UNKNOWN"


class LiveAnalysisResult(CamelModel):
    summary_points: list[str] = Field(default_factory=list)
    suspicious_keywords: list[SuspiciousKeyword] = Field(default_factory=list)


class LanguageDetectionResponse(BaseModel):
    language: Optional[SupportedLanguage] = None


# ── Envelopes ─────────────────────────────────────────────────────────────────

class IntegrityBlock(BaseModel):
    signature: str
    timestamp: str
    checksum: str     # first 16 hex chars of signature, uppercased
    algorithm: str


class ResponseMeta(CamelModel):
    forensic_data: Optional[ForensicData] = None
    domain_analysis: Optional[DomainAnalysis] = None


class ApiResponse(CamelModel):
    """Public envelope returned by POST /api/voice-detection (success or error)."""

    status: Literal["success", "error"]
    status_code: int
    language: Optional[SupportedLanguage] = None
    classification: Optional[Classification] = None
    confidence_score: Optional[float] = None
    explanation: Optional[str] = None
    message: Optional[str] = None
    meta: Optional[ResponseMeta] = None
    integrity: Optional[IntegrityBlock] = None


class BatchAnalysisResponse(CamelModel):
    status: Literal["success", "error"]
    status_code: int = 200
    results: list[DetectionResult] = Field(default_factory=list)
    message: Optional[str] = None
    integrity: Optional[IntegrityBlock] = None
