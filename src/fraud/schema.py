"""
Canonical schemas for claim fraud screening.

Defines Pydantic models for the claim submission coming in, the per-signal
analysis results, and the fused fraud analysis going out. Result models are
frozen: once a check has produced its record nobody edits it.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# Enums
# ============================================================================


class ClaimType(str, Enum):
    """Insurance product line of a claim."""
    AUTO = "auto"
    HOME = "home"
    HEALTH = "health"
    PROPERTY = "property"
    TRAVEL = "travel"
    LIFE = "life"
    OTHER = "other"


class CheckStatus(str, Enum):
    """Outcome of one optional signal."""
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"
    TIMEOUT = "timeout"


class DocumentType(str, Enum):
    """Detected kind of uploaded document."""
    POLICY = "policy"
    REPAIR_ESTIMATE = "repair_estimate"
    MEDICAL_BILL = "medical_bill"
    POLICE_REPORT = "police_report"
    UNKNOWN = "unknown"


class MatchStatus(str, Enum):
    """Verdict of comparing an extracted field against the submitted form."""
    MATCH = "match"
    PROBABLE_MATCH = "probable_match"
    MISMATCH = "mismatch"
    NOT_FOUND = "not_found"
    WITHIN_COVERAGE = "within_coverage"
    NEAR_LIMIT = "near_limit"
    EXCEEDS_COVERAGE = "exceeds_coverage"
    VALID = "valid"
    INCIDENT_BEFORE_EFFECTIVE = "incident_before_effective"
    INCIDENT_AFTER_EXPIRATION = "incident_after_expiration"


class RiskTier(str, Enum):
    """Risk band of a fraud score."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Recommendation(str, Enum):
    """Recommended handling for a risk tier."""
    AUTO_APPROVE = "AUTO_APPROVE"
    ADDITIONAL_VERIFICATION = "ADDITIONAL_VERIFICATION"
    MANUAL_REVIEW_REQUIRED = "MANUAL_REVIEW_REQUIRED"


class DecisionStatus(str, Enum):
    """Automated disposition of a claim."""
    APPROVED = "APPROVED"
    PENDING = "PENDING"
    FLAGGED = "FLAGGED"


# ============================================================================
# Claim input
# ============================================================================


class ClaimContext(BaseModel):
    """Claim details an image needs to be judged against."""
    model_config = ConfigDict(frozen=True)

    claim_type: Optional[str] = Field(None, description="Claim type (auto, home, health, ...)")
    incident_date: Optional[str] = Field(None, description="Incident date as ISO string")
    policy_number: Optional[str] = Field(None, description="Registry key for cross-claim duplicates")


class ClaimSubmission(BaseModel):
    """Claimant-entered form fields. Owned by the calling layer."""
    model_config = ConfigDict(frozen=True)

    policy_number: str = Field(description="Insurance policy number as typed by the claimant")
    claimant_name: str = Field(description="Claimant full name")
    claimant_email: Optional[str] = Field(None, description="Contact email address")
    claim_type: ClaimType = Field(default=ClaimType.OTHER, description="Product line")
    incident_date: date = Field(description="When the incident occurred")
    claim_amount: float = Field(ge=0, description="Amount claimed (must be >= 0)")
    description: str = Field(default="", description="Free-text incident description")

    @field_validator("policy_number", "claimant_name")
    @classmethod
    def strip_text(cls, v: str) -> str:
        """Trim surrounding whitespace."""
        return v.strip()

    def to_context(self) -> ClaimContext:
        """Context handed to the image analyzer."""
        return ClaimContext(
            claim_type=self.claim_type.value,
            incident_date=self.incident_date.isoformat(),
            policy_number=self.policy_number or None,
        )


# ============================================================================
# Image analysis
# ============================================================================


class CheckOutcome(BaseModel):
    """Tagged result of a sub-check: found, not_found or error(reason)."""
    model_config = ConfigDict(frozen=True)

    status: CheckStatus
    reason: Optional[str] = None


class ImageMetadata(BaseModel):
    """EXIF fields of interest."""
    model_config = ConfigDict(frozen=True)

    has_container: bool = Field(default=False, description="Whether any EXIF block was present")
    capture_time: Optional[datetime] = None
    gps_latitude: Optional[float] = None
    gps_longitude: Optional[float] = None
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None
    software: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    orientation: Optional[int] = None


class QualityMetrics(BaseModel):
    """Pixel-level quality measurements."""
    model_config = ConfigDict(frozen=True)

    width: int
    height: int
    pixel_count: int
    format: Optional[str] = None
    channels: int
    sharpness: float = Field(description="Variance of the grayscale Laplacian")
    contrast: float = Field(description="Mean over channels of max - min")
    resolution_class: str = Field(description="very_low | low | adequate")
    recompress_ratio: Optional[float] = None


class TamperFlags(BaseModel):
    """Heuristic edit/tamper signals."""
    model_config = ConfigDict(frozen=True)

    lighting_variance: float = 0.0
    inconsistent_lighting: bool = False
    ela_drift: float = 0.0
    ela_suspicious: bool = False
    compression_anomaly: bool = False
    possible_stock_photo: bool = False
    stock_photo_confidence: int = 0
    watermark_removal_suspected: bool = False


class ContentLabel(BaseModel):
    """Coarse content label inferred from colour and edges."""
    model_config = ConfigDict(frozen=True)

    label: str
    confidence: float = Field(ge=0.0, le=1.0)


class DuplicateMatch(BaseModel):
    """A stored hash close to the one being checked."""
    model_config = ConfigDict(frozen=True)

    claim_id: str
    hash: str
    distance: int
    similarity: float = Field(description="Percentage of matching bits")


class ClaimTypeMatch(BaseModel):
    """Whether detected content fits the claim type."""
    model_config = ConfigDict(frozen=True)

    checked: bool = False
    matches: bool = False
    expected: List[str] = Field(default_factory=list)
    detected: List[str] = Field(default_factory=list)


class ImageAnalysisResult(BaseModel):
    """Forensic analysis of one damage photo."""
    model_config = ConfigDict(frozen=True)

    metadata: ImageMetadata = Field(default_factory=ImageMetadata)
    quality: Optional[QualityMetrics] = None
    tamper: TamperFlags = Field(default_factory=TamperFlags)
    perceptual_hash: Optional[str] = None
    content_hash: Optional[str] = None
    duplicates: List[DuplicateMatch] = Field(default_factory=list)
    content_labels: List[ContentLabel] = Field(default_factory=list)
    claim_type_match: ClaimTypeMatch = Field(default_factory=ClaimTypeMatch)
    check_status: Dict[str, CheckOutcome] = Field(default_factory=dict)
    fraud_indicators: List[str] = Field(default_factory=list)
    fraud_score: float = Field(default=0.0, ge=0.0, le=100.0)
    confidence: float = Field(default=0.0, ge=0.0, le=100.0)
    risk_level: RiskTier = RiskTier.LOW
    error: Optional[str] = None


class AggregateImageResult(BaseModel):
    """Combined analysis of every photo in one submission."""
    model_config = ConfigDict(frozen=True)

    image_count: int = Field(ge=0)
    individual_results: List[ImageAnalysisResult] = Field(default_factory=list)
    internal_duplicates: List[Tuple[int, int]] = Field(default_factory=list)
    combined_fraud_score: float = Field(default=0.0, ge=0.0, le=100.0)
    combined_indicators: List[str] = Field(default_factory=list)
    overall_risk_level: RiskTier = RiskTier.LOW
    confidence: float = Field(default=0.0, ge=0.0, le=100.0)


# ============================================================================
# Document extraction
# ============================================================================


class DocumentTypeGuess(BaseModel):
    """Keyword-vote classification of a document."""
    model_config = ConfigDict(frozen=True)

    type: DocumentType = DocumentType.UNKNOWN
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    keyword_counts: Dict[str, int] = Field(default_factory=dict)


class AuthenticityAssessment(BaseModel):
    """Text/layout heuristics on whether a document is genuine."""
    model_config = ConfigDict(frozen=True)

    confidence: float = Field(default=100.0, ge=0.0, le=100.0)
    is_authentic: bool = True
    flags: List[str] = Field(default_factory=list)


class ExtractedDocument(BaseModel):
    """OCR output with classification and structured fields."""
    model_config = ConfigDict(frozen=True)

    raw_text: str = ""
    pages: List[str] = Field(default_factory=list)
    tables: List[List[List[str]]] = Field(default_factory=list)
    document_type: DocumentTypeGuess = Field(default_factory=DocumentTypeGuess)
    structured_data: Dict[str, Any] = Field(default_factory=dict)
    language: str = "unknown"
    authenticity: AuthenticityAssessment = Field(default_factory=AuthenticityAssessment)
    ocr_confidence: float = Field(default=0.0, ge=0.0, le=100.0)
    field_completeness: float = Field(default=0.0, ge=0.0, le=1.0)
    overall_confidence: float = Field(default=0.0, ge=0.0, le=100.0)
    source_format: str = Field(default="unknown", description="pdf | image | text | unknown")
    extraction_method: str = Field(default="none", description="pdf_text | pdf_ocr | image_ocr | text | none")
    extraction_limited: bool = False
    notes: List[str] = Field(default_factory=list)
    error: Optional[str] = None


class ExtractionOptions(BaseModel):
    """Caller-side knobs for document extraction."""
    model_config = ConfigDict(frozen=True)

    max_pages: Optional[int] = Field(None, ge=1, description="Defaults to settings.max_pdf_pages")
    language: Optional[str] = Field(None, description="Tesseract language hint, e.g. 'eng'")
    preprocess: Optional[bool] = None
    reference_date: Optional[date] = Field(None, description="'Today' for future-date checks")


# ============================================================================
# Document validation
# ============================================================================


class FieldCheck(BaseModel):
    """One extracted-vs-submitted comparison."""
    model_config = ConfigDict(frozen=True)

    status: MatchStatus
    extracted: Optional[str] = None
    submitted: Optional[str] = None
    similarity: float = 0.0
    detail: Optional[str] = None


class DocumentValidationResult(BaseModel):
    """Cross-check of OCR-extracted fields against the claim form."""
    model_config = ConfigDict(frozen=True)

    policy_number: Optional[FieldCheck] = None
    claimant_name: Optional[FieldCheck] = None
    coverage: Optional[FieldCheck] = None
    policy_dates: Optional[FieldCheck] = None
    authenticity: Optional[AuthenticityAssessment] = None
    document_type: Optional[DocumentTypeGuess] = None
    ocr_confidence: float = 0.0
    fraud_score: float = Field(default=0.0, ge=0.0, le=100.0)
    indicators: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    is_valid: bool = True


class QuickValidationResult(BaseModel):
    """Critical-field check only: policy number and claimant name."""
    model_config = ConfigDict(frozen=True)

    policy_number_match: bool
    name_match: bool
    name_similarity: float
    has_red_flags: bool


# ============================================================================
# Fusion and decision
# ============================================================================


class ScoreBreakdown(BaseModel):
    """The weighted components behind a fraud score."""
    model_config = ConfigDict(frozen=True)

    text_score: float
    document_validation_score: Optional[float] = None
    image_score: Optional[float] = None
    weights: Dict[str, float] = Field(default_factory=dict)


class FraudAnalysis(BaseModel):
    """Fused fraud assessment of a claim."""
    model_config = ConfigDict(frozen=True)

    fraud_score: int = Field(ge=0, le=100)
    indicators: List[str] = Field(default_factory=list)
    breakdown: ScoreBreakdown
    risk_level: RiskTier
    recommendation: Recommendation


class Decision(BaseModel):
    """Automated disposition. Terminal: later reviews act on the claim record."""
    model_config = ConfigDict(frozen=True)

    status: DecisionStatus
    explanation: str
    confidence: int
    fraud_score: int
    risk_level: RiskTier
    recommendation: Recommendation
    processed_at: datetime


class ClaimAssessment(BaseModel):
    """Everything the pipeline produced for one submission."""
    model_config = ConfigDict(frozen=True)

    submission: ClaimSubmission
    extracted_document: Optional[ExtractedDocument] = None
    document_validation: Optional[DocumentValidationResult] = None
    image_analysis: Optional[AggregateImageResult] = None
    fraud_analysis: FraudAnalysis
    decision: Decision
    processing_time_ms: float = 0.0
