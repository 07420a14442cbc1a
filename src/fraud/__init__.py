"""
Claim fraud screening module.

Rule-based fraud signals for insurance claims: image forensics on damage
photos, OCR and structuring of policy documents, validation of the document
against the claim form, and weighted score fusion.

The end-to-end pipeline lives in src.fraud.pipeline.
"""

from .behavioral_rules import BehavioralReport, evaluate_behavioral_rules
from .document_extractor import DocumentExtractor, extract_from_document, extract_from_text
from .document_validation import quick_validation, validate_document_data
from .errors import FraudAnalysisError, OcrUnavailableError, UnreadableInputError
from .fusion import analyze_claim, fusion_weights, recommendation_for, risk_tier
from .image_aggregator import aggregate_image_results, analyze_multiple_images
from .image_analyzer import ImageAnalyzer, ImageForensicsAnalyzer, analyze_image, create_image_analyzer
from .ocr import NullOcrEngine, OcrEngine, StaticOcrEngine, TesseractOcrEngine, create_ocr_engine
from .schema import (
    # Enums
    ClaimType,
    CheckStatus,
    DocumentType,
    MatchStatus,
    RiskTier,
    Recommendation,
    DecisionStatus,
    # Models
    ClaimContext,
    ClaimSubmission,
    ImageAnalysisResult,
    AggregateImageResult,
    ExtractedDocument,
    ExtractionOptions,
    DocumentValidationResult,
    QuickValidationResult,
    FraudAnalysis,
    Decision,
    ClaimAssessment,
)

__all__ = [
    # Entry points
    "analyze_image",
    "analyze_multiple_images",
    "aggregate_image_results",
    "extract_from_document",
    "extract_from_text",
    "validate_document_data",
    "quick_validation",
    "evaluate_behavioral_rules",
    "analyze_claim",
    "fusion_weights",
    "risk_tier",
    "recommendation_for",
    # Classes
    "ImageAnalyzer",
    "ImageForensicsAnalyzer",
    "create_image_analyzer",
    "DocumentExtractor",
    "OcrEngine",
    "TesseractOcrEngine",
    "StaticOcrEngine",
    "NullOcrEngine",
    "create_ocr_engine",
    "BehavioralReport",
    # Errors
    "FraudAnalysisError",
    "UnreadableInputError",
    "OcrUnavailableError",
    # Enums
    "ClaimType",
    "CheckStatus",
    "DocumentType",
    "MatchStatus",
    "RiskTier",
    "Recommendation",
    "DecisionStatus",
    # Models
    "ClaimContext",
    "ClaimSubmission",
    "ImageAnalysisResult",
    "AggregateImageResult",
    "ExtractedDocument",
    "ExtractionOptions",
    "DocumentValidationResult",
    "QuickValidationResult",
    "FraudAnalysis",
    "Decision",
    "ClaimAssessment",
]
