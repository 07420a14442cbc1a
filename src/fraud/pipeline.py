"""
End-to-end claim screening pipeline.

Public API: process_claim(submission, document, images) -> ClaimAssessment
"""

import asyncio
import logging
import time
from datetime import date, datetime
from typing import Optional, Sequence, Tuple

from .document_extractor import DocumentExtractor
from .document_validation import validate_document_data
from .fusion import analyze_claim
from .image_aggregator import analyze_multiple_images
from .image_analyzer import ImageAnalyzer, create_image_analyzer
from .ocr import OcrEngine
from .schema import (
    AggregateImageResult,
    ClaimAssessment,
    ClaimSubmission,
    DocumentValidationResult,
    ExtractedDocument,
    ExtractionOptions,
)
from ..routing.decision_engine import make_decision
from ..storage.hash_registry import PerceptualHashRegistry

logger = logging.getLogger(__name__)


class ClaimAnalysisPipeline:
    """
    Fraud screening pipeline for insurance claims.

    Runs the document chain (OCR, then validation against the form) and the
    photo analysis concurrently, then fuses the signals and decides.
    """

    def __init__(
        self,
        ocr_engine: Optional[OcrEngine] = None,
        registry: Optional[PerceptualHashRegistry] = None,
        image_analyzer: Optional[ImageAnalyzer] = None,
    ):
        """
        Initialize pipeline.

        Args:
            ocr_engine: OCR engine for documents (default from settings)
            registry: Perceptual hash registry (default: process-wide registry)
            image_analyzer: Image analyzer override (takes precedence over registry)
        """
        self.extractor = DocumentExtractor(engine=ocr_engine)
        self.image_analyzer = image_analyzer or create_image_analyzer(registry=registry)

        logger.info(f"Initialized claim pipeline with OCR engine: {type(self.extractor.engine).__name__}")

    async def _document_chain(
        self,
        submission: ClaimSubmission,
        document: Optional[bytes],
        options: ExtractionOptions,
    ) -> Tuple[Optional[ExtractedDocument], Optional[DocumentValidationResult]]:
        if document is None:
            return None, None
        extracted = await self.extractor.extract(document, options)
        return extracted, validate_document_data(extracted, submission)

    async def _image_chain(
        self,
        submission: ClaimSubmission,
        images: Sequence[bytes],
    ) -> Optional[AggregateImageResult]:
        if not images:
            return None
        return await analyze_multiple_images(
            images, submission.to_context(), analyzer=self.image_analyzer
        )

    async def process(
        self,
        submission: ClaimSubmission,
        document: Optional[bytes] = None,
        images: Sequence[bytes] = (),
        today: Optional[date] = None,
        processed_at: Optional[datetime] = None,
    ) -> ClaimAssessment:
        """
        Screen one claim submission.

        Args:
            submission: Claim form fields
            document: Raw policy document (PDF or image), if uploaded
            images: Raw damage photos, in upload order
            today: Submission date (default: date.today())
            processed_at: Decision timestamp (default: now)

        Returns:
            ClaimAssessment with every intermediate result and the decision

        Example:
            ```python
            pipeline = ClaimAnalysisPipeline()
            assessment = await pipeline.process(
                submission,
                document=Path("policy.pdf").read_bytes(),
                images=[Path("front.jpg").read_bytes()],
            )
            print(assessment.decision.status)
            ```
        """
        start = time.perf_counter()
        logger.info(
            f"Screening claim for policy {submission.policy_number}: "
            f"document={'yes' if document is not None else 'no'}, images={len(images)}"
        )

        options = ExtractionOptions(reference_date=today)
        (extracted, validation), image_result = await asyncio.gather(
            self._document_chain(submission, document, options),
            self._image_chain(submission, images),
        )

        analysis = analyze_claim(submission, validation, image_result, today=today)
        decision = make_decision(analysis, submission.claim_amount, processed_at=processed_at)

        total_time_ms = (time.perf_counter() - start) * 1000
        assessment = ClaimAssessment(
            submission=submission,
            extracted_document=extracted,
            document_validation=validation,
            image_analysis=image_result,
            fraud_analysis=analysis,
            decision=decision,
            processing_time_ms=round(total_time_ms, 2),
        )

        logger.info(
            f"Claim screened: status={decision.status.value}, "
            f"score={analysis.fraud_score}, total_time={total_time_ms:.0f}ms"
        )
        self._log_metrics(assessment)
        return assessment

    def _log_metrics(self, assessment: ClaimAssessment):
        """Log performance and quality metrics."""
        document = assessment.extracted_document
        validation = assessment.document_validation
        images = assessment.image_analysis
        breakdown = assessment.fraud_analysis.breakdown

        metrics = {
            'total_time_ms': assessment.processing_time_ms,
            'extraction_method': document.extraction_method if document else None,
            'ocr_confidence': document.ocr_confidence if document else None,
            'document_type': document.document_type.type.value if document else None,
            'document_valid': validation.is_valid if validation else None,
            'image_count': images.image_count if images else 0,
            'internal_duplicates': len(images.internal_duplicates) if images else 0,
            'text_score': breakdown.text_score,
            'document_score': breakdown.document_validation_score,
            'image_score': breakdown.image_score,
            'indicator_count': len(assessment.fraud_analysis.indicators),
        }

        logger.info(f"Screening metrics: {metrics}")


# Singleton instance for convenience
_default_pipeline: Optional[ClaimAnalysisPipeline] = None


async def process_claim(
    submission: ClaimSubmission,
    document: Optional[bytes] = None,
    images: Sequence[bytes] = (),
    today: Optional[date] = None,
) -> ClaimAssessment:
    """
    Screen a claim (convenience function).

    Args:
        submission: Claim form fields
        document: Raw policy document bytes, if any
        images: Raw damage photo bytes
        today: Submission date (default: date.today())

    Returns:
        ClaimAssessment

    Example:
        ```python
        from src.fraud.pipeline import process_claim

        assessment = await process_claim(submission, images=[photo_bytes])
        print(assessment.fraud_analysis.fraud_score)
        ```
    """
    global _default_pipeline

    if _default_pipeline is None:
        _default_pipeline = ClaimAnalysisPipeline()

    return await _default_pipeline.process(submission, document, images, today=today)
