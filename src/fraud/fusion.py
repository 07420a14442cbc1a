"""
Fraud score fusion.

Combines the behavioral rule score with the optional document validation and
image analysis scores into one weighted 0-100 fraud score. Weights depend on
which signals are present; absent signals do not count as zero, their weight
is redistributed to the others.
"""

import logging
from datetime import date
from typing import Dict, Optional

from . import constants as C
from .behavioral_rules import evaluate_behavioral_rules
from .schema import (
    AggregateImageResult,
    ClaimSubmission,
    DocumentValidationResult,
    FraudAnalysis,
    Recommendation,
    RiskTier,
    ScoreBreakdown,
)
from .scoring import clamp_score, round_half_up, weighted_score

logger = logging.getLogger(__name__)


def risk_tier(score: float) -> RiskTier:
    """>= 70 HIGH, >= 40 MEDIUM, else LOW."""
    if score >= C.HIGH_RISK_SCORE:
        return RiskTier.HIGH
    if score >= C.MEDIUM_RISK_SCORE:
        return RiskTier.MEDIUM
    return RiskTier.LOW


def recommendation_for(tier: RiskTier) -> Recommendation:
    return {
        RiskTier.HIGH: Recommendation.MANUAL_REVIEW_REQUIRED,
        RiskTier.MEDIUM: Recommendation.ADDITIONAL_VERIFICATION,
        RiskTier.LOW: Recommendation.AUTO_APPROVE,
    }[tier]


def fusion_weights(has_document: bool, has_images: bool) -> Dict[str, float]:
    """Weight per present component; always sums to 1."""
    if has_document and has_images:
        text, document, image = C.WEIGHTS_ALL
        return {"text": text, "document_validation": document, "image": image}
    if has_document:
        text, document = C.WEIGHTS_TEXT_DOCUMENT
        return {"text": text, "document_validation": document}
    if has_images:
        text, image = C.WEIGHTS_TEXT_IMAGE
        return {"text": text, "image": image}
    return {"text": 1.0}


def analyze_claim(
    submission: ClaimSubmission,
    document_validation: Optional[DocumentValidationResult] = None,
    image_result: Optional[AggregateImageResult] = None,
    today: Optional[date] = None,
) -> FraudAnalysis:
    """
    Fuse every available signal into a FraudAnalysis.

    Args:
        submission: The claim form
        document_validation: Result of validate_document_data, if a document was uploaded
        image_result: Result of analyze_multiple_images, if photos were uploaded
        today: Submission date for the behavioral rules (default: date.today())

    Returns:
        FraudAnalysis with integer score, ordered indicators and breakdown
    """
    behavioral = evaluate_behavioral_rules(submission, today=today)

    text_score = clamp_score(behavioral.score)
    document_score = clamp_score(document_validation.fraud_score) if document_validation is not None else None
    image_score = clamp_score(image_result.combined_fraud_score) if image_result is not None else None

    weights = fusion_weights(document_score is not None, image_score is not None)
    parts = [(text_score, weights["text"])]
    if document_score is not None:
        parts.append((document_score, weights["document_validation"]))
    if image_score is not None:
        parts.append((image_score, weights["image"]))
    fused = weighted_score(parts)
    fraud_score = round_half_up(clamp_score(fused))

    indicators = list(behavioral.indicators)
    if document_validation is not None:
        indicators.extend(document_validation.indicators)
    if image_result is not None:
        indicators.extend(image_result.combined_indicators)

    tier = risk_tier(fraud_score)
    logger.info(
        f"Fraud fusion: score={fraud_score} ({tier.value}), "
        f"text={text_score}, document={document_score}, image={image_score}, "
        f"indicators={len(indicators)}"
    )

    return FraudAnalysis(
        fraud_score=fraud_score,
        indicators=indicators,
        breakdown=ScoreBreakdown(
            text_score=text_score,
            document_validation_score=document_score,
            image_score=image_score,
            weights=weights,
        ),
        risk_level=tier,
        recommendation=recommendation_for(tier),
    )
