"""
Multi-image aggregation.

Folds the per-photo forensic results of one submission into a single image
component for fusion, adding a penalty when the same photo was uploaded twice
or when no photos were supplied at all.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from . import constants as C
from .image_analyzer import ImageAnalyzer, create_image_analyzer
from .image_checks import image_risk_level
from .schema import AggregateImageResult, ClaimContext, ImageAnalysisResult
from .scoring import clamp_score, round_half_up
from ..storage.hash_registry import PerceptualHashRegistry, hamming_distance

logger = logging.getLogger(__name__)


def find_internal_duplicates(
    hashes: Sequence[Optional[str]],
    max_distance: int = C.INTERNAL_DUPLICATE_DISTANCE,
) -> List[Tuple[int, int]]:
    """
    Index pairs (i < j) of near-identical photos within one submission.

    Photos without a hash (failed analysis) never pair up.
    """
    pairs = []
    for i in range(len(hashes)):
        for j in range(i + 1, len(hashes)):
            if hashes[i] is None or hashes[j] is None:
                continue
            if hamming_distance(hashes[i], hashes[j]) < max_distance:
                pairs.append((i, j))
    return pairs


def _dedupe(indicators: Sequence[str]) -> List[str]:
    """Drop repeats, keeping first-seen order."""
    return list(dict.fromkeys(indicators))


def aggregate_image_results(
    results: Sequence[ImageAnalysisResult],
    image_count: Optional[int] = None,
) -> AggregateImageResult:
    """
    Combine per-image results.

    Args:
        results: One ImageAnalysisResult per submitted photo, in upload order
        image_count: Number of photos submitted (defaults to len(results))

    Returns:
        AggregateImageResult with mean score, merged indicators and penalties
    """
    count = len(results) if image_count is None else image_count

    score = round_half_up(sum(r.fraud_score for r in results) / len(results)) if results else 0
    indicators = _dedupe([i for r in results for i in r.fraud_indicators])

    duplicates = find_internal_duplicates([r.perceptual_hash for r in results])
    if duplicates:
        noun = "pair" if len(duplicates) == 1 else "pairs"
        indicators.append(f"{len(duplicates)} duplicate image {noun} detected in submission")
        score += C.INTERNAL_DUPLICATE_PENALTY

    if count == 0:
        indicators.append("No damage photos provided")
        score += C.NO_IMAGES_PENALTY

    combined = clamp_score(score)
    confidence = sum(r.confidence for r in results) / len(results) if results else 0.0

    return AggregateImageResult(
        image_count=count,
        individual_results=list(results),
        internal_duplicates=duplicates,
        combined_fraud_score=combined,
        combined_indicators=_dedupe(indicators),
        overall_risk_level=image_risk_level(combined),
        confidence=round(confidence, 2),
    )


async def analyze_multiple_images(
    images: Sequence[bytes],
    context: Optional[ClaimContext] = None,
    registry: Optional[PerceptualHashRegistry] = None,
    analyzer: Optional[ImageAnalyzer] = None,
) -> AggregateImageResult:
    """
    Analyze every photo of a submission concurrently and aggregate.

    Args:
        images: Raw encoded photos
        context: Claim context shared by all photos
        registry: Hash registry override
        analyzer: Analyzer override (takes precedence over registry)

    Returns:
        AggregateImageResult
    """
    analyzer = analyzer or create_image_analyzer(registry=registry)
    results = await analyzer.analyze_batch(images, context)
    aggregate = aggregate_image_results(results, len(images))
    logger.info(
        f"Analyzed {aggregate.image_count} image(s): "
        f"score={aggregate.combined_fraud_score}, risk={aggregate.overall_risk_level.value}"
    )
    return aggregate
