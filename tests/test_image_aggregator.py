"""
Tests for multi-image aggregation.

Verifies that aggregate_image_results():
- Averages per-photo scores and merges indicators without repeats
- Penalizes near-identical photos within one submission
- Penalizes submissions with no photos
- Is independent of upload order
"""

import pytest

from src.fraud import constants as C
from src.fraud.image_aggregator import (
    aggregate_image_results,
    analyze_multiple_images,
    find_internal_duplicates,
)
from src.fraud.schema import ClaimContext, ImageAnalysisResult, RiskTier


def result(hash_hex, score, indicators=(), confidence=80.0) -> ImageAnalysisResult:
    return ImageAnalysisResult(
        perceptual_hash=hash_hex,
        fraud_score=score,
        fraud_indicators=list(indicators),
        confidence=confidence,
    )


class TestAggregation:

    def test_near_duplicate_pair(self):
        """Two photos 2 bits apart: mean 15 plus the duplicate penalty."""
        results = [result("0" * 64, 10), result("0" * 63 + "3", 20)]

        aggregate = aggregate_image_results(results)

        assert aggregate.internal_duplicates == [(0, 1)]
        assert aggregate.combined_fraud_score == 15 + C.INTERNAL_DUPLICATE_PENALTY
        assert aggregate.combined_indicators == ["1 duplicate image pair detected in submission"]
        assert aggregate.overall_risk_level == RiskTier.MEDIUM
        assert aggregate.image_count == 2

    def test_distinct_photos(self):
        results = [result("0" * 64, 10), result("f" * 64, 30)]

        aggregate = aggregate_image_results(results)

        assert aggregate.internal_duplicates == []
        assert aggregate.combined_fraud_score == 20

    def test_mean_rounds_half_up(self):
        results = [result("0" * 64, 10), result("f" * 64, 15)]

        assert aggregate_image_results(results).combined_fraud_score == 13

    def test_no_images(self):
        aggregate = aggregate_image_results([])

        assert aggregate.image_count == 0
        assert aggregate.combined_indicators == ["No damage photos provided"]
        assert aggregate.combined_fraud_score == C.NO_IMAGES_PENALTY
        assert aggregate.confidence == 0.0

    def test_indicators_deduplicated_in_order(self):
        results = [
            result("0" * 64, 10, ["No EXIF", "Low resolution image"]),
            result("f" * 64, 10, ["Low resolution image", "Blurry"]),
        ]

        aggregate = aggregate_image_results(results)

        assert aggregate.combined_indicators == ["No EXIF", "Low resolution image", "Blurry"]

    def test_order_independent(self):
        results = [
            result("0" * 64, 10, ["a"]),
            result("f" * 64, 40, ["b"]),
            result("0" * 63 + "1", 25, ["c"]),
        ]

        forward = aggregate_image_results(results)
        backward = aggregate_image_results(list(reversed(results)))

        assert forward.combined_fraud_score == backward.combined_fraud_score
        assert forward.overall_risk_level == backward.overall_risk_level
        assert sorted(forward.combined_indicators) == sorted(backward.combined_indicators)
        assert len(forward.internal_duplicates) == len(backward.internal_duplicates) == 1

    def test_score_clamped(self):
        results = [result("0" * 64, 100), result("0" * 64, 100)]

        assert aggregate_image_results(results).combined_fraud_score == 100


class TestInternalDuplicates:

    def test_missing_hash_never_pairs(self):
        assert find_internal_duplicates([None, None, "0" * 64]) == []

    def test_threshold_is_strict(self):
        """3 differing bits is not below the internal threshold of 3."""
        assert find_internal_duplicates(["0" * 64, "0" * 63 + "7"]) == []
        assert find_internal_duplicates(["0" * 64, "0" * 63 + "3"]) == [(0, 1)]

    def test_all_pairs_reported(self):
        assert find_internal_duplicates(["0" * 64] * 3) == [(0, 1), (0, 2), (1, 2)]


@pytest.mark.asyncio
async def test_same_photo_twice(photo_bytes, registry):
    """Uploading one photo twice is caught end to end."""
    aggregate = await analyze_multiple_images(
        [photo_bytes, photo_bytes],
        ClaimContext(claim_type="auto", policy_number="POL-1"),
        registry=registry,
    )

    assert aggregate.image_count == 2
    assert aggregate.internal_duplicates == [(0, 1)]
    assert "1 duplicate image pair detected in submission" in aggregate.combined_indicators
    # Both photos belong to the same claim, so neither counts as a cross-claim reuse
    assert all(r.duplicates == [] for r in aggregate.individual_results)


@pytest.mark.asyncio
async def test_corrupt_photo_in_batch(photo_bytes, registry):
    aggregate = await analyze_multiple_images([photo_bytes, b"broken"], registry=registry)

    assert aggregate.image_count == 2
    assert C.ANALYSIS_FAILED_INDICATOR in aggregate.combined_indicators
    assert aggregate.internal_duplicates == []
