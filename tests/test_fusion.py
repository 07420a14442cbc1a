"""
Tests for fraud score fusion.

Verifies that analyze_claim():
- Picks weights from the signals actually present
- Rounds the weighted score half up and keeps it within 0-100
- Orders indicators behavioral, then document, then image
"""

from datetime import date, timedelta

import pytest

from src.fraud.fusion import analyze_claim, fusion_weights, recommendation_for, risk_tier
from src.fraud.schema import (
    AggregateImageResult,
    DocumentValidationResult,
    Recommendation,
    RiskTier,
)
from src.fraud.scoring import clamp_score, round_half_up, weighted_score


def validation(score, indicators=()):
    return DocumentValidationResult(fraud_score=score, indicators=list(indicators))


def images(score, indicators=()):
    return AggregateImageResult(image_count=1, combined_fraud_score=score, combined_indicators=list(indicators))


@pytest.fixture
def short_form(make_submission):
    """Submission that triggers exactly the short-description rule (15 points)."""
    return make_submission(description="Dent on door.")


@pytest.fixture
def later(weekday):
    return weekday + timedelta(days=3)


@pytest.mark.parametrize("has_document,has_images", [
    (False, False),
    (True, False),
    (False, True),
    (True, True),
])
def test_weights_sum_to_one(has_document, has_images):
    weights = fusion_weights(has_document, has_images)

    assert sum(weights.values()) == pytest.approx(1.0)
    assert ("document_validation" in weights) is has_document
    assert ("image" in weights) is has_images


def test_text_only_same_day(make_submission, weekday):
    analysis = analyze_claim(make_submission(claim_amount=15_000), today=weekday)

    assert analysis.fraud_score == 20
    assert analysis.risk_level == RiskTier.LOW
    assert analysis.recommendation == Recommendation.AUTO_APPROVE
    assert analysis.breakdown.weights == {"text": 1.0}
    assert analysis.breakdown.document_validation_score is None
    assert analysis.breakdown.image_score is None


def test_text_and_document_rounds_half_up(short_form, later):
    """0.5 * 15 + 0.5 * 40 = 27.5 -> 28."""
    analysis = analyze_claim(short_form, document_validation=validation(40), today=later)

    assert analysis.fraud_score == 28
    assert analysis.breakdown.weights == {"text": 0.5, "document_validation": 0.5}


def test_text_and_images(short_form, later):
    """0.6 * 15 + 0.4 * 50 = 29."""
    analysis = analyze_claim(short_form, image_result=images(50), today=later)

    assert analysis.fraud_score == 29


def test_all_signals(short_form, later):
    """0.35 * 15 + 0.35 * 60 + 0.30 * 80 = 50.25 -> 50, MEDIUM."""
    analysis = analyze_claim(
        short_form,
        document_validation=validation(60),
        image_result=images(80),
        today=later,
    )

    assert analysis.fraud_score == 50
    assert analysis.risk_level == RiskTier.MEDIUM
    assert analysis.recommendation == Recommendation.ADDITIONAL_VERIFICATION


def test_indicator_order(short_form, later):
    analysis = analyze_claim(
        short_form,
        document_validation=validation(10, ["Policy number mismatch"]),
        image_result=images(10, ["No EXIF"]),
        today=later,
    )

    assert analysis.indicators == [
        "Insufficient incident description",
        "Policy number mismatch",
        "No EXIF",
    ]


def test_high_risk_everywhere(make_submission):
    """0.35 * 95 + 0.35 * 100 + 0.30 * 100 = 98.25 -> 98."""
    sunday = date(2024, 3, 17)
    submission = make_submission(incident_date=sunday, claim_amount=60_000, description="Total loss, stolen.")

    analysis = analyze_claim(submission, document_validation=validation(100), image_result=images(100), today=sunday)

    assert analysis.breakdown.text_score == 95
    assert analysis.fraud_score == 98
    assert analysis.risk_level == RiskTier.HIGH
    assert analysis.recommendation == Recommendation.MANUAL_REVIEW_REQUIRED


@pytest.mark.parametrize("document_score", [0, 30, 70, 100])
def test_score_within_bounds(short_form, later, document_score):
    analysis = analyze_claim(short_form, document_validation=validation(document_score), image_result=images(100), today=later)

    assert 0 <= analysis.fraud_score <= 100


def test_monotonic_in_document_score(short_form, later):
    scores = [
        analyze_claim(short_form, document_validation=validation(s), today=later).fraud_score
        for s in range(0, 101, 10)
    ]

    assert scores == sorted(scores)


@pytest.mark.parametrize("score,tier", [
    (0, RiskTier.LOW),
    (39, RiskTier.LOW),
    (40, RiskTier.MEDIUM),
    (69, RiskTier.MEDIUM),
    (70, RiskTier.HIGH),
    (100, RiskTier.HIGH),
])
def test_risk_tier(score, tier):
    assert risk_tier(score) == tier


def test_recommendation_for():
    assert recommendation_for(RiskTier.HIGH) == Recommendation.MANUAL_REVIEW_REQUIRED
    assert recommendation_for(RiskTier.LOW) == Recommendation.AUTO_APPROVE


def test_scoring_helpers():
    assert clamp_score(-5) == 0.0
    assert clamp_score(140) == 100.0
    assert round_half_up(32.5) == 33
    assert round_half_up(32.49) == 32
    assert round_half_up(0) == 0


def test_fusion_is_deterministic(short_form, later):
    kwargs = dict(document_validation=validation(35, ["a"]), image_result=images(45, ["b"]), today=later)

    assert analyze_claim(short_form, **kwargs) == analyze_claim(short_form, **kwargs)


# ============================================================================
# Exact half-up rounding
# ============================================================================


@pytest.mark.parametrize("document_score,image_score,expected", [
    (90, 0, 32),    # 0.35 * 90 = 31.5
    (30, 0, 11),    # 0.35 * 30 = 10.5
    (10, 5, 5),     # 3.5 + 1.5 = 5.0
])
def test_exact_half_rounds_up(make_submission, later, document_score, image_score, expected):
    analysis = analyze_claim(
        make_submission(),
        document_validation=validation(document_score),
        image_result=images(image_score),
        today=later,
    )

    assert analysis.breakdown.text_score == 0
    assert analysis.fraud_score == expected


def test_weighted_score_is_exact():
    assert weighted_score([(0, 0.35), (90, 0.35), (0, 0.30)]) == 31.5
    assert weighted_score([(15, 0.6), (50, 0.4)]) == 29.0


# ============================================================================
# Monotonicity in behavioral rules
# ============================================================================

CLEAN_DAY = date(2024, 3, 13)        # Wednesday
SUBMITTED = date(2024, 3, 20)        # a week later, also a Wednesday

RULE_VIOLATIONS = {
    "short_description": dict(description="Dent on door."),
    "weekend_incident": dict(incident_date=date(2024, 3, 16)),
    "same_day_submission": dict(incident_date=SUBMITTED),
    "round_amount": dict(claim_amount=5_000),
    "watch_list_keywords": dict(
        description="The car was stolen overnight and later found burned out; the insurer called it a total loss."
    ),
    "high_amount": dict(claim_amount=61_234),
}

SIGNAL_BRANCHES = {
    "text_only": dict(),
    "with_document": dict(document_validation=validation(40)),
    "with_images": dict(image_result=images(30)),
    "with_both": dict(document_validation=validation(40), image_result=images(30)),
}


@pytest.mark.parametrize("branch", sorted(SIGNAL_BRANCHES))
@pytest.mark.parametrize("violation", sorted(RULE_VIOLATIONS))
def test_rule_violation_never_lowers_score(make_submission, violation, branch):
    signals = SIGNAL_BRANCHES[branch]
    baseline = analyze_claim(make_submission(incident_date=CLEAN_DAY), today=SUBMITTED, **signals)
    violated = analyze_claim(
        make_submission(**{"incident_date": CLEAN_DAY, **RULE_VIOLATIONS[violation]}),
        today=SUBMITTED,
        **signals,
    )

    assert baseline.breakdown.text_score == 0
    assert violated.breakdown.text_score > 0
    assert violated.fraud_score >= baseline.fraud_score
