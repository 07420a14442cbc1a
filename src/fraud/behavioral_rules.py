"""
Behavioral rules over the claim form.

Fixed heuristics evaluated directly on the submission, independent of any
document or photo. Each rule that fires adds its own indicator and a fixed
number of points; the raw total is not clamped here.
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from . import constants as C
from .schema import ClaimSubmission


class BehavioralReport(BaseModel):
    """Outcome of the behavioral rules for one submission."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(default=0, ge=0, description="Raw (unclamped) rule total")
    indicators: List[str] = Field(default_factory=list)


def is_round_amount(amount: float) -> bool:
    """
    True for amounts of at least ROUND_AMOUNT_UNIT with one significant digit.

    5000 and 20000 are round; 15000 and 5500 are not.
    """
    if amount < C.ROUND_AMOUNT_UNIT or not float(amount).is_integer():
        return False
    digits = str(int(amount)).rstrip("0")
    return len(digits) == 1


def matched_keywords(description: str) -> List[str]:
    """Watch-list phrases found in the description, in watch-list order."""
    text = (description or "").lower()
    return [keyword for keyword in C.HIGH_RISK_KEYWORDS if keyword in text]


def evaluate_behavioral_rules(
    submission: ClaimSubmission,
    today: Optional[date] = None,
) -> BehavioralReport:
    """
    Run every behavioral rule against a submission.

    Args:
        submission: The claim form
        today: Submission date (default: date.today())

    Returns:
        BehavioralReport with the raw score and one indicator per fired rule
    """
    today = today or date.today()
    indicators = []
    score = 0

    # ========================================================================
    # Amount
    # ========================================================================

    if submission.claim_amount > C.HIGH_CLAIM_AMOUNT:
        indicators.append("High claim amount detected")
        score += C.HIGH_AMOUNT_PENALTY

    # ========================================================================
    # Timing
    # ========================================================================

    if (today - submission.incident_date).days == 0:
        indicators.append("Claim submitted on same day as incident")
        score += C.SAME_DAY_PENALTY

    # ========================================================================
    # Description
    # ========================================================================

    if submission.description and len(submission.description) < C.MIN_DESCRIPTION_LENGTH:
        indicators.append("Insufficient incident description")
        score += C.SHORT_DESCRIPTION_PENALTY

    # Saturday=5, Sunday=6
    if submission.incident_date.weekday() >= 5:
        indicators.append("Incident occurred on weekend")
        score += C.WEEKEND_PENALTY

    if is_round_amount(submission.claim_amount):
        indicators.append("Claim amount is a round number")
        score += C.ROUND_AMOUNT_PENALTY

    keywords = matched_keywords(submission.description)
    if len(keywords) >= C.MIN_KEYWORD_HITS:
        indicators.append(f"Multiple high-risk keywords: {', '.join(keywords)}")
        score += C.KEYWORD_PENALTY

    return BehavioralReport(score=score, indicators=indicators)
