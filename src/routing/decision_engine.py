"""
Claim decision engine.

Turns a FraudAnalysis into the automated disposition of a claim:
- Status and confidence from fixed score bands
- Explanation text restating score, amount and indicators
- Next actions for whoever picks the claim up
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from ..fraud import constants as C
from ..fraud.schema import Decision, DecisionStatus, FraudAnalysis

logger = logging.getLogger(__name__)

STATUS_CONFIDENCE = {
    DecisionStatus.FLAGGED: 95,
    DecisionStatus.PENDING: 75,
    DecisionStatus.APPROVED: 90,
}


# =============================================================================
# Status
# =============================================================================


def decide_status(fraud_score: int) -> Tuple[DecisionStatus, int]:
    """
    Map a fraud score to (status, confidence).

    >= 70 FLAGGED, >= 40 PENDING, else APPROVED.
    """
    if fraud_score >= C.HIGH_RISK_SCORE:
        status = DecisionStatus.FLAGGED
    elif fraud_score >= C.MEDIUM_RISK_SCORE:
        status = DecisionStatus.PENDING
    else:
        status = DecisionStatus.APPROVED
    return status, STATUS_CONFIDENCE[status]


def get_next_actions(status: DecisionStatus) -> Tuple[List[str], str]:
    """
    Follow-up actions and estimated resolution for a status.

    Returns:
        Tuple of (actions, estimated_resolution)
    """
    if status == DecisionStatus.APPROVED:
        return [
            "Payment will be processed within 2-3 business days",
            "Confirmation email sent to claimant",
            "Case closed automatically",
        ], ""

    elif status == DecisionStatus.PENDING:
        return [
            "Claims adjuster will review within 24 hours",
            "May request additional documentation",
            "Claimant will be contacted if needed",
        ], "2-4 business days"

    else:  # FLAGGED
        return [
            "Senior fraud investigator assigned",
            "Document forensic analysis initiated",
            "Claimant interview may be scheduled",
            "Third-party verification requested",
        ], "7-14 business days"


# =============================================================================
# Explanation
# =============================================================================


def _format_amount(amount: float) -> str:
    return f"${amount:,.0f}" if float(amount).is_integer() else f"${amount:,.2f}"


def _bullets(items: List[str]) -> str:
    return "\n".join(f"• {item}" for item in items)


def generate_explanation(
    status: DecisionStatus,
    fraud_score: int,
    indicators: List[str],
    claim_amount: float,
) -> str:
    """Render the fixed explanation template for a status."""
    actions, resolution = get_next_actions(status)
    amount = _format_amount(claim_amount)

    if status == DecisionStatus.APPROVED:
        if indicators:
            observations = (
                f"**Minor Observations:**\n{_bullets(indicators)}\n\n"
                "These factors are noted but do not indicate fraudulent activity."
            )
        else:
            observations = "No fraud indicators detected. All verification checks passed successfully."
        lines = [
            "CLAIM APPROVED",
            "",
            f"Fraud Risk Score: {fraud_score}/100 (Low Risk)",
            f"Claim Amount: {amount}",
            "",
            "**Analysis:**",
            "This claim has passed all automated fraud detection checks. The provided documentation "
            "appears authentic, and the claim details are consistent with standard insurance practices.",
            "",
            observations,
            "",
            "**Next Steps:**",
            _bullets(actions),
        ]

    elif status == DecisionStatus.PENDING:
        lines = [
            "ADDITIONAL VERIFICATION REQUIRED",
            "",
            f"Fraud Risk Score: {fraud_score}/100 (Medium Risk)",
            f"Claim Amount: {amount}",
            "",
            "**Analysis:**",
            "This claim requires additional verification before approval. While not indicative of "
            "fraud, certain factors warrant human review to ensure accuracy.",
            "",
            "**Flagged Items:**",
            _bullets(indicators),
            "",
            "**Required Actions:**",
            _bullets(actions),
            "",
            f"**Estimated Resolution:** {resolution}",
        ]

    else:
        lines = [
            "CLAIM FLAGGED FOR FRAUD INVESTIGATION",
            "",
            f"Fraud Risk Score: {fraud_score}/100 (High Risk)",
            f"Claim Amount: {amount}",
            "",
            "**Critical Issues Detected:**",
            _bullets(indicators),
            "",
            "**Analysis:**",
            "This claim exhibits multiple red flags consistent with potentially fraudulent activity. "
            "Immediate manual investigation is required before any payment authorization.",
            "",
            "**Mandatory Actions:**",
            _bullets(actions),
            "",
            "**Legal Notice:**",
            "Fraudulent insurance claims are prosecuted under applicable laws. "
            "All claims are subject to thorough investigation.",
            "",
            f"**Estimated Resolution:** {resolution}",
        ]

    return "\n".join(lines)


# =============================================================================
# Main API
# =============================================================================


def make_decision(
    analysis: FraudAnalysis,
    claim_amount: float,
    processed_at: Optional[datetime] = None,
) -> Decision:
    """
    Produce the automated decision for a fraud analysis.

    Args:
        analysis: Output of analyze_claim
        claim_amount: Amount claimed, restated in the explanation
        processed_at: Decision timestamp (default: now, UTC)

    Returns:
        Decision
    """
    status, confidence = decide_status(analysis.fraud_score)
    logger.info(f"Decision: {status.value} (score {analysis.fraud_score}, confidence {confidence})")

    return Decision(
        status=status,
        explanation=generate_explanation(status, analysis.fraud_score, analysis.indicators, claim_amount),
        confidence=confidence,
        fraud_score=analysis.fraud_score,
        risk_level=analysis.risk_level,
        recommendation=analysis.recommendation,
        processed_at=processed_at or datetime.now(timezone.utc),
    )
