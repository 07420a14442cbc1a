"""
Document validation.

Cross-checks the fields OCR pulled out of the uploaded policy document against
what the claimant typed into the claim form. Every comparison is scored on its
own; probable matches (likely OCR noise, nicknames) only raise warnings.
"""

import logging
import re
from datetime import date
from typing import Any, Dict, Optional, Tuple, Union

from rapidfuzz.distance import Levenshtein

from . import constants as C
from .schema import (
    ClaimSubmission,
    DocumentType,
    DocumentValidationResult,
    ExtractedDocument,
    FieldCheck,
    MatchStatus,
    QuickValidationResult,
)

logger = logging.getLogger(__name__)

# Most specific limit first
COVERAGE_PREFERENCE: Tuple[Tuple[str, str], ...] = (
    ("per_occurrence", "per occurrence"),
    ("comprehensive", "comprehensive"),
    ("collision", "collision"),
    ("dwelling", "dwelling"),
    ("personal_property", "personal property"),
)


# ============================================================================
# Normalisers
# ============================================================================


def string_similarity(a: Optional[str], b: Optional[str]) -> float:
    """Case-insensitive normalised Levenshtein similarity in [0, 1]."""
    if not a or not b:
        return 0.0
    s1, s2 = a.lower().strip(), b.lower().strip()
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0
    return float(Levenshtein.normalized_similarity(s1, s2))


def normalize_policy_number(policy_number: Optional[Any]) -> str:
    """Drop whitespace, dashes, underscores and dots; uppercase."""
    if not policy_number:
        return ""
    return re.sub(r"[\s\-_.]", "", str(policy_number)).upper()


def normalize_name(name: Optional[str]) -> str:
    """Lowercase, collapse whitespace, drop punctuation and generational suffixes."""
    if not name:
        return ""
    text = re.sub(r"\s+", " ", name.lower().strip())
    text = re.sub(r"[.,]", "", text)
    text = re.sub(r"\s*\b(?:jr|sr|ii|iii)$", "", text)
    return text.strip()


def parse_amount(amount: Union[str, float, int, None]) -> float:
    """Parse a currency amount; unparseable input is 0."""
    if isinstance(amount, (int, float)):
        return float(amount)
    if not amount:
        return 0.0
    cleaned = re.sub(r"[$,\s]", "", str(amount))
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def _money(amount: float) -> str:
    return f"${amount:,.0f}" if float(amount).is_integer() else f"${amount:,.2f}"


def _parse_iso(value: Any) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        logger.debug(f"Ignoring unparseable policy date: {value!r}")
        return None


def select_coverage(structured: Dict[str, Any]) -> Tuple[float, str]:
    """Most specific coverage figure available, with its label. (0, '') if none."""
    limits = structured.get("coverage_limits") or {}
    for key, label in COVERAGE_PREFERENCE:
        amount = parse_amount(limits.get(key))
        if amount > 0:
            return amount, label

    amount = parse_amount(structured.get("coverage_amount"))
    if amount > 0:
        return amount, "total"
    return 0.0, ""


# ============================================================================
# Validation
# ============================================================================


class _Tally:
    """Running score, indicators and warnings for one validation."""

    def __init__(self):
        self.score = 0
        self.indicators = []
        self.warnings = []
        self.is_valid = True

    def penalize(self, indicator: str, points: int, invalidates: bool = False):
        self.score += points
        self.indicators.append(indicator)
        if invalidates:
            self.is_valid = False


def _check_policy_number(extracted: Optional[str], submitted: str, tally: _Tally) -> FieldCheck:
    if not extracted:
        tally.penalize("No policy number found in uploaded document", C.POLICY_NOT_FOUND_PENALTY)
        return FieldCheck(status=MatchStatus.NOT_FOUND, submitted=submitted)

    normalized_extracted = normalize_policy_number(extracted)
    normalized_submitted = normalize_policy_number(submitted)
    if normalized_extracted == normalized_submitted:
        return FieldCheck(status=MatchStatus.MATCH, extracted=extracted, submitted=submitted, similarity=1.0)

    similarity = string_similarity(normalized_extracted, normalized_submitted)
    if similarity >= C.POLICY_PROBABLE_SIMILARITY:
        tally.warnings.append(
            f"Policy number close match ({round(similarity * 100)}% similar) - possible OCR error"
        )
        return FieldCheck(
            status=MatchStatus.PROBABLE_MATCH, extracted=extracted, submitted=submitted, similarity=similarity
        )

    tally.penalize(
        f'Policy number mismatch: document shows "{extracted}", form submitted "{submitted}"',
        C.POLICY_MISMATCH_PENALTY,
        invalidates=True,
    )
    return FieldCheck(status=MatchStatus.MISMATCH, extracted=extracted, submitted=submitted, similarity=similarity)


def _check_claimant_name(extracted: Optional[str], submitted: str, tally: _Tally) -> FieldCheck:
    if not extracted:
        tally.warnings.append("Could not extract policy holder name from document")
        return FieldCheck(status=MatchStatus.NOT_FOUND, submitted=submitted)

    similarity = string_similarity(normalize_name(extracted), normalize_name(submitted))
    if similarity >= C.NAME_MATCH_SIMILARITY:
        status = MatchStatus.MATCH
    elif similarity >= C.NAME_PROBABLE_SIMILARITY:
        status = MatchStatus.PROBABLE_MATCH
        tally.warnings.append(f'Name similarity {round(similarity * 100)}%: "{extracted}" vs "{submitted}"')
    else:
        status = MatchStatus.MISMATCH
        tally.penalize(
            f'Name mismatch: document shows "{extracted}", claim filed by "{submitted}"',
            C.NAME_MISMATCH_PENALTY,
            invalidates=True,
        )
    return FieldCheck(status=status, extracted=extracted, submitted=submitted, similarity=similarity)


def _check_coverage(structured: Dict[str, Any], claim_amount: float, tally: _Tally) -> FieldCheck:
    coverage, label = select_coverage(structured)
    submitted = f"{claim_amount:.2f}"

    if coverage <= 0:
        tally.warnings.append("Could not extract coverage amount from document")
        return FieldCheck(status=MatchStatus.NOT_FOUND, submitted=submitted)

    extracted = f"{coverage:.2f}"
    if claim_amount > coverage:
        tally.penalize(
            f"Claim amount ({_money(claim_amount)}) exceeds {label} coverage limit ({_money(coverage)})",
            C.COVERAGE_EXCEEDED_PENALTY,
            invalidates=True,
        )
        status = MatchStatus.EXCEEDS_COVERAGE
    elif claim_amount > coverage * C.COVERAGE_NEAR_LIMIT_RATIO:
        tally.warnings.append(
            f"Claim amount ({_money(claim_amount)}) is very close to coverage limit ({_money(coverage)})"
        )
        status = MatchStatus.NEAR_LIMIT
    else:
        status = MatchStatus.WITHIN_COVERAGE
    return FieldCheck(status=status, extracted=extracted, submitted=submitted, detail=label)


def _check_policy_dates(structured: Dict[str, Any], incident: date, tally: _Tally) -> Optional[FieldCheck]:
    effective = _parse_iso(structured.get("effective_date"))
    expiration = _parse_iso(structured.get("expiration_date"))
    if effective is None and expiration is None:
        return None

    window = f"{effective or '?'} to {expiration or '?'}"
    status = MatchStatus.VALID
    if effective and incident < effective:
        tally.penalize(
            f"Incident date ({incident.isoformat()}) is before policy effective date ({effective.isoformat()})",
            C.BEFORE_EFFECTIVE_PENALTY,
            invalidates=True,
        )
        status = MatchStatus.INCIDENT_BEFORE_EFFECTIVE
    if expiration and incident > expiration:
        tally.penalize(
            f"Incident date ({incident.isoformat()}) is after policy expiration ({expiration.isoformat()})",
            C.AFTER_EXPIRATION_PENALTY,
            invalidates=True,
        )
        status = MatchStatus.INCIDENT_AFTER_EXPIRATION
    return FieldCheck(status=status, extracted=window, submitted=incident.isoformat())


def _has_usable_data(extracted: Optional[ExtractedDocument]) -> bool:
    if extracted is None or extracted.error:
        return False
    return not (extracted.extraction_limited and not extracted.raw_text.strip())


def validate_document_data(
    extracted: Optional[ExtractedDocument],
    form: ClaimSubmission,
) -> DocumentValidationResult:
    """
    Validate OCR-extracted document data against the claim form.

    Args:
        extracted: Output of extract_from_document (None when extraction never ran)
        form: The claimant's submission

    Returns:
        DocumentValidationResult; is_valid is False only on mismatch, coverage
        exceeded, incident outside the policy window or failed authenticity
    """
    if not _has_usable_data(extracted):
        reason = extracted.error if extracted is not None and extracted.error else "no text extracted"
        logger.warning(f"Skipping document validation: {reason}")
        return DocumentValidationResult(
            warnings=["Document OCR processing failed or returned no data"],
        )

    structured = extracted.structured_data
    tally = _Tally()

    policy_check = _check_policy_number(structured.get("policy_number"), form.policy_number, tally)
    name_check = _check_claimant_name(
        structured.get("policy_holder") or structured.get("insured_name"), form.claimant_name, tally
    )
    coverage_check = _check_coverage(structured, form.claim_amount, tally)
    dates_check = _check_policy_dates(structured, form.incident_date, tally)

    authenticity = extracted.authenticity
    if not authenticity.is_authentic:
        tally.penalize(
            "Document authenticity check failed - possible forgery",
            C.FORGERY_PENALTY,
            invalidates=True,
        )
    elif authenticity.flags:
        tally.warnings.append(f"Document has suspicious elements: {', '.join(authenticity.flags)}")

    doc_type = extracted.document_type
    if doc_type.type != DocumentType.POLICY and doc_type.confidence > C.DOCUMENT_TYPE_CONFIDENCE:
        tally.score += C.DOCUMENT_TYPE_PENALTY
        tally.warnings.append(
            f'Uploaded document appears to be a "{doc_type.type.value}" rather than a policy document'
        )

    if extracted.ocr_confidence < C.LOW_OCR_CONFIDENCE:
        tally.warnings.append(
            f"Low OCR confidence ({extracted.ocr_confidence:.0f}%) - extracted data may be unreliable"
        )

    result = DocumentValidationResult(
        policy_number=policy_check,
        claimant_name=name_check,
        coverage=coverage_check,
        policy_dates=dates_check,
        authenticity=authenticity,
        document_type=doc_type,
        ocr_confidence=extracted.ocr_confidence,
        fraud_score=float(min(max(tally.score, 0), 100)),
        indicators=tally.indicators,
        warnings=tally.warnings,
        is_valid=tally.is_valid,
    )
    logger.info(
        f"Document validation: score={result.fraud_score}, valid={result.is_valid}, "
        f"indicators={len(result.indicators)}, warnings={len(result.warnings)}"
    )
    return result


def quick_validation(
    extracted: Optional[ExtractedDocument],
    form: ClaimSubmission,
) -> QuickValidationResult:
    """Check only the policy number (exact after normalisation) and name (>= 0.7)."""
    structured = extracted.structured_data if extracted is not None else {}

    policy_match = bool(structured.get("policy_number")) and (
        normalize_policy_number(structured.get("policy_number")) == normalize_policy_number(form.policy_number)
    )
    similarity = string_similarity(
        normalize_name(structured.get("policy_holder")),
        normalize_name(form.claimant_name),
    )
    name_match = similarity >= C.NAME_PROBABLE_SIMILARITY

    return QuickValidationResult(
        policy_number_match=policy_match,
        name_match=name_match,
        name_similarity=round(similarity, 3),
        has_red_flags=not policy_match or not name_match,
    )
