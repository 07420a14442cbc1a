"""
Document authenticity heuristics.

Starts from 100 and subtracts a fixed penalty per suspicious trait of the text
or its layout. A document is considered authentic while the result stays
above AUTHENTICITY_THRESHOLD.
"""

import re
from collections import Counter
from datetime import date
from typing import Any, Dict, List, Optional

from . import constants as C
from .field_extractors import REQUIRED_FIELDS, find_all_dates, missing_required_fields
from .schema import AuthenticityAssessment, DocumentType

PLACEHOLDER_PATTERN = re.compile(
    r"\b(?:sample|specimen|placeholder|lorem\s+ipsum|dummy|test\s+document|not\s+a\s+real|x{4,})\b",
    re.IGNORECASE,
)

CURRENCY_MARKERS = {
    "$": "USD", "usd": "USD",
    "€": "EUR", "eur": "EUR",
    "£": "GBP", "gbp": "GBP",
    "¥": "JPY", "jpy": "JPY",
}
CURRENCY_PATTERN = re.compile(r"[$€£¥]|\b(?:usd|eur|gbp|jpy)\b", re.IGNORECASE)


def _inconsistent_formatting(lines: List[str]) -> bool:
    """Mixed all-caps and mixed-case blocks, or too many indentation levels."""
    text_lines = [line for line in lines if len(re.findall(r"[A-Za-z]", line)) >= 4]
    if len(text_lines) >= 5:
        caps = sum(1 for line in text_lines if line.upper() == line)
        ratio = caps / len(text_lines)
        if 0.3 < ratio < 0.7:
            return True

    indents = {len(line) - len(line.lstrip(" \t")) for line in lines if line.strip()}
    return len(indents) > C.MAX_INDENT_LEVELS


def _excessive_repetition(words: List[str]) -> bool:
    if len(words) < C.REPETITION_MIN_TOKENS:
        return False
    _, top = Counter(words).most_common(1)[0]
    return top / len(words) > C.REPETITION_RATIO


def _as_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)) if value else None
    except ValueError:
        return None


def assess_authenticity(
    text: str,
    doc_type: DocumentType = DocumentType.UNKNOWN,
    structured_data: Optional[Dict[str, Any]] = None,
    reference_date: Optional[date] = None,
) -> AuthenticityAssessment:
    """
    Score how genuine a document's text looks.

    Args:
        text: Raw extracted text
        doc_type: Classified document type (selects required fields)
        structured_data: Fields already extracted for doc_type
        reference_date: "Today" for the future-date check (default: date.today())

    Returns:
        AuthenticityAssessment with confidence, verdict and one flag per penalty
    """
    text = text or ""
    today = reference_date or date.today()
    confidence = 100
    flags: List[str] = []

    def penalize(flag: str, points: int):
        nonlocal confidence
        flags.append(flag)
        confidence -= points

    lines = text.splitlines()
    if _inconsistent_formatting(lines):
        penalize("Inconsistent text formatting", C.FORMATTING_PENALTY)

    structured_data = structured_data or {}
    dates = [date.fromisoformat(d) for d in find_all_dates(text)]
    if dates:
        # An in-force policy legitimately ends in the future
        expiration = _as_date(structured_data.get("expiration_date"))
        if any(d > today and d != expiration for d in dates):
            penalize("Document contains future dates", C.FUTURE_DATE_PENALTY)
        if (max(dates) - min(dates)).days > C.DATE_SPAN_YEARS * 365:
            penalize(f"Dates span more than {C.DATE_SPAN_YEARS} years", C.DATE_SPAN_PENALTY)
        centuries = {d.year // 100 for d in dates}
        if 19 in centuries and 20 in centuries:
            penalize("Dates mix 19xx and 20xx eras", C.ERA_MIX_PENALTY)

    missing = missing_required_fields(structured_data, doc_type)
    required = REQUIRED_FIELDS[doc_type]
    if required and len(missing) > len(required) / 2:
        penalize(f"Missing expected fields: {', '.join(missing)}", C.MISSING_FIELDS_PENALTY)

    if PLACEHOLDER_PATTERN.search(text):
        penalize("Placeholder or sample text present", C.PLACEHOLDER_PENALTY)

    words = [w for w in re.findall(r"[a-z]+", text.lower()) if len(w) >= 3]
    if _excessive_repetition(words):
        penalize("Excessive word repetition", C.REPETITION_PENALTY)

    currencies = {CURRENCY_MARKERS[m.lower()] for m in CURRENCY_PATTERN.findall(text)}
    if len(currencies) > 1:
        penalize("Mixed currency notations", C.MIXED_CURRENCY_PENALTY)

    visible = re.sub(r"\s", "", text)
    if visible:
        non_alnum = sum(1 for ch in visible if not ch.isalnum())
        if non_alnum / len(visible) > C.NON_ALNUM_RATIO:
            penalize("Poor scan quality - many non-alphanumeric characters", C.NON_ALNUM_PENALTY)

    tokens = text.split()
    if len(tokens) >= 10:
        single = sum(1 for token in tokens if len(token) == 1)
        if single / len(tokens) > C.SINGLE_CHAR_RATIO:
            penalize("Poor scan quality - many single-character tokens", C.SINGLE_CHAR_PENALTY)

    confidence = max(0, confidence)
    return AuthenticityAssessment(
        confidence=float(confidence),
        is_authentic=confidence > C.AUTHENTICITY_THRESHOLD,
        flags=flags,
    )
