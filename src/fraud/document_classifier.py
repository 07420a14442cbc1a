"""
Keyword-vote document classifier.

A stand-in for a trained classifier: each document type has a fixed
vocabulary, and the type whose vocabulary appears most often in the text wins.
"""

import re
from typing import Dict, Tuple

from .constants import MIN_CLASSIFICATION_MATCHES
from .schema import DocumentType, DocumentTypeGuess

DOCUMENT_KEYWORDS: Dict[DocumentType, Tuple[str, ...]] = {
    DocumentType.POLICY: (
        "policy", "policyholder", "policy holder", "insured", "insurer", "premium",
        "coverage", "deductible", "effective date", "expiration date", "declarations",
        "endorsement", "liability", "underwriter",
    ),
    DocumentType.REPAIR_ESTIMATE: (
        "estimate", "repair", "parts", "labor", "labour", "body shop", "auto body",
        "vin", "paint", "bumper", "fender", "subtotal", "shop",
    ),
    DocumentType.MEDICAL_BILL: (
        "patient", "provider", "diagnosis", "cpt", "procedure", "physician", "hospital",
        "clinic", "date of service", "icd", "charges", "medical", "treatment",
    ),
    DocumentType.POLICE_REPORT: (
        "police", "officer", "badge", "incident report", "report number", "case number",
        "department", "precinct", "witness", "suspect", "citation", "arrest", "sheriff",
    ),
}


def _keyword_count(text: str, keywords: Tuple[str, ...]) -> int:
    """Number of distinct keywords present as whole words."""
    return sum(1 for kw in keywords if re.search(rf"\b{re.escape(kw)}\b", text))


def classify_document(text: str) -> DocumentTypeGuess:
    """
    Classify raw document text.

    The winner needs at least MIN_CLASSIFICATION_MATCHES distinct keywords;
    confidence is its share of all matches across types.
    """
    lowered = (text or "").lower()
    counts = {
        doc_type.value: _keyword_count(lowered, keywords)
        for doc_type, keywords in DOCUMENT_KEYWORDS.items()
    }
    total = sum(counts.values())

    best_type, best_count = max(counts.items(), key=lambda item: item[1])
    if best_count < MIN_CLASSIFICATION_MATCHES:
        return DocumentTypeGuess(type=DocumentType.UNKNOWN, confidence=0.0, keyword_counts=counts)

    return DocumentTypeGuess(
        type=DocumentType(best_type),
        confidence=round(best_count / total, 3),
        keyword_counts=counts,
    )
