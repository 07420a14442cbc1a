"""
Tests for document authenticity heuristics.
"""

from datetime import date

from src.fraud import constants as C
from src.fraud.authenticity import assess_authenticity
from src.fraud.field_extractors import extract_structured_fields
from src.fraud.schema import DocumentType

from conftest import AFTER_POLICY, POLICY_TEXT


def policy_fields():
    return extract_structured_fields(POLICY_TEXT, DocumentType.POLICY)


def test_clean_policy():
    result = assess_authenticity(POLICY_TEXT, DocumentType.POLICY, policy_fields(), AFTER_POLICY)

    assert result.confidence == 100
    assert result.is_authentic is True
    assert result.flags == []


def test_in_force_policy_expiration_is_not_future():
    """A policy read mid-term ends in the future; that alone is not suspicious."""
    result = assess_authenticity(POLICY_TEXT, DocumentType.POLICY, policy_fields(), date(2024, 6, 1))

    assert result.confidence == 100
    assert result.flags == []


def test_future_dates():
    """A signature dated after the reference date is flagged."""
    text = POLICY_TEXT + "Signed: 08/15/2024\n"
    fields = extract_structured_fields(text, DocumentType.POLICY)

    result = assess_authenticity(text, DocumentType.POLICY, fields, date(2024, 6, 1))

    assert result.confidence == 100 - C.FUTURE_DATE_PENALTY
    assert result.flags == ["Document contains future dates"]
    assert result.is_authentic is True


def test_policy_period_end_is_not_future():
    text = POLICY_TEXT.replace(
        "Effective Date: 01/01/2024\nExpiration Date: 12/31/2024",
        "Policy Period: 01/01/2026 to 01/01/2027",
    )
    fields = extract_structured_fields(text, DocumentType.POLICY)

    result = assess_authenticity(text, DocumentType.POLICY, fields, date(2026, 10, 19))

    assert fields["expiration_date"] == "2027-01-01"
    assert result.flags == []


def test_placeholder_text():
    result = assess_authenticity("This is a sample policy for testing purposes only and nothing more")

    assert result.confidence == 70
    assert result.flags == ["Placeholder or sample text present"]


def test_missing_required_fields():
    result = assess_authenticity("Policy text with nothing extractable", DocumentType.POLICY, {}, AFTER_POLICY)

    assert result.flags == [
        "Missing expected fields: policy_number, policy_holder, effective_date, expiration_date"
    ]
    assert result.confidence == 100 - C.MISSING_FIELDS_PENALTY


def test_date_span_and_era_mix():
    text = "Issued 01/02/1950 and renewed 01/02/2020"
    result = assess_authenticity(text, reference_date=AFTER_POLICY)

    assert "Dates span more than 50 years" in result.flags
    assert "Dates mix 19xx and 20xx eras" in result.flags
    assert result.confidence == 100 - C.DATE_SPAN_PENALTY - C.ERA_MIX_PENALTY


def test_mixed_currencies():
    result = assess_authenticity("Premium $1,200 payable as EUR 1100 or GBP 950")

    assert result.flags == ["Mixed currency notations"]


def test_garbled_scan():
    text = "a # b % c ! d ? e * f & g ^ h ~ i"
    result = assess_authenticity(text)

    assert "Poor scan quality - many non-alphanumeric characters" in result.flags
    assert "Poor scan quality - many single-character tokens" in result.flags


def test_forgery_threshold():
    """Enough penalties drop the verdict to not authentic."""
    text = "SAMPLE specimen " + "claim " * 30 + "$5 EUR 5 issued 01/02/1950 renewed 01/02/2999"
    result = assess_authenticity(text, DocumentType.POLICY, {}, AFTER_POLICY)

    assert result.is_authentic is False
    assert result.confidence <= C.AUTHENTICITY_THRESHOLD


def test_confidence_never_negative():
    text = "sample " * 30 + "$1 € 1 " + "# " * 40 + "01/02/1900 01/02/2999"
    result = assess_authenticity(text, DocumentType.POLICY, {}, AFTER_POLICY)

    assert result.confidence >= 0
