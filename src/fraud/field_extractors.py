"""
Table-driven structured field extraction.

Each document type has an ordered list of FieldRule entries. For every rule the
patterns are tried in order and the first one whose capture parses wins.
Documents of unknown type fall back to generic extraction of every date,
amount, name, address, phone number, email and reference number.

Dates are normalised to YYYY-MM-DD, amounts to float.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from .schema import DocumentType

# ============================================================================
# Value parsers
# ============================================================================

MONTHS = r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)[a-z]*\.?"

DATE = (
    r"(\d{4}[/-]\d{1,2}[/-]\d{1,2}"
    r"|\d{1,2}[/.-]\d{1,2}[/.-]\d{2,4}"
    rf"|{MONTHS}\s+\d{{1,2}},?\s+\d{{4}}"
    rf"|\d{{1,2}}\s+{MONTHS}\s+\d{{4}})"
)
AMOUNT = r"(\$?\s?\d[\d,]*(?:\.\d{1,2})?)"
NAME = r"([A-Z][a-zA-Z'\-]+(?:[ \t]+[A-Z][a-zA-Z'\-]*\.?)+)"

DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%m.%d.%Y",
    "%m/%d/%y",
    "%m-%d-%y",
    "%d/%m/%Y",
    "%B %d, %Y",
    "%B %d %Y",
    "%b %d, %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
)


def parse_date(value: str) -> Optional[str]:
    """Normalise a date string to YYYY-MM-DD, or None if unparseable."""
    if not value:
        return None
    text = re.sub(r"\s+", " ", value.strip()).replace(".", "") if re.search(r"[A-Za-z]", value) else value.strip()
    text = text.replace("Sept ", "Sep ")
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).strftime("%Y-%m-%d")
        except ValueError:
            continue
    return None


def parse_money(value: str) -> Optional[float]:
    """Parse '$12,500.00' style amounts."""
    cleaned = re.sub(r"[$,\s]", "", value or "")
    try:
        return float(cleaned)
    except ValueError:
        return None


def clean_text(value: str) -> Optional[str]:
    text = re.sub(r"[ \t]+", " ", (value or "").strip()).strip(" :-,")
    return text or None


def clean_identifier(value: str) -> Optional[str]:
    text = (value or "").strip().strip(".,;:")
    return text if len(text) >= 3 else None


# ============================================================================
# Rules
# ============================================================================


@dataclass(frozen=True)
class FieldRule:
    """Ordered regex patterns for one field; group 1 is passed to the parser."""
    field: str
    patterns: Tuple[str, ...]
    parser: Callable[[str], Any] = clean_text
    flags: int = re.IGNORECASE | re.MULTILINE
    multiple: bool = False
    unique: bool = True

    def apply(self, text: str) -> Any:
        """Return the parsed value of the first matching pattern, or None."""
        for pattern in self.patterns:
            regex = re.compile(pattern, self.flags)
            if self.multiple:
                values = [self.parser(m) for m in regex.findall(text)]
                values = [v for v in values if v is not None]
                if self.unique:
                    values = list(dict.fromkeys(values))
                if values:
                    return values
                continue
            for match in regex.finditer(text):
                value = self.parser(match.group(1))
                if value is not None:
                    return value
        return None


# Labels are case-insensitive; captured names must be capitalised
_NAME_FLAGS = re.MULTILINE

POLICY_RULES: List[FieldRule] = [
    FieldRule("policy_number", (
        r"policy\s*(?:number|no\b\.?|#)\s*:?\s*([A-Z0-9][A-Z0-9\-]{4,19})",
        r"\b([A-Z]{2,4}-?\d{6,10})\b",
    ), clean_identifier),
    FieldRule("policy_holder", (
        rf"\b(?i:named\s+insured|insured\s+name|policy\s*holder(?:\s+name)?|insured)\s*:?[ \t]*{NAME}",
        rf"(?i:name)\s*:[ \t]*{NAME}",
    ), clean_text, _NAME_FLAGS),
    FieldRule("insurer", (
        r"^[ \t]*(?:insurer|insurance\s+company|underwritten\s+by|carrier)\s*:?[ \t]*([^\n]+)$",
    )),
    FieldRule("effective_date", (
        rf"effective\s*(?:date)?\s*:?\s*{DATE}",
        rf"policy\s+period\s*:?\s*(?:from\s+)?{DATE}",
    ), parse_date),
    FieldRule("expiration_date", (
        rf"(?:expiration|expiry|expires)\s*(?:date)?\s*:?\s*{DATE}",
        rf"policy\s+period\s*:?\s*(?:from\s+)?\S+(?:\s+\d{{1,2}},?\s+\d{{4}})?\s*(?:-|to|through)\s*{DATE}",
    ), parse_date),
    FieldRule("coverage_amount", (
        rf"(?:coverage\s+amount|total\s+coverage|sum\s+insured|coverage\s+limit)\s*:?\s*{AMOUNT}",
        rf"^[ \t]*coverage\s*:?\s*{AMOUNT}",
    ), parse_money),
    FieldRule("deductible", (rf"deductible\s*:?\s*{AMOUNT}",), parse_money),
    FieldRule("premium", (rf"(?:annual\s+|total\s+)?premium\s*:?\s*{AMOUNT}",), parse_money),
]

# Peril-specific limits, most specific first
COVERAGE_LIMIT_RULES: List[FieldRule] = [
    FieldRule("per_occurrence", (rf"per\s+occurrence\s*(?:limit)?\s*:?\s*{AMOUNT}",), parse_money),
    FieldRule("comprehensive", (rf"comprehensive\s*(?:coverage|limit)?\s*:?\s*{AMOUNT}",), parse_money),
    FieldRule("collision", (rf"collision\s*(?:coverage|limit)?\s*:?\s*{AMOUNT}",), parse_money),
    FieldRule("dwelling", (rf"dwelling\s*(?:coverage|limit)?\s*:?\s*{AMOUNT}",), parse_money),
    FieldRule("personal_property", (rf"personal\s+property\s*(?:coverage|limit)?\s*:?\s*{AMOUNT}",), parse_money),
    FieldRule("liability", (rf"liability\s*(?:coverage|limit)?\s*:?\s*{AMOUNT}",), parse_money),
]

REPAIR_ESTIMATE_RULES: List[FieldRule] = [
    FieldRule("estimate_number", (
        r"estimate\s*(?:number|no\b\.?|#)\s*:?\s*([A-Z0-9][A-Z0-9\-]+)",
        r"(?:ro|work\s+order)\s*(?:number|no\b\.?|#)\s*:?\s*([A-Z0-9][A-Z0-9\-]+)",
    ), clean_identifier),
    FieldRule("shop_name", (
        r"^[ \t]*(?:body\s+shop|repair\s+facility|shop(?:\s+name)?)\s*:?[ \t]*([^\n]+)$",
    )),
    FieldRule("vin", (
        r"(?i:vin)\s*(?:#|(?i:number))?\s*:?\s*([A-HJ-NPR-Z0-9]{17})\b",
        r"\b([A-HJ-NPR-Z0-9]{17})\b",
    ), clean_identifier, re.MULTILINE),
    FieldRule("estimate_date", (
        rf"(?:estimate\s+)?date\s*:?\s*{DATE}",
    ), parse_date),
    FieldRule("parts_total", (rf"parts\s*(?:total)?\s*:?\s*{AMOUNT}",), parse_money),
    FieldRule("labor_total", (rf"labou?r\s*(?:total)?\s*:?\s*{AMOUNT}",), parse_money),
    FieldRule("total", (
        rf"^[ \t]*(?:grand\s+total|total\s+estimate|estimate\s+total|total\s+amount|total)\s*:?\s*{AMOUNT}",
    ), parse_money),
]

MEDICAL_BILL_RULES: List[FieldRule] = [
    FieldRule("patient", (
        rf"(?i:patient(?:\s+name)?)\s*:?[ \t]*{NAME}",
    ), clean_text, _NAME_FLAGS),
    FieldRule("provider", (
        r"^[ \t]*(?:provider|physician|facility|rendering\s+provider)(?:\s+name)?\s*:?[ \t]*([^\n]+)$",
    )),
    FieldRule("account_number", (
        r"account\s*(?:number|no\b\.?|#)\s*:?\s*([A-Z0-9][A-Z0-9\-]+)",
    ), clean_identifier),
    FieldRule("date_of_service", (
        rf"date\s+of\s+service\s*:?\s*{DATE}",
        rf"service\s+date\s*:?\s*{DATE}",
    ), parse_date),
    FieldRule("procedures", (
        r"\bCPT\s*(?:code)?\s*:?\s*(\d{5})\b",
        r"^[ \t]*(\d{5})\b",
    ), clean_identifier, multiple=True),
    FieldRule("charges", (r"(\$\s?\d[\d,]*(?:\.\d{2})?)",), parse_money, multiple=True, unique=False),
    FieldRule("total_charges", (
        rf"^[ \t]*(?:total\s+charges|total\s+due|amount\s+due|balance\s+due|total)\s*:?\s*{AMOUNT}",
    ), parse_money),
]

POLICE_REPORT_RULES: List[FieldRule] = [
    FieldRule("report_number", (
        r"(?:report|case|incident)\s*(?:number|no\b\.?|#)\s*:?\s*([A-Z0-9][A-Z0-9\-]+)",
    ), clean_identifier),
    FieldRule("officer", (
        r"^[ \t]*(?:reporting\s+officer|officer(?:\s+name)?)\s*:?[ \t]*([^\n]+)$",
    )),
    FieldRule("agency", (
        r"^[ \t]*(?:agency|department|police\s+department)\s*:?[ \t]*([^\n]+)$",
    )),
    FieldRule("incident_date", (
        rf"(?:incident|accident)\s+date\s*:?\s*{DATE}",
        rf"date\s+of\s+(?:incident|accident|occurrence)\s*:?\s*{DATE}",
    ), parse_date),
    FieldRule("location", (
        r"^[ \t]*(?:location|incident\s+location|address\s+of\s+incident)\s*:?[ \t]*([^\n]+)$",
    )),
]

DATE_RULE = FieldRule("dates", (DATE,), parse_date, multiple=True)

GENERIC_RULES: List[FieldRule] = [
    DATE_RULE,
    FieldRule("amounts", (r"(\$\s?\d[\d,]*(?:\.\d{2})?)",), parse_money, multiple=True),
    FieldRule("names", (
        rf"(?:Mr|Mrs|Ms|Dr)\.?[ \t]+{NAME}",
        rf"(?i:name)\s*:[ \t]*{NAME}",
    ), clean_text, re.MULTILINE, multiple=True),
    FieldRule("addresses", (
        r"(\d{1,5}\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\s+"
        r"(?:Street|St|Avenue|Ave|Road|Rd|Boulevard|Blvd|Lane|Ln|Drive|Dr|Court|Ct|Way)\b\.?)",
    ), clean_text, re.MULTILINE, multiple=True),
    FieldRule("phones", (r"(\(?\b\d{3}\)?[\s.-]?\d{3}[\s.-]\d{4}\b)",), clean_text, multiple=True),
    FieldRule("emails", (r"([\w.+-]+@[\w-]+(?:\.[\w-]+)+)",), clean_text, multiple=True),
    FieldRule("reference_numbers", (r"\b([A-Z]{2,4}-?\d{5,12})\b",), clean_identifier, re.MULTILINE, multiple=True),
]

FIELD_RULES: Dict[DocumentType, List[FieldRule]] = {
    DocumentType.POLICY: POLICY_RULES,
    DocumentType.REPAIR_ESTIMATE: REPAIR_ESTIMATE_RULES,
    DocumentType.MEDICAL_BILL: MEDICAL_BILL_RULES,
    DocumentType.POLICE_REPORT: POLICE_REPORT_RULES,
    DocumentType.UNKNOWN: GENERIC_RULES,
}

# Fields whose absence makes a document of that type look incomplete
REQUIRED_FIELDS: Dict[DocumentType, Tuple[str, ...]] = {
    DocumentType.POLICY: ("policy_number", "policy_holder", "effective_date", "expiration_date"),
    DocumentType.REPAIR_ESTIMATE: ("shop_name", "estimate_date", "total"),
    DocumentType.MEDICAL_BILL: ("patient", "provider", "date_of_service", "total_charges"),
    DocumentType.POLICE_REPORT: ("report_number", "officer", "incident_date"),
    DocumentType.UNKNOWN: (),
}


# ============================================================================
# Extraction
# ============================================================================


def extract_structured_fields(text: str, doc_type: DocumentType) -> Dict[str, Any]:
    """
    Apply the rule table for doc_type.

    Returns:
        Dict of field name -> parsed value, only for fields that were found
    """
    data: Dict[str, Any] = {}
    for rule in FIELD_RULES[doc_type]:
        value = rule.apply(text)
        if value is not None:
            data[rule.field] = value

    if doc_type == DocumentType.POLICY:
        limits = {}
        for rule in COVERAGE_LIMIT_RULES:
            value = rule.apply(text)
            if value is not None:
                limits[rule.field] = value
        if limits:
            data["coverage_limits"] = limits

    return data


def expected_fields(doc_type: DocumentType) -> List[str]:
    """Every field the rule table for doc_type can produce."""
    names = [rule.field for rule in FIELD_RULES[doc_type]]
    if doc_type == DocumentType.POLICY:
        names.append("coverage_limits")
    return names


def field_completeness(data: Dict[str, Any], doc_type: DocumentType) -> float:
    """Fraction of expected fields that were extracted non-empty."""
    fields = expected_fields(doc_type)
    if not fields:
        return 0.0
    present = sum(1 for name in fields if data.get(name) not in (None, "", [], {}))
    return round(present / len(fields), 3)


def missing_required_fields(data: Dict[str, Any], doc_type: DocumentType) -> List[str]:
    return [name for name in REQUIRED_FIELDS[doc_type] if data.get(name) in (None, "", [], {})]


# ============================================================================
# Tables
# ============================================================================

_COLUMN_SPLIT = re.compile(r"\t+|[ ]{3,}|\s*\|\s*")


def _split_columns(line: str) -> List[str]:
    stripped = line.strip().strip("|")
    return [cell.strip() for cell in _COLUMN_SPLIT.split(stripped) if cell.strip()]


def extract_tables(text: str) -> List[List[List[str]]]:
    """
    Group consecutive multi-column lines into tables.

    Columns are separated by tabs, three or more spaces or pipes. Any line with
    fewer than two columns (including blank lines) closes the current table;
    single-row groups are discarded.
    """
    tables: List[List[List[str]]] = []
    current: List[List[str]] = []

    def close():
        if len(current) >= 2:
            tables.append(list(current))
        current.clear()

    for line in (text or "").splitlines():
        cells = _split_columns(line)
        if len(cells) >= 2:
            if all(set(cell) <= set("-:=+") for cell in cells):
                continue  # markdown-style separator row
            current.append(cells)
        else:
            close()
    close()
    return tables


# ============================================================================
# Shared helpers
# ============================================================================


def find_all_dates(text: str) -> List[str]:
    """Every parseable date in the text, ISO formatted, in order of appearance."""
    return DATE_RULE.apply(text) or []
