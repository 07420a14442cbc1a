"""
Tests for the screening CLI and the bundled example submissions.
"""

import json
from pathlib import Path

import pytest

from src.fraud.cli import main, parse_args
from src.fraud.schema import ClaimSubmission

EXAMPLES_DIR = Path(__file__).parent.parent / "data" / "examples"

BASE_ARGS = [
    "--policy-number", "POL-123456",
    "--claimant-name", "Jane Doe",
    "--claim-type", "auto",
    "--incident-date", "2024-03-13",
    "--amount", "8750",
]


def test_parse_args_defaults():
    args = parse_args(BASE_ARGS)

    assert args.incident_date.isoformat() == "2024-03-13"
    assert args.amount == 8750.0
    assert args.images == []
    assert args.document is None
    assert args.description == ""


def test_description_sources_are_exclusive():
    with pytest.raises(SystemExit):
        parse_args(BASE_ARGS + ["--description", "x", "--description-file", "y.txt"])


def test_writes_assessment(tmp_path):
    output = tmp_path / "out" / "assessment.json"

    main(BASE_ARGS + [
        "--description", "Rear-ended at a red light; rear bumper and trunk lid need replacing.",
        "--today", "2024-03-13",
        "--output", str(output),
        "--pretty",
    ])

    assessment = json.loads(output.read_text(encoding="utf-8"))
    assert assessment["fraud_analysis"]["fraud_score"] == 20
    assert assessment["decision"]["status"] == "APPROVED"
    assert assessment["submission"]["policy_number"] == "POL-123456"


def test_description_file(tmp_path, capsys):
    description = tmp_path / "claim.txt"
    description.write_text("Short.\n", encoding="utf-8")

    main(BASE_ARGS + ["--description-file", str(description), "--today", "2024-03-20"])

    assessment = json.loads(capsys.readouterr().out)
    assert assessment["submission"]["description"] == "Short."
    assert assessment["fraud_analysis"]["indicators"] == ["Insufficient incident description"]


def test_missing_file_exits_nonzero(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        main(BASE_ARGS + ["--document", str(tmp_path / "missing.pdf")])

    assert excinfo.value.code == 1


@pytest.mark.parametrize("path", sorted(EXAMPLES_DIR.glob("submission_*.json")), ids=lambda p: p.stem)
def test_example_submissions_validate(path):
    with open(path, encoding="utf-8") as f:
        submission = ClaimSubmission.model_validate(json.load(f))

    assert submission.policy_number
    assert submission.claim_amount >= 0
