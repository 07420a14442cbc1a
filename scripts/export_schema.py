#!/usr/bin/env python3
"""
Export JSON Schemas for the claim screening models.

Writes the submission schema (what callers send) and the assessment schema
(what the pipeline returns), then validates example submissions.
"""

import json
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pydantic import ValidationError

from src.fraud.behavioral_rules import evaluate_behavioral_rules
from src.fraud.schema import ClaimAssessment, ClaimSubmission

SCHEMAS = {
    "claim_submission_schema.json": ClaimSubmission,
    "claim_assessment_schema.json": ClaimAssessment,
}


def export_json_schemas(output_dir: str = "data") -> dict:
    """Export a JSON Schema file per model."""
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    exported = {}
    for filename, model in SCHEMAS.items():
        schema = model.model_json_schema()
        output_file = output_path / filename
        with open(output_file, "w", encoding="utf-8") as f:
            json.dump(schema, f, indent=2, ensure_ascii=False)

        print(f"✓ JSON Schema exported to: {output_file}")
        print(f"  Title: {schema['title']}")
        print(f"  Properties: {len(schema['properties'])} top-level fields")
        exported[filename] = schema
    return exported


def validate_example_submissions(examples_dir: str = "data/examples"):
    """Validate example submission JSON files against the schema."""
    example_files = sorted(Path(examples_dir).glob("submission_*.json"))

    if not example_files:
        print(f"⚠ No example submission files found in {examples_dir}/")
        return

    print(f"\n{'='*60}")
    print("Validating Example Submissions")
    print('='*60)

    valid_count = 0
    invalid_count = 0

    for example_file in example_files:
        print(f"\n📄 {example_file.name}")
        try:
            with open(example_file, "r", encoding="utf-8") as f:
                submission = ClaimSubmission.model_validate(json.load(f))

            report = evaluate_behavioral_rules(submission)
            print(f"  ✓ Valid")
            print(f"    Policy: {submission.policy_number}")
            print(f"    Claimant: {submission.claimant_name}")
            print(f"    Claim Type: {submission.claim_type.value}")
            print(f"    Behavioral Indicators: {len(report.indicators)}")

            valid_count += 1

        except (OSError, ValueError, ValidationError) as e:
            print(f"  ✗ Invalid: {e}")
            invalid_count += 1

    print(f"\n{'='*60}")
    print(f"Results: {valid_count} valid, {invalid_count} invalid")
    print('='*60)


def main():
    """Main entry point."""
    print("="*60)
    print("Claim Screening - JSON Schema Export")
    print("="*60)

    export_json_schemas()
    validate_example_submissions()


if __name__ == "__main__":
    main()
