#!/usr/bin/env python3
"""
CLI for screening insurance claims.

Usage:
    python -m src.fraud.cli --policy-number POL-123456 --claimant-name "Jane Doe" \\
        --claim-type auto --incident-date 2024-01-15 --amount 12000 \\
        --description "Rear-ended at a stop light" --document policy.pdf --images front.jpg
"""

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

from .pipeline import ClaimAnalysisPipeline
from .schema import ClaimSubmission, ClaimType
from ..storage.hash_registry import get_hash_registry
from ..utils.config import get_settings


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else getattr(logging, get_settings().log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def read_bytes(path: str) -> bytes:
    """Read a binary file."""
    with open(path, 'rb') as f:
        return f.read()


def read_text_file(path: str) -> str:
    """Read text from file."""
    with open(path, 'r', encoding='utf-8') as f:
        return f.read().strip()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Screen an insurance claim for fraud indicators',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Form fields only (behavioral rules)
  python -m src.fraud.cli --policy-number POL-123456 --claimant-name "Jane Doe" \\
      --incident-date 2024-01-15 --amount 15000 --description "Hail damage to roof and gutters"

  # With a policy document and damage photos
  python -m src.fraud.cli --policy-number POL-123456 --claimant-name "Jane Doe" \\
      --claim-type auto --incident-date 2024-01-15 --amount 12000 \\
      --description-file claim.txt --document policy.pdf --images front.jpg side.jpg

  # Pretty print to a file
  python -m src.fraud.cli ... --pretty --output assessment.json
        """
    )

    # Claim form
    parser.add_argument('--policy-number', type=str, required=True, help='Policy number as entered on the form')
    parser.add_argument('--claimant-name', type=str, required=True, help='Claimant full name')
    parser.add_argument('--claimant-email', type=str, help='Claimant email')
    parser.add_argument(
        '--claim-type',
        type=str,
        choices=[t.value for t in ClaimType],
        default=ClaimType.OTHER.value,
        help='Claim type (default: other)'
    )
    parser.add_argument(
        '--incident-date',
        type=date.fromisoformat,
        required=True,
        help='Incident date (YYYY-MM-DD)'
    )
    parser.add_argument('--amount', type=float, required=True, help='Claim amount')

    # Description (mutually exclusive)
    description_group = parser.add_mutually_exclusive_group()
    description_group.add_argument('--description', type=str, default='', help='Incident description (inline)')
    description_group.add_argument('--description-file', type=str, help='Path to file containing the description')

    # Evidence
    parser.add_argument('--document', type=str, help='Path to the policy document (PDF or image)')
    parser.add_argument(
        '--images',
        nargs='*',
        default=[],
        help='Paths to damage photos (space-separated)'
    )

    # Scoring
    parser.add_argument(
        '--today',
        type=date.fromisoformat,
        help='Submission date for date-based rules (default: today)'
    )

    # Output options
    parser.add_argument(
        '--output',
        '-o',
        type=str,
        help='Output file path (default: print to stdout)'
    )
    parser.add_argument(
        '--pretty',
        action='store_true',
        help='Pretty print JSON output'
    )

    # Logging
    parser.add_argument(
        '--verbose',
        '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    args = parse_args(argv)

    # Setup logging
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        description = read_text_file(args.description_file) if args.description_file else args.description

        submission = ClaimSubmission(
            policy_number=args.policy_number,
            claimant_name=args.claimant_name,
            claimant_email=args.claimant_email,
            claim_type=ClaimType(args.claim_type),
            incident_date=args.incident_date,
            claim_amount=args.amount,
            description=description,
        )

        document = read_bytes(args.document) if args.document else None
        images = [read_bytes(path) for path in args.images]
        logger.info(f"Input: document={'yes' if document else 'no'}, images={len(images)} files")

        pipeline = ClaimAnalysisPipeline(registry=get_hash_registry())
        assessment = asyncio.run(pipeline.process(submission, document, images, today=args.today))

        # Convert to JSON
        indent = 2 if args.pretty else None
        json_output = assessment.model_dump_json(indent=indent)

        # Output
        if args.output:
            output_path = Path(args.output)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(json_output)
            logger.info(f"Output written to: {output_path}")
        else:
            print(json_output)

        # Print summary
        if args.verbose:
            analysis = assessment.fraud_analysis
            print("\n" + "="*60, file=sys.stderr)
            print("SCREENING SUMMARY", file=sys.stderr)
            print("="*60, file=sys.stderr)
            print(f"Decision: {assessment.decision.status.value}", file=sys.stderr)
            print(f"Fraud Score: {analysis.fraud_score}/100 ({analysis.risk_level.value})", file=sys.stderr)
            print(f"Recommendation: {analysis.recommendation.value}", file=sys.stderr)
            print(f"Indicators: {len(analysis.indicators)}", file=sys.stderr)
            for indicator in analysis.indicators:
                print(f"  - {indicator}", file=sys.stderr)
            print("="*60, file=sys.stderr)

    except Exception as e:
        logger.error(f"Error screening claim: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
