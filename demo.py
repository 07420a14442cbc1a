#!/usr/bin/env python3
"""
Claim Fraud Screening - Demo Script

Walks through the screening signals one at a time, then the full pipeline:
1. Behavioral rules  - Form fields only
2. Documents         - OCR text structured and validated against the form
3. Photos            - Forensics, in-claim duplicates, cross-claim duplicates
4. Full pipeline     - Everything together, ending in a decision

Run with: python demo.py

Photos are generated on the fly and the document text is fed through a static
OCR engine, so the demo runs without Tesseract installed.
"""

import asyncio
import io
import logging
import os
import sys
from datetime import date, timedelta

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

# Load environment variables
from dotenv import load_dotenv
load_dotenv()

import numpy as np
from PIL import Image
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from src.fraud import (
    ClaimSubmission,
    ClaimType,
    StaticOcrEngine,
    analyze_claim,
    analyze_multiple_images,
    create_image_analyzer,
    extract_from_text,
    validate_document_data,
)
from src.fraud.pipeline import ClaimAnalysisPipeline
from src.routing import make_decision
from src.storage import InMemoryHashRegistry

console = Console()

POLICY_TEXT = """
ACME MUTUAL INSURANCE COMPANY
AUTO POLICY DECLARATIONS

Policy Number: POL-123456
Policy Holder: Jane Doe
Insurer: Acme Mutual Insurance
Effective Date: 01/01/2024
Expiration Date: 12/31/2024

Coverage Amount: $50,000
Collision: $10,000
Deductible: $500
Premium: $1,200

This policy provides coverage for the insured vehicle subject to the terms of the policy.
"""


def print_header(title: str):
    """Print a formatted section header."""
    console.print()
    console.rule(f"[bold cyan]{title}")


def make_photo(seed: int, size=(1024, 768)) -> bytes:
    """Generate a noisy, textured JPEG standing in for a damage photo."""
    rng = np.random.default_rng(seed)
    width, height = size
    x = np.linspace(0, 255, width, dtype=np.float32)
    y = np.linspace(0, 255, height, dtype=np.float32)[:, None]
    base = (x * 0.5 + y * 0.3) % 255
    pixels = np.stack([base, base * 0.8, 255 - base], axis=-1)
    pixels += rng.normal(0, 25, pixels.shape)
    image = Image.fromarray(np.clip(pixels, 0, 255).astype(np.uint8), "RGB")
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=90)
    return buffer.getvalue()


def indicator_table(title: str, indicators, score) -> Table:
    """Table of indicators with the resulting score in the caption."""
    table = Table(title=title, box=box.ROUNDED, header_style="bold cyan", caption=f"score: {score}")
    table.add_column("#", style="dim", width=3)
    table.add_column("Indicator")
    for i, indicator in enumerate(indicators, 1):
        table.add_row(str(i), indicator)
    if not indicators:
        table.add_row("-", "[green]No indicators")
    return table


def submission(**overrides) -> ClaimSubmission:
    """Baseline claim; override any field."""
    fields = dict(
        policy_number="POL-123456",
        claimant_name="Jane Doe",
        claimant_email="jane.doe@example.com",
        claim_type=ClaimType.AUTO,
        incident_date=date(2024, 3, 12),
        claim_amount=8_750.0,
        description=(
            "Rear-ended at a red light on Main Street; rear bumper, trunk lid and "
            "left tail light damaged. Police attended the scene."
        ),
    )
    fields.update(overrides)
    return ClaimSubmission(**fields)


# =============================================================================
# DEMO 1: BEHAVIORAL RULES
# =============================================================================

def demo_behavioral_rules():
    """Form-only screening: no document, no photos."""
    print_header("DEMO 1: BEHAVIORAL RULES")

    today = date.today()
    cases = {
        "Clean claim": submission(),
        "Same-day, vague, round amount": submission(
            incident_date=today, claim_amount=20_000, description="Car was stolen."
        ),
        "High amount with watch-list keywords": submission(
            claim_amount=75_500,
            description="Vehicle completely destroyed in a fire after it was stolen from the driveway overnight.",
        ),
    }

    for name, claim in cases.items():
        analysis = analyze_claim(claim, today=today)
        console.print(indicator_table(name, analysis.indicators, f"{analysis.fraud_score} ({analysis.risk_level.value})"))


# =============================================================================
# DEMO 2: DOCUMENTS
# =============================================================================

def demo_documents():
    """Structure policy text and validate it against different forms."""
    print_header("DEMO 2: DOCUMENT VALIDATION")

    document = extract_from_text(POLICY_TEXT, reference_date=date(2024, 6, 1))
    fields = Table(title="Extracted fields", box=box.SIMPLE, header_style="bold cyan")
    fields.add_column("Field", style="bold")
    fields.add_column("Value")
    for key, value in document.structured_data.items():
        fields.add_row(key, str(value))
    console.print(
        f"Type: [bold]{document.document_type.type.value}[/] "
        f"({document.document_type.confidence:.0%}), "
        f"authenticity {document.authenticity.confidence:.0f}"
    )
    console.print(fields)

    forms = {
        "Matching form": submission(policy_number="POL123456"),
        "Wrong policy number": submission(policy_number="POL-999999"),
        "Claim exceeds collision limit": submission(claim_amount=12_000),
        "Incident after expiration": submission(incident_date=date(2025, 2, 1)),
    }
    for name, form in forms.items():
        result = validate_document_data(document, form)
        status = "[green]valid" if result.is_valid else "[red]invalid"
        console.print(indicator_table(f"{name} ({status}[/])", result.indicators + result.warnings, result.fraud_score))


# =============================================================================
# DEMO 3: PHOTOS
# =============================================================================

async def demo_photos(registry: InMemoryHashRegistry):
    """Per-photo forensics, in-claim duplicates and cross-claim duplicates."""
    print_header("DEMO 3: PHOTO FORENSICS")

    analyzer = create_image_analyzer(registry=registry)
    photo_a, photo_b = make_photo(1), make_photo(2)

    first = await analyze_multiple_images(
        [photo_a, photo_b, photo_a], submission().to_context(), analyzer=analyzer
    )
    console.print(indicator_table("Claim 1: three photos, one repeated", first.combined_indicators, first.combined_fraud_score))

    reused = await analyze_multiple_images(
        [photo_b], submission(policy_number="POL-777777").to_context(), analyzer=analyzer
    )
    console.print(indicator_table("Claim 2: reuses a photo from claim 1", reused.combined_indicators, reused.combined_fraud_score))

    broken = await analyze_multiple_images([b"not an image"], submission().to_context(), analyzer=analyzer)
    console.print(indicator_table("Corrupt upload", broken.combined_indicators, broken.combined_fraud_score))


# =============================================================================
# DEMO 4: FULL PIPELINE
# =============================================================================

async def demo_full_pipeline(registry: InMemoryHashRegistry):
    """Document chain and photo analysis together, then the decision."""
    print_header("DEMO 4: FULL SCREENING PIPELINE")

    pipeline = ClaimAnalysisPipeline(ocr_engine=StaticOcrEngine(POLICY_TEXT, confidence=92.0), registry=registry)
    # Any decodable page works; the static engine supplies the text
    scanned_page = make_photo(99, size=(850, 1100))
    claims = {
        "Consistent claim": submission(claim_amount=4_250),
        "Mismatched claim": submission(
            policy_number="POL-999999",
            claimant_name="John Smith",
            claim_amount=60_000,
            incident_date=date(2025, 3, 15),
            description="Total loss, completely destroyed by flood.",
        ),
    }

    for name, claim in claims.items():
        assessment = await pipeline.process(
            claim,
            document=scanned_page,
            images=[make_photo(10 + len(name))],
            today=claim.incident_date + timedelta(days=3),
        )
        decision = assessment.decision
        breakdown = assessment.fraud_analysis.breakdown

        summary = Table(box=box.SIMPLE, show_header=False)
        summary.add_column(style="bold")
        summary.add_column()
        summary.add_row("Status", decision.status.value)
        summary.add_row("Fraud score", f"{decision.fraud_score}/100 ({decision.risk_level.value})")
        summary.add_row("Text / Document / Image", f"{breakdown.text_score} / {breakdown.document_validation_score} / {breakdown.image_score}")
        summary.add_row("Weights", ", ".join(f"{k}={v}" for k, v in breakdown.weights.items()))
        summary.add_row("Processing time", f"{assessment.processing_time_ms:.0f} ms")
        console.print(Panel(summary, title=name, border_style="cyan"))
        console.print(Panel(decision.explanation, title="Explanation", border_style="dim"))

    # Decisions can also be made from a stored analysis directly
    analysis = analyze_claim(submission(incident_date=date.today()), today=date.today())
    console.print(f"Text-only decision: [bold]{make_decision(analysis, 8_750).status.value}[/]")


# =============================================================================
# MAIN
# =============================================================================

def main():
    """Run all demos."""
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "WARNING").upper())

    console.print(Panel.fit("[bold]CLAIM FRAUD SCREENING DEMO", border_style="cyan"))
    console.print("  1. Behavioral rules - Form fields only")
    console.print("  2. Documents        - Policy text vs. claim form")
    console.print("  3. Photos           - Forensics and duplicates")
    console.print("  4. Full pipeline    - Signals → fusion → decision")

    registry = InMemoryHashRegistry()
    try:
        demo_behavioral_rules()
        demo_documents()
        asyncio.run(demo_photos(registry))
        asyncio.run(demo_full_pipeline(registry))
    except Exception as e:
        console.print(f"\n[red]Error: {e}")
        console.print("\nMake sure you have installed dependencies: pip install -e .")
        raise

    print_header("DEMO COMPLETE")
    console.print("\nTo screen your own claim:")
    console.print("  python -m src.fraud.cli --help")


if __name__ == "__main__":
    main()
