"""
Shared fixtures for the screening tests.

Photos are generated with Pillow so every test controls exactly what the
forensic checks see; OCR goes through StaticOcrEngine so no Tesseract binary is
needed.
"""

import io
import logging
from datetime import date
from typing import Optional

import numpy as np
import pytest
from PIL import ExifTags, Image

from src.fraud.ocr import StaticOcrEngine
from src.fraud.schema import ClaimSubmission, ClaimType
from src.storage.hash_registry import InMemoryHashRegistry


# Setup logging for tests
logging.basicConfig(level=logging.INFO)


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

# A date after every date in POLICY_TEXT, so no future-date flag fires
AFTER_POLICY = date(2025, 6, 1)


# ============================================================================
# Image helpers
# ============================================================================


def encode(image: Image.Image, fmt: str = "PNG", **kwargs) -> bytes:
    """Encode a Pillow image to bytes."""
    buffer = io.BytesIO()
    image.save(buffer, format=fmt, **kwargs)
    return buffer.getvalue()


def textured_image(width: int = 800, height: int = 600, seed: int = 0) -> Image.Image:
    """Gradient plus strong noise: sharp, high contrast, unique per seed."""
    rng = np.random.default_rng(seed)
    x = np.linspace(0, 255, width)
    y = np.linspace(0, 255, height)[:, None]
    base = (x * 0.6 + y * 0.4) % 256
    pixels = np.stack([base, 255 - base, (base * 2) % 256], axis=-1)
    pixels = pixels + rng.normal(0, 40, pixels.shape)
    return Image.fromarray(np.clip(pixels, 0, 255).astype(np.uint8), "RGB")


def flat_image(width: int, height: int, value: int = 140) -> Image.Image:
    """Single-colour gray image."""
    return Image.new("RGB", (width, height), (value, value, value))


def jpeg_with_exif(
    image: Image.Image,
    software: Optional[str] = None,
    make: Optional[str] = None,
    taken: Optional[str] = None,
) -> bytes:
    """JPEG whose IFD0 carries the given Software / Make / DateTime tags."""
    exif = Image.Exif()
    if software:
        exif[ExifTags.Base.Software] = software
    if make:
        exif[ExifTags.Base.Make] = make
    if taken:
        exif[ExifTags.Base.DateTime] = taken
    return encode(image, "JPEG", quality=90, exif=exif)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def photo_bytes() -> bytes:
    """A plausible damage photo: PNG, 800x600, no EXIF."""
    return encode(textured_image(seed=1))


@pytest.fixture
def other_photo_bytes() -> bytes:
    """A second, unrelated photo."""
    return encode(textured_image(seed=2))


@pytest.fixture
def tiny_flat_bytes() -> bytes:
    """200x200 single-colour PNG: very low resolution, blurry, no contrast."""
    return encode(flat_image(200, 200))


@pytest.fixture
def registry() -> InMemoryHashRegistry:
    """Empty in-memory hash registry."""
    return InMemoryHashRegistry()


@pytest.fixture
def policy_ocr() -> StaticOcrEngine:
    """OCR engine that 'reads' the sample policy from any page."""
    return StaticOcrEngine(POLICY_TEXT, confidence=92.0)


@pytest.fixture
def weekday() -> date:
    """A Wednesday, so the weekend rule stays quiet."""
    return date(2024, 3, 13)


@pytest.fixture
def make_submission(weekday):
    """Factory for a clean claim form; override any field."""

    def _make(**overrides) -> ClaimSubmission:
        fields = dict(
            policy_number="POL-123456",
            claimant_name="Jane Doe",
            claimant_email="jane.doe@example.com",
            claim_type=ClaimType.AUTO,
            incident_date=weekday,
            claim_amount=8_750.0,
            description=(
                "Rear-ended at a red light on Main Street; rear bumper, trunk lid and "
                "left tail light damaged."
            ),
        )
        fields.update(overrides)
        return ClaimSubmission(**fields)

    return _make
