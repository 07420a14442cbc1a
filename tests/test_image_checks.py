"""
Tests for the per-photo forensic sub-checks.

Verifies that each check:
- Reads metadata, quality and tamper signals from generated images
- Raises the expected indicators with their fixed penalties
- Keeps independent checks independent (stock photo vs. stripped metadata)
"""

from datetime import datetime

import pytest
from PIL import Image

from src.fraud import constants as C
from src.fraud.errors import UnreadableInputError
from src.fraud.image_checks import (
    analyze_quality,
    check_claim_type,
    check_photo_date,
    compute_hashes,
    detect_tampering,
    extract_metadata,
    image_risk_level,
    is_stock_aspect,
    is_stock_resolution,
    open_image,
)
from src.fraud.schema import CheckStatus, ContentLabel, RiskTier

from conftest import encode, flat_image, jpeg_with_exif, textured_image


# ============================================================================
# Decoding
# ============================================================================


def test_open_image_rejects_garbage():
    """Undecodable bytes raise UnreadableInputError."""
    with pytest.raises(UnreadableInputError):
        open_image(b"definitely not an image")


def test_open_image_rejects_empty():
    with pytest.raises(UnreadableInputError):
        open_image(b"")


# ============================================================================
# Metadata
# ============================================================================


class TestMetadata:
    """EXIF extraction and metadata indicators."""

    def test_no_exif_is_not_found(self, photo_bytes):
        """PNG without EXIF: not_found status and the screenshot indicator."""
        report = extract_metadata(photo_bytes)

        assert report.status == CheckStatus.NOT_FOUND
        assert report.indicators == ["No EXIF metadata found - possibly a screenshot or web image"]
        assert report.score == C.NO_METADATA_PENALTY
        assert report.payload.has_container is False

    def test_editing_software_flagged(self):
        """Software tag naming an editor is flagged; camera and time are read."""
        data = jpeg_with_exif(
            textured_image(),
            software="Adobe Photoshop 25.0",
            make="Canon",
            taken="2024:01:10 12:30:00",
        )
        report = extract_metadata(data)

        assert report.status == CheckStatus.FOUND
        assert report.indicators == ["Image edited with Adobe Photoshop 25.0"]
        assert report.score == C.EDITING_SOFTWARE_PENALTY
        assert report.payload.camera_make == "Canon"
        assert report.payload.capture_time == datetime(2024, 1, 10, 12, 30)

    def test_stripped_metadata(self):
        """EXIF present but no time, camera or GPS: stripped."""
        data = jpeg_with_exif(textured_image(), software="ACME Scanner 1.0")
        report = extract_metadata(data)

        assert report.indicators == ["Image metadata stripped - possible attempt to hide origin"]
        assert report.score == C.METADATA_STRIPPED_PENALTY

    def test_camera_photo_is_clean(self):
        data = jpeg_with_exif(textured_image(), make="Nikon", taken="2024:02:01 09:00:00")
        report = extract_metadata(data)

        assert report.indicators == []
        assert report.score == 0


# ============================================================================
# Quality
# ============================================================================


class TestQuality:
    """Resolution, blur and contrast checks."""

    def test_tiny_flat_image(self, tiny_flat_bytes):
        """200x200 single colour: very low resolution, blurry and flat."""
        report = analyze_quality(tiny_flat_bytes)

        assert report.indicators == [
            "Very low resolution image - possibly screenshot of screenshot",
            "Image appears blurry - may obscure details",
            "Unusually low image contrast",
        ]
        assert report.score == 15 + 10 + 5
        assert report.payload.resolution_class == "very_low"
        assert report.payload.recompress_ratio is None  # PNG

    def test_sharp_photo(self, photo_bytes):
        """Noisy 800x600 photo is sharp and contrasty but low resolution."""
        report = analyze_quality(photo_bytes)

        assert report.indicators == ["Low resolution image"]
        assert report.payload.sharpness > C.SHARPNESS_FLOOR
        assert report.payload.contrast > C.CONTRAST_FLOOR
        assert report.payload.pixel_count == 800 * 600

    def test_jpeg_reports_recompress_ratio(self):
        data = encode(textured_image(), "JPEG", quality=80)
        report = analyze_quality(data)

        assert report.payload.format == "JPEG"
        assert report.payload.recompress_ratio is not None


# ============================================================================
# Tamper and stock photo
# ============================================================================


class TestTampering:
    """Lighting, aspect ratio and stock-photo heuristics."""

    def test_inconsistent_lighting(self):
        """Black, gray and white vertical thirds vary far more than a real scene."""
        image = Image.new("RGB", (600, 300))
        image.paste((0, 0, 0), (0, 0, 200, 300))
        image.paste((128, 128, 128), (200, 0, 400, 300))
        image.paste((255, 255, 255), (400, 0, 600, 300))

        report = detect_tampering(encode(image))

        assert "Inconsistent lighting detected - possible image manipulation" in report.indicators
        assert report.payload.inconsistent_lighting is True

    def test_stock_photo_without_stripped_metadata(self, monkeypatch):
        """
        No EXIF, listed stock resolution, uniform exposure: stock-photo
        indicators fire while metadata is reported as missing, not stripped.
        """
        monkeypatch.setattr(C, "STOCK_RESOLUTIONS", ((600, 400),))
        monkeypatch.setattr(C, "EXPOSURE_MIN_WIDTH", 500)
        data = encode(flat_image(600, 400, value=140))

        tamper = detect_tampering(data)
        assert tamper.indicators == [
            "Image resolution matches common stock photo dimensions",
            "Possible watermark removal detected",
            "Image characteristics suggest it may be a stock photo",
        ]
        assert tamper.score == C.WATERMARK_REMOVAL_PENALTY + C.STOCK_PHOTO_PENALTY
        assert tamper.payload.possible_stock_photo is True
        assert tamper.payload.stock_photo_confidence == 30 + 40 + 20

        metadata = extract_metadata(data)
        assert "Image metadata stripped - possible attempt to hide origin" not in metadata.indicators
        assert metadata.status == CheckStatus.NOT_FOUND

    @pytest.mark.parametrize("width,height,expected", [
        (4000, 6000, True),
        (6000, 4000, True),
        (1920, 1080, True),
        (1921, 1080, False),
        (800, 600, False),
    ])
    def test_stock_resolution(self, width, height, expected):
        assert is_stock_resolution(width, height) is expected

    @pytest.mark.parametrize("width,height,expected", [
        (3840, 2160, True),   # 16:9
        (2160, 3840, True),   # portrait
        (3000, 2000, True),   # 3:2
        (2000, 2000, True),   # 1:1
        (1000, 1000, False),  # too small
        (2500, 2000, False),  # 5:4
    ])
    def test_stock_aspect(self, width, height, expected):
        assert is_stock_aspect(width, height) is expected


# ============================================================================
# Hashing
# ============================================================================


class TestHashing:

    def test_hash_formats(self, photo_bytes):
        """256-bit perceptual hash as 64 hex chars; MD5 as 32."""
        perceptual, content = compute_hashes(photo_bytes).payload

        assert len(perceptual) == 64
        assert len(content) == 32

    def test_same_bytes_same_hashes(self, photo_bytes):
        assert compute_hashes(photo_bytes).payload == compute_hashes(photo_bytes).payload

    def test_reencoded_photo_keeps_perceptual_hash_close(self):
        """Re-encoding changes the MD5 but barely moves the perceptual hash."""
        from src.storage.hash_registry import hamming_distance

        image = textured_image(seed=7)
        png_hash, png_md5 = compute_hashes(encode(image)).payload
        jpg_hash, jpg_md5 = compute_hashes(encode(image, "JPEG", quality=95)).payload

        assert png_md5 != jpg_md5
        assert hamming_distance(png_hash, jpg_hash) < 20


# ============================================================================
# Cross-field checks
# ============================================================================


class TestClaimType:

    def test_mismatch_flagged(self):
        report = check_claim_type([ContentLabel(label="vegetation", confidence=0.5)], "auto")

        assert report.indicators == ["Image content doesn't appear to match auto claim type"]
        assert report.score == C.CLAIM_TYPE_MISMATCH_PENALTY
        assert report.payload.checked is True
        assert report.payload.matches is False

    def test_match_not_flagged(self):
        report = check_claim_type([ContentLabel(label="vehicle", confidence=0.4)], "auto")

        assert report.indicators == []
        assert report.payload.matches is True

    def test_no_labels_not_checked(self):
        report = check_claim_type([], "auto")

        assert report.indicators == []
        assert report.payload.checked is False

    def test_claim_type_without_expectations(self):
        report = check_claim_type([ContentLabel(label="vegetation", confidence=0.5)], "travel")

        assert report.indicators == []
        assert report.payload.checked is False


class TestPhotoDate:

    @pytest.mark.parametrize("taken,indicator,points", [
        (datetime(2024, 1, 1), "Photo was taken 60 days before claimed incident", 25),
        (datetime(2024, 2, 20), "Photo was taken 10 days before claimed incident", 15),
        (datetime(2024, 4, 15), "Photo was taken 45 days after claimed incident", 5),
    ])
    def test_suspicious_gaps(self, taken, indicator, points):
        report = check_photo_date(taken, "2024-03-01")

        assert report.indicators == [indicator]
        assert report.score == points

    @pytest.mark.parametrize("taken", [
        datetime(2024, 2, 27),  # 3 days before
        datetime(2024, 3, 1, 23, 59),
        datetime(2024, 3, 20),
    ])
    def test_plausible_gaps(self, taken):
        assert check_photo_date(taken, "2024-03-01").indicators == []

    def test_missing_inputs(self):
        assert check_photo_date(None, "2024-03-01").indicators == []
        assert check_photo_date(datetime(2020, 1, 1), None).indicators == []
        assert check_photo_date(datetime(2020, 1, 1), "not a date").indicators == []


@pytest.mark.parametrize("score,tier", [
    (0, RiskTier.LOW),
    (29, RiskTier.LOW),
    (30, RiskTier.MEDIUM),
    (59, RiskTier.MEDIUM),
    (60, RiskTier.HIGH),
])
def test_image_risk_level(score, tier):
    assert image_risk_level(score) == tier
