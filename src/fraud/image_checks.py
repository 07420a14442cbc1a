"""
Forensic sub-checks for a single damage photo.

Each check takes raw image bytes, decodes them on its own (Pillow images are
not shared across threads) and returns a CheckReport: the measured payload,
the fraud indicators it raised and the points they add. The analyzer runs the
checks concurrently and merges the reports.

All heuristics here are cheap proxies (colour statistics, re-encode size,
regional brightness) rather than trained models.
"""

import hashlib
import io
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, List, Optional, Sequence

import imagehash
import numpy as np
from PIL import ExifTags, Image, UnidentifiedImageError

from . import constants as C
from .errors import UnreadableInputError
from .schema import (
    CheckStatus,
    ClaimTypeMatch,
    ContentLabel,
    ImageMetadata,
    QualityMetrics,
    RiskTier,
    TamperFlags,
)

logger = logging.getLogger(__name__)


@dataclass
class CheckReport:
    """What one sub-check found."""
    payload: Any = None
    status: CheckStatus = CheckStatus.FOUND
    indicators: List[str] = field(default_factory=list)
    score: int = 0

    def flag(self, indicator: str, points: int) -> None:
        """Record an indicator and its contribution."""
        self.indicators.append(indicator)
        self.score += points


# ============================================================================
# Decoding helpers
# ============================================================================


def open_image(image_bytes: bytes) -> Image.Image:
    """
    Decode image bytes fully.

    Raises:
        UnreadableInputError: If Pillow cannot identify or decode the data
    """
    if not image_bytes:
        raise UnreadableInputError("Empty image data")
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise UnreadableInputError(f"Cannot decode image: {e}") from e
    return image


def _rgb_array(image: Image.Image) -> np.ndarray:
    """Pixels as float64 H x W x C, keeping grayscale single-channel."""
    if image.mode not in ("L", "RGB"):
        image = image.convert("RGB")
    pixels = np.asarray(image, dtype=np.float64)
    if pixels.ndim == 2:
        pixels = pixels[:, :, np.newaxis]
    return pixels


def _gray_array(image: Image.Image) -> np.ndarray:
    return np.asarray(image.convert("L"), dtype=np.float64)


def _reencode_jpeg(image: Image.Image, quality: int) -> bytes:
    if image.mode not in ("L", "RGB"):
        image = image.convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def laplacian_variance(gray: np.ndarray) -> float:
    """Variance of the 4-neighbour Laplacian (sharpness)."""
    if gray.shape[0] < 3 or gray.shape[1] < 3:
        return 0.0
    laplacian = (
        gray[1:-1, :-2] + gray[1:-1, 2:] + gray[:-2, 1:-1] + gray[2:, 1:-1]
        - 4.0 * gray[1:-1, 1:-1]
    )
    return float(laplacian.var())


def edge_density(gray: np.ndarray) -> float:
    """Share of pixels whose 8-neighbour Laplacian response exceeds the edge threshold."""
    if gray.shape[0] < 3 or gray.shape[1] < 3:
        return 0.0
    centre = gray[1:-1, 1:-1]
    neighbours = (
        gray[:-2, :-2] + gray[:-2, 1:-1] + gray[:-2, 2:]
        + gray[1:-1, :-2] + gray[1:-1, 2:]
        + gray[2:, :-2] + gray[2:, 1:-1] + gray[2:, 2:]
    )
    response = np.clip(8.0 * centre - neighbours, 0, 255)
    return float((response > C.EDGE_RESPONSE_THRESHOLD).mean())


# ============================================================================
# 1. Metadata
# ============================================================================


def _rational_to_degrees(value: Sequence[Any], ref: Optional[str]) -> Optional[float]:
    try:
        degrees, minutes, seconds = (float(part) for part in value)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    result = degrees + minutes / 60.0 + seconds / 3600.0
    if ref and ref.upper() in ("S", "W"):
        result = -result
    return round(result, 6)


def _parse_exif_time(value: Any) -> Optional[datetime]:
    if not value:
        return None
    text = str(value).strip().rstrip("\x00")
    for fmt in ("%Y:%m:%d %H:%M:%S", "%Y-%m-%d %H:%M:%S", "%Y:%m:%d"):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    logger.debug(f"Unparseable EXIF timestamp: {text!r}")
    return None


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip().rstrip("\x00").strip()
    return text or None


def extract_metadata(image_bytes: bytes) -> CheckReport:
    """
    Read EXIF fields and flag editing software or stripped metadata.

    A missing EXIF block is reported as not_found (+10); a present but empty
    one as stripped (+15).
    """
    image = open_image(image_bytes)
    exif = image.getexif()
    report = CheckReport()

    if not exif:
        report.payload = ImageMetadata(has_container=False, width=image.width, height=image.height)
        report.status = CheckStatus.NOT_FOUND
        report.flag("No EXIF metadata found - possibly a screenshot or web image", C.NO_METADATA_PENALTY)
        return report

    exif_ifd = exif.get_ifd(ExifTags.IFD.Exif)
    gps_ifd = exif.get_ifd(ExifTags.IFD.GPSInfo)

    capture_time = (
        _parse_exif_time(exif_ifd.get(ExifTags.Base.DateTimeOriginal))
        or _parse_exif_time(exif.get(ExifTags.Base.DateTimeOriginal))
        or _parse_exif_time(exif.get(ExifTags.Base.DateTime))
    )

    latitude = longitude = None
    if gps_ifd:
        if ExifTags.GPS.GPSLatitude in gps_ifd:
            latitude = _rational_to_degrees(
                gps_ifd[ExifTags.GPS.GPSLatitude], gps_ifd.get(ExifTags.GPS.GPSLatitudeRef)
            )
        if ExifTags.GPS.GPSLongitude in gps_ifd:
            longitude = _rational_to_degrees(
                gps_ifd[ExifTags.GPS.GPSLongitude], gps_ifd.get(ExifTags.GPS.GPSLongitudeRef)
            )

    metadata = ImageMetadata(
        has_container=True,
        capture_time=capture_time,
        gps_latitude=latitude,
        gps_longitude=longitude,
        camera_make=_clean_text(exif.get(ExifTags.Base.Make)),
        camera_model=_clean_text(exif.get(ExifTags.Base.Model)),
        software=_clean_text(exif.get(ExifTags.Base.Software)),
        width=exif_ifd.get(ExifTags.Base.ExifImageWidth) or image.width,
        height=exif_ifd.get(ExifTags.Base.ExifImageHeight) or image.height,
        orientation=exif.get(ExifTags.Base.Orientation),
    )
    report.payload = metadata

    if metadata.software:
        software_lower = metadata.software.lower()
        if any(editor in software_lower for editor in C.EDITING_SOFTWARE):
            report.flag(f"Image edited with {metadata.software}", C.EDITING_SOFTWARE_PENALTY)

    if not (metadata.capture_time or metadata.camera_make or metadata.gps_latitude is not None):
        report.flag("Image metadata stripped - possible attempt to hide origin", C.METADATA_STRIPPED_PENALTY)

    return report


# ============================================================================
# 2. Quality
# ============================================================================


def _resolution_class(pixel_count: int) -> str:
    if pixel_count < C.VERY_LOW_RESOLUTION_PIXELS:
        return "very_low"
    if pixel_count < C.LOW_RESOLUTION_PIXELS:
        return "low"
    return "adequate"


def analyze_quality(image_bytes: bytes) -> CheckReport:
    """Resolution, sharpness, contrast and recompression checks."""
    image = open_image(image_bytes)
    width, height = image.size
    pixel_count = width * height
    pixels = _rgb_array(image)

    sharpness = laplacian_variance(_gray_array(image))
    contrast = float(np.mean(pixels.max(axis=(0, 1)) - pixels.min(axis=(0, 1))))

    recompress_ratio = None
    if image.format == "JPEG":
        recompress_ratio = len(_reencode_jpeg(image, C.RECOMPRESS_QUALITY)) / len(image_bytes)

    report = CheckReport()
    report.payload = QualityMetrics(
        width=width,
        height=height,
        pixel_count=pixel_count,
        format=image.format,
        channels=len(image.getbands()),
        sharpness=round(sharpness, 2),
        contrast=round(contrast, 2),
        resolution_class=_resolution_class(pixel_count),
        recompress_ratio=round(recompress_ratio, 3) if recompress_ratio is not None else None,
    )

    if pixel_count < C.VERY_LOW_RESOLUTION_PIXELS:
        report.flag(
            "Very low resolution image - possibly screenshot of screenshot",
            C.VERY_LOW_RESOLUTION_PENALTY,
        )
    elif pixel_count < C.LOW_RESOLUTION_PIXELS:
        report.flag("Low resolution image", C.LOW_RESOLUTION_PENALTY)

    if sharpness < C.SHARPNESS_FLOOR:
        report.flag("Image appears blurry - may obscure details", C.BLUR_PENALTY)

    if contrast < C.CONTRAST_FLOOR:
        report.flag("Unusually low image contrast", C.LOW_CONTRAST_PENALTY)

    if recompress_ratio is not None and recompress_ratio > C.RECOMPRESS_SIZE_RATIO:
        report.flag("Image shows signs of multiple compressions", C.MULTIPLE_COMPRESSION_PENALTY)

    return report


# ============================================================================
# 3. Tamper and stock photo
# ============================================================================


def lighting_variance(pixels: np.ndarray) -> float:
    """Population variance of mean brightness over a 3x3 grid of regions."""
    rows = np.array_split(np.arange(pixels.shape[0]), 3)
    cols = np.array_split(np.arange(pixels.shape[1]), 3)
    brightness = [
        float(pixels[r[0]:r[-1] + 1, c[0]:c[-1] + 1].mean())
        for r in rows if len(r)
        for c in cols if len(c)
    ]
    if not brightness:
        return 0.0
    return float(np.var(brightness))


def ela_drift(image: Image.Image) -> float:
    """Sum over channels of the mean shift after re-encoding at low quality."""
    original = _rgb_array(image)
    recompressed = _rgb_array(Image.open(io.BytesIO(_reencode_jpeg(image, C.ELA_QUALITY))))
    channels = min(original.shape[2], recompressed.shape[2])
    return float(sum(
        abs(original[:, :, i].mean() - recompressed[:, :, i].mean())
        for i in range(channels)
    ))


def is_stock_aspect(width: int, height: int) -> bool:
    """Long/short ratio near a stock format and long side at least 1920px."""
    long_side, short_side = max(width, height), min(width, height)
    if short_side == 0 or long_side < C.STOCK_ASPECT_MIN_SIDE:
        return False
    ratio = long_side / short_side
    return any(abs(ratio - r) < C.STOCK_ASPECT_TOLERANCE for r in C.STOCK_ASPECT_RATIOS)


def is_stock_resolution(width: int, height: int) -> bool:
    return any(
        (width, height) in ((w, h), (h, w)) for w, h in C.STOCK_RESOLUTIONS
    )


def watermark_band_uniformity(pixels: np.ndarray) -> Optional[float]:
    """Summed channel stdev of the bottom-centre band where watermarks sit."""
    height, width = pixels.shape[:2]
    left, top = int(width * 0.3), int(height * 0.85)
    band = pixels[top:top + int(height * 0.1), left:left + int(width * 0.4)]
    if band.size == 0:
        return None
    return float(sum(band[:, :, i].std() for i in range(band.shape[2])))


def detect_tampering(image_bytes: bytes) -> CheckReport:
    """Lighting, ELA, aspect ratio and stock-photo heuristics."""
    image = open_image(image_bytes)
    width, height = image.size
    pixels = _rgb_array(image)
    report = CheckReport()

    variance = lighting_variance(pixels)
    inconsistent = variance > C.LIGHTING_VARIANCE_THRESHOLD
    if inconsistent:
        report.flag("Inconsistent lighting detected - possible image manipulation", C.INCONSISTENT_LIGHTING_PENALTY)

    drift = ela_drift(image)
    ela_suspicious = drift > C.ELA_DRIFT_THRESHOLD
    if ela_suspicious:
        report.flag("Potential image manipulation detected (ELA analysis)", C.ELA_PENALTY)

    stock_aspect = is_stock_aspect(width, height)
    if stock_aspect:
        report.flag("Image dimensions match common stock photo formats", C.STOCK_ASPECT_PENALTY)

    # Reverse-image-search stand-in
    stock_confidence = 0
    if is_stock_resolution(width, height):
        stock_confidence += C.STOCK_RESOLUTION_CONFIDENCE
        report.indicators.append("Image resolution matches common stock photo dimensions")

    uniformity = watermark_band_uniformity(pixels)
    watermark_removed = uniformity is not None and uniformity < C.WATERMARK_UNIFORMITY_THRESHOLD
    if watermark_removed:
        stock_confidence += C.WATERMARK_CONFIDENCE
        report.flag("Possible watermark removal detected", C.WATERMARK_REMOVAL_PENALTY)

    channel_means = pixels.mean(axis=(0, 1))
    channel_stdevs = pixels.std(axis=(0, 1))
    low, high = C.WELL_LIT_RANGE
    well_lit = low < float(channel_means.mean()) < high
    if well_lit and float(channel_stdevs.mean()) < C.EXPOSURE_STDEV_CEILING and width >= C.EXPOSURE_MIN_WIDTH:
        stock_confidence += C.EXPOSURE_CONSISTENCY_CONFIDENCE

    possible_stock = stock_confidence >= C.STOCK_PHOTO_CONFIDENCE_THRESHOLD
    if possible_stock:
        report.flag("Image characteristics suggest it may be a stock photo", C.STOCK_PHOTO_PENALTY)

    report.payload = TamperFlags(
        lighting_variance=round(variance, 2),
        inconsistent_lighting=inconsistent,
        ela_drift=round(drift, 3),
        ela_suspicious=ela_suspicious,
        compression_anomaly=ela_suspicious,
        possible_stock_photo=possible_stock or stock_aspect,
        stock_photo_confidence=stock_confidence,
        watermark_removal_suspected=watermark_removed,
    )
    return report


# ============================================================================
# 4. Hashing
# ============================================================================


def compute_hashes(image_bytes: bytes) -> CheckReport:
    """Perceptual hash (hex) and MD5 content hash. Registry lookup happens in the analyzer."""
    image = open_image(image_bytes)
    perceptual = str(imagehash.phash(image, hash_size=C.PERCEPTUAL_HASH_SIZE))
    content = hashlib.md5(image_bytes).hexdigest()
    return CheckReport(payload=(perceptual, content))


# ============================================================================
# 5. Content labels
# ============================================================================


def detect_content(image_bytes: bytes) -> CheckReport:
    """Coarse labels from channel means plus edge density."""
    image = open_image(image_bytes)
    rgb = np.asarray(image.convert("RGB"), dtype=np.float64)
    red, green, blue = (float(v) for v in rgb.mean(axis=(0, 1)))
    labels: List[ContentLabel] = []

    # Sky
    if blue > red and blue > green and blue > 150:
        labels.append(ContentLabel(label="outdoor_scene", confidence=0.6))

    if green > red and green > blue:
        labels.append(ContentLabel(label="vegetation", confidence=0.5))

    # Gray/metallic
    if abs(red - green) < 20 and abs(green - blue) < 20 and 80 < red < 180:
        labels.append(ContentLabel(label="vehicle", confidence=0.4))

    # Warm indoor tones
    if red > blue and green > blue and red > 100:
        labels.append(ContentLabel(label="building_interior", confidence=0.4))

    if red > 200 and green < 150 and blue < 150:
        labels.append(ContentLabel(label="fire_damage", confidence=0.5))

    if blue > 120 and red > 80:
        labels.append(ContentLabel(label="water_damage", confidence=0.3))

    if edge_density(_gray_array(image)) > C.HIGH_EDGE_DENSITY:
        labels.append(ContentLabel(label="structural_damage", confidence=0.5))

    return CheckReport(
        payload=labels,
        status=CheckStatus.FOUND if labels else CheckStatus.NOT_FOUND,
    )


# ============================================================================
# Cross-field checks
# ============================================================================


def check_claim_type(labels: List[ContentLabel], claim_type: Optional[str]) -> CheckReport:
    """Flag photos whose detected content fits none of the claim type's expected labels."""
    report = CheckReport(payload=ClaimTypeMatch())
    if not claim_type or not labels:
        return report

    expected = C.EXPECTED_CONTENT.get(claim_type.lower())
    detected = [label.label.lower() for label in labels]
    if not expected:
        report.payload = ClaimTypeMatch(checked=False, detected=detected)
        return report

    overlapping = [d for d in detected if any(d in e or e in d for e in expected)]
    report.payload = ClaimTypeMatch(
        checked=True,
        matches=bool(overlapping),
        expected=list(expected),
        detected=detected,
    )
    if not overlapping:
        report.flag(
            f"Image content doesn't appear to match {claim_type} claim type",
            C.CLAIM_TYPE_MISMATCH_PENALTY,
        )
    return report


def _parse_incident_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        logger.debug(f"Unparseable incident date: {value!r}")
        return None


def check_photo_date(capture_time: Optional[datetime], incident_date: Optional[str]) -> CheckReport:
    """Compare the capture timestamp with the claimed incident date."""
    report = CheckReport()
    incident = _parse_incident_date(incident_date)
    if capture_time is None or incident is None:
        return report

    diff_days = (capture_time.date() - incident).days
    report.payload = diff_days
    if diff_days < -C.PHOTO_FAR_BEFORE_DAYS:
        report.flag(f"Photo was taken {abs(diff_days)} days before claimed incident", C.PHOTO_FAR_BEFORE_PENALTY)
    elif diff_days < -C.PHOTO_BEFORE_DAYS:
        report.flag(f"Photo was taken {abs(diff_days)} days before claimed incident", C.PHOTO_BEFORE_PENALTY)
    elif diff_days > C.PHOTO_AFTER_DAYS:
        report.flag(f"Photo was taken {diff_days} days after claimed incident", C.PHOTO_AFTER_PENALTY)
    return report


# ============================================================================
# Scoring helpers
# ============================================================================


def image_confidence(
    metadata: ImageMetadata,
    quality: Optional[QualityMetrics],
    perceptual_hash: Optional[str],
    labels: List[ContentLabel],
) -> float:
    """Analysis completeness, 50-100."""
    confidence = 50
    if metadata.capture_time:
        confidence += 10
    if metadata.camera_make:
        confidence += 5
    if quality and quality.width:
        confidence += 10
    if perceptual_hash:
        confidence += 15
    if labels:
        confidence += 10
    return float(min(confidence, 100))


def image_risk_level(score: float) -> RiskTier:
    """Image-level tiers (60/30), distinct from the claim-level tiers."""
    if score >= C.IMAGE_HIGH_RISK:
        return RiskTier.HIGH
    if score >= C.IMAGE_MEDIUM_RISK:
        return RiskTier.MEDIUM
    return RiskTier.LOW

