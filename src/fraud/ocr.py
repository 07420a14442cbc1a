"""
OCR engines and document rasterisation.

Engines sit behind one small interface so the extractor, tests and demo can
swap Tesseract for deterministic text:
- TesseractOcrEngine: pytesseract, word confidences averaged
- StaticOcrEngine: returns fixed text (tests, demo)
- NullOcrEngine: no OCR available; every call raises OcrUnavailableError

PDF handling uses PyMuPDF: native text per page, or page rasters for scanned
documents.
"""

import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

import fitz  # PyMuPDF
import pytesseract
from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

from .constants import BINARIZE_THRESHOLD, SMALL_IMAGE_WIDTH
from .errors import OcrUnavailableError, UnreadableInputError
from ..utils.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class OcrResult:
    """Text recognised on one image."""
    text: str
    confidence: float  # 0-100


class OcrEngine(ABC):
    """Base class for OCR engines."""

    name = "base"

    @abstractmethod
    def recognize(self, image: Image.Image, language: str = "eng") -> OcrResult:
        """
        Recognise text on a single page image.

        Raises:
            OcrUnavailableError: If the engine cannot run at all
        """
        pass


class TesseractOcrEngine(OcrEngine):
    """Tesseract via pytesseract."""

    name = "tesseract"

    def __init__(self, timeout: float = 30.0):
        """
        Initialize engine.

        Args:
            timeout: Seconds before pytesseract kills the tesseract process
        """
        self.timeout = timeout

    def recognize(self, image: Image.Image, language: str = "eng") -> OcrResult:
        try:
            text = pytesseract.image_to_string(
                image,
                lang=language,
                config="-c preserve_interword_spaces=1",
                timeout=self.timeout,
            )
            data = pytesseract.image_to_data(
                image,
                lang=language,
                output_type=pytesseract.Output.DICT,
                timeout=self.timeout,
            )
        except pytesseract.TesseractNotFoundError as e:
            raise OcrUnavailableError("Tesseract binary not found in PATH") from e

        confidences = []
        for word, conf in zip(data.get("text", []), data.get("conf", [])):
            try:
                value = float(conf)
            except (TypeError, ValueError):
                continue
            if value >= 0 and str(word).strip():
                confidences.append(value)

        confidence = sum(confidences) / len(confidences) if confidences else 0.0
        return OcrResult(text=text or "", confidence=round(confidence, 2))


class StaticOcrEngine(OcrEngine):
    """Returns the same text for every page. Used by tests and the demo."""

    name = "static"

    def __init__(self, text: str, confidence: float = 90.0):
        self.text = text
        self.confidence = confidence

    def recognize(self, image: Image.Image, language: str = "eng") -> OcrResult:
        return OcrResult(text=self.text, confidence=self.confidence)


class NullOcrEngine(OcrEngine):
    """Stands in when OCR is disabled."""

    name = "none"

    def recognize(self, image: Image.Image, language: str = "eng") -> OcrResult:
        raise OcrUnavailableError("OCR is disabled (OCR_ENGINE=none)")


def create_ocr_engine(settings: Optional[Settings] = None) -> OcrEngine:
    """
    Factory function to create the configured OCR engine.

    Args:
        settings: Settings to read OCR_ENGINE from (default: cached settings)

    Returns:
        OcrEngine instance
    """
    settings = settings or get_settings()
    engine = settings.ocr_engine.lower()

    if engine == "tesseract":
        return TesseractOcrEngine(timeout=settings.ocr_timeout_seconds)
    if engine == "none":
        return NullOcrEngine()

    raise ValueError(f"Unknown OCR engine: {settings.ocr_engine}")


# ============================================================================
# Image preprocessing
# ============================================================================


def preprocess_for_ocr(image: Image.Image) -> Image.Image:
    """Grayscale, autocontrast, sharpen, upscale small scans and binarise."""
    processed = ImageOps.grayscale(image)
    processed = ImageOps.autocontrast(processed)
    processed = processed.filter(ImageFilter.SHARPEN)

    if processed.width < SMALL_IMAGE_WIDTH:
        processed = processed.resize(
            (processed.width * 2, processed.height * 2),
            Image.Resampling.LANCZOS,
        )

    return processed.point(lambda p: 255 if p > BINARIZE_THRESHOLD else 0)


def load_document_image(data: bytes) -> Image.Image:
    """Decode a raster document (JPEG, PNG, TIFF, ...)."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise UnreadableInputError(f"Cannot decode document image: {e}") from e
    return image


# ============================================================================
# PDF handling
# ============================================================================


def is_pdf(data: bytes) -> bool:
    return data[:4] == b"%PDF"


def _open_pdf(data: bytes) -> fitz.Document:
    try:
        return fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as e:
        raise UnreadableInputError(f"Cannot open PDF: {e}") from e


def pdf_page_texts(data: bytes, max_pages: int) -> List[str]:
    """Native text layer of the first max_pages pages."""
    with _open_pdf(data) as document:
        return [document[i].get_text("text") for i in range(min(max_pages, document.page_count))]


def rasterize_pdf(data: bytes, max_pages: int, dpi: int) -> List[Image.Image]:
    """Render the first max_pages pages to RGB images for OCR."""
    images = []
    with _open_pdf(data) as document:
        for i in range(min(max_pages, document.page_count)):
            pixmap = document[i].get_pixmap(dpi=dpi)
            images.append(Image.frombytes("RGB", (pixmap.width, pixmap.height), pixmap.samples))
    logger.debug(f"Rasterized {len(images)} PDF page(s) at {dpi} DPI")
    return images
