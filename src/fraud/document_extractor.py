"""
Document OCR and structuring.

Public API:
    extract_from_document(data, options) -> ExtractedDocument  (async)
    extract_from_text(text, ...) -> ExtractedDocument

PDFs are read through their text layer; when that yields too little text the
pages are rasterised and OCRed. Raster images are OCRed directly, optionally
after preprocessing. Whatever text comes out is classified, mined for
structured fields and tables, and checked for authenticity.

Unreadable or unsupported input never raises: the result carries an error
or an extraction_limited marker instead.
"""

import asyncio
import logging
import re
from datetime import date
from typing import List, Optional

from .authenticity import assess_authenticity
from .constants import MIN_PDF_TEXT_LENGTH
from .document_classifier import classify_document
from .errors import OcrUnavailableError, UnreadableInputError
from .field_extractors import extract_structured_fields, extract_tables, field_completeness
from .ocr import (
    NullOcrEngine,
    OcrEngine,
    OcrResult,
    create_ocr_engine,
    is_pdf,
    load_document_image,
    pdf_page_texts,
    preprocess_for_ocr,
    rasterize_pdf,
)
from .schema import ExtractedDocument, ExtractionOptions
from ..utils.config import Settings, get_settings

logger = logging.getLogger(__name__)

STOP_WORDS = {
    "en": {"the", "and", "of", "to", "is", "in", "for", "this", "that", "with", "on", "are", "by"},
    "es": {"el", "la", "de", "que", "y", "en", "los", "del", "las", "por", "para", "con", "una"},
    "fr": {"le", "la", "les", "de", "des", "et", "est", "du", "une", "pour", "dans", "sur", "avec"},
    "de": {"der", "die", "das", "und", "ist", "mit", "den", "von", "zu", "ein", "eine", "nicht", "auf"},
}

TESSERACT_LANGUAGES = {"eng": "en", "spa": "es", "fra": "fr", "deu": "de"}

UNREADABLE_FORMAT_ERROR = "Unsupported or unreadable document format"


# ============================================================================
# Text-level helpers
# ============================================================================


def detect_language(text: str, hint: Optional[str] = None) -> str:
    """
    Guess the document language from stop-word hits.

    Falls back to the hint (Tesseract or ISO code) when the text is too short
    or matches no stop words.
    """
    fallback = TESSERACT_LANGUAGES.get(hint, hint) if hint else "unknown"
    words = re.findall(r"[a-zà-ÿ]+", (text or "").lower())
    if len(words) < 5:
        return fallback

    hits = {lang: sum(1 for w in words if w in stop) for lang, stop in STOP_WORDS.items()}
    best, count = max(hits.items(), key=lambda item: item[1])
    return best if count > 0 else fallback


def overall_confidence(
    ocr_confidence: float,
    type_confidence: float,
    authenticity_confidence: float,
    completeness: float,
) -> float:
    """OCR confidence decayed by classification, authenticity and completeness."""
    factor = (
        (0.5 + 0.5 * type_confidence)
        * (0.5 + 0.5 * authenticity_confidence / 100.0)
        * (0.5 + 0.5 * completeness)
    )
    return round(max(0.0, min(100.0, ocr_confidence * factor)), 2)


def extract_from_text(
    text: str,
    pages: Optional[List[str]] = None,
    ocr_confidence: float = 100.0,
    source_format: str = "text",
    extraction_method: str = "text",
    language_hint: Optional[str] = None,
    reference_date: Optional[date] = None,
    extraction_limited: bool = False,
    notes: Optional[List[str]] = None,
) -> ExtractedDocument:
    """
    Structure already-available text.

    Args:
        text: Raw document text
        pages: Per-page text (defaults to [text])
        ocr_confidence: Confidence of whatever produced the text (0-100)
        source_format: pdf | image | text
        extraction_method: pdf_text | pdf_ocr | image_ocr | text
        language_hint: Tesseract/ISO language used as fallback
        reference_date: "Today" for the future-date check
        extraction_limited: Mark the result as partial
        notes: Free-form processing notes

    Returns:
        ExtractedDocument
    """
    text = text or ""
    guess = classify_document(text)
    structured = extract_structured_fields(text, guess.type)
    authenticity = assess_authenticity(text, guess.type, structured, reference_date)
    completeness = field_completeness(structured, guess.type)

    return ExtractedDocument(
        raw_text=text,
        pages=pages if pages is not None else [text],
        tables=extract_tables(text),
        document_type=guess,
        structured_data=structured,
        language=detect_language(text, language_hint),
        authenticity=authenticity,
        ocr_confidence=round(ocr_confidence, 2),
        field_completeness=completeness,
        overall_confidence=overall_confidence(
            ocr_confidence, guess.confidence, authenticity.confidence, completeness
        ),
        source_format=source_format,
        extraction_method=extraction_method,
        extraction_limited=extraction_limited,
        notes=notes or [],
    )


# ============================================================================
# Extractor
# ============================================================================


class DocumentExtractor:
    """
    Extracts text from PDFs and images, then structures it.

    Usage:
        extractor = DocumentExtractor()
        document = await extractor.extract(pdf_bytes)
    """

    def __init__(self, engine: Optional[OcrEngine] = None, settings: Optional[Settings] = None):
        """
        Initialize extractor.

        Args:
            engine: OCR engine (default: create_ocr_engine(settings), or no OCR
                if the configured engine is unknown)
            settings: Settings (default: cached settings)
        """
        self.settings = settings or get_settings()
        if engine is None:
            try:
                engine = create_ocr_engine(self.settings)
            except ValueError as e:
                logger.warning(f"{e}; continuing without OCR")
                engine = NullOcrEngine()
        self.engine = engine

    def _recognize(self, image, language: str, preprocess: bool) -> OcrResult:
        if preprocess:
            image = preprocess_for_ocr(image)
        return self.engine.recognize(image, language)

    async def _ocr_pages(self, images, language: str, preprocess: bool) -> List[OcrResult]:
        """OCR each page in a worker thread, bounded by the OCR timeout."""
        return list(await asyncio.gather(*(
            asyncio.wait_for(
                asyncio.to_thread(self._recognize, image, language, preprocess),
                timeout=self.settings.ocr_timeout_seconds,
            )
            for image in images
        )))

    async def extract(self, data: bytes, options: Optional[ExtractionOptions] = None) -> ExtractedDocument:
        """
        Extract and structure one document. Never raises.

        Args:
            data: Raw PDF or image bytes
            options: Page limit, language hint, preprocessing and reference date

        Returns:
            ExtractedDocument (with error set when the input is unusable)
        """
        options = options or ExtractionOptions()
        if not data:
            return ExtractedDocument(error="Empty document")

        try:
            if is_pdf(data):
                return await self._extract_pdf(data, options)
            return await self._extract_image(data, options)
        except UnreadableInputError as e:
            logger.warning(f"Document unreadable: {e}")
            return ExtractedDocument(error=UNREADABLE_FORMAT_ERROR, notes=[str(e)])
        except Exception as e:
            logger.error(f"Document extraction failed: {e}", exc_info=True)
            return ExtractedDocument(error=f"Document extraction failed: {e}")

    def _language(self, options: ExtractionOptions) -> str:
        return options.language or self.settings.ocr_language

    def _preprocess(self, options: ExtractionOptions) -> bool:
        return self.settings.preprocess_images if options.preprocess is None else options.preprocess

    async def _extract_pdf(self, data: bytes, options: ExtractionOptions) -> ExtractedDocument:
        max_pages = options.max_pages or self.settings.max_pdf_pages
        language = self._language(options)

        page_texts = await asyncio.to_thread(pdf_page_texts, data, max_pages)
        native_text = "\n".join(page_texts).strip()

        if len(native_text) >= MIN_PDF_TEXT_LENGTH:
            logger.info(f"PDF text layer used: {len(page_texts)} page(s), {len(native_text)} chars")
            return extract_from_text(
                native_text,
                pages=page_texts,
                source_format="pdf",
                extraction_method="pdf_text",
                language_hint=language,
                reference_date=options.reference_date,
            )

        logger.info("PDF text layer too short, treating as scanned document")
        try:
            images = await asyncio.to_thread(rasterize_pdf, data, max_pages, self.settings.pdf_render_dpi)
            results = await self._ocr_pages(images, language, self._preprocess(options))
        except (OcrUnavailableError, asyncio.TimeoutError) as e:
            reason = str(e) or "OCR timed out"
            logger.warning(f"Scanned PDF not OCRed: {reason}")
            return extract_from_text(
                native_text,
                pages=page_texts,
                ocr_confidence=0.0,
                source_format="pdf",
                extraction_method="pdf_text" if native_text else "none",
                language_hint=language,
                reference_date=options.reference_date,
                extraction_limited=True,
                notes=[f"Scanned PDF could not be OCRed: {reason}"],
            )

        pages = [r.text for r in results]
        confidence = sum(r.confidence for r in results) / len(results) if results else 0.0
        return extract_from_text(
            "\n\n".join(pages).strip(),
            pages=pages,
            ocr_confidence=confidence,
            source_format="pdf",
            extraction_method="pdf_ocr",
            language_hint=language,
            reference_date=options.reference_date,
        )

    async def _extract_image(self, data: bytes, options: ExtractionOptions) -> ExtractedDocument:
        language = self._language(options)
        image = await asyncio.to_thread(load_document_image, data)

        try:
            (result,) = await self._ocr_pages([image], language, self._preprocess(options))
        except (OcrUnavailableError, asyncio.TimeoutError) as e:
            reason = str(e) or "OCR timed out"
            logger.warning(f"Image document not OCRed: {reason}")
            return extract_from_text(
                "",
                pages=[],
                ocr_confidence=0.0,
                source_format="image",
                extraction_method="none",
                language_hint=language,
                reference_date=options.reference_date,
                extraction_limited=True,
                notes=[f"Image document could not be OCRed: {reason}"],
            )

        logger.info(f"Image OCR complete: {len(result.text)} chars, confidence {result.confidence}")
        return extract_from_text(
            result.text,
            pages=[result.text],
            ocr_confidence=result.confidence,
            source_format="image",
            extraction_method="image_ocr",
            language_hint=language,
            reference_date=options.reference_date,
        )


# Module-level convenience function
_default_extractor: Optional[DocumentExtractor] = None


async def extract_from_document(
    data: bytes,
    options: Optional[ExtractionOptions] = None,
    engine: Optional[OcrEngine] = None,
) -> ExtractedDocument:
    """
    Extract and structure a document (convenience function).

    Args:
        data: Raw PDF or image bytes
        options: Extraction options
        engine: OCR engine override; the default extractor is used when None

    Returns:
        ExtractedDocument
    """
    global _default_extractor

    if engine is not None:
        return await DocumentExtractor(engine=engine).extract(data, options)

    if _default_extractor is None:
        _default_extractor = DocumentExtractor()

    return await _default_extractor.extract(data, options)
