"""
Tests for document extraction.

Verifies that DocumentExtractor:
- Uses the PDF text layer when present and OCR otherwise
- Structures, classifies and scores the text it gets
- Never raises: unreadable input, missing OCR and timeouts all come back
  as results with an error or the extraction_limited marker
"""

import time

import fitz
import pytest

from src.fraud import document_extractor
from src.fraud.document_extractor import (
    UNREADABLE_FORMAT_ERROR,
    DocumentExtractor,
    detect_language,
    extract_from_document,
    extract_from_text,
    overall_confidence,
)
from src.fraud.ocr import NullOcrEngine, OcrEngine, OcrResult
from src.fraud.schema import DocumentType, ExtractionOptions
from src.utils.config import Settings, get_settings

from conftest import AFTER_POLICY, POLICY_TEXT, encode, flat_image


def make_pdf(text: str = "") -> bytes:
    document = fitz.open()
    page = document.new_page()
    if text:
        page.insert_text((50, 72), text, fontsize=10)
    return document.tobytes()


class SlowOcrEngine(OcrEngine):
    name = "slow"

    def recognize(self, image, language="eng"):
        time.sleep(0.5)
        return OcrResult(text="too late", confidence=99.0)


@pytest.fixture
def after_policy_options():
    return ExtractionOptions(reference_date=AFTER_POLICY)


# ============================================================================
# Text structuring
# ============================================================================


class TestExtractFromText:

    def test_policy_text(self):
        document = extract_from_text(POLICY_TEXT, reference_date=AFTER_POLICY)

        assert document.document_type.type == DocumentType.POLICY
        assert document.extraction_method == "text"
        assert document.source_format == "text"
        assert document.ocr_confidence == 100.0
        assert document.language == "en"
        assert document.field_completeness == 1.0
        assert document.overall_confidence == 100.0
        assert document.structured_data["policy_number"] == "POL-123456"
        assert document.authenticity.is_authentic is True
        assert document.pages == [POLICY_TEXT]
        assert document.error is None

    def test_empty_text(self):
        document = extract_from_text("")

        assert document.document_type.type == DocumentType.UNKNOWN
        assert document.structured_data == {}
        assert document.language == "unknown"


@pytest.mark.parametrize("text,hint,expected", [
    ("The insured vehicle is covered by the policy for the full term", None, "en"),
    ("El asegurado presentó la reclamación por los daños del vehículo en la casa", None, "es"),
    ("Le véhicule est assuré pour la durée du contrat et des dommages", None, "fr"),
    ("Das Fahrzeug ist mit der Police versichert und nicht gekündigt", None, "de"),
    ("hola", "spa", "es"),
    ("qwe rty uio pas dfg", "deu", "de"),
    ("", None, "unknown"),
])
def test_detect_language(text, hint, expected):
    assert detect_language(text, hint) == expected


def test_overall_confidence():
    assert overall_confidence(100, 1.0, 100, 1.0) == 100.0
    assert overall_confidence(80, 0.5, 50, 0.0) == 22.5
    assert overall_confidence(0, 1.0, 100, 1.0) == 0.0


# ============================================================================
# Extractor
# ============================================================================


class TestDocumentExtractor:

    @pytest.mark.asyncio
    async def test_image_document(self, policy_ocr, photo_bytes, after_policy_options):
        extractor = DocumentExtractor(engine=policy_ocr, settings=Settings())

        document = await extractor.extract(photo_bytes, after_policy_options)

        assert document.source_format == "image"
        assert document.extraction_method == "image_ocr"
        assert document.ocr_confidence == 92.0
        assert document.document_type.type == DocumentType.POLICY
        assert document.structured_data["policy_holder"] == "Jane Doe"
        assert document.extraction_limited is False

    @pytest.mark.asyncio
    async def test_pdf_text_layer(self, after_policy_options):
        extractor = DocumentExtractor(engine=NullOcrEngine(), settings=Settings())

        document = await extractor.extract(make_pdf(POLICY_TEXT), after_policy_options)

        assert document.source_format == "pdf"
        assert document.extraction_method == "pdf_text"
        assert document.ocr_confidence == 100.0
        assert document.document_type.type == DocumentType.POLICY
        assert document.structured_data["policy_number"] == "POL-123456"

    @pytest.mark.asyncio
    async def test_scanned_pdf_is_ocred(self, policy_ocr, after_policy_options):
        extractor = DocumentExtractor(engine=policy_ocr, settings=Settings(pdf_render_dpi=50))

        document = await extractor.extract(make_pdf(), after_policy_options)

        assert document.extraction_method == "pdf_ocr"
        assert document.ocr_confidence == 92.0
        assert document.document_type.type == DocumentType.POLICY

    @pytest.mark.asyncio
    async def test_scanned_pdf_without_ocr(self):
        extractor = DocumentExtractor(engine=NullOcrEngine(), settings=Settings(pdf_render_dpi=50))

        document = await extractor.extract(make_pdf())

        assert document.extraction_limited is True
        assert document.extraction_method == "none"
        assert document.error is None
        assert document.notes[0].startswith("Scanned PDF could not be OCRed")

    @pytest.mark.asyncio
    async def test_image_without_ocr(self, photo_bytes):
        extractor = DocumentExtractor(engine=NullOcrEngine(), settings=Settings())

        document = await extractor.extract(photo_bytes)

        assert document.extraction_limited is True
        assert document.extraction_method == "none"
        assert document.raw_text == ""
        assert document.ocr_confidence == 0.0

    @pytest.mark.asyncio
    async def test_ocr_timeout(self):
        extractor = DocumentExtractor(
            engine=SlowOcrEngine(),
            settings=Settings(ocr_timeout_seconds=0.05, preprocess_images=False),
        )

        document = await extractor.extract(encode(flat_image(100, 100)))

        assert document.extraction_limited is True
        assert "OCR timed out" in document.notes[0]

    @pytest.mark.asyncio
    async def test_empty_data(self, policy_ocr):
        document = await DocumentExtractor(engine=policy_ocr, settings=Settings()).extract(b"")

        assert document.error == "Empty document"

    @pytest.mark.asyncio
    async def test_unreadable_bytes(self, policy_ocr):
        document = await DocumentExtractor(engine=policy_ocr, settings=Settings()).extract(b"GIF? no, junk")

        assert document.error == UNREADABLE_FORMAT_ERROR
        assert document.raw_text == ""

    @pytest.mark.asyncio
    async def test_engine_failure_never_raises(self, photo_bytes):
        class BrokenEngine(OcrEngine):
            def recognize(self, image, language="eng"):
                raise RuntimeError("engine crashed")

        document = await DocumentExtractor(engine=BrokenEngine(), settings=Settings()).extract(photo_bytes)

        assert document.error == "Document extraction failed: engine crashed"


@pytest.mark.asyncio
async def test_convenience_function_with_engine(policy_ocr, photo_bytes):
    document = await extract_from_document(photo_bytes, engine=policy_ocr)

    assert document.extraction_method == "image_ocr"


@pytest.mark.asyncio
async def test_convenience_function_is_deterministic(policy_ocr, photo_bytes, after_policy_options):
    first = await extract_from_document(photo_bytes, after_policy_options, engine=policy_ocr)
    second = await extract_from_document(photo_bytes, after_policy_options, engine=policy_ocr)

    assert first == second


# ============================================================================
# Misconfigured OCR
# ============================================================================


@pytest.fixture
def unknown_ocr_engine(monkeypatch):
    """OCR_ENGINE names an engine that does not exist."""
    monkeypatch.setenv("OCR_ENGINE", "bogus")
    monkeypatch.setattr(document_extractor, "_default_extractor", None)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_unknown_engine_falls_back_to_no_ocr():
    extractor = DocumentExtractor(settings=Settings(ocr_engine="bogus"))

    assert isinstance(extractor.engine, NullOcrEngine)


@pytest.mark.asyncio
async def test_unknown_engine_keeps_entry_point_total(unknown_ocr_engine, photo_bytes, after_policy_options):
    pdf = await extract_from_document(make_pdf(POLICY_TEXT), after_policy_options)
    photo = await extract_from_document(photo_bytes)

    assert pdf.extraction_method == "pdf_text"
    assert pdf.structured_data["policy_number"] == "POL-123456"
    assert photo.extraction_limited is True
    assert photo.error is None
