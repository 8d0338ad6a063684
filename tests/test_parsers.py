from __future__ import annotations

import pytest

from articulate import parsers
from articulate.config import OCRSettings
from articulate.errors import ExtractionError
from articulate.parsers import ParseError, extract_text_from_pdf, is_pdf
from articulate.pipelines.extraction import ARROW_MARKER, extract_articulation
from tests.factories import agreement_pdf

AGREEMENT_LINES = [
    "From: Santa Monica College 2021-2022 General Catalog",
    "To: University of California, Los Angeles",
    f"CS 101 - Intro to Computer Science {ARROW_MARKER}CS 3 Intro to Programming",
]


def test_is_pdf_checks_magic_number():
    assert is_pdf(b"%PDF-1.7\n...")
    assert is_pdf(b"\n  %PDF-1.4")
    assert not is_pdf(b"<html>Not found</html>")
    assert not is_pdf(b"")


def test_non_pdf_payload_raises():
    with pytest.raises(ParseError):
        extract_text_from_pdf(b"<html>error page</html>")


def test_parse_error_is_extraction_error():
    assert issubclass(ParseError, ExtractionError)


def test_native_text_is_returned(monkeypatch):
    monkeypatch.setattr(parsers, "extract_text_native", lambda content: "From: Santa Monica College 2021-2022")

    text = extract_text_from_pdf(b"%PDF-1.4", ocr=OCRSettings(enabled=False))

    assert text == "From: Santa Monica College 2021-2022"


def test_empty_text_raises(monkeypatch):
    monkeypatch.setattr(parsers, "extract_text_native", lambda content: "  \n")

    with pytest.raises(ParseError, match="No text"):
        extract_text_from_pdf(b"%PDF-1.4", ocr=OCRSettings(enabled=False))


def test_ocr_fallback_used_for_short_native_text(monkeypatch):
    calls = []

    def fake_ocr(content, ocr):
        calls.append(ocr.tesseract_lang)
        return "From: Glendale Community College 2021-2022 CS 101"

    monkeypatch.setattr(parsers, "extract_text_native", lambda content: "")
    monkeypatch.setattr(parsers, "extract_text_ocr", fake_ocr)

    text = extract_text_from_pdf(b"%PDF-1.4", ocr=OCRSettings(enabled=True, min_text_chars=50))

    assert calls == ["eng"]
    assert text.startswith("From: Glendale Community College")


def test_ocr_skipped_when_disabled(monkeypatch):
    monkeypatch.setattr(parsers, "extract_text_native", lambda content: "short")
    monkeypatch.setattr(parsers, "extract_text_ocr", lambda content, ocr: pytest.fail("OCR should not run"))

    assert extract_text_from_pdf(b"%PDF-1.4", ocr=OCRSettings(enabled=False)) == "short"


def test_real_pdf_text_is_extracted():
    text = extract_text_from_pdf(agreement_pdf(AGREEMENT_LINES), ocr=OCRSettings(enabled=False))

    assert "From: Santa Monica College 2021-2022" in text
    assert "CS 101" in text


def test_pypdf_fallback_when_pdfplumber_fails(monkeypatch):
    def broken_open(*args, **kwargs):
        raise RuntimeError("corrupt xref")

    monkeypatch.setattr(parsers.pdfplumber, "open", broken_open)

    text = extract_text_from_pdf(agreement_pdf(AGREEMENT_LINES), ocr=OCRSettings(enabled=False))

    assert "Santa Monica College" in text
    assert "2021-2022" in text


def test_articulation_found_in_extracted_pdf_text():
    text = extract_text_from_pdf(agreement_pdf(AGREEMENT_LINES), ocr=OCRSettings(enabled=False))

    verdict = extract_articulation(text, "CS 101")

    assert verdict.institution_name == "Santa Monica College"
    assert verdict.is_articulated
    assert verdict.articulated_text.startswith(f"{ARROW_MARKER}CS 3")


def test_denied_articulation_in_extracted_pdf_text():
    lines = AGREEMENT_LINES[:2] + [f"CS 101 - Intro to Computer Science {ARROW_MARKER}No Course Articulated"]
    text = extract_text_from_pdf(agreement_pdf(lines), ocr=OCRSettings(enabled=False))

    verdict = extract_articulation(text, "CS 101")

    assert verdict.institution_name == "Santa Monica College"
    assert not verdict.is_articulated
