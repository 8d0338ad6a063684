"""PDF text extraction for agreement documents.

Native text extraction with pdfplumber, pypdf as a fallback, and an optional
Tesseract OCR pass for scanned agreements.
"""
from __future__ import annotations

import io
import logging

import pdfplumber
import pytesseract
from pdf2image import convert_from_bytes
from pypdf import PdfReader

from .config import OCRSettings, settings
from .errors import ExtractionError

logger = logging.getLogger(__name__)


class ParseError(ExtractionError):
    """Raised when document parsing fails."""
    pass


def is_pdf(content: bytes) -> bool:
    """Check the PDF magic number."""
    return content.lstrip()[:4] == b"%PDF"


def extract_text_native(content: bytes) -> str:
    """Extract text from PDF using native text extraction.

    Args:
        content: PDF file content as bytes

    Returns:
        Extracted text, empty when neither backend yields anything
    """
    try:
        # pdfplumber keeps table rows on one line, which the arrow scan relies on
        with pdfplumber.open(io.BytesIO(content)) as pdf:
            text_parts = []
            for page in pdf.pages:
                page_text = page.extract_text()
                if page_text:
                    text_parts.append(page_text)
            return "\n\n".join(text_parts)

    except Exception as e:
        logger.warning(f"pdfplumber extraction failed: {e}, trying pypdf")

        try:
            reader = PdfReader(io.BytesIO(content))
            text_parts = []
            for page in reader.pages:
                page_text = page.extract_text()
                if page_text:
                    text_parts.append(page_text)
            return "\n\n".join(text_parts)

        except Exception as e2:
            logger.error(f"pypdf extraction also failed: {e2}")
            return ""


def extract_text_ocr(content: bytes, ocr: OCRSettings) -> str:
    """Extract text from PDF using OCR (Tesseract).

    Raises:
        ParseError: If rasterizing the PDF fails
    """
    try:
        images = convert_from_bytes(content, dpi=ocr.dpi, fmt="jpeg")
    except Exception as e:
        logger.error(f"PDF rasterization failed: {e}")
        raise ParseError(f"OCR processing failed: {e}") from e

    logger.info(f"Running OCR on {len(images)} page(s)")

    text_parts = []
    for idx, image in enumerate(images):
        try:
            page_text = pytesseract.image_to_string(image, lang=ocr.tesseract_lang)
        except Exception as e:
            logger.error(f"OCR failed for page {idx + 1}: {e}")
            continue
        if page_text.strip():
            text_parts.append(page_text)

    return "\n\n".join(text_parts)


def extract_text_from_pdf(content: bytes, *, ocr: OCRSettings | None = None) -> str:
    """Convert an agreement PDF into text.

    Args:
        content: Raw PDF bytes as downloaded
        ocr: OCR settings; defaults to the application settings

    Returns:
        Extracted text

    Raises:
        ParseError: If the payload is not a PDF or no text could be extracted
    """
    ocr = ocr or settings.ocr

    if not is_pdf(content):
        raise ParseError("Payload is not a PDF document")

    text = extract_text_native(content)

    if ocr.enabled and len(text.strip()) < ocr.min_text_chars:
        logger.info(f"Native extraction yielded {len(text.strip())} chars, trying OCR")
        text_ocr = extract_text_ocr(content, ocr)
        if len(text_ocr) > len(text):
            text = text_ocr

    if not text.strip():
        raise ParseError("No text could be extracted from PDF")

    return text
