import io
import os
import re
import logging

from pdfminer.high_level import extract_text as pdf_extract
from docx import Document

from app.utils.exceptions import ValidationError, ProcessingError
from app.utils.logging_config import get_logger

logging.getLogger("pdfminer").setLevel(logging.ERROR)
logger = get_logger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024

PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOC = "application/msword"
TXT = "text/plain"

ALLOWED_TYPES = {PDF, DOCX, DOC, TXT}
EXTENSION_TYPES = {".pdf": PDF, ".docx": DOCX, ".doc": DOC, ".txt": TXT}


def read_txt(data: bytes) -> str:
    return data.decode("utf-8", errors="ignore")

def read_docx(data: bytes) -> str:
    doc = Document(io.BytesIO(data))
    return "\n".join([p.text for p in doc.paragraphs])

def read_pdf(data: bytes) -> str:
    try:
        return pdf_extract(io.BytesIO(data))
    except Exception as e:
        # fallback for text saved with a .pdf name
        logger.warning(f"PDF extraction failed, decoding raw bytes instead: {e}")
        return read_txt(data)

def clean_text(x: str) -> str:
    x = re.sub(r'[ \t]+', ' ', x)
    x = re.sub(r'\n\s*\n+', '\n', x)
    return x.strip()

def resolve_content_type(filename: str, content_type: str = None) -> str:
    if content_type in ALLOWED_TYPES:
        return content_type
    return EXTENSION_TYPES.get(os.path.splitext(filename or "")[1].lower(), content_type or "")

def extract_upload_text(filename: str, content_type: str, data: bytes) -> str:
    """Text of an uploaded resume; PDF, Word and plain text up to 10MB"""
    if not data:
        raise ValidationError("Resume file is empty", field="resume")
    if len(data) > MAX_UPLOAD_BYTES:
        raise ValidationError("Resume file exceeds the 10MB limit", field="resume", value=len(data))

    kind = resolve_content_type(filename, content_type)
    if kind not in ALLOWED_TYPES:
        raise ValidationError(
            "Invalid file type. Only PDF, DOC, DOCX, and TXT files are allowed.",
            field="resume",
            value=content_type,
        )

    try:
        if kind == PDF:
            text = read_pdf(data)
        elif kind == DOCX:
            text = read_docx(data)
        else:
            # legacy .doc has no parser here; keep whatever text survives decoding
            text = read_txt(data)
    except Exception as e:
        raise ProcessingError(
            f"Could not read resume file: {e}", document_id=filename, document_type=kind
        ) from e

    return clean_text(text)
