"""
Document text extraction

Uses:
1. PyMuPDF (fitz) for PDF text extraction
2. python-docx for DOCX text extraction
3. UTF-8 decoding for plain text
"""
import io
from pathlib import Path
from typing import Optional

import fitz  # PyMuPDF
from docx import Document

from src.services.media_service import decode_data_url
from src.utils.exceptions import InvalidDocumentError, InvalidMediaError
from src.utils.logger import get_logger

logger = get_logger(__name__)

# Longer documents are cut before prompting
MAX_DOCUMENT_CHARS = 30000

PDF_TYPES = {"pdf", "application/pdf"}
DOCX_TYPES = {
    "docx",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
# Binary Word 97-2003 files; python-docx only reads the OOXML format
LEGACY_WORD_TYPES = {"doc", "application/msword"}


def _kind(file_name: str, file_type: Optional[str], mime: Optional[str]) -> str:
    for candidate in (file_type, mime, Path(file_name or "").suffix.lstrip(".")):
        value = (candidate or "").lower()
        if value in PDF_TYPES:
            return "pdf"
        if value in DOCX_TYPES:
            return "docx"
        if value in LEGACY_WORD_TYPES:
            return "doc"
    return "text"


class DocumentService:
    """Turns an uploaded document into plain text for the text analysis flow"""

    def extract_text(self, file_data: str, file_name: str, file_type: Optional[str] = None) -> str:
        """
        Extract plain text from a base64 document

        Args:
            file_data: Data URL or bare base64 payload
            file_name: Original file name (extension used as a type hint)
            file_type: Declared type ("pdf", "docx", a MIME type, ...)

        Returns:
            Extracted text, truncated to MAX_DOCUMENT_CHARS

        Raises:
            InvalidDocumentError: unreadable document or no text found
        """
        try:
            mime, content = decode_data_url(file_data)
        except InvalidMediaError as e:
            raise InvalidDocumentError(f"Invalid document data: {e.message}")

        kind = _kind(file_name, file_type, mime)
        if kind == "doc":
            raise InvalidDocumentError(
                "Legacy .doc files are not supported. Please save the document as .docx or PDF.",
                details={"file_name": file_name, "file_type": kind}
            )
        if kind == "pdf":
            text = self._extract_pdf_text(content)
        elif kind == "docx":
            text = self._extract_docx_text(content)
        else:
            text = self._decode_text(content)

        text = text.strip()
        if not text:
            raise InvalidDocumentError(
                "No text could be extracted from the document",
                details={"file_name": file_name, "file_type": kind}
            )

        if len(text) > MAX_DOCUMENT_CHARS:
            text = text[:MAX_DOCUMENT_CHARS] + "\n...[truncated]"

        logger.info(f"Extracted {len(text)} characters from {kind} document: {file_name}")
        return text

    def _extract_pdf_text(self, content: bytes) -> str:
        """Extract text from PDF using PyMuPDF."""
        try:
            with fitz.open(stream=content, filetype="pdf") as doc:
                return "\n".join(page.get_text() for page in doc)
        except Exception as e:
            logger.error(f"PDF extraction failed: {e}")
            raise InvalidDocumentError(f"Failed to read PDF: {e}")

    def _extract_docx_text(self, content: bytes) -> str:
        """Extract text from DOCX using python-docx."""
        try:
            doc = Document(io.BytesIO(content))
        except Exception as e:
            logger.error(f"DOCX extraction failed: {e}")
            raise InvalidDocumentError(f"Failed to read DOCX: {e}")

        paragraphs = [p.text for p in doc.paragraphs if p.text.strip()]

        # Also extract text from tables
        for table in doc.tables:
            for row in table.rows:
                for cell in row.cells:
                    if cell.text.strip():
                        paragraphs.append(cell.text.strip())

        return "\n".join(paragraphs)

    def _decode_text(self, content: bytes) -> str:
        try:
            return content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidDocumentError(f"Document is not valid UTF-8 text: {e}")


# Singleton
_document_service: Optional[DocumentService] = None


def get_document_service() -> DocumentService:
    """Get or create singleton document service."""
    global _document_service
    if _document_service is None:
        _document_service = DocumentService()
    return _document_service
