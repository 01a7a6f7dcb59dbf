import io
import re
from pdfminer.high_level import extract_text as pdf_extract_text
from docx import Document
from typing import Optional
from pathlib import Path
import logging

logger = logging.getLogger(__name__)

PDF_TYPE = 'application/pdf'
DOCX_TYPE = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'
TEXT_TYPE = 'text/plain'

SUPPORTED_TYPES = (PDF_TYPE, DOCX_TYPE, TEXT_TYPE)

EXTENSION_TYPES = {
    '.pdf': PDF_TYPE,
    '.docx': DOCX_TYPE,
    '.txt': TEXT_TYPE,
}


class UnsupportedFormat(ValueError):
    """Raised for any content type other than PDF, DOCX or plain text."""

    def __init__(self, content_type: Optional[str]):
        self.content_type = content_type
        super().__init__(f"Unsupported file format: {content_type or 'unknown'}")


class DecodingFailure(ValueError):
    """Raised when a supported document is corrupt or unreadable."""


class FileProcessor:
    """Turns PDF, DOCX and plain-text resumes into linear text."""

    def detect_content_type(self, data: bytes, filename: Optional[str] = None) -> Optional[str]:
        """Detect content type from magic bytes, falling back to the file extension"""
        # PDF: starts with %PDF
        if data[:4] == b'%PDF':
            return PDF_TYPE

        # DOCX/ZIP: starts with PK (ZIP archive)
        if data[:2] == b'PK':
            return DOCX_TYPE

        if filename:
            return EXTENSION_TYPES.get(Path(filename).suffix.lower())
        return None

    def decode(self, data: bytes, content_type: Optional[str]) -> str:
        """Decode document bytes of the declared content type into text.

        Raises UnsupportedFormat for anything but PDF, DOCX or plain text and
        DecodingFailure when the document cannot be read.
        """
        mime = (content_type or '').split(';')[0].strip().lower()
        logger.info(f"Decoding document: content_type={mime or 'unknown'}, size={len(data)}")

        if mime == PDF_TYPE:
            return self._extract_from_pdf(data)
        elif mime == DOCX_TYPE:
            return self._extract_from_docx(data)
        elif mime == TEXT_TYPE:
            return self._extract_from_txt(data)
        raise UnsupportedFormat(content_type)

    def extract_text(self, file_path: str) -> str:
        """Extract text from a PDF, DOCX or TXT file on disk"""
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        data = path.read_bytes()
        content_type = self.detect_content_type(data, path.name)
        logger.info(f"File extraction: path={file_path}, extension={path.suffix.lower()}, detected={content_type}")
        return self.decode(data, content_type)

    def _extract_from_pdf(self, data: bytes) -> str:
        """Extract text from PDF bytes, one newline per page break"""
        try:
            text = pdf_extract_text(io.BytesIO(data))
        except Exception as e:
            raise DecodingFailure(f"PDF extraction failed: {str(e)}") from e
        return self._clean_text(text.replace('\x0c', '\n'))

    def _extract_from_docx(self, data: bytes) -> str:
        """Extract text from DOCX bytes - paragraphs in order, then tables"""
        try:
            doc = Document(io.BytesIO(data))
        except Exception as e:
            raise DecodingFailure(f"DOCX extraction failed: {str(e)}") from e

        # Empty paragraphs are kept so they still separate blocks
        full_text = [para.text for para in doc.paragraphs]

        # Also extract from tables (resumes often use tables for layout)
        for table in doc.tables:
            for row in table.rows:
                row_text = []
                for cell in row.cells:
                    cell_text = cell.text.strip()
                    if cell_text and cell_text not in row_text:  # merged cells repeat
                        row_text.append(cell_text)
                if row_text:
                    full_text.append(' | '.join(row_text))

        return self._clean_text('\n'.join(full_text))

    def _extract_from_txt(self, data: bytes) -> str:
        """Extract text from plain text bytes"""
        try:
            text = data.decode('utf-8-sig')
        except UnicodeDecodeError as e:
            raise DecodingFailure(f"Text file reading failed: {str(e)}") from e
        return self._clean_text(text)

    def _clean_text(self, text: str) -> str:
        """Clean extracted text by removing excessive whitespace and special characters"""
        # Normalize line endings
        text = text.replace('\r\n', '\n').replace('\r', '\n')
        # Replace multiple spaces (not newlines) with single space
        text = re.sub(r'[^\S\n]+', ' ', text)
        # Whitespace-only lines become truly blank
        text = re.sub(r' *\n *', '\n', text)
        # Replace 3+ consecutive newlines with 2 newlines
        text = re.sub(r'\n{3,}', '\n\n', text)
        # Remove non-printable characters (except newlines, tabs)
        text = ''.join(char for char in text if char.isprintable() or char in {'\n', '\t'})
        return text.strip()
