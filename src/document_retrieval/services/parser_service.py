"""Text extraction for uploaded documents."""

import io

import PyPDF2
from docx import Document as DocxDocument

from document_retrieval.utils.errors import ParsingError
from document_retrieval.utils.logging import get_logger

logger = get_logger("parser_service")

PLAIN_TEXT_MIMETYPES = ("text/plain", "text/markdown")
PDF_MIMETYPE = "application/pdf"
DOCX_MIMETYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class ParserService:
    """
    Extract plain text from raw document bytes by MIME type.

    Supports:
    - text/plain, text/markdown - UTF-8 decode
    - application/pdf - PyPDF2
    - DOCX - python-docx

    Any other MIME type extracts to an empty string, which chunks to nothing.
    """

    async def extract_text(self, data: bytes, mimetype: str) -> str:
        """
        Extract text from document bytes.

        Args:
            data: Raw file bytes
            mimetype: MIME type recorded for the document

        Returns:
            Extracted text (possibly empty)

        Raises:
            ParsingError: If the bytes are corrupt for their declared type
        """
        normalized = (mimetype or "").split(";", 1)[0].strip().lower()

        if normalized in PLAIN_TEXT_MIMETYPES:
            return self._extract_plain_text(data, normalized)
        if normalized == PDF_MIMETYPE:
            return self._extract_pdf(data)
        if normalized == DOCX_MIMETYPE:
            return self._extract_docx(data)

        logger.info(f"No text extractor for mimetype={normalized}; treating as empty")
        return ""

    def _extract_plain_text(self, data: bytes, mimetype: str) -> str:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParsingError(
                f"Text file is not valid UTF-8: {str(e)}",
                mimetype=mimetype,
            ) from e

        # Remove BOM if present
        if text.startswith("\ufeff"):
            text = text[1:]

        logger.debug(f"Extracted plain text: mimetype={mimetype}, chars={len(text)}")
        return text

    def _extract_pdf(self, data: bytes) -> str:
        """
        Extract text from all pages of a PDF.

        Pages that fail to extract are skipped; an image-only PDF yields an
        empty string.
        """
        try:
            pdf_reader = PyPDF2.PdfReader(io.BytesIO(data))
            pages = list(pdf_reader.pages)
        except PyPDF2.errors.PdfReadError as e:
            raise ParsingError(
                f"PDF file is corrupted or invalid: {str(e)}",
                mimetype=PDF_MIMETYPE,
            ) from e
        except Exception as e:
            raise ParsingError(
                f"Failed to parse PDF: {str(e)}",
                mimetype=PDF_MIMETYPE,
            ) from e

        text_parts = []
        for page_num, page in enumerate(pages, start=1):
            try:
                page_text = page.extract_text() or ""
            except Exception as page_error:
                logger.warning(f"Failed to extract text from PDF page {page_num}: {page_error}")
                continue
            if page_text.strip():
                text_parts.append(page_text)

        logger.debug(f"Extracted PDF text: pages={len(pages)}, pages_with_text={len(text_parts)}")
        return "\n\n".join(text_parts)

    def _extract_docx(self, data: bytes) -> str:
        """Extract paragraph and table text from a DOCX file."""
        try:
            doc = DocxDocument(io.BytesIO(data))
        except Exception as e:
            raise ParsingError(
                f"Failed to parse DOCX: {str(e)}",
                mimetype=DOCX_MIMETYPE,
            ) from e

        text_parts = [paragraph.text for paragraph in doc.paragraphs if paragraph.text.strip()]

        for table in doc.tables:
            for row in table.rows:
                row_text = " | ".join(cell.text.strip() for cell in row.cells if cell.text.strip())
                if row_text:
                    text_parts.append(row_text)

        logger.debug(f"Extracted DOCX text: parts={len(text_parts)}")
        return "\n\n".join(text_parts)
