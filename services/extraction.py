"""Text extraction for uploaded billing and usage files."""
import io
import logging
import os

import pypdf
from docx import Document as DocxDocument

logger = logging.getLogger(__name__)


class TextExtractor:
    """Turns uploaded bytes into text for previews and prompts."""

    @staticmethod
    def extract_text_from_pdf(file_content: bytes) -> str:
        """Extract text from PDF file."""
        text = ""
        pdf_reader = pypdf.PdfReader(io.BytesIO(file_content))

        for page_num, page in enumerate(pdf_reader.pages):
            page_text = page.extract_text()
            if page_text:
                text += f"\n\n--- Page {page_num + 1} ---\n\n{page_text}"

        return text.strip()

    @staticmethod
    def extract_text_from_docx(file_content: bytes) -> str:
        """Extract text from DOCX file."""
        doc = DocxDocument(io.BytesIO(file_content))
        return "\n\n".join(p.text for p in doc.paragraphs if p.text.strip())

    @staticmethod
    def extract_text_from_plain(file_content: bytes) -> str:
        """Decode CSV, JSON, logs and other text formats."""
        return file_content.decode("utf-8", errors="ignore")

    @staticmethod
    def extract_text(file_name: str, file_content: bytes) -> str:
        """
        Extract text based on the file extension.

        PDF and DOCX files that fail to parse are decoded as plain text
        instead, so a malformed upload still yields a preview.
        """
        extractors = {
            ".pdf": TextExtractor.extract_text_from_pdf,
            ".docx": TextExtractor.extract_text_from_docx,
        }

        extension = os.path.splitext(file_name)[1].lower()
        extractor = extractors.get(extension)
        if extractor is None:
            return TextExtractor.extract_text_from_plain(file_content)

        try:
            return extractor(file_content)
        except Exception as e:
            logger.warning(f"Could not parse {file_name} as {extension}, decoding as text: {e}")
            return TextExtractor.extract_text_from_plain(file_content)
