import asyncio
import logging
from typing import List

import fitz  # PyMuPDF

from app.core.config import settings
from app.core.exceptions import ExtractionError

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"


def is_plain_text(media_type: str) -> bool:
    return (media_type or "").lower().startswith("text/")


def is_pdf(media_type: str, filename: str) -> bool:
    return (media_type or "").lower() == PDF_MEDIA_TYPE or (filename or "").lower().endswith(".pdf")


class LayoutAwareTextExtractor:
    """
    Turns uploaded bytes into plain text.

    Plain text is decoded directly. PDFs are read block by block in reading
    order (top-to-bottom, then left-to-right) and all pages are merged into
    one string. Every other media type yields an empty string; scanned or
    image-only inputs therefore continue through the pipeline with no text.
    """

    @staticmethod
    def extract_pdf_text(data: bytes) -> str:
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise ExtractionError(f"Could not open PDF: {e}", stage="EXTRACTING") from e

        pages: List[str] = []
        try:
            if doc.page_count == 0:
                raise ExtractionError("PDF has no pages", stage="EXTRACTING")
            for page in doc:
                blocks = page.get_text("blocks")
                # Sort blocks by vertical position then horizontal
                blocks.sort(key=lambda b: (b[1], b[0]))
                # block[6] == 1 marks an image block
                texts = [b[4].strip() for b in blocks if len(b) < 7 or b[6] == 0]
                pages.append("\n".join(t for t in texts if t))
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(f"Could not read PDF text: {e}", stage="EXTRACTING") from e
        finally:
            doc.close()
        return "\n".join(pages)

    async def extract(self, data: bytes, media_type: str, filename: str) -> str:
        if is_plain_text(media_type):
            return data.decode("utf-8", errors="replace")

        if is_pdf(media_type, filename):
            try:
                return await asyncio.wait_for(
                    asyncio.to_thread(self.extract_pdf_text, data),
                    timeout=settings.EXTRACTION_TIMEOUT_SECONDS,
                )
            except asyncio.TimeoutError as e:
                raise ExtractionError(
                    f"PDF extraction timed out after {settings.EXTRACTION_TIMEOUT_SECONDS}s",
                    stage="EXTRACTING",
                ) from e

        logger.info(f"No text extractor for media type {media_type!r} ({filename}); using empty text")
        return ""
