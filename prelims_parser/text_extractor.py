"""
Text Extractor
==============
Extracts positioned text spans from in-memory PDF buffers using PyMuPDF (fitz).
Each span becomes an immutable TextFragment carrying page, position and
font size for the layout stage.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

import fitz  # PyMuPDF

from .errors import UnreadablePdfError
from .models import TextFragment

logger = logging.getLogger(__name__)


def open_pdf(data: bytes) -> fitz.Document:
    """Open a PDF from bytes, raising UnreadablePdfError on bad input."""
    if not data:
        raise UnreadablePdfError("Empty PDF buffer")

    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise UnreadablePdfError(f"Not a valid PDF: {e}") from e

    if doc.needs_pass:
        doc.close()
        raise UnreadablePdfError("PDF is password protected")

    if doc.page_count == 0:
        doc.close()
        raise UnreadablePdfError("PDF has no pages")

    return doc


class TextExtractor:
    """
    Handles PDF ingestion and span-level text extraction.

    The buffer is opened in memory; no temporary files are written.
    """

    def __init__(self, page_range: Optional[tuple[int, int]] = None):
        self.page_range = page_range

    def page_count(self, data: bytes) -> int:
        """Get total number of pages in the PDF."""
        with open_pdf(data) as doc:
            return doc.page_count

    def iter_fragments(self, data: bytes) -> Iterator[TextFragment]:
        """
        Lazily yield fragments ordered by page, then extraction order.

        The sequence is single-pass; call again to restart.
        """
        with open_pdf(data) as doc:
            total_pages = doc.page_count

            # Determine page range (1-indexed)
            start_page = 1
            end_page = total_pages
            if self.page_range:
                start_page = max(1, self.page_range[0])
                end_page = min(total_pages, self.page_range[1])
                if start_page > end_page:
                    raise UnreadablePdfError(
                        f"Page range {self.page_range[0]}-{self.page_range[1]} "
                        f"selects no pages of a {total_pages}-page PDF"
                    )

            logger.debug(
                f"Extracting text from {total_pages}-page PDF "
                f"(pages {start_page} to {end_page})"
            )

            for page_idx in range(start_page - 1, end_page):
                page = doc[page_idx]
                page_num = page_idx + 1

                page_dict = page.get_text(
                    "dict", flags=fitz.TEXT_PRESERVE_WHITESPACE
                )

                for block in page_dict.get("blocks", []):
                    if block.get("type") != 0:  # Text only
                        continue
                    for line in block.get("lines", []):
                        for span in line.get("spans", []):
                            fragment = self._span_to_fragment(span, page_num)
                            if fragment is not None:
                                yield fragment

    def extract(self, data: bytes) -> list[TextFragment]:
        """
        Extract every fragment of the document.

        Raises:
            UnreadablePdfError: If the buffer is not a PDF or has no text runs
                (e.g. a scanned, image-only paper).
        """
        fragments = list(self.iter_fragments(data))
        if not fragments:
            raise UnreadablePdfError(
                "No extractable text found (scanned or image-only PDF?)"
            )

        logger.info(f"Extracted {len(fragments)} text fragments")
        return fragments

    def _span_to_fragment(
        self, span: dict, page_num: int
    ) -> Optional[TextFragment]:
        """Convert a PyMuPDF span dict into a TextFragment."""
        text = span.get("text", "")
        text = text.replace("\u00a0", " ").replace("\r", "")
        if not text.strip():
            return None

        x0, y0, x1, _ = span["bbox"]
        size = span.get("size") or 1.0

        return TextFragment(
            content=text,
            page=page_num,
            x=float(x0),
            y=float(y0),
            font_size=float(size),
            width=max(0.0, float(x1 - x0)),
        )
