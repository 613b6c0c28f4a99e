"""
PDF page source.

Renders pages to JPEG and exposes the embedded word stream using PyMuPDF.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import fitz  # PyMuPDF

from ..exceptions import PDFExtractionError
from ..models import PageInput
from .digital_text import tokens_from_words


class PageSource(ABC):
    """Random access to the pages of one document (1-based)."""

    @property
    @abstractmethod
    def page_count(self) -> int:
        pass

    @abstractmethod
    def load_page(self, page_number: int, with_image: bool = True, with_text: bool = False) -> PageInput:
        pass

    def close(self) -> None:
        pass

    def __enter__(self) -> "PageSource":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class PdfPageSource(PageSource):
    """
    Page source backed by a PDF file.

    PyMuPDF documents are not thread-safe; page loads are serialized with
    a lock so page tasks can call load_page from worker threads.
    """

    def __init__(self, pdf_path: Path, render_scale: float = 2.5, jpeg_quality: int = 80):
        self.pdf_path = Path(pdf_path)
        self.render_scale = render_scale
        self.jpeg_quality = jpeg_quality
        self._lock = threading.Lock()

        if not self.pdf_path.exists():
            raise PDFExtractionError("PDF not found", str(self.pdf_path))

        try:
            self._doc: Optional[fitz.Document] = fitz.open(self.pdf_path)
        except Exception as e:
            raise PDFExtractionError(f"Failed to open PDF: {e}", str(self.pdf_path))

    @property
    def page_count(self) -> int:
        return self._doc.page_count if self._doc else 0

    def load_page(self, page_number: int, with_image: bool = True, with_text: bool = False) -> PageInput:
        """
        Render and/or read the words of one page.

        Raises:
            PDFExtractionError: If the page is out of range or fails to render
        """
        if not 1 <= page_number <= self.page_count:
            raise PDFExtractionError("Page out of range", str(self.pdf_path), page_number)

        with self._lock:
            try:
                page = self._doc.load_page(page_number - 1)
                result = PageInput(
                    page_number=page_number,
                    width=page.rect.width,
                    height=page.rect.height,
                )

                if with_image:
                    matrix = fitz.Matrix(self.render_scale, self.render_scale)
                    pix = page.get_pixmap(matrix=matrix, alpha=False)
                    result.image_bytes = pix.tobytes(output="jpeg", jpg_quality=self.jpeg_quality)

                if with_text:
                    result.tokens = tokens_from_words(page.get_text("words"))

                return result
            except Exception as e:
                raise PDFExtractionError(f"Failed to render page: {e}", str(self.pdf_path), page_number)

    def close(self) -> None:
        with self._lock:
            if self._doc is not None:
                self._doc.close()
                self._doc = None
