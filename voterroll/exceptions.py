"""
Error types raised by the digitizer.

Every error carries a user-facing ``message`` plus a ``details`` dict for
logs. ``recoverable`` marks errors the pipeline routes around: a failed
remote conversion falls back to local extraction and a bad model reply is
retried on the next model.
"""

from __future__ import annotations

from typing import Any, Optional


class VoterRollError(Exception):
    recoverable = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        # None values are dropped so str() stays readable
        self.details = {k: v for k, v in details.items() if v is not None}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(VoterRollError):
    """A setting is missing or invalid (API key, strategy name, concurrency)."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message, config_key=config_key)


class PDFExtractionError(VoterRollError):
    """The PDF cannot be opened or one of its pages cannot be rendered."""

    def __init__(
        self,
        message: str,
        pdf_path: Optional[str] = None,
        page_number: Optional[int] = None
    ):
        super().__init__(message, pdf_path=pdf_path, page_number=page_number)


class OCRError(VoterRollError):
    """Tesseract could not run on a page image."""

    def __init__(self, message: str, page_number: Optional[int] = None):
        super().__init__(message, page_number=page_number)


class TesseractNotFoundError(OCRError):
    def __init__(self, tesseract_path: Optional[str] = None):
        super().__init__(
            "Tesseract OCR not found. Install it (apt install tesseract-ocr, "
            "brew install tesseract, or the UB-Mannheim build on Windows) "
            "or set TESSERACT_PATH."
        )
        if tesseract_path:
            self.details["tesseract_path_tried"] = tesseract_path


class RemoteConversionError(VoterRollError):
    """The conversion endpoint is unset, unreachable, or answered non-2xx."""

    recoverable = True

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_text: Optional[str] = None
    ):
        super().__init__(
            message,
            status_code=status_code,
            response_preview=response_text[:500] if response_text else None,
        )


class ModelResponseError(VoterRollError):
    """No JSON records could be recovered from a vision model reply."""

    recoverable = True

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        response_text: Optional[str] = None
    ):
        super().__init__(
            message,
            model=model,
            response_preview=response_text[:500] if response_text else None,
        )


class ImportDataError(VoterRollError):
    """Tabular data yielded no voters; nothing is imported."""

    def __init__(self, message: str, line_count: Optional[int] = None):
        super().__init__(message, line_count=line_count)


class ProcessingAbortedError(VoterRollError):
    """The cancel event was set while pages were still queued."""

    recoverable = True

    def __init__(
        self,
        message: str = "Processing aborted by user",
        items_processed: int = 0,
        items_total: int = 0
    ):
        super().__init__(message, items_processed=items_processed, items_total=items_total)
