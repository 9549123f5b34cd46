"""
Pipeline Errors
===============
Terminal failures of the import pipeline. Callers branch on the exception
class (or on ``kind``); non-fatal conditions are reported as Anomaly data
instead and never raised.
"""

from __future__ import annotations

from .models import PipelineState


class PdfImportError(Exception):
    """Base class for failures that abort an import."""

    kind = "import_error"
    stage = PipelineState.RECEIVED

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnreadablePdfError(PdfImportError):
    """The buffer is not a PDF, or it holds no extractable text."""

    kind = "unreadable_pdf"
    stage = PipelineState.EXTRACTING


class NoQuestionsFoundError(PdfImportError):
    """Text was extracted but no question numbering pattern was found."""

    kind = "no_questions_found"
    stage = PipelineState.SEGMENTING
