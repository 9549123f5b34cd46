"""
Import Pipeline
===============
Main orchestrator that combines text extraction, layout reconstruction,
segmentation, bilingual normalization, answer-key matching, record building
and validation into a complete question-paper import.

Usage:
    pipeline = ImportPipeline(config)
    result = pipeline.run(paper_bytes, answer_key_bytes)
    # result is an ImportResult with structured JSON output

Architecture:
    Paper PDF → TextExtractor → LayoutReconstructor → QuestionSegmenter →
    BilingualNormalizer ─┐
    Key PDF → TextExtractor → LayoutReconstructor → AnswerKeyParser ─┤
                                   AnswerKeyMatcher → QuestionRecordBuilder →
                                   ValidationEngine → ImportResult (JSON)

Every call builds fresh stage objects; nothing is shared between calls.
"""

from __future__ import annotations

import hashlib
import logging
import os
import time
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from multiprocessing import get_context
from pathlib import Path
from typing import Optional

from . import __version__
from .answer_key import AnswerKeyMatcher, AnswerKeyParser
from .bilingual import BilingualNormalizer
from .builder import QuestionRecordBuilder
from .errors import PdfImportError, UnreadablePdfError
from .layout import LayoutReconstructor
from .models import (
    Anomaly,
    AnomalyType,
    AnswerKeyEntry,
    FailureInfo,
    ImportResult,
    PipelineState,
    SourceMetadata,
    TextFragment,
)
from .segmenter import QuestionSegmenter
from .text_extractor import TextExtractor
from .validator import ValidationEngine

logger = logging.getLogger(__name__)


@dataclass
class ParserConfig:
    """Configuration for the import pipeline."""

    # Layout tunables
    line_tolerance: float = 0.5
    column_gap: float = 40.0
    min_column_lines: int = 2

    # Bilingual tunables
    dominance_threshold: float = 0.9
    min_latin_letters: int = 10
    short_text_length: int = 20

    # Processing
    page_range: Optional[tuple[int, int]] = None
    parallel_extraction: bool = False

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


class ImportPipeline:
    """
    Question-paper import pipeline.

    Orchestrates the full pipeline:
        1. Text extraction (paper and, optionally, answer key)
        2. Layout reconstruction (lines, columns)
        3. Segmentation (question blocks / answer-key rows)
        4. Bilingual normalization
        5. Answer matching
        6. Record building and validation

    State: RECEIVED → EXTRACTING → RECONSTRUCTING → SEGMENTING →
    NORMALIZING → MATCHING_ANSWERS → BUILDING → DONE, or FAILED from
    EXTRACTING (unreadable paper) or SEGMENTING (no questions found).
    """

    def __init__(self, config: Optional[ParserConfig] = None):
        self.config = config or ParserConfig()
        self._setup_logging()

    def _setup_logging(self):
        """Configure logging based on config."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        # Configure root logger for the package
        package_logger = logging.getLogger("prelims_parser")
        package_logger.setLevel(log_level)

        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        # Console handler
        if not package_logger.handlers:
            console = logging.StreamHandler()
            console.setLevel(log_level)
            console.setFormatter(formatter)
            package_logger.addHandler(console)

        # File handler
        if self.config.log_file:
            log_dir = Path(self.config.log_file).parent
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(
                self.config.log_file, encoding="utf-8"
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            package_logger.addHandler(file_handler)

    # ─── Public API ───────────────────────────────────────────────────────

    def run(
        self,
        paper: bytes,
        answer_key: Optional[bytes] = None,
        source_name: str = "",
        answer_key_name: str = "",
    ) -> ImportResult:
        """
        Import a question paper, reporting terminal failures as data.

        Returns:
            ImportResult in state DONE, or FAILED with ``failure`` set.
        """
        result = ImportResult(parser_version=__version__)
        try:
            self._execute(result, paper, answer_key, source_name, answer_key_name)
        except PdfImportError as e:
            logger.error(f"Import failed while {e.stage.value}: {e.message}")
            result.state = PipelineState.FAILED
            result.failure = FailureInfo(
                kind=e.kind, stage=e.stage, message=e.message
            )
        return result

    def parse(
        self,
        paper: bytes,
        answer_key: Optional[bytes] = None,
        source_name: str = "",
        answer_key_name: str = "",
    ) -> ImportResult:
        """
        Import a question paper.

        Raises:
            UnreadablePdfError: If the paper is not a PDF or has no text.
            NoQuestionsFoundError: If no question numbering is recognised.
        """
        result = ImportResult(parser_version=__version__)
        self._execute(result, paper, answer_key, source_name, answer_key_name)
        return result

    def run_files(
        self,
        paper_path: str,
        answer_key_path: Optional[str] = None,
    ) -> ImportResult:
        """
        Read PDFs from disk and run the import.

        Raises:
            FileNotFoundError: If either file doesn't exist.
        """
        paper = self._read_file(paper_path)
        answer_key = (
            self._read_file(answer_key_path) if answer_key_path else None
        )
        return self.run(
            paper,
            answer_key,
            source_name=os.path.basename(paper_path),
            answer_key_name=(
                os.path.basename(answer_key_path) if answer_key_path else ""
            ),
        )

    # ─── Pipeline ─────────────────────────────────────────────────────────

    def _execute(
        self,
        result: ImportResult,
        paper: bytes,
        answer_key: Optional[bytes],
        source_name: str,
        answer_key_name: str,
    ):
        start_time = time.time()
        logger.info(f"Starting import of: {source_name or '<upload>'}")

        extractor = TextExtractor(page_range=self.config.page_range)
        # The page range applies to the paper only
        key_extractor = TextExtractor()
        layout = LayoutReconstructor(
            line_tolerance=self.config.line_tolerance,
            column_gap=self.config.column_gap,
            min_column_lines=self.config.min_column_lines,
        )

        # ── Step 1: Extract fragments ─────────────────────────────────
        self._transition(result, PipelineState.EXTRACTING)
        result.paper = self._build_source_metadata(paper, source_name)
        paper_fragments, key_fragments, key_error = self._extract_all(
            extractor, key_extractor, paper, answer_key
        )
        result.paper.fragment_count = len(paper_fragments)
        result.paper.total_pages = extractor.page_count(paper)

        if answer_key is not None:
            result.answer_key = self._build_source_metadata(
                answer_key, answer_key_name
            )
            if key_fragments is not None:
                result.answer_key.fragment_count = len(key_fragments)
                result.answer_key.total_pages = key_extractor.page_count(
                    answer_key
                )

        # ── Step 2: Reconstruct lines ─────────────────────────────────
        self._transition(result, PipelineState.RECONSTRUCTING)
        paper_lines = layout.reconstruct_document(paper_fragments)
        result.paper.line_count = len(paper_lines)
        key_lines = None
        if key_fragments is not None:
            key_lines = layout.reconstruct_document(key_fragments)
            result.answer_key.line_count = len(key_lines)

        # ── Step 3: Segment ───────────────────────────────────────────
        self._transition(result, PipelineState.SEGMENTING)
        blocks = QuestionSegmenter().segment(paper_lines)
        entries: Optional[list[AnswerKeyEntry]] = None
        if key_lines is not None:
            entries = AnswerKeyParser().parse(key_lines)

        # ── Step 4: Normalize ─────────────────────────────────────────
        self._transition(result, PipelineState.NORMALIZING)
        normalizer = BilingualNormalizer(
            dominance_threshold=self.config.dominance_threshold,
            min_latin_letters=self.config.min_latin_letters,
            short_text_length=self.config.short_text_length,
        )
        blocks = normalizer.normalize_blocks(blocks)

        # ── Step 5: Match answers ─────────────────────────────────────
        self._transition(result, PipelineState.MATCHING_ANSWERS)
        match = AnswerKeyMatcher().match(
            [b.question_number for b in blocks], entries
        )
        if key_error:
            match.anomalies.append(self._unreadable_key_anomaly(key_error))

        # ── Step 6: Build and validate ────────────────────────────────
        self._transition(result, PipelineState.BUILDING)
        records = QuestionRecordBuilder().build(blocks, match)
        report = ValidationEngine().validate(records, match)

        result.questions = records
        result.report = report
        self._transition(result, PipelineState.DONE)

        elapsed = time.time() - start_time
        logger.info(
            f"Import complete in {elapsed:.2f}s — {report.summary}"
        )

    def _extract_all(
        self,
        extractor: TextExtractor,
        key_extractor: TextExtractor,
        paper: bytes,
        answer_key: Optional[bytes],
    ) -> tuple[list[TextFragment], Optional[list[TextFragment]], Optional[str]]:
        """Extract both documents; the key may run in a second process."""
        if answer_key is None:
            return extractor.extract(paper), None, None

        if self.config.parallel_extraction:
            # MuPDF is not thread-safe; each document gets its own process
            with ProcessPoolExecutor(
                max_workers=2, mp_context=get_context("spawn")
            ) as pool:
                paper_future = pool.submit(extractor.extract, paper)
                key_future = pool.submit(
                    _extract_answer_key, key_extractor, answer_key
                )
                paper_fragments = paper_future.result()
                key_fragments, key_error = key_future.result()
        else:
            paper_fragments = extractor.extract(paper)
            key_fragments, key_error = _extract_answer_key(
                key_extractor, answer_key
            )

        return paper_fragments, key_fragments, key_error

    def _unreadable_key_anomaly(self, message: str) -> Anomaly:
        return Anomaly(
            type=AnomalyType.ANSWER_KEY_MISMATCH,
            severity=60,
            message=f"Answer key PDF unreadable: {message}",
        )

    def _transition(self, result: ImportResult, state: PipelineState):
        logger.debug(f"Pipeline state: {result.state.value} → {state.value}")
        result.state = state

    # ─── Helpers ──────────────────────────────────────────────────────────

    def _build_source_metadata(
        self, data: bytes, source_name: str
    ) -> SourceMetadata:
        return SourceMetadata(
            source_name=source_name,
            file_hash=hashlib.sha256(data or b"").hexdigest(),
            file_size_bytes=len(data or b""),
        )

    def _read_file(self, path: str) -> bytes:
        path = os.path.abspath(path)
        if not os.path.exists(path):
            raise FileNotFoundError(f"PDF not found: {path}")
        with open(path, "rb") as f:
            return f.read()


def _extract_answer_key(
    extractor: TextExtractor, data: bytes
) -> tuple[Optional[list[TextFragment]], Optional[str]]:
    """An unreadable key degrades to unresolved answers, never aborts."""
    try:
        return extractor.extract(data), None
    except UnreadablePdfError as e:
        logger.warning(f"Answer key PDF unreadable: {e.message}")
        return None, e.message
