"""
Question Segmenter
==================
Deterministic state machine that splits the reconstructed lines of a
question paper into per-question blocks (body, options, explanation).

Question numbering must start at 1 and grow by exactly one; any other
numbered line ("1991.", "2. statement") is treated as plain text.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from .errors import NoQuestionsFoundError
from .markers import (
    ExplanationMarker,
    OptionMarker,
    QuestionStart,
    classify_line,
    is_noise,
    split_inline_options,
)
from .models import OPTION_KEYS, Line, OptionKey, RawQuestionBlock

logger = logging.getLogger(__name__)


class SegmenterState(Enum):
    """Section of the current question that receives text."""
    SEEKING_QUESTION = "SEEKING_QUESTION"
    QUESTION_BODY = "QUESTION_BODY"
    OPTION = "OPTION"
    EXPLANATION = "EXPLANATION"


class QuestionSegmenter:
    """
    Finite state machine that transforms an ordered sequence of Lines
    into RawQuestionBlocks.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        """Reset the state machine for a fresh segmentation run."""
        self.state = SegmenterState.SEEKING_QUESTION
        self.current: Optional[RawQuestionBlock] = None
        self.current_option: Optional[OptionKey] = None
        self.last_number: Optional[int] = None
        self.statement_number = 0
        self.blocks: list[RawQuestionBlock] = []

    def segment(self, lines: list[Line]) -> list[RawQuestionBlock]:
        """
        Segment a document's lines into question blocks.

        Raises:
            NoQuestionsFoundError: If no question-start line is found.
        """
        self.reset()

        for line in lines:
            self._process_line(line)

        if self.current:
            self._finalize_question()

        if not self.blocks:
            raise NoQuestionsFoundError(
                "No numbered questions found; the PDF is not a recognised "
                "question paper format"
            )

        logger.info(f"Segmented {len(self.blocks)} questions")
        return self.blocks

    # ─── Line dispatch ────────────────────────────────────────────────────

    def _process_line(self, line: Line):
        text = line.text.strip()
        if not text or is_noise(text):
            return

        marker = classify_line(text)

        # Question Anchor (e.g. "12. Consider the following")
        if isinstance(marker, QuestionStart):
            if self._accepts_question(marker.number):
                self._start_new_question(marker.number, line)
                if marker.remainder:
                    self._append_body_text(line, marker.remainder)
                return

        if not self.current:
            return

        self.current.page_end = max(self.current.page_end, line.page)

        # Option Anchor (e.g. "(b) Delhi")
        if isinstance(marker, OptionMarker) and self._accepts_option(marker.key):
            self._start_new_option(marker.key)
            self._append_option_text(line, marker.remainder)
            return

        # Explanation Anchor (e.g. "Explanation: ...")
        if isinstance(marker, ExplanationMarker):
            self.state = SegmenterState.EXPLANATION
            self.current_option = None
            if marker.remainder:
                self.current.explanation_lines.append(
                    line.with_text(marker.remainder)
                )
            return

        # Accumulate content in current state
        if self.state == SegmenterState.QUESTION_BODY:
            self._append_body_text(line, text)
        elif self.state == SegmenterState.OPTION:
            self._append_option_text(line, text)
        elif self.state == SegmenterState.EXPLANATION:
            self.current.explanation_lines.append(line)

    # ─── Acceptance rules ─────────────────────────────────────────────────

    def _accepts_question(self, number: int) -> bool:
        """Apply the monotonic numbering rule and the statement-run rule."""
        expected = 1 if self.last_number is None else self.last_number + 1
        in_body = self.state == SegmenterState.QUESTION_BODY

        continues_statements = (
            in_body
            and self.statement_number > 0
            and number == self.statement_number + 1
        )

        if number == expected and not continues_statements:
            return True

        # Numbered sub-statement inside a question body
        if in_body and (number == 1 or continues_statements):
            self.statement_number = number
        return False

    def _accepts_option(self, key: OptionKey) -> bool:
        if self.state not in (SegmenterState.QUESTION_BODY, SegmenterState.OPTION):
            return False
        if self.current_option is None:
            return True
        return OPTION_KEYS.index(key) > OPTION_KEYS.index(self.current_option)

    # ─── Transitions ──────────────────────────────────────────────────────

    def _start_new_question(self, number: int, line: Line):
        """Finalize previous and start fresh state."""
        if self.current:
            self._finalize_question()

        logger.debug(f"Detected Question {number} on page {line.page}")

        self.current = RawQuestionBlock(
            question_number=number,
            page_start=line.page,
            page_end=line.page,
        )
        self.current_option = None
        self.last_number = number
        self.statement_number = 0
        self.state = SegmenterState.QUESTION_BODY

    def _start_new_option(self, key: OptionKey):
        self.state = SegmenterState.OPTION
        self.current_option = key
        self.current.option_lines[key] = []

    def _append_body_text(self, line: Line, text: str):
        """Append body text, splitting off "(a) .. (b) .." inline options."""
        leading, pairs = split_inline_options(text, after=None, min_markers=2)
        if leading:
            self.current.body_lines.append(line.with_text(leading))
        for key, option_text in pairs:
            self._start_new_option(key)
            if option_text:
                self.current.option_lines[key].append(line.with_text(option_text))

    def _append_option_text(self, line: Line, text: str):
        """Append option text, splitting off later inline options."""
        leading, pairs = split_inline_options(text, after=self.current_option)
        if leading:
            self.current.option_lines[self.current_option].append(
                line.with_text(leading)
            )
        for key, option_text in pairs:
            self._start_new_option(key)
            if option_text:
                self.current.option_lines[key].append(line.with_text(option_text))

    def _finalize_question(self):
        q = self.current
        if len(q.option_lines) < 2:
            logger.warning(
                f"Question {q.question_number}: only "
                f"{len(q.option_lines)} option(s) detected"
            )
        self.blocks.append(q)
        self.current = None
        self.current_option = None
