"""
Question Record Builder
=======================
Assembles normalized question blocks and the answer mapping into the final
QuestionRecords. Never drops a detected question: unusable ones are flagged
with ``is_valid=False`` for the caller to review.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from .answer_key import AnswerMatch
from .bilingual import contains_devanagari
from .models import (
    OPTION_KEYS,
    Anomaly,
    AnomalyType,
    Line,
    OptionKey,
    QuestionRecord,
    RawQuestionBlock,
)

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")

# Instruction boilerplate trailing the question stem
BOILERPLATE_PATTERNS = [
    re.compile(r"\s*Select the correct answer\b.*$", re.IGNORECASE),
    re.compile(r"\s*Choose the correct (?:answer|option|code)\b.*$", re.IGNORECASE),
    re.compile(r"\s*Select the correct code\b.*$", re.IGNORECASE),
]


def join_lines(lines: list[Line]) -> str:
    """Single-space join with redundant whitespace collapsed."""
    return join_texts([line.text for line in lines])


def join_texts(texts: list[str]) -> str:
    return _WHITESPACE.sub(" ", " ".join(texts)).strip()


def strip_boilerplate(text: str) -> str:
    for pattern in BOILERPLATE_PATTERNS:
        stripped = pattern.sub("", text).strip()
        if stripped:
            text = stripped
    return text


class QuestionRecordBuilder:
    """Builds QuestionRecords and applies the usability rules."""

    def build(
        self,
        blocks: list[RawQuestionBlock],
        match: Optional[AnswerMatch] = None,
    ) -> list[QuestionRecord]:
        match = match or AnswerMatch(
            unresolved=[b.question_number for b in blocks]
        )
        records = [self.build_record(b, match) for b in blocks]

        invalid = sum(1 for r in records if not r.is_valid)
        logger.info(
            f"Built {len(records)} question records ({invalid} invalid)"
        )
        return records

    def build_record(
        self, block: RawQuestionBlock, match: AnswerMatch
    ) -> QuestionRecord:
        number = block.question_number
        question_text = strip_boilerplate(join_lines(block.body_lines))
        options = {
            key: join_lines(block.option_lines.get(key, []))
            for key in OPTION_KEYS
        }
        question_text_hindi, options_hindi = self._hindi_variant(block)
        explanation = (
            join_lines(block.explanation_lines)
            or match.explanations.get(number)
            or None
        )

        anomalies = list(match.anomalies_for(number))
        is_valid = True

        if not question_text:
            is_valid = False
            anomalies.append(Anomaly(
                type=AnomalyType.MISSING_QUESTION_TEXT,
                severity=80,
                message="Question has no text content",
                question_number=number,
            ))

        distinct = {text for text in options.values() if text}
        if len(distinct) < 2:
            is_valid = False
            anomalies.append(Anomaly(
                type=AnomalyType.INVALID_QUESTION,
                severity=70,
                message=(
                    f"Only {len(distinct)} usable option(s); "
                    f"needs manual correction"
                ),
                question_number=number,
                context={
                    "options_found": [k.value for k in block.option_keys],
                },
            ))

        if contains_devanagari(question_text) or any(
            contains_devanagari(t) for t in options.values()
        ):
            anomalies.append(Anomaly(
                type=AnomalyType.UNTRANSLATED_TEXT,
                severity=10,
                message="No English variant found; Hindi text kept as-is",
                question_number=number,
            ))

        if not is_valid:
            logger.warning(f"Question {number} flagged invalid")

        return QuestionRecord(
            question_number=number,
            question_text=question_text,
            options=options,
            question_text_hindi=question_text_hindi,
            options_hindi=options_hindi,
            correct_answer=match.answer_for(number),
            explanation=explanation,
            is_valid=is_valid,
            page_start=block.page_start,
            page_end=block.page_end,
            anomalies=anomalies,
        )

    def _hindi_variant(
        self, block: RawQuestionBlock
    ) -> tuple[Optional[str], Optional[dict[OptionKey, str]]]:
        """Hindi stem and options split off by the bilingual normalizer."""
        question_text_hindi = join_texts(block.body_hindi) or None
        if not block.option_hindi:
            return question_text_hindi, None
        options_hindi = {
            key: join_texts(block.option_hindi.get(key, []))
            for key in OPTION_KEYS
        }
        return question_text_hindi, options_hindi
