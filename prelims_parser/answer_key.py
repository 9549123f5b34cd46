"""
Answer-Key Parser & Matcher
===========================
Reads answer-key rows ("12. (c)", "Q12 - C", tabular keys) from the
reconstructed lines of an answer-key PDF and aligns them to question numbers.

Matching is by question number only. Extra key rows are ignored, questions
without a row stay unresolved; both are reported, neither is fatal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from .markers import (
    ANSWER_ENTRY_PATTERN,
    ExplanationMarker,
    classify_line,
    is_noise,
    iter_answer_entries,
)
from .models import Anomaly, AnomalyType, AnswerKeyEntry, Line, OptionKey

logger = logging.getLogger(__name__)


class AnswerKeyParser:
    """
    Simplified segmenter for answer-key documents.

    Solution PDFs that follow a row with an "Explanation:" paragraph have
    that paragraph attached to the row.
    """

    def parse(self, lines: list[Line]) -> list[AnswerKeyEntry]:
        answers: dict[int, OptionKey] = {}
        explanations: dict[int, list[str]] = {}
        seen: set[int] = set()
        last_number: Optional[int] = None
        in_explanation = False

        for line in lines:
            text = line.text.strip()
            if not text or is_noise(text):
                continue

            marker = classify_line(text)
            if isinstance(marker, ExplanationMarker):
                if last_number is not None:
                    in_explanation = True
                    if marker.remainder:
                        explanations.setdefault(last_number, []).append(
                            marker.remainder
                        )
                continue

            if in_explanation and not self._starts_new_row(text, seen):
                explanations.setdefault(last_number, []).append(text)
                continue

            for number, answer in iter_answer_entries(text):
                in_explanation = False
                if number in seen:
                    logger.warning(
                        f"Duplicate answer-key row for question {number} "
                        f"ignored: {text!r}"
                    )
                    continue
                seen.add(number)
                last_number = number
                if answer is None:
                    logger.info(f"Question {number} dropped in answer key")
                    continue
                answers[number] = answer

        entries = [
            AnswerKeyEntry(
                question_number=number,
                answer=answer,
                explanation=" ".join(explanations[number])
                if number in explanations else None,
            )
            for number, answer in answers.items()
        ]
        logger.info(f"Parsed {len(entries)} answer-key entries")
        return entries

    def _starts_new_row(self, text: str, seen: set[int]) -> bool:
        match = ANSWER_ENTRY_PATTERN.match(text)
        return bool(match) and int(match.group(1)) not in seen


@dataclass
class AnswerMatch:
    """Answer mapping plus the data-quality findings of the match."""
    answers: dict[int, OptionKey] = field(default_factory=dict)
    explanations: dict[int, str] = field(default_factory=dict)
    unresolved: list[int] = field(default_factory=list)
    orphans: list[int] = field(default_factory=list)
    key_entry_count: int = 0
    anomalies: list[Anomaly] = field(default_factory=list)

    def answer_for(self, question_number: int) -> Optional[OptionKey]:
        return self.answers.get(question_number)

    def anomalies_for(self, question_number: int) -> list[Anomaly]:
        return [a for a in self.anomalies if a.question_number == question_number]


class AnswerKeyMatcher:
    """Aligns answer-key entries to question numbers. No fuzzy matching."""

    def match(
        self,
        question_numbers: list[int],
        entries: Optional[list[AnswerKeyEntry]],
    ) -> AnswerMatch:
        """
        Args:
            question_numbers: Numbers of the segmented questions.
            entries: Parsed answer-key rows, or None when no key was supplied.
        """
        result = AnswerMatch(unresolved=list(question_numbers))

        if entries is None:
            logger.info("No answer key supplied; all answers unresolved")
            return result

        by_number = {e.question_number: e for e in entries}
        wanted = set(question_numbers)
        result.key_entry_count = len(by_number)

        result.answers = {
            n: by_number[n].answer for n in question_numbers if n in by_number
        }
        result.explanations = {
            n: by_number[n].explanation
            for n in question_numbers
            if n in by_number and by_number[n].explanation
        }
        result.unresolved = [n for n in question_numbers if n not in by_number]
        result.orphans = sorted(n for n in by_number if n not in wanted)

        if not by_number:
            result.anomalies.append(Anomaly(
                type=AnomalyType.ANSWER_KEY_MISMATCH,
                severity=60,
                message="Answer key contained no recognizable entries",
            ))
        elif len(by_number) != len(wanted):
            result.anomalies.append(Anomaly(
                type=AnomalyType.ANSWER_KEY_MISMATCH,
                severity=40,
                message=(
                    f"Answer key has {len(by_number)} entries for "
                    f"{len(wanted)} questions"
                ),
                context={
                    "key_entries": len(by_number),
                    "questions": len(wanted),
                },
            ))

        for n in result.orphans:
            logger.warning(f"Answer-key entry {n} has no matching question")
        if result.orphans:
            result.anomalies.append(Anomaly(
                type=AnomalyType.ORPHAN_ANSWER_KEY_ENTRY,
                severity=10,
                message=f"{len(result.orphans)} answer-key entries ignored",
                context={"question_numbers": result.orphans},
            ))

        for n in result.unresolved:
            logger.warning(f"Question {n} has no answer-key entry")
            result.anomalies.append(Anomaly(
                type=AnomalyType.UNRESOLVED_ANSWER,
                severity=30,
                message="No answer-key entry for this question",
                question_number=n,
            ))

        logger.info(
            f"Matched {len(result.answers)} of {len(question_numbers)} "
            f"questions to the answer key"
        )
        return result
