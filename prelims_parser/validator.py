"""
Validation Engine
=================
Post-build validation and reporting.

After building the question records, generates the import report:
    - Total Questions Detected
    - Answers Resolved / Unresolved
    - Invalid Questions (fewer than two usable options)
    - Answer-key entries with no matching question
    - Missing Question Numbers (gaps in sequence)
    - Every data-quality warning, for human review

Never silently ignores failures.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Optional

from .answer_key import AnswerMatch
from .models import ImportReport, QuestionRecord

logger = logging.getLogger(__name__)


class ValidationEngine:
    """
    Validates built records and produces the import report.
    """

    def validate(
        self,
        records: list[QuestionRecord],
        match: Optional[AnswerMatch] = None,
    ) -> ImportReport:
        """
        Run full validation on built records.

        Args:
            records: Question records in document order.
            match: Result of answer-key matching, if one was run.

        Returns:
            ImportReport with all detected issues.
        """
        report = ImportReport()

        if not records:
            logger.warning("No questions to validate")
            return report

        report.total_questions_detected = len(records)
        report.resolved_answers = sum(1 for r in records if r.is_resolved)
        report.unresolved_question_numbers = [
            r.question_number for r in records if not r.is_resolved
        ]
        report.invalid_question_numbers = [
            r.question_number for r in records if not r.is_valid
        ]

        # Find missing numbers (gaps in sequence)
        numbers = [r.question_number for r in records]
        expected = set(range(1, max(numbers) + 1))
        report.missing_question_numbers = sorted(expected - set(numbers))

        if match is not None:
            report.answer_key_entries = match.key_entry_count
            report.orphan_key_numbers = list(match.orphans)
            report.warnings.extend(
                a for a in match.anomalies if a.question_number is None
            )

        for r in records:
            report.warnings.extend(r.anomalies)

        # Log summary
        breakdown = Counter(a.type.value for a in report.warnings)

        logger.info("=" * 60)
        logger.info("IMPORT REPORT")
        logger.info("=" * 60)
        logger.info(
            f"Total Questions Detected: {report.total_questions_detected}"
        )
        logger.info(
            f"Answers Resolved: {report.resolved_answers} "
            f"({report.resolution_rate}%)"
        )
        logger.info(f"Invalid Questions: {report.invalid_count}")
        logger.info(
            f"Unmatched Answer-Key Entries: {len(report.orphan_key_numbers)}"
        )
        logger.info(
            f"Missing Question Numbers: "
            f"{len(report.missing_question_numbers)}"
        )

        if breakdown:
            logger.info("Warning Breakdown:")
            for warning_type, count in sorted(breakdown.items()):
                logger.info(f"  • {warning_type}: {count}")

        logger.info(report.summary)
        logger.info("=" * 60)

        return report
