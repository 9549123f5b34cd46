"""
Bilingual Normalizer
====================
Separates the Hindi (Devanagari) duplicate that bilingual UPSC papers print
alongside the English text of each question and option.

Rules per section (question body, each option, explanation):
    - Latin and Devanagari content both present → keep only the Latin content,
      in original order, with removal artefacts trimmed. The removed Hindi
      text is returned separately.
    - Devanagari only, or too little Latin to be an English variant
      → pass through unchanged.

The transform is pure and idempotent.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Optional

from .models import Line, RawQuestionBlock

logger = logging.getLogger(__name__)

# Devanagari, Vedic extensions, Devanagari extended, plus ZWJ/ZWNJ
_DEVANAGARI_CHARS = re.compile(r"[\u0900-\u097F\u1CD0-\u1CFF\uA8E0-\uA8FF\u200C\u200D]")
_LATIN_LETTER = re.compile(r"[A-Za-z\u00C0-\u024F]")
_DEVANAGARI_LETTER = re.compile(r"[\u0900-\u0963\u0966-\u097F\u1CD0-\u1CFF\uA8E0-\uA8FF]")

_EMPTY_BRACKETS = re.compile(r"[\(\[]\s*[\)\]]")
_MID_SEPARATOR = re.compile(r"(?<=\s)[/|](?=\s)")
_LEADING_ARTIFACTS = re.compile(r"^[\s/|,;:\-–]+")
_TRAILING_ARTIFACTS = re.compile(r"[\s/|,;:\-–]+$")
_WHITESPACE = re.compile(r"\s+")
_DEVANAGARI_RUN = re.compile(
    r"[\u0900-\u097F\u1CD0-\u1CFF\uA8E0-\uA8FF]"
    r"(?:[\u0900-\u097F\u1CD0-\u1CFF\uA8E0-\uA8FF\u200C\u200D\s,;:!?]*"
    r"[\u0900-\u097F\u1CD0-\u1CFF\uA8E0-\uA8FF?])?"
)


class Script(str, Enum):
    """Dominant writing system of a piece of text."""
    LATIN = "latin"
    DEVANAGARI = "devanagari"
    MIXED = "mixed"
    NEUTRAL = "neutral"  # digits and punctuation only


def contains_devanagari(text: str) -> bool:
    return bool(_DEVANAGARI_LETTER.search(text or ""))


def classify_script(text: str, dominance_threshold: float = 0.9) -> Script:
    """Classify ``text`` by the share of Latin vs Devanagari letters."""
    latin = len(_LATIN_LETTER.findall(text))
    devanagari = len(_DEVANAGARI_LETTER.findall(text))
    total = latin + devanagari

    if total == 0:
        return Script.NEUTRAL
    if latin / total >= dominance_threshold:
        return Script.LATIN
    if devanagari / total >= dominance_threshold:
        return Script.DEVANAGARI
    return Script.MIXED


def strip_devanagari(text: str) -> str:
    """Remove Devanagari runs and tidy what the removal leaves behind."""
    text = _DEVANAGARI_CHARS.sub(" ", text)
    text = _EMPTY_BRACKETS.sub(" ", text)
    text = _WHITESPACE.sub(" ", text)
    text = _MID_SEPARATOR.sub(" ", text)
    text = _LEADING_ARTIFACTS.sub("", text)
    text = _TRAILING_ARTIFACTS.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


def extract_devanagari(text: str) -> str:
    """Devanagari runs of a mixed line, joined in reading order."""
    return " ".join(m.strip() for m in _DEVANAGARI_RUN.findall(text))


class BilingualNormalizer:
    """
    Separates the Hindi duplicate from the English text of question blocks.

    The English text stays in the block's lines; the Devanagari content
    removed from each body and option section is kept alongside in
    ``body_hindi`` and ``option_hindi``.

    Args:
        dominance_threshold: Letter share at which a line counts as purely
            Latin or purely Devanagari; anything between is mixed.
        min_latin_letters: Latin letters a Devanagari-dominant section of
            mixed lines must carry before it is treated as having an English
            variant. Below this the Latin is assumed to be an acronym or name
            inside Hindi text.
        short_text_length: Mixed sections no longer than this many characters
            (a one-word option and its Hindi twin) always count as bilingual.
    """

    def __init__(
        self,
        dominance_threshold: float = 0.9,
        min_latin_letters: int = 10,
        short_text_length: int = 20,
    ):
        self.dominance_threshold = dominance_threshold
        self.min_latin_letters = min_latin_letters
        self.short_text_length = short_text_length

    def normalize_block(self, block: RawQuestionBlock) -> RawQuestionBlock:
        """Return a new block with every section normalized."""
        logger.debug(f"Normalizing question {block.question_number}")
        body_lines, body_hindi = self._normalize_lines(block.body_lines)

        option_lines = {}
        option_hindi = {key: list(texts) for key, texts in block.option_hindi.items()}
        for key, lines in block.option_lines.items():
            option_lines[key], removed = self._normalize_lines(lines)
            if removed:
                option_hindi[key] = option_hindi.get(key, []) + removed

        explanation_lines, _ = self._normalize_lines(block.explanation_lines)

        return RawQuestionBlock(
            question_number=block.question_number,
            body_lines=body_lines,
            option_lines=option_lines,
            explanation_lines=explanation_lines,
            body_hindi=block.body_hindi + body_hindi,
            option_hindi=option_hindi,
            page_start=block.page_start,
            page_end=block.page_end,
        )

    def normalize_blocks(
        self, blocks: list[RawQuestionBlock]
    ) -> list[RawQuestionBlock]:
        return [self.normalize_block(b) for b in blocks]

    def normalize_texts(self, texts: list[str]) -> list[str]:
        """Normalize one section given as a list of line texts."""
        return self.split_texts(texts)[0]

    def normalize_text(self, text: str) -> str:
        """Normalize a single string treated as a one-line section."""
        return " ".join(self.normalize_texts([text]))

    def split_texts(self, texts: list[str]) -> tuple[list[str], list[str]]:
        """
        Split one section into the lines kept and the Hindi text removed.

        Both lists keep the original line order. The second is empty when
        the section has no English variant.
        """
        kept, removed = [], []
        for text, hindi in self._decide(texts):
            if text is not None:
                kept.append(text)
            if hindi:
                removed.append(hindi)
        return kept, removed

    # ─── Internals ────────────────────────────────────────────────────────

    def _normalize_lines(self, lines: list[Line]) -> tuple[list[Line], list[str]]:
        decisions = self._decide([line.text for line in lines])
        result, removed = [], []
        for line, (text, hindi) in zip(lines, decisions):
            if hindi:
                removed.append(hindi)
            if text is None:
                continue
            result.append(line if text == line.text else line.with_text(text))
        return result, removed

    def _decide(
        self, texts: list[str]
    ) -> list[tuple[Optional[str], Optional[str]]]:
        """
        Map each line text to its kept form (None when the line is dropped)
        and the Devanagari text taken out of it. Lines are never merged or
        reordered.
        """
        scripts = [classify_script(t, self.dominance_threshold) for t in texts]

        has_devanagari = any(
            s in (Script.DEVANAGARI, Script.MIXED) for s in scripts
        )
        if not has_devanagari or not self._has_english_variant(texts, scripts):
            return [(text, None) for text in texts]

        decisions: list[tuple[Optional[str], Optional[str]]] = []
        for text, script in zip(texts, scripts):
            if script == Script.DEVANAGARI:
                decisions.append((None, text.strip()))
            elif script == Script.MIXED:
                stripped = strip_devanagari(text)
                decisions.append((stripped or None, extract_devanagari(text)))
            else:
                decisions.append((text, None))
        return decisions

    def _has_english_variant(
        self, texts: list[str], scripts: list[Script]
    ) -> bool:
        if any(s == Script.LATIN for s in scripts):
            return True
        mixed = [t for t, s in zip(texts, scripts) if s == Script.MIXED]
        if not mixed:
            return False

        latin = sum(len(_LATIN_LETTER.findall(t)) for t in mixed)
        devanagari = sum(len(_DEVANAGARI_LETTER.findall(t)) for t in mixed)
        if latin >= self.min_latin_letters or latin >= devanagari:
            return True
        return len(" ".join(mixed).strip()) <= self.short_text_length
