"""
Line Markers
============
Tagged-pattern matchers for the structural anchors of a question paper.

Every reconstructed line is classified into exactly one of:

    QuestionStart(number, remainder)   "12. Consider the following ..."
    OptionMarker(key, remainder)       "(b) Delhi", "c) 1 and 2 only", "(ग) ..."
    ExplanationMarker(remainder)       "Explanation: ..."
    PlainText(text)                    anything else

The segmenter decides whether a candidate marker is honoured (numbering
monotonicity, option order); this module only recognises the grammar.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from .models import OPTION_KEYS, OptionKey

# ─── Marker Types ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class QuestionStart:
    number: int
    remainder: str = ""


@dataclass(frozen=True)
class OptionMarker:
    key: OptionKey
    remainder: str = ""


@dataclass(frozen=True)
class ExplanationMarker:
    remainder: str = ""


@dataclass(frozen=True)
class PlainText:
    text: str


LineMarker = Union[QuestionStart, OptionMarker, ExplanationMarker, PlainText]


# ─── Anchor Patterns ──────────────────────────────────────────────────────────

# Devanagari option letters: क ख ग घ = A B C D
DEVANAGARI_OPTION_MAP = {
    "क": OptionKey.A,
    "ख": OptionKey.B,
    "ग": OptionKey.C,
    "घ": OptionKey.D,
}

# "Q.12 ...", "Q 12. ...", "Question 12: ..." (delimiter optional after a prefix)
PREFIXED_QUESTION_PATTERN = re.compile(
    r"^\s*Q(?:ue(?:s(?:tion)?)?)?\s*(?:No\s*)?[.:\-]?\s*(\d{1,3})"
    r"(?:\s*[.):\-।](?!\d)\s*|\s+|$)(.*)$",
    re.IGNORECASE,
)

# "12. ...", "12) ...", "12। ..." (not "1.5 million")
QUESTION_PATTERN = re.compile(
    r"^\s*(\d{1,3})\s*[.)।](?!\d)\s*(.*)$"
)

# "(a) ...", "[B] ..."
PAREN_OPTION_PATTERN = re.compile(
    r"^\s*[\(\[]\s*([a-d])\s*[\)\]]\s*(.*)$", re.IGNORECASE
)

# "a) ...", "B. ..." (dot form needs a following space: not "a.m.")
BARE_OPTION_PATTERN = re.compile(
    r"^\s*([a-d])(?:\s*\)\s*|\.(?:\s+|$))(.*)$", re.IGNORECASE
)

# "(क) ...", "ख) ..."
DEVANAGARI_OPTION_PATTERN = re.compile(
    r"^\s*[\(\[]?\s*([कखगघ])्?\s*[\)\]]\s*(.*)$"
)

# "Explanation:", "Exp.", "Solution -", "Rationale"
EXPLANATION_PATTERN = re.compile(
    r"^\s*(?:Explanation|Exp|Solution|Sol|Rationale)\s*(?:[.:\-]\s*|$)(.*)$",
    re.IGNORECASE,
)

# Inline parenthesised option markers inside a line: "... (b) Delhi (c) ..."
INLINE_OPTION_PATTERN = re.compile(r"(?:^|(?<=\s))\(([a-d])\)\s*", re.IGNORECASE)

# Answer-key rows: "12. (c)", "12) c", "12 - C", "Q12 - C", "Q.12: c", "12 (c)"
# A "?", "*" or "X" answer marks a dropped question.
ANSWER_ENTRY_PATTERN = re.compile(
    r"(?<![\w.])"
    r"(?:Q(?:ue(?:s(?:tion)?)?)?\s*\.?\s*(?:No\.?\s*)?)?"
    r"(\d{1,3})"
    r"\s*(?:[.):\-–]\s*|\s+)"
    r"[\(\[]?\s*([a-d?*xकखगघ])\s*[\)\]]?"
    r"(?![\w])",
    re.IGNORECASE,
)

# Page furniture that is ignored everywhere
NOISE_PATTERNS = [
    re.compile(r"^\s*(Page\s*)?\d+\s*(/|of)\s*\d+\s*$",
               re.IGNORECASE),  # "8/28", "Page 8 of 28"
    re.compile(r"^\s*Page\s*\d+\s*$", re.IGNORECASE),
    re.compile(r"^\s*-\s*\d+\s*-\s*$"),  # "- 3 -"
    re.compile(r"^https?://\S+$"),  # Lone URLs
    re.compile(r"^\s*www\.\S+\s*$", re.IGNORECASE),
    re.compile(r"^\s*(©|Copyright)\b", re.IGNORECASE),
    re.compile(r"^\s*Space\s+for\s+Rough\s+Work", re.IGNORECASE),
    re.compile(r"^\s*Test\s+Booklet\s+Series", re.IGNORECASE),
    re.compile(r"^\s*SEAL\s*$"),
    re.compile(r"^\s*CSE\s*[-–]?\s*20\d{2}\s*$", re.IGNORECASE),
    re.compile(r"^\s*PTS\s*\(\s*GS\s*\)", re.IGNORECASE),
]


# ─── Classification ──────────────────────────────────────────────────────────


def classify_line(text: str) -> LineMarker:
    """Classify one line of text by the first anchor grammar it matches."""
    match = PREFIXED_QUESTION_PATTERN.match(text) or QUESTION_PATTERN.match(text)
    if match:
        return QuestionStart(int(match.group(1)), match.group(2).strip())

    match = PAREN_OPTION_PATTERN.match(text) or BARE_OPTION_PATTERN.match(text)
    if match:
        return OptionMarker(OptionKey(match.group(1).upper()), match.group(2).strip())

    match = DEVANAGARI_OPTION_PATTERN.match(text)
    if match:
        return OptionMarker(DEVANAGARI_OPTION_MAP[match.group(1)], match.group(2).strip())

    match = EXPLANATION_PATTERN.match(text)
    if match:
        return ExplanationMarker(match.group(1).strip())

    return PlainText(text.strip())


def is_noise(text: str) -> bool:
    """True for headers, footers, page counters and similar furniture."""
    return any(p.match(text) for p in NOISE_PATTERNS)


def next_option_key(key: Optional[OptionKey]) -> Optional[OptionKey]:
    """The key that follows ``key`` (A when ``key`` is None, None after D)."""
    if key is None:
        return OptionKey.A
    idx = OPTION_KEYS.index(key)
    return OPTION_KEYS[idx + 1] if idx + 1 < len(OPTION_KEYS) else None


def split_inline_options(
    text: str,
    after: Optional[OptionKey] = None,
    min_markers: int = 1,
) -> tuple[str, list[tuple[OptionKey, str]]]:
    """
    Split ``"X (b) Y (c) Z"`` into leading text and ``(key, text)`` pairs.

    Only markers forming the consecutive sequence after ``after`` are honoured;
    anything else stays in the surrounding text. Fewer than ``min_markers``
    honoured markers means no split at all.
    """
    expected = next_option_key(after)
    cuts: list[tuple[OptionKey, int, int]] = []

    for match in INLINE_OPTION_PATTERN.finditer(text):
        if expected is None:
            break
        key = OptionKey(match.group(1).upper())
        if key != expected:
            continue
        cuts.append((key, match.start(), match.end()))
        expected = next_option_key(key)

    if len(cuts) < min_markers:
        return text.strip(), []

    leading = text[:cuts[0][1]].strip()
    pairs = []
    for i, (key, _, end) in enumerate(cuts):
        stop = cuts[i + 1][1] if i + 1 < len(cuts) else len(text)
        pairs.append((key, text[end:stop].strip()))
    return leading, pairs


def iter_answer_entries(text: str) -> Iterator[tuple[int, Optional[OptionKey]]]:
    """
    Yield ``(question_number, answer)`` for each answer-key row in ``text``.

    ``answer`` is None for dropped questions ("?", "*", "X").
    """
    for match in ANSWER_ENTRY_PATTERN.finditer(text):
        number = int(match.group(1))
        letter = match.group(2)
        if letter in DEVANAGARI_OPTION_MAP:
            yield number, DEVANAGARI_OPTION_MAP[letter]
        elif letter.upper() in "ABCD":
            yield number, OptionKey(letter.upper())
        else:
            yield number, None
