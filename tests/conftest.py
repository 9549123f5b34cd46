"""
Shared fixtures: synthetic question papers and answer keys rendered
in-process with PyMuPDF.
"""

from __future__ import annotations

import fitz
import pytest

LINE_SPACING = 1.6


def render_pdf(pages: list[list[str]], fontsize: float = 11) -> bytes:
    """Render each page's lines top to bottom in a single column."""
    doc = fitz.open()
    for lines in pages:
        page = doc.new_page()
        y = 72
        for text in lines:
            page.insert_text((72, y), text, fontsize=fontsize)
            y += fontsize * LINE_SPACING
    data = doc.tobytes()
    doc.close()
    return data


def render_two_column_pdf(
    left: list[str], right: list[str], fontsize: float = 11
) -> bytes:
    """Render two columns whose rows share baselines."""
    doc = fitz.open()
    page = doc.new_page()
    y = 72
    for i in range(max(len(left), len(right))):
        if i < len(left):
            page.insert_text((50, y), left[i], fontsize=fontsize)
        if i < len(right):
            page.insert_text((320, y), right[i], fontsize=fontsize)
        y += fontsize * LINE_SPACING
    data = doc.tobytes()
    doc.close()
    return data


CAPITALS = [
    ("India", ["Mumbai", "Delhi", "Kolkata", "Chennai"]),
    ("Japan", ["Tokyo", "Osaka", "Kyoto", "Nagoya"]),
    ("France", ["Lyon", "Nice", "Paris", "Lille"]),
    ("Kenya", ["Mombasa", "Kisumu", "Nakuru", "Nairobi"]),
    ("Peru", ["Cusco", "Lima", "Arequipa", "Piura"]),
]


@pytest.fixture
def make_pdf():
    return render_pdf


@pytest.fixture
def make_two_column_pdf():
    return render_two_column_pdf


@pytest.fixture
def five_question_lines() -> list[str]:
    """Question N asks for a capital city, with options a) to d)."""
    lines = []
    for number, (country, options) in enumerate(CAPITALS, start=1):
        lines.append(f"{number}. What is the capital of {country}?")
        for letter, option in zip("abcd", options):
            lines.append(f"{letter}) {option}")
    return lines


@pytest.fixture
def five_question_paper(five_question_lines) -> bytes:
    """Single-column English paper with a header and footer."""
    lines = ["General Studies Paper I", "Time Allowed: Two Hours"]
    lines.extend(five_question_lines)
    lines.append("Page 1 of 1")
    return render_pdf([lines])


@pytest.fixture
def five_question_key() -> bytes:
    """Key for the five-question paper with question 5 dropped."""
    return render_pdf([[
        "Answer Key",
        "1. (b)",
        "2. (a)",
        "3. (c)",
        "4. (d)",
        "5. (?)",
    ]])


@pytest.fixture
def full_key() -> bytes:
    """Tabular key covering all five questions."""
    return render_pdf([[
        "Answer Key",
        "1. (b)    2. (a)    3. (c)",
        "4. (d)    5. (b)",
    ]])
