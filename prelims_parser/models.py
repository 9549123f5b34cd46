"""
Data Models
===========
Pydantic models for every stage of the question-paper import pipeline.
All models are serializable to JSON for the web layer that persists them.

Stage outputs:
    TextFragment     → Text Extractor
    Line             → Layout Reconstructor
    RawQuestionBlock → Question Segmenter / Bilingual Normalizer
    AnswerKeyEntry   → Answer-Key Parser
    QuestionRecord   → Question Record Builder
    ImportResult     → Import Pipeline
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


# ─── Enums ────────────────────────────────────────────────────────────────────


class OptionKey(str, Enum):
    """Option letter of a four-option MCQ."""
    A = "A"
    B = "B"
    C = "C"
    D = "D"


OPTION_KEYS: tuple[OptionKey, ...] = tuple(OptionKey)


class AnomalyType(str, Enum):
    """Non-fatal data-quality conditions surfaced to the caller."""
    ANSWER_KEY_MISMATCH = "answer_key_mismatch"
    UNRESOLVED_ANSWER = "unresolved_answer"
    ORPHAN_ANSWER_KEY_ENTRY = "orphan_answer_key_entry"
    INVALID_QUESTION = "invalid_question"
    MISSING_QUESTION_TEXT = "missing_question_text"
    UNTRANSLATED_TEXT = "untranslated_text"


class PipelineState(str, Enum):
    """Lifecycle of a single import call."""
    RECEIVED = "received"
    EXTRACTING = "extracting"
    RECONSTRUCTING = "reconstructing"
    SEGMENTING = "segmenting"
    NORMALIZING = "normalizing"
    MATCHING_ANSWERS = "matching_answers"
    BUILDING = "building"
    DONE = "done"
    FAILED = "failed"


# ─── Layout Models ────────────────────────────────────────────────────────────


class TextFragment(BaseModel):
    """
    One text span as extracted from a PDF page.
    Coordinates use a top-left origin, as PyMuPDF reports them.
    """
    model_config = ConfigDict(frozen=True)

    content: str
    page: int = Field(ge=1)
    x: float
    y: float = Field(description="Top edge of the span's bounding box")
    font_size: float = Field(gt=0)
    width: float = Field(
        default=0.0,
        ge=0,
        description="Horizontal extent; 0 when the source did not report it",
    )

    @property
    def right(self) -> float:
        if self.width > 0:
            return self.x + self.width
        return self.x + len(self.content) * self.font_size * 0.5

    @property
    def center_y(self) -> float:
        return self.y + self.font_size / 2


class Line(BaseModel):
    """Fragments judged to share a horizontal band within one column."""
    model_config = ConfigDict(frozen=True)

    page: int = Field(ge=1)
    column: int = Field(default=0, ge=0)
    fragments: tuple[TextFragment, ...] = ()
    text: str
    y_position: float

    def with_text(self, text: str) -> Line:
        """Copy of this line carrying different text (marker prefix removed)."""
        return self.model_copy(update={"text": text})


# ─── Segmentation Models ──────────────────────────────────────────────────────


class RawQuestionBlock(BaseModel):
    """Contiguous span of lines that belongs to one numbered question."""
    question_number: int = Field(ge=1)
    body_lines: list[Line] = Field(default_factory=list)
    option_lines: dict[OptionKey, list[Line]] = Field(default_factory=dict)
    explanation_lines: list[Line] = Field(default_factory=list)
    body_hindi: list[str] = Field(default_factory=list)
    option_hindi: dict[OptionKey, list[str]] = Field(default_factory=dict)
    page_start: int = Field(default=1, ge=1)
    page_end: int = Field(default=1, ge=1)

    @property
    def option_keys(self) -> list[OptionKey]:
        return [k for k in OPTION_KEYS if k in self.option_lines]


class AnswerKeyEntry(BaseModel):
    """
    One row of an answer key. Associated with a QuestionRecord by
    question number only.
    """
    model_config = ConfigDict(frozen=True)

    question_number: int = Field(ge=1)
    answer: OptionKey
    explanation: Optional[str] = None


# ─── Anomaly Model ────────────────────────────────────────────────────────────


class Anomaly(BaseModel):
    """A data-quality condition that needs human review but never aborts."""
    type: AnomalyType
    severity: int = Field(
        ge=0, le=100,
        description="Severity score 0-100"
    )
    message: str
    question_number: Optional[int] = None
    context: Optional[dict] = None


# ─── Question Model ───────────────────────────────────────────────────────────


class QuestionRecord(BaseModel):
    """Final structured question handed to the persistence layer."""
    question_number: int = Field(ge=1)
    question_text: str = ""
    options: dict[OptionKey, str] = Field(
        default_factory=lambda: {key: "" for key in OPTION_KEYS}
    )
    question_text_hindi: Optional[str] = Field(
        default=None,
        description="Hindi stem of a bilingual question",
    )
    options_hindi: Optional[dict[OptionKey, str]] = None
    correct_answer: Optional[OptionKey] = None
    explanation: Optional[str] = None
    is_valid: bool = True
    page_start: int = Field(default=1, ge=1)
    page_end: int = Field(default=1, ge=1)
    anomalies: list[Anomaly] = Field(default_factory=list)

    @computed_field
    @property
    def populated_options(self) -> int:
        return sum(1 for text in self.options.values() if text.strip())

    @computed_field
    @property
    def is_resolved(self) -> bool:
        return self.correct_answer is not None


# ─── Import Result Models ─────────────────────────────────────────────────────


class FailureInfo(BaseModel):
    """Why the pipeline stopped before reaching DONE."""
    kind: str
    stage: PipelineState
    message: str


class SourceMetadata(BaseModel):
    """Metadata about one input PDF."""
    source_name: str = ""
    file_hash: str = ""
    file_size_bytes: int = 0
    total_pages: int = 0
    fragment_count: int = 0
    line_count: int = 0


class ImportReport(BaseModel):
    """Pipeline-level counts and warnings for the reviewing human."""
    total_questions_detected: int = 0
    resolved_answers: int = 0
    answer_key_entries: int = 0
    unresolved_question_numbers: list[int] = Field(default_factory=list)
    invalid_question_numbers: list[int] = Field(default_factory=list)
    orphan_key_numbers: list[int] = Field(default_factory=list)
    missing_question_numbers: list[int] = Field(default_factory=list)
    warnings: list[Anomaly] = Field(default_factory=list)

    @computed_field
    @property
    def invalid_count(self) -> int:
        return len(self.invalid_question_numbers)

    @computed_field
    @property
    def resolution_rate(self) -> float:
        if self.total_questions_detected == 0:
            return 0.0
        return round(
            self.resolved_answers / self.total_questions_detected * 100,
            2
        )

    @computed_field
    @property
    def needs_review(self) -> list[int]:
        """Question numbers that need manual correction."""
        return sorted(
            set(self.invalid_question_numbers)
            | set(self.unresolved_question_numbers)
        )

    @computed_field
    @property
    def summary(self) -> str:
        total = self.total_questions_detected
        review = len(self.needs_review)
        if review == 0:
            return f"{total} of {total} questions imported"
        verb = "needs" if review == 1 else "need"
        return (
            f"{total - review} of {total} questions imported, "
            f"{review} {verb} review"
        )


class ImportResult(BaseModel):
    """
    Complete output of one import call.
    This is the top-level JSON structure returned to the web layer.
    """
    state: PipelineState = PipelineState.RECEIVED
    failure: Optional[FailureInfo] = None
    questions: list[QuestionRecord] = Field(default_factory=list)
    report: ImportReport = Field(default_factory=ImportReport)
    paper: SourceMetadata = Field(default_factory=SourceMetadata)
    answer_key: Optional[SourceMetadata] = None
    parser_version: str = "1.0.0"
    parse_timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    @computed_field
    @property
    def succeeded(self) -> bool:
        return self.state == PipelineState.DONE
