"""Data models for question generation, insights and flashcards.

Field names are snake_case in Python and camelCase on the wire. The one
exception is ``GeneratedQuestion.question_text``, which serializes as
``question`` to match the payload the model is asked to produce.
"""

from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

TRUE_FALSE_TYPES = frozenset({"true-false", "true_false", "truefalse", "tf"})
MULTIPLE_CHOICE_TYPES = frozenset({"mcq", "multiple-choice", "multiple_choice"})

AnswerValue = Union[str, List[str]]

MAX_QUESTION_COUNT = 50


class Difficulty(str, Enum):
    """Difficulty levels for generated questions."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @property
    def weight(self) -> int:
        """Points per question, also used as minutes per question."""
        return _DIFFICULTY_WEIGHTS[self]


_DIFFICULTY_WEIGHTS = {
    Difficulty.EASY: 1,
    Difficulty.MEDIUM: 2,
    Difficulty.HARD: 3,
}


def is_true_false(question_type: str) -> bool:
    """Return True if the type string names a true/false question."""
    return question_type.strip().lower() in TRUE_FALSE_TYPES


def is_multiple_choice(question_type: str) -> bool:
    """Return True if the type string names a multiple-choice question."""
    return question_type.strip().lower() in MULTIPLE_CHOICE_TYPES


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class GenerationRequest(_CamelModel):
    """Input for a single question generation call."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(..., min_length=1, description="Source study notes")
    difficulty: Difficulty = Field(..., description="Requested difficulty")
    question_count: int = Field(
        ..., ge=1, le=MAX_QUESTION_COUNT, description="Number of questions"
    )
    question_types: List[str] = Field(
        ..., min_length=1, description="Requested question types, in order"
    )
    subject: Optional[str] = Field(None, description="Optional subject hint")
    focus: Optional[str] = Field(None, description="Optional topic focus hint")

    @field_validator("question_types")
    @classmethod
    def dedupe_question_types(cls, v: List[str]) -> List[str]:
        """Strip blanks and duplicates while keeping the caller's order."""
        seen: List[str] = []
        for item in v:
            item = item.strip()
            if item and item not in seen:
                seen.append(item)
        if not seen:
            raise ValueError("question_types must contain at least one type")
        return seen


class GeneratedQuestion(_CamelModel):
    """Canonical question produced by the pipeline."""

    id: str
    type: str
    question_text: str = Field(..., alias="question")
    options: List[str] = Field(default_factory=list)
    correct_answer: AnswerValue = ""
    explanation: str = ""
    difficulty: Difficulty
    points: int = Field(..., ge=0)
    source_text: str = ""
    source_offset: int = Field(0, ge=0)
    source_length: int = Field(0, ge=0)
    # Placeholder value: answers are not cross-checked against the source
    confidence: float = Field(0.8, ge=0.0, le=1.0)


class GenerationMetadata(_CamelModel):
    """Summary attached to every generation response."""

    total_questions: int
    estimated_time: int = Field(..., description="Estimated minutes to complete")
    difficulty: Difficulty
    subject: Optional[str] = None
    content_hash: str
    degraded: bool = False


class GenerationResponse(_CamelModel):
    """Question set returned by the generator."""

    questions: List[GeneratedQuestion]
    metadata: GenerationMetadata


class AnsweredQuestion(_CamelModel):
    """A question as it appears in a completed test payload."""

    model_config = ConfigDict(extra="ignore")

    id: str
    question_text: str = Field("", alias="question")
    source_text: str = ""
    explanation: str = ""


class TestResult(_CamelModel):
    """Completed test submitted for insights."""

    __test__ = False  # Not a pytest test class

    model_config = ConfigDict(extra="ignore")

    score: float = Field(..., ge=0, le=100, description="Score as a percentage")
    total_questions: int = Field(..., ge=0)
    questions: List[AnsweredQuestion] = Field(default_factory=list)
    user_answers: Dict[str, AnswerValue] = Field(default_factory=dict)
    correct_answers: Dict[str, AnswerValue] = Field(default_factory=dict)
    test_title: str = ""
    source_content: str = ""

    def wrong_questions(self) -> List[AnsweredQuestion]:
        """Questions whose submitted answer differs from the correct one."""
        return [
            q
            for q in self.questions
            if self.user_answers.get(q.id) != self.correct_answers.get(q.id)
        ]


class InsightsResult(_CamelModel):
    """Qualitative feedback on a completed test."""

    overall_performance: str = Field(..., min_length=1)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    study_recommendations: List[str] = Field(default_factory=list)
    focus_areas: List[str] = Field(default_factory=list)


class FlashcardRequest(_CamelModel):
    """Input for the non-AI flashcard endpoint."""

    content: str = Field(..., min_length=1)
    count: int = Field(10, ge=1)


class Flashcard(_CamelModel):
    """Front/back study card derived from a content sentence."""

    id: str
    front: str
    back: str
    difficulty: Difficulty = Difficulty.MEDIUM
