"""Degraded placeholder question sets.

Callers that prefer to show something over an error can substitute this
response when generation fails. It is flagged with ``metadata.degraded``
and never written to the cache.
"""

import uuid

from studygen.models import (
    GeneratedQuestion,
    GenerationMetadata,
    GenerationRequest,
    GenerationResponse,
    is_true_false,
)
from studygen.postprocess import PLACEHOLDER_OPTIONS, TRUE_FALSE_OPTIONS

PLACEHOLDER_HASH = "placeholder"
PLACEHOLDER_CONFIDENCE = 0.5


def build_placeholder_response(request: GenerationRequest) -> GenerationResponse:
    """Build a clearly labelled stand-in for a failed generation."""
    question_type = request.question_types[0]
    true_false = is_true_false(question_type)
    kind = "true/false" if true_false else "multiple choice"

    questions = []
    for index in range(request.question_count):
        if true_false:
            options = list(TRUE_FALSE_OPTIONS)
            answer = "True" if index % 2 == 0 else "False"
        else:
            options = list(PLACEHOLDER_OPTIONS)
            answer = options[0]
        questions.append(
            GeneratedQuestion(
                id=uuid.uuid4().hex,
                type=question_type,
                question_text=(
                    f"Sample {kind} question {index + 1} "
                    "(generation failed, please try again)"
                ),
                options=options,
                correct_answer=answer,
                explanation="Placeholder question: the content could not be processed.",
                difficulty=request.difficulty,
                points=request.difficulty.weight,
                confidence=PLACEHOLDER_CONFIDENCE,
            )
        )

    return GenerationResponse(
        questions=questions,
        metadata=GenerationMetadata(
            total_questions=len(questions),
            estimated_time=len(questions) * request.difficulty.weight,
            difficulty=request.difficulty,
            subject=request.subject,
            content_hash=PLACEHOLDER_HASH,
            degraded=True,
        ),
    )
