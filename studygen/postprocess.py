"""Normalization of raw model questions into the canonical shape.

Besides filling defaults, every question is attributed to a span of the
original content. A ``sourceText`` claimed by the model is located with a
case-insensitive literal search; when it cannot be found, the i-th usable
sentence of the content is substituted instead. The substitute is only
positionally related to the question, so offsets produced this way are an
approximation of where the answer comes from, not a guarantee.
"""

import logging
import re
import uuid
from typing import Any, Dict, List, Optional, Tuple

from studygen.config import settings
from studygen.models import (
    AnswerValue,
    Difficulty,
    GeneratedQuestion,
    GenerationMetadata,
    GenerationRequest,
    GenerationResponse,
    is_multiple_choice,
    is_true_false,
)
from studygen.text_utils import Sentence, split_sentences

logger = logging.getLogger(__name__)

TRUE_FALSE_OPTIONS = ["True", "False"]
PLACEHOLDER_OPTIONS = ["Option A", "Option B", "Option C", "Option D"]
DEFAULT_EXPLANATION = "No explanation provided."


def attribute_source(
    content: str,
    claimed: Optional[str],
    index: int,
    sentences: Optional[List[Sentence]] = None,
) -> Tuple[str, int, int]:
    """Locate the source span for the question at ``index``.

    Args:
        content: The original, untruncated content
        claimed: Source text supplied by the model, if any
        index: Position of the question in the response
        sentences: Pre-split sentences of ``content`` (computed if omitted)

    Returns:
        Tuple of (source_text, offset, length) where
        ``content[offset:offset + length] == source_text``
    """
    if isinstance(claimed, str) and claimed.strip():
        match = re.search(re.escape(claimed.strip()), content, re.IGNORECASE)
        if match:
            return content[match.start() : match.end()], match.start(), len(match.group(0))

    if sentences is None:
        sentences = split_sentences(content)
    if not sentences:
        return "", 0, 0

    sentence = sentences[min(index, len(sentences) - 1)]
    logger.debug(
        f"Question {index + 1}: source text not found in content, "
        f"using sentence at offset {sentence.offset}"
    )
    return sentence.text, sentence.offset, sentence.length


def _resolve_type(raw_type: Any, requested: List[str]) -> str:
    if isinstance(raw_type, str) and raw_type.strip():
        raw_type = raw_type.strip()
        if raw_type in requested:
            return raw_type
        # Map spelling variants back onto the requested type
        for candidate in requested:
            if is_true_false(raw_type) and is_true_false(candidate):
                return candidate
            if is_multiple_choice(raw_type) and is_multiple_choice(candidate):
                return candidate
    return requested[0]


def _resolve_difficulty(raw: Any, default: Difficulty) -> Difficulty:
    if isinstance(raw, str):
        try:
            return Difficulty(raw.strip().lower())
        except ValueError:
            pass
    return default


def _resolve_options(raw: Any, question_type: str) -> List[str]:
    if is_true_false(question_type):
        return list(TRUE_FALSE_OPTIONS)
    if isinstance(raw, list) and raw:
        return [str(option) for option in raw]
    if is_multiple_choice(question_type):
        return list(PLACEHOLDER_OPTIONS)
    return []


_OPTION_LETTER = re.compile(r"\(?([A-Za-z])[).:]?")


def _match_option(answer: str, options: List[str]) -> Optional[str]:
    for option in options:
        if option.lower() == answer.lower():
            return option
    # "B", "b)" or "(B)" refer to options by position
    letter = _OPTION_LETTER.fullmatch(answer)
    if letter:
        position = ord(letter.group(1).upper()) - ord("A")
        if position < len(options):
            return options[position]
    return None


def normalize_answer(raw: Any, options: List[str], question_type: str) -> Optional[AnswerValue]:
    """Coerce a model answer onto the question's options.

    True/false answers given as booleans or in any casing become "True" or
    "False". Other answers that match an option case-insensitively, or name
    one by letter, are replaced by that option's exact text. Questions
    without options keep the answer as given.

    Returns:
        The normalized answer, or None when a question with options has an
        answer that names none of them
    """
    if raw is None:
        return options[0] if is_true_false(question_type) else None
    if isinstance(raw, bool):
        raw = "True" if raw else "False"
    if isinstance(raw, list):
        single_answer = is_true_false(question_type) or is_multiple_choice(question_type)
        if single_answer and len(raw) == 1:
            raw = raw[0]
        elif single_answer or not raw:
            return None
        elif not options:
            return [str(item) for item in raw]
        else:
            matched = [_match_option(str(item).strip(), options) for item in raw]
            return None if None in matched else matched

    answer = str(raw).strip()
    if not options:
        return answer or None
    return _match_option(answer, options)


def process_question(
    raw: Dict[str, Any],
    index: int,
    request: GenerationRequest,
    sentences: List[Sentence],
    confidence: float,
) -> Optional[GeneratedQuestion]:
    """Build one canonical question from a raw model object.

    Returns None when the answer key cannot be resolved onto the options.
    """
    question_type = _resolve_type(raw.get("type"), request.question_types)
    difficulty = _resolve_difficulty(raw.get("difficulty"), request.difficulty)
    options = _resolve_options(raw.get("options"), question_type)
    correct_answer = normalize_answer(raw.get("correctAnswer"), options, question_type)
    if correct_answer is None:
        return None

    question_text = raw.get("question")
    if not isinstance(question_text, str) or not question_text.strip():
        question_text = f"Question {index + 1}"

    explanation = raw.get("explanation")
    if not isinstance(explanation, str) or not explanation.strip():
        explanation = DEFAULT_EXPLANATION

    raw_id = raw.get("id")
    question_id = str(raw_id) if raw_id else uuid.uuid4().hex

    source_text, offset, length = attribute_source(
        request.content, raw.get("sourceText"), index, sentences
    )

    return GeneratedQuestion(
        id=question_id,
        type=question_type,
        question_text=question_text.strip(),
        options=options,
        correct_answer=correct_answer,
        explanation=explanation.strip(),
        difficulty=difficulty,
        points=difficulty.weight,
        source_text=source_text,
        source_offset=offset,
        source_length=length,
        confidence=confidence,
    )


def process_questions(
    raw_questions: List[Any],
    request: GenerationRequest,
    content_hash: str,
    confidence: Optional[float] = None,
) -> GenerationResponse:
    """Normalize raw model questions into a ``GenerationResponse``.

    Args:
        raw_questions: The ``questions`` array from the parsed model payload
        request: The originating request
        content_hash: Cache key of the request, copied into the metadata
        confidence: Fixed confidence attached to every question

    Returns:
        The assembled response
    """
    if confidence is None:
        confidence = settings.default_confidence

    sentences = split_sentences(request.content)
    questions = []
    seen_ids = set()
    for index, raw in enumerate(raw_questions):
        if not isinstance(raw, dict):
            logger.warning(f"Skipping non-object question at index {index}")
            continue
        question = process_question(raw, index, request, sentences, confidence)
        if question is None:
            logger.warning(
                f"Dropping question at index {index}: answer does not match any option"
            )
            continue
        if question.id in seen_ids:
            question.id = uuid.uuid4().hex
        seen_ids.add(question.id)
        questions.append(question)

    metadata = GenerationMetadata(
        total_questions=len(questions),
        estimated_time=len(questions) * request.difficulty.weight,
        difficulty=request.difficulty,
        subject=request.subject,
        content_hash=content_hash,
    )
    return GenerationResponse(questions=questions, metadata=metadata)
