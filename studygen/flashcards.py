"""Flashcards built from content sentences without a model call."""

from typing import List

from studygen.models import Difficulty, Flashcard
from studygen.text_utils import split_sentences

DEFAULT_FLASHCARD_COUNT = 10
FRONT_PREVIEW_CHARS = 50


def generate_flashcards(content: str, count: int = DEFAULT_FLASHCARD_COUNT) -> List[Flashcard]:
    """Turn the first ``count`` usable sentences of content into flashcards."""
    if count <= 0:
        return []
    return [
        Flashcard(
            id=f"flashcard_{index + 1}",
            front=f'What is the main concept in: "{sentence.text[:FRONT_PREVIEW_CHARS]}..."?',
            back=sentence.text,
            difficulty=Difficulty.MEDIUM,
        )
        for index, sentence in enumerate(split_sentences(content)[:count])
    ]
