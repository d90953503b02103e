"""Shared text utility functions for the question service.

Covers extraction of JSON payloads from raw model output and the sentence
splitting used for source attribution and flashcards.
"""

import json
import re
from typing import Any, Dict, List, NamedTuple, Optional

from studygen.errors import ParseError

# Sentences must be longer than this (after trimming) to be used as sources
MIN_SENTENCE_LENGTH = 20

_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?")
_SENTENCE_PATTERN = re.compile(r"[^.!?]+")


class Sentence(NamedTuple):
    """A trimmed sentence and its position in the original text."""

    text: str
    offset: int

    @property
    def length(self) -> int:
        return len(self.text)


def strip_markdown_code_blocks(text: str) -> str:
    """Remove markdown code fence markers from text.

    LLMs often wrap JSON responses in blocks like ```json ... ```. Every
    fence marker is dropped so that the JSON object can be located even
    when the fence is surrounded by prose.

    Args:
        text: Raw text that may contain markdown code fences

    Returns:
        Text without fence markers, stripped of surrounding whitespace
    """
    if not text:
        return text
    return _FENCE_PATTERN.sub("", text).strip()


def find_json_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` span in text.

    Braces inside JSON string literals are ignored.

    Returns:
        The span including its outer braces, or None if there is no
        opening brace or it is never closed
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None


def parse_model_json(raw_text: str) -> Dict[str, Any]:
    """Extract and decode the first JSON object in raw model output.

    Tolerates leading/trailing prose and markdown code fences. No attempt is
    made to repair malformed JSON.

    Raises:
        ParseError: If no JSON object is present or it fails to decode
    """
    if not raw_text or not raw_text.strip():
        raise ParseError("Empty response from model", raw_text or "")

    cleaned = strip_markdown_code_blocks(raw_text)
    candidate = find_json_object(cleaned)
    if candidate is None:
        raise ParseError("No JSON object found in model response", raw_text)

    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ParseError(f"Model returned invalid JSON: {e}", raw_text) from e

    if not isinstance(payload, dict):
        raise ParseError("Model response JSON is not an object", raw_text)
    return payload


def parse_questions_payload(raw_text: str) -> Dict[str, Any]:
    """Parse a question generation response.

    Raises:
        ParseError: If the payload is not JSON or ``questions`` is not a list
    """
    payload = parse_model_json(raw_text)
    questions = payload.get("questions")
    if not isinstance(questions, list):
        raise ParseError("Model response is missing a 'questions' array", raw_text)
    return payload


def split_sentences(content: str) -> List[Sentence]:
    """Split content on '.', '!' and '?' into usable source sentences.

    Each sentence is trimmed of surrounding whitespace and kept only if it is
    longer than ``MIN_SENTENCE_LENGTH`` characters. Offsets point into the
    original content, so ``content[s.offset:s.offset + s.length] == s.text``.
    """
    sentences: List[Sentence] = []
    for match in _SENTENCE_PATTERN.finditer(content):
        raw = match.group(0)
        text = raw.strip()
        if len(text) <= MIN_SENTENCE_LENGTH:
            continue
        leading = len(raw) - len(raw.lstrip())
        sentences.append(Sentence(text=text, offset=match.start() + leading))
    return sentences
