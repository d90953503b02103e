"""Tests for model output parsing and sentence splitting."""

import pytest

from studygen.errors import ParseError
from studygen.text_utils import (
    find_json_object,
    parse_model_json,
    parse_questions_payload,
    split_sentences,
    strip_markdown_code_blocks,
)

PAYLOAD = '{"questions": [{"question": "Is it {braced}?", "correctAnswer": "True"}]}'


class TestStripMarkdownCodeBlocks:
    """Tests for strip_markdown_code_blocks."""

    def test_json_fence(self):
        """Test removal of a ```json fence."""
        assert strip_markdown_code_blocks('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_fence(self):
        """Test removal of a bare ``` fence."""
        assert strip_markdown_code_blocks('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self):
        """Test that unfenced text is only stripped."""
        assert strip_markdown_code_blocks('  {"a": 1}  ') == '{"a": 1}'

    def test_empty(self):
        """Test that empty input is returned as-is."""
        assert strip_markdown_code_blocks("") == ""


class TestFindJsonObject:
    """Tests for brace matching."""

    def test_ignores_braces_in_strings(self):
        """Test that braces inside string literals do not end the object."""
        text = f"prefix {PAYLOAD} suffix {{ignored}}"

        assert find_json_object(text) == PAYLOAD

    def test_unclosed_object(self):
        """Test that an unterminated object yields None."""
        assert find_json_object('{"a": {"b": 1}') is None


class TestParseQuestionsPayload:
    """Tests for parse_questions_payload."""

    @pytest.mark.parametrize(
        "raw",
        [
            f"```json\n{PAYLOAD}\n```",
            f"Here is your result:\n{PAYLOAD}",
            PAYLOAD,
            f"{PAYLOAD}\n\nLet me know if you need more.",
        ],
    )
    def test_accepts_common_shapes(self, raw):
        """Test fenced, prefixed, bare and suffixed payloads."""
        payload = parse_questions_payload(raw)

        assert payload["questions"][0]["correctAnswer"] == "True"

    def test_no_brace_raises(self):
        """Test that text without an object fails."""
        with pytest.raises(ParseError):
            parse_questions_payload("I could not generate questions.")

    def test_invalid_json_raises(self):
        """Test that malformed JSON is not repaired."""
        with pytest.raises(ParseError) as exc_info:
            parse_questions_payload('{"questions": [1, 2,]}')

        assert "invalid JSON" in str(exc_info.value)
        assert exc_info.value.raw_excerpt.startswith('{"questions"')

    def test_missing_questions_raises(self):
        """Test that a payload without a questions array fails."""
        with pytest.raises(ParseError):
            parse_questions_payload('{"items": []}')

    def test_empty_raises(self):
        """Test that empty output fails."""
        with pytest.raises(ParseError):
            parse_questions_payload("   ")

    def test_parse_error_is_value_error(self):
        """Test that ParseError can be caught as ValueError."""
        with pytest.raises(ValueError):
            parse_model_json("no json here")


class TestSplitSentences:
    """Tests for split_sentences."""

    def test_short_sentences_skipped(self):
        """Test the 20-character filter."""
        content = "The cat sat. The dog ran far today."

        sentences = split_sentences(content)

        assert [s.text for s in sentences] == ["The dog ran far today"]

    def test_offsets_point_into_content(self):
        """Test that each sentence can be sliced back out of the content."""
        content = "  Plants need light to grow well!   Roots take up water from soil? ok."

        sentences = split_sentences(content)

        assert len(sentences) == 2
        for sentence in sentences:
            assert content[sentence.offset : sentence.offset + sentence.length] == sentence.text

    def test_no_usable_sentences(self):
        """Test that short content yields nothing."""
        assert split_sentences("Hi. Bye!") == []
