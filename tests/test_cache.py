"""Tests for the content hasher and response cache."""

import asyncio
import hashlib

import pytest

from conftest import FakeClock
from studygen.cache import ResponseCache, compute_content_hash
from studygen.models import (
    Difficulty,
    GeneratedQuestion,
    GenerationMetadata,
    GenerationRequest,
    GenerationResponse,
)


def make_request(content="x" * 50, **overrides):
    fields = {
        "content": content,
        "difficulty": Difficulty.MEDIUM,
        "question_count": 5,
        "question_types": ["mcq", "true-false"],
    }
    fields.update(overrides)
    return GenerationRequest(**fields)


def make_response(content_hash="abc"):
    question = GeneratedQuestion(
        id="q1",
        type="true-false",
        question_text="Is water wet?",
        options=["True", "False"],
        correct_answer="True",
        difficulty=Difficulty.EASY,
        points=1,
    )
    return GenerationResponse(
        questions=[question],
        metadata=GenerationMetadata(
            total_questions=1,
            estimated_time=1,
            difficulty=Difficulty.EASY,
            content_hash=content_hash,
        ),
    )


class TestComputeContentHash:
    """Tests for compute_content_hash."""

    def test_matches_documented_format(self):
        """Test the digest input format."""
        request = make_request(content="Some notes")
        expected = hashlib.md5(b"Some notes-medium-5-mcq,true-false").hexdigest()

        assert compute_content_hash(request) == expected

    def test_only_first_1000_chars_are_hashed(self):
        """Test that content differing after the prefix shares a key."""
        prefix = "a" * 1000
        first = make_request(content=prefix + "first ending")
        second = make_request(content=prefix + "a completely different ending")

        assert compute_content_hash(first) == compute_content_hash(second)

    def test_options_change_the_key(self):
        """Test that each generation option is part of the key."""
        base = make_request()
        variants = [
            make_request(difficulty=Difficulty.HARD),
            make_request(question_count=6),
            make_request(question_types=["true-false", "mcq"]),
        ]

        keys = {compute_content_hash(base)} | {compute_content_hash(v) for v in variants}

        assert len(keys) == 4


class TestResponseCache:
    """Test suite for ResponseCache."""

    def test_put_and_get(self):
        """Test basic storage and retrieval."""
        cache = ResponseCache(clock=FakeClock())
        cache.put("key", make_response())

        assert cache.get("key") == make_response()
        assert len(cache) == 1

    def test_get_missing(self):
        """Test that unknown keys return None."""
        cache = ResponseCache(clock=FakeClock())

        assert cache.get("missing") is None
        assert cache.get_stats()["misses"] == 1

    def test_entry_alive_before_ttl(self):
        """Test that entries survive until the TTL elapses."""
        clock = FakeClock()
        cache = ResponseCache(ttl_seconds=86400, clock=clock)
        cache.put("key", make_response())

        clock.advance(86400 - 1)

        assert cache.get("key") is not None

    def test_entry_expires_after_ttl(self):
        """Test lazy removal of an expired entry on read."""
        clock = FakeClock()
        cache = ResponseCache(ttl_seconds=86400, clock=clock)
        cache.put("key", make_response())

        clock.advance(86400 + 0.001)

        assert cache.get("key") is None
        assert len(cache) == 0
        assert cache.get_stats()["expirations"] == 1

    def test_returned_value_is_a_copy(self):
        """Test that callers cannot mutate the cached entry."""
        cache = ResponseCache(clock=FakeClock())
        cache.put("key", make_response())

        first = cache.get("key")
        first.questions[0].question_text = "changed"

        assert cache.get("key").questions[0].question_text == "Is water wet?"

    def test_sweep_removes_only_expired(self):
        """Test that a sweep deletes expired entries regardless of access."""
        clock = FakeClock()
        cache = ResponseCache(ttl_seconds=100, clock=clock)
        cache.put("old", make_response("old"))
        clock.advance(60)
        cache.put("new", make_response("new"))
        clock.advance(50)

        removed = cache.sweep()

        assert removed == 1
        assert len(cache) == 1
        assert cache.get("new") is not None

    def test_clear(self):
        """Test that clear empties the cache and resets statistics."""
        cache = ResponseCache(clock=FakeClock())
        cache.put("key", make_response())
        cache.get("key")

        cache.clear()

        assert len(cache) == 0
        assert cache.get_stats()["hits"] == 0

    def test_invalid_ttl(self):
        """Test that non-positive lifetimes are rejected."""
        with pytest.raises(ValueError):
            ResponseCache(ttl_seconds=0)

    @pytest.mark.asyncio
    async def test_background_sweeper(self):
        """Test that the periodic sweep task removes expired entries."""
        clock = FakeClock()
        cache = ResponseCache(ttl_seconds=10, sweep_interval_seconds=0.01, clock=clock)
        cache.put("key", make_response())
        clock.advance(11)

        cache.start_sweeper()
        assert cache.sweeper_running
        await asyncio.sleep(0.05)
        await cache.stop_sweeper()

        assert len(cache) == 0
        assert not cache.sweeper_running

    @pytest.mark.asyncio
    async def test_start_sweeper_is_idempotent(self):
        """Test that starting twice keeps a single task."""
        cache = ResponseCache(sweep_interval_seconds=3600, clock=FakeClock())

        cache.start_sweeper()
        task = cache._sweep_task
        cache.start_sweeper()

        assert cache._sweep_task is task
        await cache.stop_sweeper()
