"""Pytest configuration and shared fixtures for question service tests."""

import json
from typing import List
from unittest.mock import AsyncMock, MagicMock

import pytest

from studygen.cache import ResponseCache
from studygen.error_classifier import ClassifiedError, ErrorCategory, ErrorSeverity
from studygen.errors import ProviderError
from studygen.models import Difficulty, GenerationRequest
from studygen.providers.base import reset_retry_metrics
from studygen.rate_limiter import RateLimiter

PHOTOSYNTHESIS = (
    "Photosynthesis converts sunlight into energy. Plants use chlorophyll."
)


class FakeClock:
    """Manually advanced clock whose ``sleep`` moves time forward instantly."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_provider_error(
    category: ErrorCategory = ErrorCategory.RATE_LIMIT,
    retry_after=None,
    message: str = "429 Too Many Requests",
) -> ProviderError:
    """Build a classified provider error for tests."""
    classified = ClassifiedError(
        category=category,
        severity=ErrorSeverity.HIGH,
        provider="google",
        original_error="ClientError",
        message=message,
        is_retryable=category == ErrorCategory.RATE_LIMIT,
        retry_after=retry_after,
    )
    return ProviderError(classified_error=classified, original_exception=Exception(message))


def questions_json(count: int, question_type: str = "true-false") -> str:
    """Model output containing ``count`` well-formed questions."""
    questions = []
    for i in range(count):
        if question_type == "true-false":
            options = ["True", "False"]
            answer = "True" if i % 2 == 0 else "False"
        else:
            options = ["Light", "Water", "Soil", "Air"]
            answer = "Light"
        questions.append(
            {
                "type": question_type,
                "question": f"Question number {i + 1}?",
                "options": options,
                "correctAnswer": answer,
                "explanation": "Stated in the notes.",
                "sourceText": "Plants use chlorophyll",
            }
        )
    return json.dumps({"questions": questions})


@pytest.fixture(autouse=True)
def fresh_retry_metrics():
    """Reset the process-wide retry metrics around every test."""
    reset_retry_metrics()
    yield
    reset_retry_metrics()


@pytest.fixture
def clock() -> FakeClock:
    """Fixture providing a fake clock starting at t=1000."""
    return FakeClock(start=1000.0)


@pytest.fixture
def rate_limiter(clock) -> RateLimiter:
    """Rate limiter that never really sleeps."""
    return RateLimiter(
        requests_per_minute=10,
        min_interval=2.0,
        window_seconds=60.0,
        clock=clock,
        sleep=clock.sleep,
    )


@pytest.fixture
def cache(clock) -> ResponseCache:
    """Response cache driven by the fake clock."""
    return ResponseCache(ttl_seconds=86400, sweep_interval_seconds=3600, clock=clock)


@pytest.fixture
def mock_provider() -> MagicMock:
    """Provider mock returning two valid true/false questions."""
    provider = MagicMock()
    provider.generate_completion_async = AsyncMock(return_value=questions_json(2))
    return provider


@pytest.fixture
def sample_request() -> GenerationRequest:
    """Fixture providing a small true/false generation request."""
    return GenerationRequest(
        content=PHOTOSYNTHESIS,
        difficulty=Difficulty.EASY,
        question_count=2,
        question_types=["true-false"],
    )
