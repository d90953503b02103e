"""Qualitative feedback on completed tests."""

import asyncio
import logging
import math
from typing import Optional

from studygen.config import settings
from studygen.models import InsightsResult, TestResult
from studygen.prompts import build_insights_prompt
from studygen.providers.base import BaseLLMProvider
from studygen.providers.google_provider import GoogleProvider
from studygen.rate_limiter import RateLimiter
from studygen.text_utils import parse_model_json

logger = logging.getLogger(__name__)

STUDY_RECOMMENDATIONS = [
    "Review incorrect answers and their explanations",
    "Focus on understanding rather than memorization",
    "Practice with similar questions",
]
FOCUS_AREAS = [
    "Key concepts from the source material",
    "Areas where incorrect answers were selected",
]


def build_fallback_insights(result: TestResult) -> InsightsResult:
    """Rule-based insights derived from the score alone.

    The wrong-answer count is the number of submitted questions minus the
    correct count implied by the score.
    """
    if result.score >= 80:
        overall = "Strong performance demonstrating good understanding of the material."
    elif result.score >= 60:
        overall = "Satisfactory performance with room for improvement in key areas."
    else:
        overall = "Needs significant improvement. Consider reviewing the material thoroughly."

    if result.score >= 70:
        strengths = ["Good grasp of basic concepts", "Effective reading comprehension"]
    else:
        strengths = ["Attempted all questions", "Shows engagement with the material"]

    correct_count = math.floor(result.score / 100 * result.total_questions)
    wrong_count = max(len(result.questions) - correct_count, 0)
    weaknesses = []
    if wrong_count > 0:
        weaknesses = [
            f"Struggled with {wrong_count} question(s)",
            "May need to review key concepts",
        ]

    return InsightsResult(
        overall_performance=overall,
        strengths=strengths,
        weaknesses=weaknesses,
        study_recommendations=list(STUDY_RECOMMENDATIONS),
        focus_areas=list(FOCUS_AREAS),
    )


class InsightsGenerator:
    """Summarizes a completed test into feedback using the fast model."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        provider: Optional[BaseLLMProvider] = None,
        rate_limiter: Optional[RateLimiter] = None,
        model: Optional[str] = None,
        request_timeout: Optional[float] = None,
    ):
        self.model = model or settings.gemini_fast_model
        self.request_timeout = (
            request_timeout
            if request_timeout is not None
            else settings.request_timeout_seconds
        )
        if provider is None:
            api_key = api_key if api_key is not None else settings.gemini_api_key
            if api_key:
                provider = GoogleProvider(api_key=api_key, model=self.model)
        self.provider = provider
        self.rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter()

    async def generate_insights(self, result: TestResult) -> InsightsResult:
        """Generate insights for a completed test.

        Never raises: any provider, parse or validation failure yields the
        deterministic fallback instead.
        """
        if self.provider is None:
            logger.info("No provider configured, returning rule-based insights")
            return build_fallback_insights(result)

        try:
            await self.rate_limiter.acquire()
            call = self.provider.generate_completion_async(
                build_insights_prompt(result),
                temperature=settings.temperature,
                max_tokens=settings.max_output_tokens,
                model_override=self.model,
            )
            if self.request_timeout:
                raw_text = await asyncio.wait_for(call, timeout=self.request_timeout)
            else:
                raw_text = await call
            payload = parse_model_json(raw_text)
            return InsightsResult.model_validate(payload)
        except Exception as e:
            logger.warning(f"Insights generation failed, using fallback: {e}")
            return build_fallback_insights(result)
