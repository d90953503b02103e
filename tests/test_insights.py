"""Tests for insights generation and its rule-based fallback."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import make_provider_error
from studygen.insights import (
    FOCUS_AREAS,
    STUDY_RECOMMENDATIONS,
    InsightsGenerator,
    build_fallback_insights,
)
from studygen.models import AnsweredQuestion, TestResult


def make_result(score=50.0, total=4, wrong=2):
    questions = [AnsweredQuestion(id=f"q{i}", question_text=f"Q{i}?") for i in range(total)]
    user_answers = {f"q{i}": ("False" if i < wrong else "True") for i in range(total)}
    return TestResult(
        score=score,
        total_questions=total,
        questions=questions,
        user_answers=user_answers,
        correct_answers={f"q{i}": "True" for i in range(total)},
        test_title="Photosynthesis quiz",
    )


class TestBuildFallbackInsights:
    """Tests for build_fallback_insights."""

    def test_strong_performance(self):
        """Test the top score band."""
        insights = build_fallback_insights(make_result(score=85, total=4, wrong=0))

        assert insights.overall_performance.startswith("Strong performance")
        assert insights.strengths[0] == "Good grasp of basic concepts"
        assert insights.study_recommendations == STUDY_RECOMMENDATIONS
        assert insights.focus_areas == FOCUS_AREAS

    def test_satisfactory_performance(self):
        """Test the middle band with engagement strengths below 70."""
        insights = build_fallback_insights(make_result(score=65))

        assert insights.overall_performance.startswith("Satisfactory performance")
        assert insights.strengths == [
            "Attempted all questions",
            "Shows engagement with the material",
        ]

    def test_needs_improvement_with_wrong_count(self):
        """Test the low band and the wrong-answer count."""
        insights = build_fallback_insights(make_result(score=50, total=4))

        assert insights.overall_performance.startswith("Needs significant improvement")
        assert insights.weaknesses == [
            "Struggled with 2 question(s)",
            "May need to review key concepts",
        ]

    def test_perfect_score_has_no_weaknesses(self):
        """Test that a perfect score lists no weaknesses."""
        insights = build_fallback_insights(make_result(score=100, total=4, wrong=0))

        assert insights.weaknesses == []


class TestInsightsGenerator:
    """Tests for InsightsGenerator.generate_insights."""

    @pytest.mark.asyncio
    async def test_model_insights(self, rate_limiter):
        """Test that a valid model response is returned as-is."""
        payload = {
            "overallPerformance": "Good effort overall.",
            "strengths": ["Recall"],
            "weaknesses": ["Light reactions"],
            "studyRecommendations": ["Reread chapter 2"],
            "focusAreas": ["Chlorophyll"],
        }
        provider = MagicMock()
        provider.generate_completion_async = AsyncMock(
            return_value=f"```json\n{json.dumps(payload)}\n```"
        )
        generator = InsightsGenerator(provider=provider, rate_limiter=rate_limiter)

        insights = await generator.generate_insights(make_result())

        assert insights.overall_performance == "Good effort overall."
        assert insights.focus_areas == ["Chlorophyll"]
        prompt = provider.generate_completion_async.await_args.args[0]
        assert "Photosynthesis quiz" in prompt

    @pytest.mark.asyncio
    async def test_always_failing_provider_returns_fallback(self, rate_limiter):
        """Test that provider failures never escape."""
        provider = MagicMock()
        provider.generate_completion_async = AsyncMock(side_effect=make_provider_error())
        generator = InsightsGenerator(provider=provider, rate_limiter=rate_limiter)

        insights = await generator.generate_insights(make_result())

        assert insights.overall_performance
        assert insights == build_fallback_insights(make_result())

    @pytest.mark.asyncio
    async def test_unexpected_error_returns_fallback(self, rate_limiter):
        """Test that arbitrary exceptions also fall back."""
        provider = MagicMock()
        provider.generate_completion_async = AsyncMock(side_effect=RuntimeError("boom"))
        generator = InsightsGenerator(provider=provider, rate_limiter=rate_limiter)

        insights = await generator.generate_insights(make_result())

        assert insights.overall_performance

    @pytest.mark.asyncio
    async def test_malformed_payload_returns_fallback(self, rate_limiter):
        """Test that a response missing required fields falls back."""
        provider = MagicMock()
        provider.generate_completion_async = AsyncMock(return_value='{"strengths": "x"}')
        generator = InsightsGenerator(provider=provider, rate_limiter=rate_limiter)

        insights = await generator.generate_insights(make_result(score=90, wrong=0))

        assert insights.overall_performance.startswith("Strong performance")

    @pytest.mark.asyncio
    async def test_no_provider_uses_fallback(self, rate_limiter):
        """Test that an unconfigured generator never calls a model."""
        generator = InsightsGenerator(api_key="", rate_limiter=rate_limiter)

        insights = await generator.generate_insights(make_result())

        assert generator.provider is None
        assert insights.study_recommendations == STUDY_RECOMMENDATIONS

    @pytest.mark.asyncio
    async def test_slow_provider_times_out_to_fallback(self, rate_limiter):
        """Test that a configured timeout cuts off a slow insights call."""

        async def slow_call(*args, **kwargs):
            await asyncio.sleep(5)
            return "{}"

        provider = MagicMock()
        provider.generate_completion_async = AsyncMock(side_effect=slow_call)
        generator = InsightsGenerator(
            provider=provider, rate_limiter=rate_limiter, request_timeout=0.01
        )

        insights = await generator.generate_insights(make_result())

        assert insights == build_fallback_insights(make_result())
