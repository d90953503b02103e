"""Question generation orchestrator.

Ties the pipeline together: cache lookup, rate limiting, the fast model,
a one-shot fallback to the strong model for small requests, and cache
write-through on success.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from studygen.cache import ResponseCache, compute_content_hash
from studygen.config import settings
from studygen.errors import (
    GenerationError,
    ParseError,
    QuestionServiceError,
    ServiceNotInitializedError,
)
from studygen.models import GenerationRequest, GenerationResponse
from studygen.postprocess import process_questions
from studygen.prompts import build_generation_prompt, build_simplified_prompt
from studygen.providers.base import BaseLLMProvider
from studygen.providers.google_provider import GoogleProvider
from studygen.rate_limiter import RateLimiter
from studygen.text_utils import parse_questions_payload

logger = logging.getLogger(__name__)


class QuestionGenerator:
    """Generates question sets from study content with caching and fallback.

    A generator without provider credentials is constructed normally but
    reports ``is_initialized == False`` and refuses every generation call.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        provider: Optional[BaseLLMProvider] = None,
        cache: Optional[ResponseCache] = None,
        rate_limiter: Optional[RateLimiter] = None,
        fast_model: Optional[str] = None,
        strong_model: Optional[str] = None,
        request_timeout: Optional[float] = None,
    ):
        """Initialize the generator.

        Args:
            api_key: Gemini API key (default: from settings)
            provider: Provider to use instead of building a GoogleProvider
            cache: Response cache (a new one is created if omitted)
            rate_limiter: Limiter shared with other provider callers
            fast_model: Primary model name
            strong_model: Fallback model name
            request_timeout: Per-call timeout in seconds (None disables it)
        """
        self.fast_model = fast_model or settings.gemini_fast_model
        self.strong_model = strong_model or settings.gemini_strong_model
        self.request_timeout = (
            request_timeout
            if request_timeout is not None
            else settings.request_timeout_seconds
        )

        if provider is None:
            api_key = api_key if api_key is not None else settings.gemini_api_key
            if api_key:
                provider = GoogleProvider(api_key=api_key, model=self.fast_model)
                logger.info(f"Initialized Google provider with model {self.fast_model}")
            else:
                logger.warning(
                    "No Gemini API key configured; question generation is disabled"
                )
        self.provider = provider

        self.cache = cache if cache is not None else ResponseCache()
        self.rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter()

    @property
    def is_initialized(self) -> bool:
        return self.provider is not None

    def should_fallback(self, request: GenerationRequest) -> bool:
        """Whether a failed request is small enough for the strong model."""
        return (
            request.question_count <= settings.fallback_max_questions
            and len(request.content) <= settings.fallback_max_content_chars
        )

    async def generate_questions(self, request: GenerationRequest) -> GenerationResponse:
        """Generate a question set for the request.

        Args:
            request: The generation request

        Returns:
            The generated (or cached) response

        Raises:
            ServiceNotInitializedError: If no provider is configured
            GenerationError: If no model path produced a usable response
        """
        if not self.is_initialized:
            raise ServiceNotInitializedError(
                "Question generation is unavailable: no Gemini API key configured"
            )

        content_hash = compute_content_hash(request)
        cached = self.cache.get(content_hash)
        if cached is not None:
            logger.info(
                f"Cache hit for {content_hash[:8]}...",
                extra={"content_hash": content_hash},
            )
            return cached

        logger.info(
            f"Generating {request.question_count} {request.difficulty.value} questions",
            extra={"content_hash": content_hash, "question_count": request.question_count},
        )

        try:
            response = await self._run_model_path(
                request,
                content_hash,
                model=self.fast_model,
                prompt=build_generation_prompt(request),
            )
        except (QuestionServiceError, asyncio.TimeoutError) as primary_error:
            if not self.should_fallback(request):
                logger.error(
                    f"Primary model {self.fast_model} failed and request is too large "
                    f"for fallback: {primary_error}"
                )
                raise GenerationError(
                    f"Question generation failed: {primary_error}",
                    cause=primary_error,
                    attempted_fallback=False,
                ) from primary_error

            logger.warning(
                f"Primary model {self.fast_model} failed ({primary_error}), "
                f"falling back to {self.strong_model}",
                extra={"model": self.strong_model},
            )
            try:
                response = await self._run_model_path(
                    request,
                    content_hash,
                    model=self.strong_model,
                    prompt=build_simplified_prompt(request),
                )
            except (QuestionServiceError, asyncio.TimeoutError) as fallback_error:
                logger.error(f"Fallback model {self.strong_model} failed: {fallback_error}")
                raise GenerationError(
                    f"Question generation failed on both models: {fallback_error}",
                    cause=fallback_error,
                    attempted_fallback=True,
                ) from fallback_error

        self.cache.put(content_hash, response)
        logger.info(
            f"Generated {response.metadata.total_questions} questions",
            extra={"content_hash": content_hash},
        )
        return response

    async def _run_model_path(
        self,
        request: GenerationRequest,
        content_hash: str,
        model: str,
        prompt: str,
    ) -> GenerationResponse:
        await self.rate_limiter.acquire()
        raw_text = await self._call_model(prompt, model)
        payload = parse_questions_payload(raw_text)
        response = process_questions(payload["questions"], request, content_hash)
        if not response.questions:
            raise ParseError("Model response contained no usable questions", raw_text)
        return response

    async def _call_model(self, prompt: str, model: str) -> str:
        call = self.provider.generate_completion_async(
            prompt,
            temperature=settings.temperature,
            max_tokens=settings.max_output_tokens,
            model_override=model,
        )
        if self.request_timeout:
            return await asyncio.wait_for(call, timeout=self.request_timeout)
        return await call

    def get_stats(self) -> Dict[str, Any]:
        """Return cache and rate limiter statistics."""
        return {
            "initialized": self.is_initialized,
            "cache": self.cache.get_stats(),
            "rate_limiter": self.rate_limiter.get_stats(),
        }
