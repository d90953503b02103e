"""Google Gemini provider integration."""

import logging
from typing import Any, Optional

from google import genai
from google.genai import types

from .base import BaseLLMProvider, RetryConfig

logger = logging.getLogger(__name__)


class GoogleProvider(BaseLLMProvider):
    """Gemini integration used for question and insights generation."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-flash",
        retry_config: Optional[RetryConfig] = None,
    ):
        """
        Initialize Google provider.

        Args:
            api_key: Gemini API key
            model: Default model (default: gemini-1.5-flash)
            retry_config: Retry behaviour for rate-limit rejections
        """
        super().__init__(api_key, model, retry_config)
        self.client = genai.Client(api_key=api_key)

    async def generate_completion_async(
        self,
        prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        model_override: Optional[str] = None,
        **kwargs: Any,
    ) -> str:
        """
        Generate a text completion with the async Gemini client.

        Rate-limit rejections are retried with the provider's retry hint or
        exponential backoff; other errors are raised on the first failure.

        Args:
            prompt: The prompt to send to the model
            temperature: Sampling temperature (0.0 to 2.0)
            max_tokens: Maximum tokens to generate
            model_override: Model to use instead of the provider default
            **kwargs: Additional GenerateContentConfig fields

        Returns:
            The generated text (empty string if the model returned no text)

        Raises:
            ProviderError: If the API call fails
        """
        model_to_use = model_override or self.model
        config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_tokens,
            **kwargs,
        )

        async def _make_request() -> str:
            try:
                response = await self.client.aio.models.generate_content(
                    model=model_to_use,
                    contents=prompt,
                    config=config,
                )
            except Exception as e:
                raise self._handle_api_error(e)

            text = response.text
            if not text:
                logger.warning(f"Gemini model {model_to_use} returned empty response")
                return ""
            return text

        return await self._execute_with_retry_async(_make_request)
