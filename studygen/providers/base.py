"""Base class for LLM providers and the shared retry machinery."""

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from studygen.config import settings
from studygen.error_classifier import ErrorClassifier
from studygen.errors import ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_RETRY_DELAY = 0.01


@dataclass
class RetryConfig:
    """Configuration for rate-limit retries."""

    max_retries: int = field(default_factory=lambda: settings.max_retries)
    base_delay: float = field(default_factory=lambda: settings.retry_base_delay)
    max_delay: float = 60.0
    exponential_base: float = field(
        default_factory=lambda: settings.retry_exponential_base
    )
    max_hint_delay: float = field(
        default_factory=lambda: settings.max_retry_hint_seconds
    )
    """Provider retry hints longer than this are ignored in favour of backoff."""

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.base_delay <= 0:
            raise ValueError("base_delay must be positive")


class RetryMetrics:
    """Counters for retry activity, per provider."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.total_retries = 0
        self.successful_retries = 0
        self.exhausted_retries = 0
        self.hinted_delays = 0
        self.retries_by_provider: Dict[str, int] = {}

    def record_retry(self, provider: str, success: bool) -> None:
        """Record a retry attempt and whether it succeeded."""
        with self._lock:
            self.total_retries += 1
            if success:
                self.successful_retries += 1
            self.retries_by_provider[provider] = (
                self.retries_by_provider.get(provider, 0) + 1
            )

    def record_hinted_delay(self) -> None:
        """Record that a provider-supplied retry delay was honoured."""
        with self._lock:
            self.hinted_delays += 1

    def record_exhausted(self, provider: str) -> None:
        """Record that all retries were used up."""
        with self._lock:
            self.exhausted_retries += 1
            self.retries_by_provider.setdefault(provider, 0)

    def get_summary(self) -> Dict[str, Any]:
        """Return a snapshot of the counters."""
        with self._lock:
            return {
                "total_retries": self.total_retries,
                "successful_retries": self.successful_retries,
                "exhausted_retries": self.exhausted_retries,
                "hinted_delays": self.hinted_delays,
                "success_rate": (
                    self.successful_retries / self.total_retries
                    if self.total_retries
                    else 0.0
                ),
                "retries_by_provider": dict(self.retries_by_provider),
            }


_retry_metrics: Optional[RetryMetrics] = None


def get_retry_metrics() -> RetryMetrics:
    """Return the process-wide retry metrics instance."""
    global _retry_metrics
    if _retry_metrics is None:
        _retry_metrics = RetryMetrics()
    return _retry_metrics


def reset_retry_metrics() -> None:
    """Discard accumulated retry metrics."""
    global _retry_metrics
    _retry_metrics = RetryMetrics()


def calculate_backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float,
) -> float:
    """Exponential backoff delay for a zero-based attempt number.

    With the defaults this yields 1s, 2s, 4s, ...
    """
    delay = base_delay * (exponential_base**attempt)
    return max(MIN_RETRY_DELAY, min(delay, max_delay))


def usable_retry_hint(error: ProviderError, config: RetryConfig) -> Optional[float]:
    """Return the provider retry hint if it is short enough to honour."""
    hint = error.retry_after
    if hint is not None and 0 <= hint <= config.max_hint_delay:
        return hint
    return None


def resolve_retry_delay(error: ProviderError, attempt: int, config: RetryConfig) -> float:
    """Pick the wait before the next attempt.

    A provider hint is used verbatim when it is no longer than
    ``config.max_hint_delay``; otherwise exponential backoff applies.
    """
    hint = usable_retry_hint(error, config)
    if hint is not None:
        return hint
    return calculate_backoff_delay(
        attempt=attempt,
        base_delay=config.base_delay,
        max_delay=config.max_delay,
        exponential_base=config.exponential_base,
    )


async def with_retry_async(
    func: Callable[[], Awaitable[T]],
    provider_name: str,
    config: Optional[RetryConfig] = None,
) -> T:
    """Run ``func`` and retry it on rate-limit rejections.

    Only ``ProviderError`` instances classified as rate limits are retried;
    every other failure propagates immediately.

    Args:
        func: Zero-argument coroutine function performing one API call
        provider_name: Provider name for logging and metrics
        config: Retry configuration (defaults from settings)

    Returns:
        The result of the first successful call

    Raises:
        ProviderError: When retries are exhausted or the error is not a rate limit
    """
    config = config or RetryConfig()
    metrics = get_retry_metrics()

    for attempt in range(config.max_retries + 1):
        try:
            result = await func()
        except ProviderError as e:
            if not e.is_rate_limit:
                raise
            if attempt >= config.max_retries:
                metrics.record_exhausted(provider_name)
                logger.error(
                    f"{provider_name} rate limit persisted after "
                    f"{config.max_retries} retries"
                )
                raise
            hinted = usable_retry_hint(e, config) is not None
            delay = resolve_retry_delay(e, attempt, config)
            if hinted:
                metrics.record_hinted_delay()
            metrics.record_retry(provider_name, success=False)
            logger.warning(
                f"{provider_name} rate limited (attempt {attempt + 1}/"
                f"{config.max_retries + 1}), retrying in {delay:.2f}s"
                + (" (provider hint)" if hinted else ""),
                extra={"attempt": attempt + 1, "delay_seconds": delay},
            )
            await asyncio.sleep(delay)
            continue

        if attempt > 0:
            metrics.record_retry(provider_name, success=True)
        return result

    # Unreachable: the loop either returns or raises
    raise RuntimeError("retry loop exited without result")


class BaseLLMProvider(ABC):
    """Abstract base class for LLM provider integrations."""

    def __init__(
        self,
        api_key: str,
        model: str,
        retry_config: Optional[RetryConfig] = None,
    ):
        """
        Initialize the LLM provider.

        Args:
            api_key: API key for the provider
            model: Default model identifier
            retry_config: Retry behaviour for rate-limit rejections
        """
        self.api_key = api_key
        self.model = model
        self.retry_config = retry_config or RetryConfig()

    @abstractmethod
    async def generate_completion_async(
        self,
        prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        model_override: Optional[str] = None,
        **kwargs: Any,
    ) -> str:
        """
        Generate a completion from the LLM.

        Args:
            prompt: The prompt to send to the model
            temperature: Sampling temperature
            max_tokens: Maximum number of tokens to generate
            model_override: Model to use instead of the provider default
            **kwargs: Additional provider-specific parameters

        Returns:
            The generated text completion

        Raises:
            ProviderError: If the API call fails after retries
        """

    def get_provider_name(self) -> str:
        """
        Get the name of this provider.

        Returns:
            Provider name (e.g. "google")
        """
        return self.__class__.__name__.replace("Provider", "").lower()

    async def _execute_with_retry_async(self, func: Callable[[], Awaitable[T]]) -> T:
        return await with_retry_async(func, self.get_provider_name(), self.retry_config)

    def _handle_api_error(self, error: Exception) -> ProviderError:
        """Classify and wrap an API error.

        Args:
            error: The exception that was raised

        Returns:
            ProviderError with classified error
        """
        classified = ErrorClassifier.classify_error(
            error=error,
            provider=self.get_provider_name(),
        )
        return ProviderError(
            classified_error=classified,
            original_exception=error,
        )
