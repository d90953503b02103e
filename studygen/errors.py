"""Exception hierarchy for the question generation pipeline."""

from typing import Optional

from studygen.error_classifier import ClassifiedError, ErrorCategory


class QuestionServiceError(Exception):
    """Base class for all pipeline errors."""


class ServiceNotInitializedError(QuestionServiceError):
    """Raised when the service has no provider credentials configured."""


class ProviderError(QuestionServiceError):
    """Exception raised by LLM providers with classification.

    Attributes:
        classified_error: The classified error with category and severity
        original_exception: The original exception that was raised
    """

    def __init__(
        self,
        classified_error: ClassifiedError,
        original_exception: Exception,
    ):
        self.classified_error = classified_error
        self.original_exception = original_exception
        super().__init__(str(classified_error))

    @property
    def is_rate_limit(self) -> bool:
        """Whether the provider rejected the call for sending too many requests."""
        return self.classified_error.category == ErrorCategory.RATE_LIMIT

    @property
    def retry_after(self) -> Optional[float]:
        """Provider-supplied retry delay in seconds, if any."""
        return self.classified_error.retry_after


class ParseError(QuestionServiceError, ValueError):
    """Raised when model output does not contain a usable JSON payload."""

    def __init__(self, message: str, raw_text: str = ""):
        self.raw_excerpt = raw_text[:500]
        super().__init__(message)


class GenerationError(QuestionServiceError):
    """Raised when neither the primary nor the fallback model path succeeded.

    Attributes:
        cause: The last underlying error
        attempted_fallback: Whether the secondary model was tried
    """

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        attempted_fallback: bool = False,
    ):
        self.cause = cause
        self.attempted_fallback = attempted_fallback
        super().__init__(message)
