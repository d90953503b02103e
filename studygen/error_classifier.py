"""Classification of Gemini API failures.

Provider SDK exceptions are mapped onto a small set of categories so the
retry loop can tell rate-limit rejections (retried) from everything else
(raised immediately). Rate limits also carry the provider's suggested retry
delay when the error includes one.
"""

import re
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Pattern


class ErrorCategory(Enum):
    """Categories of API errors."""

    RATE_LIMIT = "rate_limit"
    BILLING_QUOTA = "billing_quota"
    AUTHENTICATION = "authentication"
    MODEL_ERROR = "model_error"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
    INVALID_REQUEST = "invalid_request"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """How urgently an error needs operator attention."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class ClassifiedError:
    """A provider error reduced to category, severity and retry information.

    Attributes:
        category: Error category
        severity: Error severity
        provider: Provider name, e.g. "google"
        original_error: Exception class name of the SDK error
        message: Human-readable summary
        is_retryable: Whether the failure is transient
        retry_after: Provider-suggested delay in seconds, for rate limits
    """

    category: ErrorCategory
    severity: ErrorSeverity
    provider: str
    original_error: str
    message: str
    is_retryable: bool = False
    retry_after: Optional[float] = None

    def __str__(self) -> str:
        return (
            f"[{self.severity.value.upper()}] {self.provider}: "
            f"{self.category.value} - {self.message}"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict form for structured logging."""
        data = asdict(self)
        data["category"] = self.category.value
        data["severity"] = self.severity.value
        return data


# "retryDelay": "37s" inside a google.rpc.RetryInfo detail
_RETRY_DELAY_FIELD = re.compile(r"""['"]retryDelay['"]\s*:\s*['"](\d+(?:\.\d+)?)s['"]""")
# "Please retry in 37.52s." in the human-readable message
_RETRY_IN_TEXT = re.compile(r"retry in (\d+(?:\.\d+)?)\s*s", re.IGNORECASE)
_DURATION = re.compile(r"\s*(\d+(?:\.\d+)?)\s*s?\s*")


def _parse_duration(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = _DURATION.fullmatch(value)
        if match:
            return float(match.group(1))
    return None


def _retry_info_delay(details: Any) -> Optional[float]:
    # google.genai APIError.details is the decoded error body
    if not isinstance(details, dict):
        return None
    body = details.get("error", details)
    entries = body.get("details") if isinstance(body, dict) else None
    if not isinstance(entries, list):
        return None
    for entry in entries:
        if isinstance(entry, dict) and str(entry.get("@type", "")).endswith("RetryInfo"):
            delay = _parse_duration(entry.get("retryDelay"))
            if delay is not None:
                return delay
    return None


def extract_retry_delay(error: Exception) -> Optional[float]:
    """Extract a provider-supplied retry delay from an API error.

    Looks first at the structured ``details`` payload carried by
    ``google.genai.errors.APIError`` (``error.details[].retryDelay`` on a
    ``RetryInfo`` entry), then falls back to scanning the error text.

    Args:
        error: Exception raised by the provider SDK

    Returns:
        Delay in seconds, or None if the error carries no hint
    """
    delay = _retry_info_delay(getattr(error, "details", None))
    if delay is not None:
        return delay

    text = str(error)
    for pattern in (_RETRY_DELAY_FIELD, _RETRY_IN_TEXT):
        match = pattern.search(text)
        if match:
            return float(match.group(1))
    return None


def _status_code(error: Exception) -> Optional[int]:
    for attr in ("code", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    return None


def _compile(*patterns: str) -> Pattern[str]:
    return re.compile("|".join(f"(?:{p})" for p in patterns), re.IGNORECASE)


@dataclass(frozen=True)
class _Rule:
    category: ErrorCategory
    severity: ErrorSeverity
    pattern: Pattern[str]
    message: str
    is_retryable: bool = False


# Gemini reports per-minute quota exhaustion as 429 RESOURCE_EXHAUSTED, so the
# rate limit rule must run before the billing rule.
_RATE_LIMIT_PATTERN = _compile(
    r"rate.*limit",
    r"too.*many.*requests",
    r"resource.*exhausted",
    r"throttl",
    r"\b429\b",
    r"requests.*per.*minute",
)

_RULES: List[_Rule] = [
    _Rule(
        ErrorCategory.BILLING_QUOTA,
        ErrorSeverity.CRITICAL,
        _compile(
            r"insufficient.*funds",
            r"billing.*(issue|disabled|not enabled)",
            r"credit.*balance",
            r"payment.*required",
            r"account.*suspended",
            r"\b402\b",
        ),
        "Billing issue detected. Check the {provider} account and usage limits.",
    ),
    _Rule(
        ErrorCategory.AUTHENTICATION,
        ErrorSeverity.CRITICAL,
        _compile(
            r"invalid.*api.*key",
            r"api.*key.*not.*valid",
            r"authentication.*failed",
            r"unauthorized",
            r"permission.*denied",
            r"\b40[13]\b",
        ),
        "Authentication failed. Verify the {provider} API key.",
    ),
    _Rule(
        ErrorCategory.MODEL_ERROR,
        ErrorSeverity.MEDIUM,
        _compile(
            r"model.*not.*found",
            r"invalid.*model",
            r"model.*(unavailable|deprecated)",
        ),
        "Model configuration issue with {provider}. Verify the model name.",
    ),
    _Rule(
        ErrorCategory.SERVER_ERROR,
        ErrorSeverity.MEDIUM,
        _compile(
            r"internal.*server.*error",
            r"service.*unavailable",
            r"server.*error",
            r"\b50[0-9]\b",
        ),
        "{provider} server error. This may be temporary.",
        is_retryable=True,
    ),
    _Rule(
        ErrorCategory.NETWORK_ERROR,
        ErrorSeverity.LOW,
        _compile(
            r"connection.*(error|refused|reset)",
            r"network.*error",
            r"timeout",
            r"timed out",
        ),
        "Network connectivity issue reaching {provider}.",
        is_retryable=True,
    ),
    _Rule(
        ErrorCategory.INVALID_REQUEST,
        ErrorSeverity.MEDIUM,
        _compile(r"invalid", r"bad request", r"\b400\b"),
        "Invalid request to {provider}. Check request parameters.",
    ),
]


class ErrorClassifier:
    """Classifies API errors from LLM providers."""

    @staticmethod
    def classify_error(error: Exception, provider: str) -> ClassifiedError:
        """Classify an API error.

        A structural 429 status (``code`` or ``status_code`` attribute) or a
        rate-limit message wins over every other rule.

        Args:
            error: The exception that was raised
            provider: Provider name

        Returns:
            ClassifiedError with category and severity
        """
        text = str(error)
        error_type = type(error).__name__

        if _status_code(error) == 429 or _RATE_LIMIT_PATTERN.search(text):
            return ClassifiedError(
                category=ErrorCategory.RATE_LIMIT,
                severity=ErrorSeverity.HIGH,
                provider=provider,
                original_error=error_type,
                message=f"Rate limit exceeded for {provider}.",
                is_retryable=True,
                retry_after=extract_retry_delay(error),
            )

        for rule in _RULES:
            if rule.pattern.search(text):
                return ClassifiedError(
                    category=rule.category,
                    severity=rule.severity,
                    provider=provider,
                    original_error=error_type,
                    message=rule.message.format(provider=provider),
                    is_retryable=rule.is_retryable,
                )

        return ClassifiedError(
            category=ErrorCategory.UNKNOWN,
            severity=ErrorSeverity.MEDIUM,
            provider=provider,
            original_error=error_type,
            message=f"Unclassified error from {provider}: {text[:100]}",
        )
