"""LLM provider integrations."""

from .base import BaseLLMProvider, RetryConfig
from .google_provider import GoogleProvider

__all__ = ["BaseLLMProvider", "GoogleProvider", "RetryConfig"]
