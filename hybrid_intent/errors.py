"""Custom exceptions for hybrid_intent."""

from __future__ import annotations

from typing import Optional


class HybridIntentError(Exception):
    """Base exception for all hybrid_intent exceptions."""


class ConfigurationError(HybridIntentError):
    """Raised when configuration is invalid or a collaborator is missing."""


class InvalidArgumentError(HybridIntentError, ValueError):
    """Raised when a caller passes missing or empty arguments."""


class ProviderError(HybridIntentError):
    """Raised when the embedding provider fails to return vectors."""

    def __init__(self, message: str, last_error: Optional[Exception] = None):
        super().__init__(message)
        self.last_error = last_error


class ValidatorUnavailableError(HybridIntentError):
    """Raised when the query validator cannot produce an answer."""


class StoreError(HybridIntentError):
    """Raised when persisted dataset or embedding data cannot be read."""


class DimensionMismatchError(HybridIntentError, ValueError):
    """Raised when two vectors that must align have different lengths."""
