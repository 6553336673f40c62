"""
config.py - Configuration for the classifier and its remote providers.

Every field can be passed explicitly or picked up from the environment.
Explicit arguments always win. Values are validated once, right after
construction, so a bad setting fails at startup instead of mid-request.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict

from hybrid_intent.errors import ConfigurationError


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ClassifierConfig:
    """
    Settings for IntentClassifier.

    use_embeddings picks the strategy for the lifetime of the classifier:
        - True:  embedding similarity + garbage filter + Jaccard check
        - False: local TF-IDF similarity only

    threshold is the minimum best similarity (0-1) for a match. A score equal
    to the threshold counts as a match.
    """

    use_embeddings: bool = field(
        default_factory=lambda: _env_bool("HYBRID_INTENT_USE_EMBEDDINGS", "true")
    )
    threshold: float = field(
        default_factory=lambda: float(os.getenv("HYBRID_INTENT_THRESHOLD", "0.50"))
    )
    batch_size: int = field(
        default_factory=lambda: int(os.getenv("HYBRID_INTENT_BATCH_SIZE", "50"))
    )
    store_location: str = field(
        default_factory=lambda: os.getenv(
            "HYBRID_INTENT_STORE_LOCATION", "./embeddings.json"
        )
    )
    dataset_location: str = field(
        default_factory=lambda: os.getenv(
            "HYBRID_INTENT_DATASET_LOCATION", "./intentDataset.json"
        )
    )

    # Secondary lexical-overlap gate for embedding matches
    jaccard_threshold: float = field(
        default_factory=lambda: float(
            os.getenv("HYBRID_INTENT_JACCARD_THRESHOLD", "0.20")
        )
    )
    # Compare against the first record of the winning intent instead of the
    # record that actually scored best.
    legacy_jaccard_reference: bool = field(
        default_factory=lambda: _env_bool(
            "HYBRID_INTENT_LEGACY_JACCARD_REFERENCE", "false"
        )
    )
    invalidate_cache_on_mutation: bool = field(
        default_factory=lambda: _env_bool(
            "HYBRID_INTENT_INVALIDATE_CACHE_ON_MUTATION", "true"
        )
    )

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self):
        if not 0.0 <= self.threshold <= 1.0:
            raise ConfigurationError("threshold must be between 0.0 and 1.0")

        if self.batch_size < 1:
            raise ConfigurationError("batch_size must be at least 1")

        if not 0.0 <= self.jaccard_threshold <= 1.0:
            raise ConfigurationError("jaccard_threshold must be between 0.0 and 1.0")

        if self.use_embeddings and not self.store_location:
            raise ConfigurationError(
                "store_location cannot be empty when embeddings are enabled"
            )


@dataclass
class ProviderConfig:
    """Settings shared by the HTTP embedding provider and query validator."""

    api_key: str = field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))
    base_url: str = field(
        default_factory=lambda: os.getenv(
            "OPENAI_BASE_URL", "https://api.openai.com/v1"
        )
    )
    embedding_model: str = field(
        default_factory=lambda: os.getenv(
            "HYBRID_INTENT_EMBEDDING_MODEL", "text-embedding-ada-002"
        )
    )
    validator_model: str = field(
        default_factory=lambda: os.getenv(
            "HYBRID_INTENT_VALIDATOR_MODEL", "gpt-4-turbo"
        )
    )

    timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("HYBRID_INTENT_TIMEOUT_SECONDS", "30"))
    )
    max_retry_attempts: int = field(
        default_factory=lambda: int(os.getenv("HYBRID_INTENT_MAX_RETRY_ATTEMPTS", "2"))
    )
    retry_backoff_factor: float = field(
        default_factory=lambda: float(
            os.getenv("HYBRID_INTENT_RETRY_BACKOFF_FACTOR", "2.0")
        )
    )
    retry_max_delay: float = field(
        default_factory=lambda: float(os.getenv("HYBRID_INTENT_RETRY_MAX_DELAY", "10"))
    )

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self):
        if not self.base_url:
            raise ConfigurationError("base_url cannot be empty")

        if self.timeout_seconds <= 0:
            raise ConfigurationError("timeout_seconds must be positive")

        if self.max_retry_attempts < 0:
            raise ConfigurationError("max_retry_attempts must be non-negative")

        if self.retry_backoff_factor < 1.0:
            raise ConfigurationError("retry_backoff_factor must be at least 1.0")

        if self.retry_max_delay <= 0:
            raise ConfigurationError("retry_max_delay must be positive")

    def backoff_delay(self, attempt: int) -> float:
        """Exponential backoff delay in seconds for a 0-indexed attempt."""
        return min(self.retry_backoff_factor**attempt, self.retry_max_delay)

    def mask_sensitive_data(self) -> Dict[str, Any]:
        """Return configuration with the API key masked, safe to log."""
        return {
            "api_key": "****" if self.api_key else "",
            "base_url": self.base_url,
            "embedding_model": self.embedding_model,
            "validator_model": self.validator_model,
            "timeout_seconds": self.timeout_seconds,
            "max_retry_attempts": self.max_retry_attempts,
            "retry_backoff_factor": self.retry_backoff_factor,
            "retry_max_delay": self.retry_max_delay,
        }
