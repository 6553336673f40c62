"""
providers.py - Remote embedding provider and query validator clients.

=============================================================================
INTERFACES
=============================================================================

The classifier only depends on two small async interfaces:

    EmbeddingProvider.embed(texts) -> one vector per text, same order
    QueryValidator.validate(text)  -> True if the text is a coherent query

Anything that satisfies them can be injected (a local model, a remote API,
a test double). This module ships HTTP clients for OpenAI-compatible APIs:

    OpenAIEmbeddingProvider  POST {base_url}/embeddings
    ChatCompletionValidator  POST {base_url}/chat/completions

The local sentence-transformers embedder lives in embedder.py so that
importing this module does not load torch.

=============================================================================
TIMEOUTS AND RETRIES
=============================================================================

Every request carries a timeout (ProviderConfig.timeout_seconds). Transport
errors, timeouts, 429s and 5xx responses are retried up to
max_retry_attempts times with exponential backoff. Other 4xx responses
(bad key, bad model name) fail immediately since retrying cannot help.

The classifier never retries on top of this.

=============================================================================
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from hybrid_intent.config import ProviderConfig
from hybrid_intent.errors import (
    ConfigurationError,
    ProviderError,
    ValidatorUnavailableError,
)

logger = logging.getLogger(__name__)

VALIDATOR_SYSTEM_PROMPT = (
    "You are a query classifier. Evaluate the following query for its coherence "
    "and meaning. Return exactly 'valid' if the query is a coherent, meaningful "
    "question or statement. Return exactly 'invalid' if the query is nonsensical, "
    "random characters, or does not contain any meaningful words. Do not include "
    "any additional text."
)


class EmbeddingProvider(Protocol):
    """Turns texts into fixed-length vectors."""

    async def embed(self, texts: List[str]) -> List[List[float]]: ...


class QueryValidator(Protocol):
    """Decides whether a query is meaningful text."""

    async def validate(self, text: str) -> bool: ...


class _RetryableStatus(Exception):
    def __init__(self, response: httpx.Response):
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


def _is_retryable(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class _OpenAIClient:
    """Shared HTTP plumbing: auth headers, timeout, retry with backoff."""

    def __init__(
        self,
        config: Optional[ProviderConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or ProviderConfig()
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"content-type": "application/json"}
        if self.config.api_key:
            headers["authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def _url(self, path: str) -> str:
        return self.config.base_url.rstrip("/") + "/" + path.lstrip("/")

    async def _post_json(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST `payload` and return the decoded JSON body.

        Raises:
            httpx.HTTPError: The last error once retries are exhausted
        """
        url = self._url(path)
        attempts = self.config.max_retry_attempts + 1
        last_error: Optional[Exception] = None

        for attempt in range(attempts):
            try:
                async with httpx.AsyncClient(
                    timeout=self.config.timeout_seconds, transport=self._transport
                ) as client:
                    r = await client.post(url, headers=self._headers(), json=payload)
                if _is_retryable(r.status_code):
                    raise _RetryableStatus(r)
                r.raise_for_status()
                return r.json()
            except (httpx.TransportError, _RetryableStatus) as e:
                last_error = e
                if attempt < attempts - 1:
                    delay = self.config.backoff_delay(attempt)
                    logger.warning(
                        "Request to %s failed (attempt %d/%d): %s. Retrying in %.1fs",
                        path, attempt + 1, attempts, e, delay,
                    )
                    await asyncio.sleep(delay)

        if isinstance(last_error, _RetryableStatus):
            last_error.response.raise_for_status()
        raise last_error


class OpenAIEmbeddingProvider(_OpenAIClient):
    """EmbeddingProvider backed by an OpenAI-compatible /embeddings endpoint."""

    async def embed(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []

        logger.debug("Requesting %d embeddings from %s", len(texts), self.config.embedding_model)
        try:
            body = await self._post_json(
                "embeddings",
                {"model": self.config.embedding_model, "input": list(texts)},
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Embedding request failed: %s", e)
            raise ProviderError(f"Embedding request failed: {e}", e) from e

        data = body.get("data") or []
        if not data:
            raise ProviderError("No embeddings returned by provider")
        if len(data) != len(texts):
            raise ProviderError(
                f"Provider returned {len(data)} embeddings for {len(texts)} texts"
            )

        try:
            ordered = sorted(data, key=lambda entry: entry.get("index", 0))
            return [[float(v) for v in entry["embedding"]] for entry in ordered]
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(f"Malformed embedding response: {e}", e) from e


class ChatCompletionValidator(_OpenAIClient):
    """
    QueryValidator that asks a chat model for a one-word verdict.

    The model is told to answer exactly "valid" or "invalid". Anything other
    than "valid" counts as invalid. Failures raise ValidatorUnavailableError;
    the garbage filter treats that as invalid too.
    """

    async def validate(self, text: str) -> bool:
        payload = {
            "model": self.config.validator_model,
            "messages": [
                {"role": "system", "content": VALIDATOR_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": f'Query: "{text}"\n\nIs this query valid or invalid?',
                },
            ],
            "max_tokens": 5,
            "temperature": 0,
        }
        try:
            body = await self._post_json("chat/completions", payload)
            answer = body["choices"][0]["message"]["content"]
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as e:
            raise ValidatorUnavailableError(f"Query validation failed: {e}") from e

        verdict = str(answer or "").strip().lower()
        logger.debug("Validator verdict for %r: %s", text, verdict)
        return verdict == "valid"


PROVIDER_CHOICES = ("openai", "sentence-transformers")


def build_embedding_provider(
    name: str,
    config: Optional[ProviderConfig] = None,
    model_name: Optional[str] = None,
) -> EmbeddingProvider:
    """
    Construct an embedding provider by name (used by the scripts).

    "sentence-transformers" imports embedder.py on demand so the HTTP path
    never pays for loading torch.
    """
    if name == "openai":
        config = config or ProviderConfig()
        if model_name:
            config = dataclasses.replace(config, embedding_model=model_name)
        return OpenAIEmbeddingProvider(config)
    if name == "sentence-transformers":
        from hybrid_intent.embedder import DEFAULT_MODEL, SentenceTransformerEmbedder

        return SentenceTransformerEmbedder(model_name or DEFAULT_MODEL)
    raise ConfigurationError(
        f"Unknown embedding provider {name!r}; choose one of {', '.join(PROVIDER_CHOICES)}"
    )
