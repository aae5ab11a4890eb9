"""Optional collaborators for semantic clustering.

Two capability interfaces, each with a no-op default and an HTTP backend:

- ``EmbeddingProvider.search(text)`` returns an embedding or None.
- ``LabelGenerator.generate(prompt, timeout_ms)`` returns reply text or None.

A None result (or any failure) makes the clustering engine fall back to
local embeddings and keyword labels.

Configuration via environment variables (read at call time):
    CODEVIZ_EMBEDDING_PROVIDER: "none" (default) or "http"
    CODEVIZ_EMBEDDING_URL: Endpoint for the http embedding provider
    CODEVIZ_LABELER: "none" (default) or "http"
    CODEVIZ_LABELER_URL: Endpoint for the http label generator
    CODEVIZ_API_KEY: Optional bearer token sent to both endpoints
"""

import os
import re
import time
from abc import ABC, abstractmethod
from threading import Lock
from typing import Any

import httpx

from codeviz.logging import logger

# Cached collaborator instances
_embedding_provider: "EmbeddingProvider | None" = None
_label_generator: "LabelGenerator | None" = None

_LABEL_RE = re.compile(r"LABEL:\s*(.+?)(?:\s+DESCRIPTION:|$)", re.IGNORECASE | re.DOTALL)
_DESCRIPTION_RE = re.compile(r"DESCRIPTION:\s*(.+)", re.IGNORECASE | re.DOTALL)


class EmbeddingProvider(ABC):
    """Source of embedding vectors for entity text."""

    @abstractmethod
    def search(self, text: str) -> list[float] | None:
        """Embed text.

        Args:
            text: Entity content.

        Returns:
            Embedding vector, or None if unavailable.
        """


class LabelGenerator(ABC):
    """AI model that writes cluster labels."""

    @abstractmethod
    def generate(self, prompt: str, timeout_ms: int) -> str | None:
        """Complete a prompt.

        Args:
            prompt: Prompt text.
            timeout_ms: Time budget for the call.

        Returns:
            Reply text, or None if unavailable.
        """


class NullEmbeddingProvider(EmbeddingProvider):
    """Provider used when no embedding service is configured."""

    def search(self, text: str) -> list[float] | None:
        return None


class NullLabelGenerator(LabelGenerator):
    """Label generator used when no AI labeler is configured."""

    def generate(self, prompt: str, timeout_ms: int) -> str | None:
        return None


class _HttpCollaborator:
    """Shared JSON-over-HTTP plumbing with retries."""

    MAX_RETRIES = 3
    RETRY_DELAY = 1.0  # seconds
    DEFAULT_TIMEOUT = 30.0  # seconds

    def __init__(
        self,
        url: str,
        api_key: str | None = None,
        client: httpx.Client | None = None,
        retry_delay: float | None = None,
    ) -> None:
        self.url = url
        self._api_key = api_key
        self._client = client
        self._client_lock = Lock()
        self._retry_delay = self.RETRY_DELAY if retry_delay is None else retry_delay

    def _get_client(self) -> httpx.Client:
        """Lazy-create the httpx client (thread-safe)."""
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    headers = {"Content-Type": "application/json"}
                    if self._api_key:
                        headers["Authorization"] = f"Bearer {self._api_key}"
                    self._client = httpx.Client(timeout=self.DEFAULT_TIMEOUT, headers=headers)
        return self._client

    def _post(self, payload: dict[str, Any], timeout: float | None = None) -> dict[str, Any] | None:
        """POST a JSON payload, retrying transient failures.

        Returns:
            Decoded JSON object on success, None once retries are exhausted.
        """
        client = self._get_client()
        request_timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT

        for attempt in range(self.MAX_RETRIES):
            try:
                response = client.post(self.url, json=payload, timeout=request_timeout)
                response.raise_for_status()
                data = response.json()
                if not isinstance(data, dict):
                    raise ValueError(f"expected a JSON object, got {type(data).__name__}")
                return data
            except (httpx.HTTPError, ValueError) as e:
                if attempt < self.MAX_RETRIES - 1:
                    logger.warning(
                        "  %s error (attempt %d/%d): %s",
                        self.url,
                        attempt + 1,
                        self.MAX_RETRIES,
                        str(e),
                    )
                    time.sleep(self._retry_delay * (attempt + 1))
                else:
                    logger.warning("  %s failed after %d attempts: %s", self.url, self.MAX_RETRIES, e)
        return None

    def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            self._client.close()


class HttpEmbeddingProvider(_HttpCollaborator, EmbeddingProvider):
    """Embedding service reached over HTTP.

    Request: ``POST {"text": ...}``. Response: ``{"embedding": [floats]}``.
    Text is truncated to ``MAX_TEXT_LENGTH`` characters.
    """

    MAX_TEXT_LENGTH = 500

    def search(self, text: str) -> list[float] | None:
        data = self._post({"text": text[: self.MAX_TEXT_LENGTH]})
        if data is None:
            return None

        embedding = data.get("embedding")
        if not isinstance(embedding, list) or not embedding:
            return None
        try:
            return [float(value) for value in embedding]
        except (TypeError, ValueError):
            logger.warning("  Ignoring malformed embedding from %s", self.url)
            return None


class HttpLabelGenerator(_HttpCollaborator, LabelGenerator):
    """AI labeler reached over HTTP.

    Request: ``POST {"prompt": ..., "timeout_ms": ...}``.
    Response: ``{"text": "LABEL: ... DESCRIPTION: ..."}``.
    """

    MAX_RETRIES = 1

    def generate(self, prompt: str, timeout_ms: int) -> str | None:
        data = self._post({"prompt": prompt, "timeout_ms": timeout_ms}, timeout=timeout_ms / 1000)
        if data is None:
            return None
        text = data.get("text")
        return text if isinstance(text, str) else None


def parse_label_reply(text: str | None) -> tuple[str, str] | None:
    """Parse a ``LABEL: <label> DESCRIPTION: <description>`` reply.

    Matching is case-insensitive. The description may be missing.

    Args:
        text: Raw reply from a label generator.

    Returns:
        (label, description) tuple, or None if no label was found.
    """
    if not text:
        return None

    label_match = _LABEL_RE.search(text)
    if not label_match:
        return None
    label = label_match.group(1).strip()
    if not label:
        return None

    description_match = _DESCRIPTION_RE.search(text)
    description = description_match.group(1).strip() if description_match else ""
    return label, description


def get_embedding_provider() -> EmbeddingProvider:
    """Get the configured embedding provider.

    Returns:
        EmbeddingProvider based on CODEVIZ_EMBEDDING_PROVIDER.

    Raises:
        ValueError: If the provider name is unknown or misconfigured.
    """
    global _embedding_provider

    if _embedding_provider is not None:
        return _embedding_provider

    name = os.getenv("CODEVIZ_EMBEDDING_PROVIDER", "none").lower()
    if name == "none":
        _embedding_provider = NullEmbeddingProvider()
    elif name == "http":
        url = os.getenv("CODEVIZ_EMBEDDING_URL")
        if not url:
            raise ValueError("CODEVIZ_EMBEDDING_URL is required for the http embedding provider")
        logger.info("Using HTTP embedding provider at %s", url)
        _embedding_provider = HttpEmbeddingProvider(url, api_key=os.getenv("CODEVIZ_API_KEY"))
    else:
        raise ValueError(
            f"Unknown embedding provider: {name}. Valid options: 'none', 'http'"
        )

    return _embedding_provider


def get_label_generator() -> LabelGenerator:
    """Get the configured label generator.

    Returns:
        LabelGenerator based on CODEVIZ_LABELER.

    Raises:
        ValueError: If the labeler name is unknown or misconfigured.
    """
    global _label_generator

    if _label_generator is not None:
        return _label_generator

    name = os.getenv("CODEVIZ_LABELER", "none").lower()
    if name == "none":
        _label_generator = NullLabelGenerator()
    elif name == "http":
        url = os.getenv("CODEVIZ_LABELER_URL")
        if not url:
            raise ValueError("CODEVIZ_LABELER_URL is required for the http labeler")
        logger.info("Using HTTP label generator at %s", url)
        _label_generator = HttpLabelGenerator(url, api_key=os.getenv("CODEVIZ_API_KEY"))
    else:
        raise ValueError(f"Unknown labeler: {name}. Valid options: 'none', 'http'")

    return _label_generator


def reset_collaborators() -> None:
    """Drop cached collaborators so the next lookup re-reads the environment."""
    global _embedding_provider, _label_generator
    _embedding_provider = None
    _label_generator = None
