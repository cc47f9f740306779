"""Embedding provider interface and implementations."""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any

import httpx
import numpy as np

from vector_rag.config import EmbeddingSettings, get_settings
from vector_rag.embeddings.registry import ModelRegistry
from vector_rag.exceptions import (
    ConfigurationError,
    EmbeddingBackendError,
    ErrorCode,
)
from vector_rag.logging_config import get_logger
from vector_rag.observability.metrics import track_embedding_request

logger = get_logger(__name__)


def coerce_vector(raw: Any, source: str) -> list[float]:
    """Validate a decoded embedding and convert it to floats.

    Args:
        raw: Decoded JSON value expected to be a list of numbers.
        source: Provider name used in error details.

    Returns:
        The embedding as a list of floats.

    Raises:
        EmbeddingBackendError: If the value is not a non-empty numeric list.
    """
    if not isinstance(raw, list) or not all(
        isinstance(x, int | float) and not isinstance(x, bool) for x in raw
    ):
        raise EmbeddingBackendError(
            "Embedding response is not a list of numbers",
            details={"provider": source},
        )
    if not raw:
        raise EmbeddingBackendError(
            "Embedding backend returned an empty vector",
            code=ErrorCode.EMBEDDING_EMPTY,
            details={"provider": source},
        )
    return [float(x) for x in raw]


class EmbeddingProvider(ABC):
    """Abstract base class for embedding providers.

    Callers depend only on `embed`; which backend answers is a
    configuration choice.
    """

    async def embed(self, text: str) -> list[float]:
        """Generate an embedding for a single text.

        Args:
            text: Text to embed.

        Returns:
            Embedding vector in the provider's native dimension.

        Raises:
            EmbeddingBackendError: If the backend fails or returns no vector.
            ConfigurationError: If the provider is misconfigured.
        """
        start = time.perf_counter()
        try:
            vector = await self._embed(text)
        except Exception:
            track_embedding_request(
                self.provider_name, time.perf_counter() - start, success=False
            )
            raise
        track_embedding_request(self.provider_name, time.perf_counter() - start)
        return vector

    @abstractmethod
    async def _embed(self, text: str) -> list[float]:
        """Backend-specific embedding call."""
        ...

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Short provider identifier used in logs and metrics."""
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the model name used for embeddings."""
        ...

    async def close(self) -> None:
        """Release resources held by the provider."""
        return None


class LocalInferenceProvider(EmbeddingProvider):
    """Runs an ONNX embedding model in-process.

    The session and tokenizer come from a shared ModelRegistry. Inference
    is synchronous and is pushed to a worker thread.
    """

    def __init__(self, registry: ModelRegistry) -> None:
        self._registry = registry

    @property
    def provider_name(self) -> str:
        return "local_inference"

    @property
    def model_name(self) -> str:
        return "onnx"

    async def _embed(self, text: str) -> list[float]:
        return await asyncio.to_thread(self._run, text)

    def _run(self, text: str) -> list[float]:
        session, tokenizer = self._registry.get()
        input_ids, attention_mask = tokenizer.tokenize(text)

        feeds = {
            "input_ids": np.array([input_ids], dtype=np.int64),
            "attention_mask": np.array([attention_mask], dtype=np.int64),
        }
        input_names = {node.name for node in session.get_inputs()}
        if "token_type_ids" in input_names:
            feeds["token_type_ids"] = np.zeros((1, len(input_ids)), dtype=np.int64)

        try:
            outputs = session.run(None, feeds)
        except Exception as e:
            raise EmbeddingBackendError(
                f"Local inference failed: {e}",
                details={"provider": self.provider_name, "error": str(e)},
            ) from e

        if not outputs:
            raise EmbeddingBackendError(
                "Local model produced no outputs",
                code=ErrorCode.EMBEDDING_EMPTY,
                details={"provider": self.provider_name},
            )

        vector = np.asarray(outputs[0], dtype=np.float32).ravel().tolist()
        return coerce_vector(vector, self.provider_name)


class _HTTPEmbeddingProvider(EmbeddingProvider):
    """Shared HTTP plumbing for server-backed providers."""

    def __init__(
        self,
        settings: EmbeddingSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the HTTP provider.

        Args:
            settings: Embedding configuration. Uses defaults if not provided.
            client: HTTP client. Creates new one if not provided.
        """
        self._settings = settings or get_settings().embedding
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> Any:
        """POST a JSON body and decode the JSON response.

        Raises:
            EmbeddingBackendError: On transport failure, non-success status
                or an undecodable body.
        """
        client = await self._get_client()

        try:
            response = await client.post(url, json=payload, headers=headers or {})
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Embedding request failed: {e.response.status_code}",
                extra={"url": url, "status": e.response.status_code},
            )
            raise EmbeddingBackendError(
                f"Embedding service returned {e.response.status_code}",
                details={"provider": self.provider_name, "status_code": e.response.status_code},
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Embedding request error: {e}", extra={"url": url})
            raise EmbeddingBackendError(
                f"Failed to connect to embedding service: {e}",
                details={"provider": self.provider_name, "url": url},
            ) from e

        try:
            return response.json()
        except ValueError as e:
            raise EmbeddingBackendError(
                f"Invalid response from embedding service: {e}",
                details={"provider": self.provider_name, "error": str(e)},
            ) from e


class LocalServerProvider(_HTTPEmbeddingProvider):
    """Embedding provider for a local inference server (Ollama style).

    Sends `{model, prompt}` (or `{model, input}`) and reads the vector from
    `embedding`, `embeddings[0]` or OpenAI-style `data[0].embedding`.
    """

    @property
    def provider_name(self) -> str:
        return "local_server"

    @property
    def model_name(self) -> str:
        return self._settings.model

    async def _embed(self, text: str) -> list[float]:
        url = f"{self._settings.base_url.rstrip('/')}{self._settings.path}"
        payload = {
            "model": self._settings.model,
            self._settings.request_field: text,
        }

        data = await self._post_json(url, payload)
        return coerce_vector(self._extract(data), self.provider_name)

    def _extract(self, data: Any) -> Any:
        if not isinstance(data, dict):
            raise EmbeddingBackendError(
                "Embedding response is not a JSON object",
                details={"provider": self.provider_name},
            )

        if "embedding" in data:
            return data["embedding"]

        try:
            if "embeddings" in data:
                return data["embeddings"][0]
            if "data" in data:
                return data["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError) as e:
            raise EmbeddingBackendError(
                f"Invalid response from embedding service: {e}",
                details={"provider": self.provider_name, "error": str(e)},
            ) from e

        raise EmbeddingBackendError(
            "Embedding response has no 'embedding' field",
            details={"provider": self.provider_name, "keys": sorted(data)},
        )


class RemoteHostedProvider(_HTTPEmbeddingProvider):
    """Embedding provider for a hosted inference API.

    Authenticates with a bearer token, sends `{inputs: text}` and expects
    a flat float array back.
    """

    @property
    def provider_name(self) -> str:
        return "remote_hosted"

    @property
    def model_name(self) -> str:
        return self._settings.hosted_url.rstrip("/").rsplit("/models/", 1)[-1]

    async def _embed(self, text: str) -> list[float]:
        if self._settings.api_token is None:
            raise ConfigurationError(
                "Hosted embedding provider requires an API token",
                details={"setting": "EMBEDDING_API_TOKEN"},
            )

        headers = {
            "Authorization": f"Bearer {self._settings.api_token.get_secret_value()}",
        }
        data = await self._post_json(
            self._settings.hosted_url,
            {"inputs": text},
            headers=headers,
        )

        # A single input sometimes comes back wrapped in a one-row matrix.
        if isinstance(data, list) and len(data) == 1 and isinstance(data[0], list):
            data = data[0]
        return coerce_vector(data, self.provider_name)


def create_embedding_provider(
    settings: EmbeddingSettings | None = None,
    registry: ModelRegistry | None = None,
    client: httpx.AsyncClient | None = None,
) -> EmbeddingProvider:
    """Build the provider selected by configuration.

    Args:
        settings: Embedding configuration.
        registry: Model registry for local inference; built from the
            settings' model and vocabulary paths if not provided.
        client: HTTP client for server-backed providers (for testing).

    Returns:
        The configured EmbeddingProvider.

    Raises:
        ConfigurationError: If the provider type is unknown.
    """
    settings = settings or get_settings().embedding
    provider_type = settings.provider.value

    if provider_type == "local_inference":
        if registry is None:
            registry = ModelRegistry(settings.model_path, settings.vocab_path)
        return LocalInferenceProvider(registry)
    if provider_type == "local_server":
        return LocalServerProvider(settings=settings, client=client)
    if provider_type == "remote_hosted":
        return RemoteHostedProvider(settings=settings, client=client)

    raise ConfigurationError(
        f"Unknown embedding provider: {provider_type}",
        details={"provider": provider_type},
    )

