"""Chat completion client used to answer from retrieved context."""

from abc import ABC, abstractmethod

import httpx

from vector_rag.config import LLMSettings, get_settings
from vector_rag.exceptions import ErrorCode, LLMError
from vector_rag.llm.models import GenerationResult, Message, Role
from vector_rag.logging_config import get_logger

logger = get_logger(__name__)


class LLMClient(ABC):
    """Abstract base class for chat completion clients."""

    @abstractmethod
    async def complete(self, system_prompt: str, user_prompt: str) -> GenerationResult:
        """Send a system instruction and a user message, return the reply.

        Raises:
            LLMError: If generation fails.
        """
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the model name."""
        ...


class OpenAICompatibleClient(LLMClient):
    """Client for `/chat/completions` style APIs (Ollama, vLLM, OpenAI)."""

    def __init__(
        self,
        settings: LLMSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: LLM configuration.
            client: HTTP client (for testing).
        """
        self._settings = settings or get_settings().llm
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def model_name(self) -> str:
        return self._settings.model

    def _headers(self) -> dict[str, str]:
        api_key = self._settings.api_key.get_secret_value()
        if api_key and api_key != "not-required":
            return {"Authorization": f"Bearer {api_key}"}
        return {}

    async def complete(self, system_prompt: str, user_prompt: str) -> GenerationResult:
        """Generate a reply using the chat completions API."""
        client = await self._get_client()
        url = f"{self._settings.base_url.rstrip('/')}/chat/completions"

        messages = [
            Message(role=Role.SYSTEM, content=system_prompt),
            Message(role=Role.USER, content=user_prompt),
        ]
        payload = {
            "model": self._settings.model,
            "messages": [m.model_dump(mode="json") for m in messages],
            "temperature": self._settings.temperature,
            "max_tokens": self._settings.max_tokens,
        }

        try:
            response = await client.post(url, json=payload, headers=self._headers())
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error(f"LLM request timed out: {e}")
            raise LLMError(
                "LLM request timed out",
                code=ErrorCode.LLM_TIMEOUT,
                details={"timeout": self._settings.timeout},
            ) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"LLM request failed: {status}")
            raise LLMError(
                "Rate limit exceeded" if status == 429 else f"LLM service returned {status}",
                code=ErrorCode.LLM_RATE_LIMIT if status == 429 else ErrorCode.LLM_SERVICE_ERROR,
                details={"status_code": status},
            ) from e
        except httpx.RequestError as e:
            logger.error(f"LLM connection error: {e}")
            raise LLMError(
                f"Failed to connect to LLM service: {e}",
                details={"url": url},
            ) from e

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
            usage = data.get("usage") or {}
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise LLMError(
                f"Invalid response from LLM: {e}",
                details={"error": str(e)},
            ) from e

        return GenerationResult(
            content=content,
            model=data.get("model", self._settings.model),
            total_tokens=usage.get("total_tokens", 0),
        )
