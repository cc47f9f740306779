"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from qdrant_client import AsyncQdrantClient

from vector_rag.api.app import app
from vector_rag.config import QdrantSettings, RetrievalSettings
from vector_rag.embeddings.service import EmbeddingProvider


class StubEmbeddingProvider(EmbeddingProvider):
    """Returns fixed vectors per text, for tests independent of real backends."""

    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        default: list[float] | None = None,
    ) -> None:
        self.vectors = dict(vectors or {})
        self.default = default or [1.0, 0.0, 0.0]
        self.calls: list[str] = []

    @property
    def provider_name(self) -> str:
        return "stub"

    @property
    def model_name(self) -> str:
        return "stub"

    async def _embed(self, text: str) -> list[float]:
        self.calls.append(text)
        return list(self.vectors.get(text, self.default))


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client for FastAPI app.

    Yields:
        AsyncClient configured for testing.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def memory_qdrant() -> AsyncGenerator[AsyncQdrantClient, None]:
    """In-process Qdrant, fresh for every test."""
    qdrant = AsyncQdrantClient(location=":memory:")
    yield qdrant
    await qdrant.close()


@pytest.fixture
def stub_provider_factory() -> type[StubEmbeddingProvider]:
    """The stub provider class, so tests can give it their own vectors."""
    return StubEmbeddingProvider


@pytest.fixture
def qdrant_settings() -> QdrantSettings:
    return QdrantSettings(collection_name="test_docs", dimensions=4)


@pytest.fixture
def retrieval_settings() -> RetrievalSettings:
    return RetrievalSettings(limit=5)
