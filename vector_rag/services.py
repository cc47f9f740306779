"""Composition root: builds and owns the long-lived service objects."""

from dataclasses import dataclass

from vector_rag.config import EmbeddingProviderType, Settings, get_settings
from vector_rag.embeddings.registry import ModelRegistry
from vector_rag.embeddings.service import EmbeddingProvider, create_embedding_provider
from vector_rag.llm.client import OpenAICompatibleClient
from vector_rag.rag.pipeline import RAGPipeline
from vector_rag.retrieval.orchestrator import RetrievalOrchestrator
from vector_rag.vectorstore.service import QdrantVectorStore


@dataclass
class Services:
    """Everything a request handler or script needs, wired together."""

    embedding_provider: EmbeddingProvider
    vector_store: QdrantVectorStore
    orchestrator: RetrievalOrchestrator
    llm_client: OpenAICompatibleClient
    pipeline: RAGPipeline
    model_registry: ModelRegistry | None = None

    async def aclose(self) -> None:
        await self.embedding_provider.close()
        await self.vector_store.close()
        await self.llm_client.close()


def build_services(settings: Settings | None = None) -> Services:
    """Wire providers, store, orchestrator and pipeline from settings.

    Nothing connects or loads until first use.
    """
    settings = settings or get_settings()

    registry = None
    if settings.embedding.provider == EmbeddingProviderType.LOCAL_INFERENCE:
        registry = ModelRegistry(settings.embedding.model_path, settings.embedding.vocab_path)

    embedding_provider = create_embedding_provider(settings.embedding, registry=registry)
    vector_store = QdrantVectorStore(settings=settings.qdrant)
    orchestrator = RetrievalOrchestrator(
        embedding_provider,
        vector_store,
        qdrant_settings=settings.qdrant,
        retrieval_settings=settings.retrieval,
    )
    llm_client = OpenAICompatibleClient(settings=settings.llm)

    return Services(
        embedding_provider=embedding_provider,
        vector_store=vector_store,
        orchestrator=orchestrator,
        llm_client=llm_client,
        pipeline=RAGPipeline(orchestrator, llm_client),
        model_registry=registry,
    )
