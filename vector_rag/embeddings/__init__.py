"""Embedding provider module."""

from vector_rag.embeddings.registry import ModelRegistry
from vector_rag.embeddings.service import (
    EmbeddingProvider,
    LocalInferenceProvider,
    LocalServerProvider,
    RemoteHostedProvider,
    create_embedding_provider,
)
from vector_rag.embeddings.tokenizer import WordPieceTokenizer, load_vocabulary

__all__ = [
    "EmbeddingProvider",
    "LocalInferenceProvider",
    "LocalServerProvider",
    "ModelRegistry",
    "RemoteHostedProvider",
    "WordPieceTokenizer",
    "create_embedding_provider",
    "load_vocabulary",
]
