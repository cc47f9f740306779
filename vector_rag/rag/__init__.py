"""RAG pipeline module."""

from vector_rag.rag.models import RAGResponse
from vector_rag.rag.pipeline import NO_CONTEXT_ANSWER, RAGPipeline

__all__ = [
    "NO_CONTEXT_ANSWER",
    "RAGPipeline",
    "RAGResponse",
]
