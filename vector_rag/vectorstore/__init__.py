"""Vector store module."""

from vector_rag.vectorstore.adapter import resize_vector
from vector_rag.vectorstore.ids import TimestampIdGenerator
from vector_rag.vectorstore.models import SearchResult, StoredPoint
from vector_rag.vectorstore.service import QdrantVectorStore, VectorStore

__all__ = [
    "QdrantVectorStore",
    "SearchResult",
    "StoredPoint",
    "TimestampIdGenerator",
    "VectorStore",
    "resize_vector",
]
