"""Observability module for metrics and monitoring."""

from vector_rag.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    track_embedding_request,
    track_ingestion,
    track_rag_answer,
    track_retrieval_request,
    track_vectorstore_operation,
)

__all__ = [
    "MetricsMiddleware",
    "get_metrics",
    "track_embedding_request",
    "track_ingestion",
    "track_rag_answer",
    "track_retrieval_request",
    "track_vectorstore_operation",
]
