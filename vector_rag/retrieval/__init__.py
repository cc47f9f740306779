"""Retrieval pipeline module."""

from vector_rag.retrieval.models import Citation, Document, QueryOutcome
from vector_rag.retrieval.orchestrator import RetrievalOrchestrator

__all__ = [
    "Citation",
    "Document",
    "QueryOutcome",
    "RetrievalOrchestrator",
]
