"""Vector storage and retrieval layer for a small RAG service."""

__version__ = "0.1.0"
