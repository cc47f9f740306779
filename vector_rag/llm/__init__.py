"""LLM client module."""

from vector_rag.llm.client import LLMClient, OpenAICompatibleClient
from vector_rag.llm.models import GenerationResult, Message, Role
from vector_rag.llm.prompts import RAGPromptTemplate

__all__ = [
    "GenerationResult",
    "LLMClient",
    "Message",
    "OpenAICompatibleClient",
    "RAGPromptTemplate",
    "Role",
]
