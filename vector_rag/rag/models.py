"""RAG pipeline data models."""

from pydantic import BaseModel, Field

from vector_rag.retrieval.models import Citation


class RAGResponse(BaseModel):
    """Response from a RAG question.

    Attributes:
        answer: Generated answer, or the fixed no-context answer.
        citations: Ranked sources the answer was conditioned on.
        model: LLM model used; None when the LLM was not called.
        tokens_used: Total tokens consumed.
    """

    answer: str = Field(description="Generated answer")
    citations: list[Citation] = Field(
        default_factory=list,
        description="Ranked source citations",
    )
    model: str | None = Field(default=None, description="LLM model used")
    tokens_used: int = Field(default=0, description="Total tokens consumed")

    @property
    def has_context(self) -> bool:
        return bool(self.citations)
