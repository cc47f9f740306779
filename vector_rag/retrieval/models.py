"""Retrieval data models."""

from pydantic import BaseModel, ConfigDict, Field

from vector_rag.vectorstore.models import SearchResult


class Document(BaseModel):
    """A unit of text to ingest.

    Attributes:
        key: Caller-supplied logical identifier.
        text: Content to embed and store.
    """

    model_config = ConfigDict(frozen=True)

    key: str = Field(description="Logical document identifier")
    text: str = Field(description="Document content")


class Citation(BaseModel):
    """Pointer from a context rank back to the stored point."""

    rank: int = Field(ge=1, description="1-based position in the context block")
    id: int | str = Field(description="Point identifier")
    score: float = Field(description="Similarity score")


class QueryOutcome(BaseModel):
    """Ranked results of a query after score filtering.

    Result `i` (0-based) is rendered as `[#i+1]` in both the context block
    and the citation list, so the two always line up.
    """

    query: str = Field(description="Original query text")
    results: list[SearchResult] = Field(
        default_factory=list,
        description="Results ordered by descending score",
    )
    min_score: float | None = Field(
        default=None,
        description="Threshold applied to the results, if any",
    )

    @property
    def has_context(self) -> bool:
        """False when nothing relevant was found."""
        return bool(self.results)

    def citations(self) -> list[Citation]:
        return [
            Citation(rank=rank, id=result.id, score=result.score)
            for rank, result in enumerate(self.results, start=1)
        ]

    def context_block(self) -> str:
        """Render results as `[#rank] text` lines."""
        return "\n".join(
            f"[#{rank}] {result.text}"
            for rank, result in enumerate(self.results, start=1)
        )

    def citation_block(self) -> str:
        """Render citations as `[#rank] id score` lines."""
        return "\n".join(
            f"[#{c.rank}] {c.id} {c.score:.4f}" for c in self.citations()
        )
