"""Vector store data models."""

from typing import Any

from pydantic import BaseModel, Field

from vector_rag.vectorstore.ids import MAX_POINT_ID


class StoredPoint(BaseModel):
    """A point to store in the vector database.

    Attributes:
        id: Unsigned 64-bit identifier; assigned on upsert when None.
        vector: The embedding, already sized to the collection.
        payload: Metadata stored with the vector; holds at least `text`.
    """

    id: int | None = Field(
        default=None,
        ge=0,
        le=MAX_POINT_ID,
        description="Point identifier",
    )
    vector: list[float] = Field(description="Embedding vector")
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Metadata payload",
    )


class SearchResult(BaseModel):
    """Result from a vector similarity search.

    Attributes:
        id: Point identifier.
        score: Similarity score (higher is more similar).
        text: Stored text, empty if the payload had none.
        auxiliary: Numeric payload tag, -1 if absent.
        payload: Full stored metadata.
    """

    id: int | str = Field(description="Point identifier")
    score: float = Field(description="Similarity score")
    text: str = Field(default="", description="Stored text")
    auxiliary: int = Field(default=-1, description="Numeric payload tag")
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Point metadata",
    )
