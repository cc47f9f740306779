"""LLM data models."""

from enum import Enum

from pydantic import BaseModel, Field


class Role(str, Enum):
    """Message role in a conversation."""

    SYSTEM = "system"
    USER = "user"


class Message(BaseModel):
    """A chat message."""

    role: Role
    content: str


class GenerationResult(BaseModel):
    """Result from LLM generation.

    Attributes:
        content: The generated text.
        model: Model used for generation.
        total_tokens: Total tokens used, 0 if the API did not report it.
    """

    content: str = Field(description="Generated text")
    model: str = Field(description="Model used")
    total_tokens: int = Field(default=0, description="Total token count")
