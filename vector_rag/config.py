"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables.
No secrets are hardcoded.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class EmbeddingProviderType(str, Enum):
    """Available embedding backends."""

    LOCAL_INFERENCE = "local_inference"
    LOCAL_SERVER = "local_server"
    REMOTE_HOSTED = "remote_hosted"


class WriteMode(str, Enum):
    """How ingestion prepares the collection before writing."""

    RECREATE = "recreate"
    INCREMENTAL = "incremental"


class LLMSettings(BaseSettings):
    """LLM service configuration.

    Supports both Ollama (dev) and vLLM (prod) via OpenAI-compatible API.
    """

    model_config = SettingsConfigDict(env_prefix="LLM_")

    base_url: str = Field(
        default="http://localhost:11434/v1",
        description="LLM API base URL (Ollama default)",
    )
    model: str = Field(
        default="phi4:latest",
        description="Model name to use for generation",
    )
    api_key: SecretStr = Field(
        default=SecretStr("not-required"),
        description="API key (not required for Ollama)",
    )
    timeout: float = Field(
        default=120.0,
        description="Request timeout in seconds",
    )
    max_tokens: int = Field(
        default=1024,
        description="Maximum tokens in response",
    )
    temperature: float = Field(
        default=0.1,
        description="Sampling temperature (lower = more deterministic)",
    )


class EmbeddingSettings(BaseSettings):
    """Embedding backend configuration.

    Only the fields of the selected provider are used.
    """

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_")

    provider: EmbeddingProviderType = Field(
        default=EmbeddingProviderType.LOCAL_SERVER,
        description="Which embedding backend to use",
    )
    model: str = Field(
        default="phi4:latest",
        description="Embedding model name (local server)",
    )
    timeout: float = Field(
        default=60.0,
        description="Request timeout in seconds",
    )

    # Local HTTP inference server
    base_url: str = Field(
        default="http://localhost:11434",
        description="Local embedding server base URL",
    )
    path: str = Field(
        default="/api/embeddings",
        description="Embedding endpoint path on the local server",
    )
    request_field: str = Field(
        default="prompt",
        description="Body field carrying the text ('prompt' or 'input')",
    )

    # Remote hosted inference API
    hosted_url: str = Field(
        default=(
            "https://api-inference.huggingface.co/models/"
            "sentence-transformers/all-MiniLM-L6-v2"
        ),
        description="Hosted inference endpoint URL",
    )
    api_token: SecretStr | None = Field(
        default=None,
        description="Bearer token for the hosted inference API",
    )

    # Local ONNX inference
    model_path: str = Field(
        default="onnx_model/model.onnx",
        description="Path to the ONNX model file",
    )
    vocab_path: str = Field(
        default="onnx_model/vocab.txt",
        description="Path to the vocabulary file (one token per line)",
    )


class QdrantSettings(BaseSettings):
    """Qdrant vector database configuration."""

    model_config = SettingsConfigDict(env_prefix="QDRANT_")

    url: str = Field(
        default="http://localhost:6333",
        description="Qdrant server URL",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Qdrant API key (optional for local)",
    )
    collection_name: str = Field(
        default="cloud_services",
        description="Default collection name",
    )
    dimensions: int = Field(
        default=1536,
        gt=0,
        description="Vector size every stored point is resized to",
    )
    write_mode: WriteMode = Field(
        default=WriteMode.RECREATE,
        description="Recreate the collection on every write, or upsert into it",
    )
    auxiliary_field: str = Field(
        default="rand_number",
        description="Numeric payload field surfaced on search results",
    )


class RetrievalSettings(BaseSettings):
    """Query-time retrieval configuration."""

    model_config = SettingsConfigDict(env_prefix="RETRIEVAL_")

    limit: int = Field(
        default=5,
        ge=1,
        description="Maximum number of results per query",
    )
    min_score: float | None = Field(
        default=None,
        description="Drop results scoring below this value (disabled if unset)",
    )


class Settings(BaseSettings):
    """Main application settings.

    Aggregates all configuration sections.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application settings
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # API settings
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host",
    )
    api_port: int = Field(
        default=8000,
        description="API server port",
    )

    # Nested settings
    llm: LLMSettings = Field(default_factory=LLMSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    qdrant: QdrantSettings = Field(default_factory=QdrantSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()
