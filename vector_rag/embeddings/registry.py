"""Process-shared ONNX model and tokenizer, loaded once on first use."""

import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

import onnxruntime as ort

from vector_rag.embeddings.tokenizer import WordPieceTokenizer, load_vocabulary
from vector_rag.exceptions import ConfigurationError
from vector_rag.logging_config import get_logger

logger = get_logger(__name__)

SessionFactory = Callable[[str], Any]


def create_cpu_session(model_path: str) -> ort.InferenceSession:
    """Create a CPU inference session with warning-level runtime logs."""
    options = ort.SessionOptions()
    options.log_severity_level = 2
    return ort.InferenceSession(
        model_path,
        sess_options=options,
        providers=["CPUExecutionProvider"],
    )


class ModelRegistry:
    """Owns the inference session and tokenizer for local embeddings.

    Created by the composition root and shared by every provider that
    needs it. The first call to `get()` loads both artifacts; concurrent
    first calls wait on a lock so the model is loaded exactly once.
    """

    def __init__(
        self,
        model_path: str | Path,
        vocab_path: str | Path,
        session_factory: SessionFactory | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            model_path: Path to the ONNX model file.
            vocab_path: Path to the vocabulary file.
            session_factory: Builds a session from a model path (for testing).
        """
        self._model_path = Path(model_path)
        self._vocab_path = Path(vocab_path)
        self._session_factory = session_factory or create_cpu_session
        self._lock = threading.Lock()
        self._loaded: tuple[Any, WordPieceTokenizer] | None = None

    @property
    def is_loaded(self) -> bool:
        return self._loaded is not None

    def get(self) -> tuple[Any, WordPieceTokenizer]:
        """Return the loaded (session, tokenizer) pair, loading it if needed.

        Raises:
            ConfigurationError: If the model or vocabulary cannot be loaded.
        """
        loaded = self._loaded
        if loaded is None:
            with self._lock:
                if self._loaded is None:
                    self._loaded = self._load()
                loaded = self._loaded
        return loaded

    def _load(self) -> tuple[Any, WordPieceTokenizer]:
        if not self._model_path.is_file():
            raise ConfigurationError(
                f"Model file not found: {self._model_path}",
                details={"model_path": str(self._model_path)},
            )

        tokenizer = WordPieceTokenizer(load_vocabulary(self._vocab_path))

        try:
            session = self._session_factory(str(self._model_path))
        except Exception as e:
            raise ConfigurationError(
                f"Failed to load model: {e}",
                details={"model_path": str(self._model_path), "error": str(e)},
            ) from e

        logger.info(
            f"Loaded local embedding model: {self._model_path.name}",
            extra={"vocab_size": tokenizer.vocab_size},
        )

        return session, tokenizer
