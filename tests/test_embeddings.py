"""Tests for embedding providers, tokenizer and model registry."""

import threading
from pathlib import Path
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import numpy as np
import pytest
from pydantic import SecretStr

from vector_rag.config import EmbeddingProviderType, EmbeddingSettings
from vector_rag.embeddings.registry import ModelRegistry
from vector_rag.embeddings.service import (
    LocalInferenceProvider,
    LocalServerProvider,
    RemoteHostedProvider,
    coerce_vector,
    create_embedding_provider,
)
from vector_rag.embeddings.tokenizer import WordPieceTokenizer, load_vocabulary
from vector_rag.exceptions import (
    ConfigurationError,
    EmbeddingBackendError,
    ErrorCode,
)

VOCAB = ["[PAD]", "[UNK]", "[CLS]", "[SEP]", "qdrant", "is", "a", "vector", "database"]


@pytest.fixture
def vocab_file(tmp_path: Path) -> Path:
    path = tmp_path / "vocab.txt"
    path.write_text("\n".join(VOCAB) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def model_file(tmp_path: Path) -> Path:
    path = tmp_path / "model.onnx"
    path.write_bytes(b"not-a-real-model")
    return path


class FakeSession:
    """Stands in for an onnxruntime InferenceSession."""

    def __init__(self, inputs: list[str] | None = None, output: Any = None) -> None:
        self._inputs = inputs or ["input_ids", "attention_mask"]
        self._output = output if output is not None else np.array([[0.5, -0.25, 1.0]])
        self.feeds: list[dict[str, np.ndarray]] = []

    def get_inputs(self) -> list[SimpleNamespace]:
        return [SimpleNamespace(name=name) for name in self._inputs]

    def run(self, output_names: Any, feeds: dict[str, np.ndarray]) -> list[Any]:
        self.feeds.append(feeds)
        return [self._output]


def _json_response(data: Any) -> MagicMock:
    response = MagicMock()
    response.json.return_value = data
    response.raise_for_status = MagicMock()
    return response


class TestVocabulary:
    """Tests for vocabulary loading."""

    def test_line_index_is_token_id(self, vocab_file: Path) -> None:
        vocab = load_vocabulary(vocab_file)
        assert vocab["[CLS]"] == 2
        assert vocab["database"] == 8
        assert len(vocab) == len(VOCAB)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            load_vocabulary(tmp_path / "nope.txt")


class TestWordPieceTokenizer:
    """Tests for whitespace tokenization."""

    def test_wraps_with_cls_and_sep(self, vocab_file: Path) -> None:
        tokenizer = WordPieceTokenizer(load_vocabulary(vocab_file))

        input_ids, attention_mask = tokenizer.tokenize("qdrant is a vector database")

        assert input_ids == [2, 4, 5, 6, 7, 8, 3]
        assert attention_mask == [1] * 7

    def test_unknown_words_map_to_unk(self, vocab_file: Path) -> None:
        tokenizer = WordPieceTokenizer(load_vocabulary(vocab_file))

        input_ids, _ = tokenizer.tokenize("qdrant   rocks\tvector")

        assert input_ids == [2, 4, 1, 7, 3]

    def test_empty_text(self, vocab_file: Path) -> None:
        tokenizer = WordPieceTokenizer(load_vocabulary(vocab_file))
        assert tokenizer.tokenize("") == ([2, 3], [1, 1])

    def test_missing_special_tokens(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            WordPieceTokenizer({"[CLS]": 0, "hello": 1})
        assert set(exc_info.value.details["missing"]) == {"[SEP]", "[UNK]"}


class TestModelRegistry:
    """Tests for the shared model registry."""

    def test_loads_once(self, model_file: Path, vocab_file: Path) -> None:
        session = FakeSession()
        factory = MagicMock(return_value=session)
        registry = ModelRegistry(model_file, vocab_file, session_factory=factory)

        first = registry.get()
        second = registry.get()

        assert first[0] is session
        assert second[0] is session
        assert first[1] is second[1]
        factory.assert_called_once_with(str(model_file))

    def test_concurrent_first_use_loads_once(self, model_file: Path, vocab_file: Path) -> None:
        calls = 0
        gate = threading.Event()

        def slow_factory(path: str) -> FakeSession:
            nonlocal calls
            calls += 1
            gate.wait(timeout=1.0)
            return FakeSession()

        registry = ModelRegistry(model_file, vocab_file, session_factory=slow_factory)
        threads = [threading.Thread(target=registry.get) for _ in range(8)]
        for t in threads:
            t.start()
        gate.set()
        for t in threads:
            t.join()

        assert calls == 1
        assert registry.is_loaded

    def test_missing_model_file(self, tmp_path: Path, vocab_file: Path) -> None:
        registry = ModelRegistry(tmp_path / "missing.onnx", vocab_file)
        with pytest.raises(ConfigurationError):
            registry.get()
        assert not registry.is_loaded

    def test_session_failure(self, model_file: Path, vocab_file: Path) -> None:
        factory = MagicMock(side_effect=RuntimeError("bad protobuf"))
        registry = ModelRegistry(model_file, vocab_file, session_factory=factory)

        with pytest.raises(ConfigurationError, match="bad protobuf"):
            registry.get()


class TestLocalInferenceProvider:
    """Tests for in-process ONNX embeddings."""

    @pytest.mark.asyncio
    async def test_embed_flattens_output(self, model_file: Path, vocab_file: Path) -> None:
        session = FakeSession()
        registry = ModelRegistry(model_file, vocab_file, session_factory=lambda _: session)
        provider = LocalInferenceProvider(registry)

        vector = await provider.embed("qdrant is a vector database")

        assert vector == [0.5, -0.25, 1.0]
        feeds = session.feeds[0]
        assert feeds["input_ids"].dtype == np.int64
        assert feeds["input_ids"].tolist() == [[2, 4, 5, 6, 7, 8, 3]]
        assert feeds["attention_mask"].tolist() == [[1] * 7]
        assert "token_type_ids" not in feeds

    @pytest.mark.asyncio
    async def test_token_type_ids_when_declared(self, model_file: Path, vocab_file: Path) -> None:
        session = FakeSession(inputs=["input_ids", "attention_mask", "token_type_ids"])
        registry = ModelRegistry(model_file, vocab_file, session_factory=lambda _: session)

        await LocalInferenceProvider(registry).embed("vector")

        assert session.feeds[0]["token_type_ids"].tolist() == [[0, 0, 0]]

    @pytest.mark.asyncio
    async def test_inference_failure(self, model_file: Path, vocab_file: Path) -> None:
        session = FakeSession()
        session.run = MagicMock(side_effect=RuntimeError("shape mismatch"))
        registry = ModelRegistry(model_file, vocab_file, session_factory=lambda _: session)

        with pytest.raises(EmbeddingBackendError):
            await LocalInferenceProvider(registry).embed("vector")

    @pytest.mark.asyncio
    async def test_empty_output(self, model_file: Path, vocab_file: Path) -> None:
        session = FakeSession(output=np.zeros((1, 0), dtype=np.float32))
        registry = ModelRegistry(model_file, vocab_file, session_factory=lambda _: session)

        with pytest.raises(EmbeddingBackendError) as exc_info:
            await LocalInferenceProvider(registry).embed("vector")
        assert exc_info.value.code == ErrorCode.EMBEDDING_EMPTY

    @pytest.mark.asyncio
    async def test_missing_model_is_configuration_error(self, tmp_path: Path, vocab_file: Path) -> None:
        provider = LocalInferenceProvider(ModelRegistry(tmp_path / "none.onnx", vocab_file))
        with pytest.raises(ConfigurationError):
            await provider.embed("vector")


class TestLocalServerProvider:
    """Tests for the local HTTP embedding server provider."""

    @pytest.mark.asyncio
    async def test_embed_sends_model_and_prompt(self) -> None:
        settings = EmbeddingSettings(base_url="http://test:11434/", model="phi4:latest")
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _json_response({"embedding": [0.1, 0.2, 0.3]})

        provider = LocalServerProvider(settings=settings, client=mock_client)
        vector = await provider.embed("test text")

        assert vector == [0.1, 0.2, 0.3]
        call = mock_client.post.call_args
        assert call.args[0] == "http://test:11434/api/embeddings"
        assert call.kwargs["json"] == {"model": "phi4:latest", "prompt": "test text"}

    @pytest.mark.asyncio
    async def test_input_field_and_path(self) -> None:
        settings = EmbeddingSettings(
            base_url="http://test:11434",
            path="/embeddings",
            request_field="input",
        )
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _json_response({"embedding": [1, 2]})

        provider = LocalServerProvider(settings=settings, client=mock_client)
        assert await provider.embed("hello") == [1.0, 2.0]

        call = mock_client.post.call_args
        assert call.args[0] == "http://test:11434/embeddings"
        assert call.kwargs["json"]["input"] == "hello"

    @pytest.mark.parametrize(
        "body",
        [
            {"embeddings": [[0.4, 0.5]]},
            {"data": [{"embedding": [0.4, 0.5]}]},
        ],
    )
    @pytest.mark.asyncio
    async def test_alternative_response_shapes(self, body: dict[str, Any]) -> None:
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _json_response(body)

        provider = LocalServerProvider(settings=EmbeddingSettings(), client=mock_client)
        assert await provider.embed("x") == [0.4, 0.5]

    @pytest.mark.asyncio
    async def test_missing_embedding_field(self) -> None:
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _json_response({"error": "model not found"})

        provider = LocalServerProvider(settings=EmbeddingSettings(), client=mock_client)
        with pytest.raises(EmbeddingBackendError):
            await provider.embed("x")

    @pytest.mark.asyncio
    async def test_empty_embedding(self) -> None:
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _json_response({"embedding": []})

        provider = LocalServerProvider(settings=EmbeddingSettings(), client=mock_client)
        with pytest.raises(EmbeddingBackendError) as exc_info:
            await provider.embed("x")
        assert exc_info.value.code == ErrorCode.EMBEDDING_EMPTY

    @pytest.mark.asyncio
    async def test_http_error(self) -> None:
        mock_response = MagicMock()
        mock_response.status_code = 500
        mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "Server error",
            request=MagicMock(),
            response=mock_response,
        )
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = mock_response

        provider = LocalServerProvider(settings=EmbeddingSettings(), client=mock_client)
        with pytest.raises(EmbeddingBackendError) as exc_info:
            await provider.embed("x")
        assert exc_info.value.details["status_code"] == 500

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.side_effect = httpx.ConnectError("Connection refused")

        provider = LocalServerProvider(settings=EmbeddingSettings(), client=mock_client)
        with pytest.raises(EmbeddingBackendError):
            await provider.embed("x")

    @pytest.mark.asyncio
    async def test_close_owned_client(self) -> None:
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        provider = LocalServerProvider(settings=EmbeddingSettings(), client=mock_client)
        provider._owns_client = True

        await provider.close()
        mock_client.aclose.assert_called_once()


class TestRemoteHostedProvider:
    """Tests for the hosted inference API provider."""

    @pytest.mark.asyncio
    async def test_embed_with_bearer_token(self) -> None:
        settings = EmbeddingSettings(
            hosted_url="https://hosted.test/models/sentence-transformers/all-MiniLM-L6-v2",
            api_token=SecretStr("hf_token"),
        )
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _json_response([0.1, 0.2])

        provider = RemoteHostedProvider(settings=settings, client=mock_client)
        vector = await provider.embed("hello")

        assert vector == [0.1, 0.2]
        call = mock_client.post.call_args
        assert call.args[0] == settings.hosted_url
        assert call.kwargs["json"] == {"inputs": "hello"}
        assert call.kwargs["headers"] == {"Authorization": "Bearer hf_token"}
        assert provider.model_name == "sentence-transformers/all-MiniLM-L6-v2"

    @pytest.mark.asyncio
    async def test_single_row_matrix_unwrapped(self) -> None:
        settings = EmbeddingSettings(api_token=SecretStr("t"))
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _json_response([[0.3, 0.4]])

        provider = RemoteHostedProvider(settings=settings, client=mock_client)
        assert await provider.embed("hello") == [0.3, 0.4]

    @pytest.mark.asyncio
    async def test_error_object_rejected(self) -> None:
        settings = EmbeddingSettings(api_token=SecretStr("t"))
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _json_response({"error": "Model is loading"})

        provider = RemoteHostedProvider(settings=settings, client=mock_client)
        with pytest.raises(EmbeddingBackendError):
            await provider.embed("hello")

    @pytest.mark.asyncio
    async def test_missing_token(self) -> None:
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        provider = RemoteHostedProvider(settings=EmbeddingSettings(), client=mock_client)

        with pytest.raises(ConfigurationError):
            await provider.embed("hello")
        mock_client.post.assert_not_called()


class TestCoerceVector:
    """Tests for response vector validation."""

    def test_rejects_non_numeric(self) -> None:
        with pytest.raises(EmbeddingBackendError):
            coerce_vector([0.1, "x"], "test")

    def test_rejects_booleans(self) -> None:
        with pytest.raises(EmbeddingBackendError):
            coerce_vector([True, False], "test")

    def test_converts_ints(self) -> None:
        assert coerce_vector([1, 2], "test") == [1.0, 2.0]


class TestCreateEmbeddingProvider:
    """Tests for provider selection."""

    @pytest.mark.parametrize(
        ("provider", "expected"),
        [
            (EmbeddingProviderType.LOCAL_SERVER, LocalServerProvider),
            (EmbeddingProviderType.REMOTE_HOSTED, RemoteHostedProvider),
            (EmbeddingProviderType.LOCAL_INFERENCE, LocalInferenceProvider),
        ],
    )
    def test_selects_by_configuration(self, provider: EmbeddingProviderType, expected: type) -> None:
        settings = EmbeddingSettings(provider=provider)
        assert isinstance(create_embedding_provider(settings), expected)

    def test_uses_given_registry(self, model_file: Path, vocab_file: Path) -> None:
        registry = ModelRegistry(model_file, vocab_file)
        settings = EmbeddingSettings(provider=EmbeddingProviderType.LOCAL_INFERENCE)

        provider = create_embedding_provider(settings, registry=registry)

        assert isinstance(provider, LocalInferenceProvider)
        assert provider._registry is registry
