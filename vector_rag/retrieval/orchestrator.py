"""Ingestion and query flows over an embedding provider and a vector store."""

import asyncio

from vector_rag.config import QdrantSettings, RetrievalSettings, WriteMode, get_settings
from vector_rag.embeddings.service import EmbeddingProvider
from vector_rag.exceptions import DimensionMismatchError, ValidationError
from vector_rag.logging_config import get_logger
from vector_rag.observability.metrics import track_ingestion, track_retrieval_request
from vector_rag.retrieval.models import Document, QueryOutcome
from vector_rag.vectorstore.adapter import resize_vector
from vector_rag.vectorstore.models import StoredPoint
from vector_rag.vectorstore.service import VectorStore

logger = get_logger(__name__)

DEFAULT_CATEGORY = "demo"


class RetrievalOrchestrator:
    """Drives text through embedding, resizing and the vector store.

    Writes to one collection are serialized: in recreate mode a second
    writer would otherwise drop the collection under the first one's
    upsert. Errors from the provider or the store propagate unchanged.
    """

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        vector_store: VectorStore,
        qdrant_settings: QdrantSettings | None = None,
        retrieval_settings: RetrievalSettings | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            embedding_provider: Produces raw embeddings.
            vector_store: Stores and searches points.
            qdrant_settings: Collection name, dimension and write mode.
            retrieval_settings: Default query limit and score threshold.
        """
        if qdrant_settings is None or retrieval_settings is None:
            settings = get_settings()
            qdrant_settings = qdrant_settings or settings.qdrant
            retrieval_settings = retrieval_settings or settings.retrieval

        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._qdrant = qdrant_settings
        self._retrieval = retrieval_settings
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def collection(self) -> str:
        return self._qdrant.collection_name

    @property
    def dimensions(self) -> int:
        return self._qdrant.dimensions

    def _lock_for(self, collection: str) -> asyncio.Lock:
        lock = self._locks.get(collection)
        if lock is None:
            lock = self._locks[collection] = asyncio.Lock()
        return lock

    async def _embed_fixed(self, text: str) -> list[float]:
        raw = await self._embedding_provider.embed(text)
        vector = resize_vector(raw, self.dimensions)

        if len(raw) != self.dimensions:
            logger.debug(
                "Resized embedding",
                extra={"native_dimensions": len(raw), "dimensions": self.dimensions},
            )
        if len(vector) != self.dimensions:
            raise DimensionMismatchError(
                f"Resized vector has {len(vector)} dimensions, expected {self.dimensions}",
                details={"vector_dimensions": len(vector), "expected": self.dimensions},
            )
        return vector

    def _build_point(self, document: Document, vector: list[float]) -> StoredPoint:
        return StoredPoint(
            vector=vector,
            payload={
                "text": document.text,
                "length": len(document.text),
                "category": DEFAULT_CATEGORY,
                "key": document.key,
            },
        )

    async def _prepare_collection(self) -> None:
        if self._qdrant.write_mode == WriteMode.RECREATE:
            await self._vector_store.ensure_collection_for_write(
                self.collection, self.dimensions
            )
        else:
            await self._vector_store.ensure_collection(self.collection, self.dimensions)

    async def _write(self, points: list[StoredPoint]) -> list[int]:
        async with self._lock_for(self.collection):
            await self._prepare_collection()
            ids = await self._vector_store.upsert(self.collection, points)
        track_ingestion(self.collection, len(ids))
        return ids

    async def ingest(self, key: str, text: str) -> int:
        """Embed and store one document.

        In recreate mode this replaces everything previously stored in
        the collection.

        Args:
            key: Logical document identifier.
            text: Document content.

        Returns:
            The id assigned to the stored point.
        """
        document = Document(key=key, text=text)
        vector = await self._embed_fixed(document.text)
        ids = await self._write([self._build_point(document, vector)])

        logger.info(
            f"Ingested document {key}",
            extra={"collection": self.collection, "point_id": ids[0]},
        )
        return ids[0]

    async def ingest_batch(self, documents: list[Document]) -> list[int]:
        """Embed and store several documents with one collection preparation.

        Every document is embedded before the collection is touched, so an
        embedding failure leaves the stored collection as it was.

        Args:
            documents: Documents to store.

        Returns:
            Assigned point ids, in input order.
        """
        if not documents:
            return []

        points = [
            self._build_point(document, await self._embed_fixed(document.text))
            for document in documents
        ]
        ids = await self._write(points)

        logger.info(
            f"Ingested {len(ids)} documents",
            extra={"collection": self.collection, "write_mode": self._qdrant.write_mode.value},
        )
        return ids

    async def query(
        self,
        text: str,
        limit: int | None = None,
        min_score: float | None = None,
    ) -> QueryOutcome:
        """Find the stored documents most similar to `text`.

        Args:
            text: Query text.
            limit: Maximum results (default from settings).
            min_score: Drop results scoring below this (default from
                settings; None keeps everything).

        Returns:
            Ranked outcome; empty when nothing passes the threshold.

        Raises:
            ValidationError: If `limit` is less than 1.
        """
        limit = limit if limit is not None else self._retrieval.limit
        if min_score is None:
            min_score = self._retrieval.min_score
        if limit < 1:
            raise ValidationError(
                f"limit must be at least 1, got {limit}",
                details={"limit": limit},
            )

        if not text.strip():
            return QueryOutcome(query=text, min_score=min_score)

        vector = await self._embed_fixed(text)
        results = await self._vector_store.search(self.collection, vector, limit=limit)

        if min_score is not None:
            results = [r for r in results if r.score >= min_score]

        track_retrieval_request(
            len(results),
            results[0].score if results else 0.0,
        )
        logger.debug(
            f"Retrieved {len(results)} results for query",
            extra={
                "query_length": len(text),
                "limit": limit,
                "min_score": min_score,
            },
        )
        return QueryOutcome(query=text, results=results, min_score=min_score)
