"""Vector store interface and Qdrant implementation."""

import math
import time
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import Distance, PointStruct, VectorParams

from vector_rag.config import QdrantSettings, get_settings
from vector_rag.exceptions import (
    DimensionMismatchError,
    ErrorCode,
    StoreUnavailableError,
    VectorRAGError,
)
from vector_rag.logging_config import get_logger
from vector_rag.observability.metrics import track_vectorstore_operation
from vector_rag.vectorstore.ids import TimestampIdGenerator
from vector_rag.vectorstore.models import SearchResult, StoredPoint

logger = get_logger(__name__)


@contextmanager
def _tracked(operation: str, collection: str) -> Iterator[None]:
    """Time a store call and wrap client failures in StoreUnavailableError."""
    start = time.perf_counter()
    try:
        yield
    except VectorRAGError:
        track_vectorstore_operation(operation, time.perf_counter() - start, success=False)
        raise
    except Exception as e:
        track_vectorstore_operation(operation, time.perf_counter() - start, success=False)
        raise StoreUnavailableError(
            f"Failed to {operation.replace('_', ' ')}: {e}",
            details={"collection": collection, "error": str(e)},
        ) from e
    track_vectorstore_operation(operation, time.perf_counter() - start)


def extract_auxiliary(value: Any) -> int:
    """Read a numeric payload tag, returning -1 when it is missing or not numeric."""
    if isinstance(value, bool) or value is None:
        return -1
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else -1
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return -1
    return -1


class VectorStore(ABC):
    """Abstract base class for vector stores.

    Defines the interface for storing and searching vectors.
    """

    @abstractmethod
    async def collection_exists(self, name: str) -> bool:
        """Check if a collection exists.

        Args:
            name: Collection name.

        Returns:
            True if collection exists.
        """
        ...

    @abstractmethod
    async def create_collection(self, name: str, dimensions: int) -> None:
        """Create a new collection.

        Args:
            name: Collection name.
            dimensions: Vector dimensions.

        Raises:
            StoreUnavailableError: If creation fails or it already exists.
        """
        ...

    @abstractmethod
    async def delete_collection(self, name: str) -> None:
        """Delete a collection.

        Args:
            name: Collection name.

        Raises:
            StoreUnavailableError: If deletion fails or it does not exist.
        """
        ...

    @abstractmethod
    async def ensure_collection_for_write(self, name: str, dimensions: int) -> None:
        """Create the collection empty, dropping any existing one first.

        Every point previously stored in the collection is destroyed.

        Args:
            name: Collection name.
            dimensions: Vector dimensions.
        """
        ...

    @abstractmethod
    async def ensure_collection(self, name: str, dimensions: int) -> None:
        """Create the collection if missing, keeping existing points.

        Raises:
            DimensionMismatchError: If it exists with another dimension.
        """
        ...

    @abstractmethod
    async def upsert(self, collection: str, points: list[StoredPoint]) -> list[int]:
        """Insert or replace points.

        Args:
            collection: Collection name.
            points: Points to write; missing ids are assigned.

        Returns:
            The ids of the written points, in input order.

        Raises:
            DimensionMismatchError: If a vector does not fit the collection.
            StoreUnavailableError: If the write fails.
        """
        ...

    @abstractmethod
    async def search(
        self,
        collection: str,
        vector: list[float],
        limit: int = 5,
    ) -> list[SearchResult]:
        """Search for similar vectors.

        Args:
            collection: Collection name.
            vector: Query vector.
            limit: Maximum results to return.

        Returns:
            Results ordered by descending score.

        Raises:
            StoreUnavailableError: If search fails.
        """
        ...


class QdrantVectorStore(VectorStore):
    """Qdrant vector store implementation using cosine distance."""

    def __init__(
        self,
        settings: QdrantSettings | None = None,
        client: AsyncQdrantClient | None = None,
        id_generator: TimestampIdGenerator | None = None,
    ) -> None:
        """Initialize Qdrant vector store.

        Args:
            settings: Qdrant configuration.
            client: Existing client (for testing).
            id_generator: Source of point ids for points without one.
        """
        self._settings = settings or get_settings().qdrant
        self._client = client
        self._owns_client = client is None
        self._id_generator = id_generator or TimestampIdGenerator()
        # Dimension of every collection this store created or inspected.
        self._dimensions: dict[str, int] = {}

    async def _get_client(self) -> AsyncQdrantClient:
        """Get or create Qdrant client."""
        if self._client is None:
            api_key = None
            if self._settings.api_key:
                api_key = self._settings.api_key.get_secret_value()

            self._client = AsyncQdrantClient(
                url=self._settings.url,
                api_key=api_key,
            )
        return self._client

    async def close(self) -> None:
        """Close the Qdrant client."""
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None

    async def collection_exists(self, name: str) -> bool:
        """Check if collection exists."""
        client = await self._get_client()
        with _tracked("collection_exists", name):
            return await client.collection_exists(name)

    async def create_collection(self, name: str, dimensions: int) -> None:
        """Create a new Qdrant collection."""
        client = await self._get_client()

        with _tracked("create_collection", name):
            if await client.collection_exists(name):
                raise StoreUnavailableError(
                    f"Collection already exists: {name}",
                    code=ErrorCode.COLLECTION_EXISTS,
                    details={"collection": name},
                )
            await self._create(client, name, dimensions)

    async def delete_collection(self, name: str) -> None:
        """Delete a Qdrant collection."""
        client = await self._get_client()

        with _tracked("delete_collection", name):
            if not await client.collection_exists(name):
                raise StoreUnavailableError(
                    f"Collection not found: {name}",
                    code=ErrorCode.COLLECTION_NOT_FOUND,
                    details={"collection": name},
                )
            await client.delete_collection(name)
            self._dimensions.pop(name, None)
            logger.info(f"Deleted collection: {name}")

    async def ensure_collection_for_write(self, name: str, dimensions: int) -> None:
        """Drop and recreate the collection at the given dimension."""
        client = await self._get_client()

        with _tracked("recreate_collection", name):
            if await client.collection_exists(name):
                await client.delete_collection(name)
                self._dimensions.pop(name, None)
                logger.info(f"Dropped existing collection: {name}")
            await self._create(client, name, dimensions)

    async def ensure_collection(self, name: str, dimensions: int) -> None:
        """Create the collection if missing, else verify its dimension."""
        client = await self._get_client()

        with _tracked("ensure_collection", name):
            if not await client.collection_exists(name):
                await self._create(client, name, dimensions)
                return

            info = await client.get_collection(name)
            existing = info.config.params.vectors.size
            if existing != dimensions:
                raise DimensionMismatchError(
                    f"Collection {name} has dimension {existing}, expected {dimensions}",
                    details={
                        "collection": name,
                        "collection_dimensions": existing,
                        "expected_dimensions": dimensions,
                    },
                )
            self._dimensions[name] = existing

    async def _create(self, client: AsyncQdrantClient, name: str, dimensions: int) -> None:
        await client.create_collection(
            collection_name=name,
            vectors_config=VectorParams(
                size=dimensions,
                distance=Distance.COSINE,
            ),
        )
        self._dimensions[name] = dimensions
        logger.info(f"Created collection: {name}", extra={"dimensions": dimensions})

    async def upsert(self, collection: str, points: list[StoredPoint]) -> list[int]:
        """Upsert points into collection."""
        if not points:
            return []

        expected = self._dimensions.get(collection)
        if expected is not None:
            for point in points:
                if len(point.vector) != expected:
                    raise DimensionMismatchError(
                        f"Vector has {len(point.vector)} dimensions, "
                        f"collection {collection} expects {expected}",
                        details={
                            "collection": collection,
                            "vector_dimensions": len(point.vector),
                            "collection_dimensions": expected,
                        },
                    )

        ids = [
            point.id if point.id is not None else self._id_generator.next_id()
            for point in points
        ]
        client = await self._get_client()

        with _tracked("upsert", collection):
            await client.upsert(
                collection_name=collection,
                points=[
                    PointStruct(id=point_id, vector=point.vector, payload=point.payload)
                    for point_id, point in zip(ids, points, strict=True)
                ],
            )

        logger.debug(
            f"Upserted {len(ids)} points",
            extra={"collection": collection},
        )
        return ids

    async def search(
        self,
        collection: str,
        vector: list[float],
        limit: int = 5,
    ) -> list[SearchResult]:
        """Search for similar vectors.

        A collection that does not exist yet yields no results.
        """
        client = await self._get_client()
        aux_field = self._settings.auxiliary_field

        with _tracked("search", collection):
            if not await client.collection_exists(collection):
                logger.debug(f"Search on missing collection: {collection}")
                return []

            response = await client.query_points(
                collection_name=collection,
                query=vector,
                limit=limit,
                with_payload=True,
            )

        results: list[SearchResult] = []
        for point in response.points:
            payload = dict(point.payload) if point.payload else {}
            text = payload.get("text")
            results.append(
                SearchResult(
                    id=point.id,
                    score=point.score if point.score is not None else 0.0,
                    text=text if isinstance(text, str) else "",
                    auxiliary=extract_auxiliary(payload.get(aux_field)),
                    payload=payload,
                )
            )

        results.sort(key=lambda r: r.score, reverse=True)
        return results[:limit]
