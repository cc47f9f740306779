"""API routes for ingestion, retrieval and answering."""

from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel, Field

from vector_rag.logging_config import get_logger
from vector_rag.rag.models import RAGResponse
from vector_rag.retrieval.models import Citation, Document, QueryOutcome
from vector_rag.services import Services
from vector_rag.vectorstore.models import SearchResult

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["RAG"])


class IngestRequest(BaseModel):
    """Request body for document ingestion."""

    documents: list[Document] = Field(
        min_length=1,
        description="Documents to embed and store",
    )


class IngestResponse(BaseModel):
    """Response from document ingestion."""

    collection: str = Field(description="Collection written to")
    ids: list[int] = Field(description="Assigned point ids, in request order")


class QueryRequest(BaseModel):
    """Request body for retrieval and answering."""

    question: str = Field(min_length=1, description="Question or search text")
    limit: int | None = Field(default=None, ge=1, le=50, description="Maximum results")
    min_score: float | None = Field(
        default=None,
        ge=-1.0,
        le=1.0,
        description="Minimum cosine similarity",
    )


class QueryResponse(BaseModel):
    """Ranked retrieval results with the rendered context."""

    has_context: bool = Field(description="Whether anything relevant was found")
    results: list[SearchResult] = Field(description="Ranked results")
    context: str = Field(description="Context block, one `[#rank] text` per line")
    citations: list[Citation] = Field(description="Citations aligned with the context")


def get_services(request: Request) -> Services:
    """Return the app's services, or 503 if they were not built."""
    services: Services | None = getattr(request.app.state, "services", None)
    if services is None:
        logger.warning("Services not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "Services not configured",
                "message": "The embedding backend and vector store are not initialized",
            },
        )
    return services


def outcome_to_response(outcome: QueryOutcome) -> QueryResponse:
    return QueryResponse(
        has_context=outcome.has_context,
        results=outcome.results,
        context=outcome.context_block(),
        citations=outcome.citations(),
    )


@router.post("/ingest", response_model=IngestResponse)
async def ingest_endpoint(body: IngestRequest, request: Request) -> IngestResponse:
    """Embed and store documents.

    With the recreate write mode the request replaces the collection.
    """
    services = get_services(request)
    ids = await services.orchestrator.ingest_batch(body.documents)
    return IngestResponse(collection=services.orchestrator.collection, ids=ids)


@router.post("/query", response_model=QueryResponse)
async def query_endpoint(body: QueryRequest, request: Request) -> QueryResponse:
    """Retrieve the stored documents most similar to the question."""
    services = get_services(request)
    outcome = await services.orchestrator.query(
        body.question,
        limit=body.limit,
        min_score=body.min_score,
    )
    return outcome_to_response(outcome)


@router.post("/answer", response_model=RAGResponse)
async def answer_endpoint(body: QueryRequest, request: Request) -> RAGResponse:
    """Answer the question with the LLM, conditioned on retrieved context."""
    services = get_services(request)
    return await services.pipeline.answer(
        body.question,
        limit=body.limit,
        min_score=body.min_score,
    )
