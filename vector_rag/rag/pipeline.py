"""RAG pipeline: retrieve context, then ask the LLM."""

from vector_rag.llm.client import LLMClient
from vector_rag.llm.prompts import RAGPromptTemplate
from vector_rag.logging_config import get_logger
from vector_rag.observability.metrics import track_rag_answer
from vector_rag.rag.models import RAGResponse
from vector_rag.retrieval.orchestrator import RetrievalOrchestrator

logger = get_logger(__name__)

NO_CONTEXT_ANSWER = "I could not find relevant information to answer your question."


class RAGPipeline:
    """Combines retrieval and generation into a single question interface."""

    def __init__(
        self,
        orchestrator: RetrievalOrchestrator,
        llm_client: LLMClient,
        prompt_template: RAGPromptTemplate | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._llm_client = llm_client
        self._prompt_template = prompt_template or RAGPromptTemplate()

    async def answer(
        self,
        question: str,
        limit: int | None = None,
        min_score: float | None = None,
    ) -> RAGResponse:
        """Answer a question from the stored documents.

        When retrieval finds nothing above the threshold the LLM is not
        called and a fixed answer is returned.

        Args:
            question: The user's question.
            limit: Maximum context snippets.
            min_score: Minimum similarity for a snippet to be used.

        Returns:
            RAGResponse with answer and citations.
        """
        outcome = await self._orchestrator.query(question, limit=limit, min_score=min_score)

        if not outcome.has_context:
            logger.info("No relevant context found", extra={"min_score": outcome.min_score})
            track_rag_answer(answered=False)
            return RAGResponse(answer=NO_CONTEXT_ANSWER)

        system_prompt, user_prompt = self._prompt_template.build_prompt(question, outcome)
        generation = await self._llm_client.complete(system_prompt, user_prompt)
        track_rag_answer(answered=True)

        logger.info(
            "RAG answer completed",
            extra={
                "citations": len(outcome.results),
                "tokens_used": generation.total_tokens,
            },
        )

        return RAGResponse(
            answer=generation.content,
            citations=outcome.citations(),
            model=generation.model,
            tokens_used=generation.total_tokens,
        )
