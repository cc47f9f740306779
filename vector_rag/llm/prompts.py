"""Prompt template for answering from retrieved context."""

from vector_rag.retrieval.models import QueryOutcome


class RAGPromptTemplate:
    """Builds the system and user messages for a RAG answer.

    The context block numbers each snippet `[#rank]`, matching the
    citation ranks returned alongside the answer.
    """

    DEFAULT_SYSTEM_PROMPT = """You are a helpful assistant that answers questions about cloud services.

Rules:
- Answer ONLY based on the provided context
- If the context does not contain enough information, say so
- Be concise and direct
- Cite snippets by their [#rank] marker"""

    DEFAULT_USER_TEMPLATE = """Question: {question}

Context:
{context}"""

    def __init__(
        self,
        system_prompt: str | None = None,
        user_template: str | None = None,
    ) -> None:
        self.system_prompt = system_prompt or self.DEFAULT_SYSTEM_PROMPT
        self.user_template = user_template or self.DEFAULT_USER_TEMPLATE

    def build_prompt(self, question: str, outcome: QueryOutcome) -> tuple[str, str]:
        """Build the prompt pair from a question and its retrieval outcome.

        Returns:
            Tuple of (system_prompt, user_prompt).
        """
        user_prompt = self.user_template.format(
            question=question,
            context=outcome.context_block(),
        )
        return self.system_prompt, user_prompt
