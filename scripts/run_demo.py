#!/usr/bin/env python
"""Ingest a small cloud-service catalogue and answer a question about it.

Usage:
    python -m scripts.run_demo --question "Which service stores secrets?"

Requires a running Qdrant instance and the configured embedding backend;
the LLM is only called without --no-llm.
"""

import argparse
import asyncio
import sys

from vector_rag.config import get_settings
from vector_rag.exceptions import VectorRAGError
from vector_rag.logging_config import get_logger, setup_logging
from vector_rag.retrieval.models import Document
from vector_rag.services import build_services

logger = get_logger(__name__)

CLOUD_SERVICES: list[tuple[str, str]] = [
    (
        "Azure App Service",
        "Host .NET, Java, Node.js, and Python web applications and APIs in a fully "
        "managed Azure service. You only need to deploy your code to Azure. Azure "
        "takes care of all the infrastructure management like high availability, "
        "load balancing, and autoscaling.",
    ),
    (
        "Azure Service Bus",
        "A fully managed enterprise message broker supporting both point to point "
        "and publish-subscribe integrations. It's ideal for building decoupled "
        "applications, queue-based load leveling, or facilitating communication "
        "between microservices.",
    ),
    (
        "Azure Blob Storage",
        "Azure Blob Storage allows your applications to store and retrieve files in "
        "the cloud. Azure Storage is highly scalable to store massive amounts of data "
        "and data is stored redundantly to ensure high availability.",
    ),
    (
        "Microsoft Entra ID",
        "Manage user identities and control access to your apps, data, and resources.",
    ),
    (
        "Azure Key Vault",
        "Store and access application secrets like connection strings and API keys "
        "in an encrypted vault with restricted access to make sure your secrets and "
        "your application aren't compromised.",
    ),
    (
        "Azure AI Search",
        "Information retrieval at scale for traditional and conversational search "
        "applications, with security and options for AI enrichment and vectorization.",
    ),
]


def catalogue_documents() -> list[Document]:
    """The demo catalogue as documents keyed by position."""
    return [
        Document(key=str(index), text=f"{name}: {description}")
        for index, (name, description) in enumerate(CLOUD_SERVICES)
    ]


async def run_demo(
    question: str,
    limit: int | None,
    min_score: float | None,
    use_llm: bool,
) -> None:
    """Ingest the catalogue, then print retrieval results and an answer."""
    settings = get_settings()
    setup_logging(level=settings.log_level)
    services = build_services(settings)

    try:
        ids = await services.orchestrator.ingest_batch(catalogue_documents())
        logger.info(f"Ingested {len(ids)} documents into {services.orchestrator.collection}")

        outcome = await services.orchestrator.query(question, limit=limit, min_score=min_score)

        print("\n" + "=" * 60)
        print(f"QUESTION: {question}")
        print("=" * 60)
        if not outcome.has_context:
            print("No relevant context found.")
        else:
            print("Context:")
            print(outcome.context_block())
            print("\nCitations:")
            print(outcome.citation_block())

        if use_llm:
            response = await services.pipeline.answer(
                question, limit=limit, min_score=min_score
            )
            print("\nAnswer:")
            print(response.answer)
        print("=" * 60)
    finally:
        await services.aclose()


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Run the cloud-service retrieval demo",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--question",
        default="Which service should I use to keep API keys safe?",
        help="Question to ask",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum results (default from settings)",
    )
    parser.add_argument(
        "--min-score",
        type=float,
        default=None,
        help="Minimum similarity score (default from settings)",
    )
    parser.add_argument(
        "--no-llm",
        action="store_true",
        help="Only print retrieval results",
    )

    args = parser.parse_args()

    try:
        asyncio.run(
            run_demo(
                question=args.question,
                limit=args.limit,
                min_score=args.min_score,
                use_llm=not args.no_llm,
            )
        )
    except VectorRAGError as e:
        logger.error(f"Demo failed: {e.message}", extra={"code": e.code.value})
        sys.exit(1)


if __name__ == "__main__":
    main()
