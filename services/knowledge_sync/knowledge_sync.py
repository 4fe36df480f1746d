"""Knowledge sync entry point.

Ingests the files below KNOWLEDGE_ROOT into the knowledge store, removes
items whose files were deleted and repairs items without embeddings.

Usage:
    python -m services.knowledge_sync.knowledge_sync
"""

import asyncio

from services.knowledge.KnowledgeRuntime import KnowledgeRuntime
from services.knowledge_sync.KnowledgeSyncService import KnowledgeSyncService
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging


async def main() -> int:
    """
    Returns:
        int: Process exit code, 1 if the backends could not be booted or the sync failed.
    """
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    runtime = KnowledgeRuntime(helper_config=config)
    try:
        try:
            knowledge_service = await runtime.boot()
        except Exception as e:
            logger.error("[RAG] Could not boot the knowledge store: %s", e)
            return 1
        # without a provider every file would fail to embed
        if not runtime.has_embedder():
            logger.error("[Embed] No embedding provider available, aborting sync")
            return 1

        stats = await KnowledgeSyncService(helper_config=config, knowledge_service=knowledge_service).do_full_sync()
        return 1 if stats.get("errors") else 0
    finally:
        await runtime.close()


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
