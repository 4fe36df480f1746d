"""Retrieval facade for integrations.

Exposes the two operations an integration needs, ``search`` and
``store``. Retrieval never raises to the caller: failures are logged and
an empty result is returned.
"""

import uuid
from typing import Any

from services.knowledge.KnowledgeService import KnowledgeService
from shared.helper.HelperConfig import HelperConfig
from shared.models.knowledge import KnowledgeItem


class RAGService:
    def __init__(self, helper_config: HelperConfig, knowledge_service: KnowledgeService) -> None:
        self.logging = helper_config.get_logger()
        self._knowledge_service = knowledge_service

    def make_item_id(self, external_id: str) -> str:
        """Map an arbitrary external id onto a stable UUID.

        UUIDs are passed through unchanged.
        """
        try:
            return str(uuid.UUID(external_id))
        except ValueError:
            return str(uuid.uuid5(uuid.NAMESPACE_OID, f"rag:{external_id}"))

    async def search(
        self,
        query: str,
        limit: int = 8,
        agent_id: str | None = None,
        conversation_context: str | None = None,
    ) -> list[KnowledgeItem]:
        """Reranked semantic search against the live store.

        Returns:
            list[KnowledgeItem]: Results, or [] if the query is empty or retrieval failed.
        """
        if not query or not query.strip():
            return []

        try:
            results = await self._knowledge_service.get_knowledge(
                query=query,
                conversation_context=conversation_context,
                limit=limit,
                agent_id=agent_id,
            )
        except Exception as exc:
            self.logging.error("[RAG] Search failed for '%s': %s", query[:100], exc)
            return []

        return results

    async def store(self, id: str, content: str, metadata: dict[str, Any] | None = None, agent_id: str | None = None) -> KnowledgeItem:
        """Embed ``content`` and persist it under a stable id.

        Raises:
            EmbeddingError: If the content could not be embedded.
            Exception: Store failures are propagated.
        """
        embedding = await self._knowledge_service.get_embedding_service().embed_strict(content)
        metadata = dict(metadata or {})
        metadata.setdefault("source", "rag")
        item = await self._knowledge_service.store_rag_embedding(
            id=self.make_item_id(id),
            content=content,
            embedding=embedding,
            metadata=metadata,
            embedding_info=self._knowledge_service.build_embedding_info(embedding),
            agent_id=agent_id,
        )
        self.logging.info("[RAG] Stored item %s (external id '%s')", item.id, id)
        return item
