"""Knowledge lifecycle service.

Orchestrates retrieval (direct lookup, semantic search and reranking),
ingestion of source files (embed, checksum, store, chunk), and the
maintenance passes that keep the store consistent with the knowledge
root on disk.
"""

import os
import uuid
from typing import Any

from shared.clients.rag.KnowledgeStoreInterface import KnowledgeStoreInterface
from shared.embedding.EmbeddingService import EmbeddingService
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperVector import compute_embedding_checksum
from shared.knowledge.RelevanceReranker import RelevanceReranker
from shared.knowledge.TextPreprocessor import TextPreprocessor
from shared.models.embedding import EmbeddingInfo, EmbeddingSource
from shared.models.knowledge import KnowledgeContent, KnowledgeFile, KnowledgeItem, KnowledgeScope

EMBEDDING_VERSION = "1.0"


def split_text(text: str, chunk_size: int, chunk_overlap: int) -> list[str]:
    """Split text into overlapping chunks.

    Args:
        text (str): The full text.
        chunk_size (int): Characters per chunk.
        chunk_overlap (int): Characters shared by consecutive chunks.

    Returns:
        list[str]: Ordered list of text chunks.
    """
    if not text:
        return []
    chunks: list[str] = []
    start = 0
    while start < len(text):
        end = min(start + chunk_size, len(text))
        chunks.append(text[start:end])
        if end >= len(text):
            break
        start = end - chunk_overlap
    return chunks


class KnowledgeService:
    """Knowledge lifecycle manager on top of a KnowledgeStoreInterface."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store: KnowledgeStoreInterface,
        embedding_service: EmbeddingService,
        preprocessor: TextPreprocessor | None = None,
        reranker: RelevanceReranker | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store
        self._embedding_service = embedding_service
        self._preprocessor = preprocessor or TextPreprocessor(helper_config=helper_config)
        self._reranker = reranker or RelevanceReranker(helper_config=helper_config)

        self.agent_id = helper_config.get_string_val("KNOWLEDGE_AGENT_ID", default="default")
        self.knowledge_root = helper_config.get_string_val("KNOWLEDGE_ROOT", default="knowledge")
        self.match_threshold = float(helper_config.get_number_val("KNOWLEDGE_MATCH_THRESHOLD", default=0.85))
        self.match_count = int(helper_config.get_number_val("KNOWLEDGE_MATCH_COUNT", default=8))
        self.chunk_size = int(helper_config.get_number_val("KNOWLEDGE_CHUNK_SIZE", default=1000))
        self.chunk_overlap = int(helper_config.get_number_val("KNOWLEDGE_CHUNK_OVERLAP", default=100))
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"KNOWLEDGE_CHUNK_OVERLAP ({self.chunk_overlap}) must be smaller than KNOWLEDGE_CHUNK_SIZE ({self.chunk_size})."
            )

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_store(self) -> KnowledgeStoreInterface:
        return self._store

    def get_embedding_service(self) -> EmbeddingService:
        return self._embedding_service

    ##########################################
    ############### RETRIEVAL ################
    ##########################################

    async def get_knowledge(
        self,
        query: str | None = None,
        id: str | None = None,
        conversation_context: str | None = None,
        limit: int | None = None,
        agent_id: str | None = None,
    ) -> list[KnowledgeItem]:
        """Retrieve knowledge by id, by semantic query, or list it.

        A direct id lookup that finds something wins and no search is run.
        Otherwise a query is preprocessed (optionally prefixed with the
        preprocessed conversation context), embedded and searched with
        ``2 * limit`` candidates, which are then reranked down to ``limit``.
        Without id and query all items visible to the agent are returned.

        Args:
            query (str | None): Natural language query.
            id (str | None): Id for a direct lookup.
            conversation_context (str | None): Recent conversation to bias the query embedding.
            limit (int | None): Maximum number of results.
            agent_id (str | None): Requesting agent, defaults to KNOWLEDGE_AGENT_ID.

        Returns:
            list[KnowledgeItem]: Matching items; reranked results carry ``score``.

        Raises:
            Exception: Store failures are propagated.
        """
        agent_id = agent_id or self.agent_id

        if id:
            direct_results = await self._store.do_get_knowledge(agent_id=agent_id, id=id)
            if direct_results:
                return direct_results

        if query:
            return await self._search(query, conversation_context, limit or self.match_count, agent_id)

        return await self._store.do_get_knowledge(agent_id=agent_id, limit=limit)

    async def _search(self, query: str, conversation_context: str | None, limit: int, agent_id: str) -> list[KnowledgeItem]:
        processed_query = self._preprocessor.preprocess(query)
        search_text = processed_query
        if conversation_context:
            relevant_context = self._preprocessor.preprocess(conversation_context)
            search_text = f"{relevant_context} {processed_query}".strip()

        result = await self._embedding_service.embed_with_status(search_text)
        if result.degraded or result.source == EmbeddingSource.EMPTY_INPUT:
            # a zero vector cannot reach the similarity threshold
            self.logging.warning("[Knowledge] No usable query embedding (%s), returning no results", result.source.value)
            return []

        candidates = await self._store.do_search_knowledge(
            agent_id=agent_id,
            embedding=result.embedding,
            match_threshold=self.match_threshold,
            match_count=limit * 2,
            search_text=processed_query,
        )
        query_terms = self._preprocessor.get_query_terms(processed_query)
        reranked = self._reranker.rerank(candidates, query_terms, limit, query=processed_query)
        self.logging.debug(
            "[Knowledge] Query '%s': %d candidate(s), %d after reranking",
            processed_query[:100], len(candidates), len(reranked),
        )
        return reranked

    async def search_knowledge(
        self,
        agent_id: str,
        embedding: list[float],
        match_threshold: float | None = None,
        match_count: int | None = None,
        search_text: str | None = None,
    ) -> list[KnowledgeItem]:
        """Raw similarity search with the configured threshold and count as defaults."""
        return await self._store.do_search_knowledge(
            agent_id=agent_id,
            embedding=[float(v) for v in embedding],
            match_threshold=match_threshold or self.match_threshold,
            match_count=match_count or self.match_count,
            search_text=search_text,
        )

    ##########################################
    ############## PASSTHROUGH ###############
    ##########################################

    async def create_knowledge(self, item: KnowledgeItem) -> None:
        await self._store.do_create_knowledge(item)

    async def remove_knowledge(self, id: str) -> None:
        await self._store.do_remove_knowledge(id)

    async def clear_knowledge(self, shared: bool = False, agent_id: str | None = None) -> None:
        """Remove all items of the agent, and with ``shared`` also every shared item."""
        await self._store.do_clear_knowledge(agent_id or self.agent_id, shared)

    async def list_all_knowledge(self, agent_id: str) -> list[KnowledgeItem]:
        return await self._store.do_get_knowledge(agent_id=agent_id)

    ##########################################
    ############### INGESTION ################
    ##########################################

    def generate_scoped_id(self, path: str, is_shared: bool) -> str:
        """Deterministic item id for a source path within its scope."""
        scope = KnowledgeScope.SHARED if is_shared else KnowledgeScope.PRIVATE
        return str(uuid.uuid5(uuid.NAMESPACE_OID, f"{scope.value}:{path}"))

    def generate_chunk_id(self, original_id: str, chunk_index: int) -> str:
        return str(uuid.uuid5(uuid.NAMESPACE_OID, f"{original_id}:chunk:{chunk_index}"))

    def build_embedding_info(self, embedding: list[float], embedding_type: str = "text") -> EmbeddingInfo:
        """Provenance record with a SHA-256 checksum of the vector."""
        return EmbeddingInfo(
            embedding_dim=len(embedding),
            embedding_type=embedding_type,
            embedding_version=EMBEDDING_VERSION,
            embedding_provider=self._embedding_service.get_provider_name() or "default",
            embedding_model=self._embedding_service.get_model_name() or "default",
            embedding_checksum=compute_embedding_checksum(embedding),
        )

    async def store_rag_embedding(
        self,
        id: str,
        content: str,
        embedding: list[float],
        metadata: dict[str, Any],
        embedding_info: EmbeddingInfo,
        agent_id: str | None = None,
    ) -> KnowledgeItem:
        """Insert or replace a fully embedded item."""
        if len(embedding) != embedding_info.embedding_dim:
            raise ValueError(
                f"Embedding length {len(embedding)} does not match embedding_dim {embedding_info.embedding_dim}."
            )
        item = KnowledgeItem(
            id=id,
            agent_id=agent_id or self.agent_id,
            content=KnowledgeContent(text=content, metadata=metadata),
            embedding=embedding,
            embedding_info=embedding_info,
        )
        await self._store.do_create_knowledge(item)
        return item

    async def process_file(self, file: KnowledgeFile, agent_id: str | None = None) -> KnowledgeItem:
        """Embed a source file and store it as the main item for its path.

        Content longer than KNOWLEDGE_CHUNK_SIZE is additionally stored as
        overlapping chunk items pointing back to the main item. Re-processing
        the same path and scope replaces the previous rows.

        Raises:
            EmbeddingError: If the content is empty or could not be embedded.
            Exception: Store failures are propagated.
        """
        id = self.generate_scoped_id(file.path, file.is_shared)
        embedding = await self._embedding_service.embed_strict(file.content)
        main_item = await self.store_rag_embedding(
            id=id,
            content=file.content,
            embedding=embedding,
            metadata={
                "path": file.path,
                "type": file.type,
                "isShared": file.is_shared,
                "isMain": True,
            },
            embedding_info=self.build_embedding_info(embedding, file.type),
            agent_id=agent_id,
        )

        # drop chunks of a previous version of the file
        await self._store.do_remove_chunks(id)

        chunks = split_text(file.content, self.chunk_size, self.chunk_overlap) if len(file.content) > self.chunk_size else []
        for chunk_index, chunk in enumerate(chunks):
            chunk_embedding = await self._embedding_service.embed_strict(chunk)
            await self.store_rag_embedding(
                id=self.generate_chunk_id(id, chunk_index),
                content=chunk,
                embedding=chunk_embedding,
                metadata={
                    "path": file.path,
                    "type": file.type,
                    "isShared": file.is_shared,
                    "isChunk": True,
                    "originalId": id,
                    "chunkIndex": chunk_index,
                },
                embedding_info=self.build_embedding_info(chunk_embedding, file.type),
                agent_id=agent_id,
            )

        self.logging.info("[Knowledge] Processed file '%s' (id=%s, %d chunk(s))", file.path, id, len(chunks))
        return main_item

    ##########################################
    ############## MAINTENANCE ###############
    ##########################################

    async def cleanup_deleted_knowledge_files(self) -> int:
        """Remove main items (and their chunks) whose source file no longer exists.

        Returns:
            int: Number of removed main items.
        """
        removed = 0
        for item in await self._store.do_list_main_items():
            path = item.content.metadata.get("path")
            if not isinstance(path, str) or not path:
                continue
            if os.path.exists(os.path.join(self.knowledge_root, path)):
                continue
            self.logging.info("[Knowledge] Source file '%s' is gone, removing item %s", path, item.id)
            await self._store.do_remove_knowledge(item.id)
            await self._store.do_remove_chunks(item.id)
            removed += 1
        return removed

    async def repair_rag_entries(self) -> int:
        """Regenerate embeddings for stored items that have content but no vector.

        Returns:
            int: Number of repaired items.

        Raises:
            EmbeddingError: If an item could not be embedded.
        """
        repaired = 0
        for item in await self._store.do_list_missing_embeddings():
            if item.embedding or not item.content.text:
                continue
            embedding = await self._embedding_service.embed_strict(item.content.text)
            await self.store_rag_embedding(
                id=item.id,
                content=item.content.text,
                embedding=embedding,
                metadata=item.content.metadata,
                embedding_info=self.build_embedding_info(embedding),
                agent_id=item.agent_id,
            )
            repaired += 1
        if repaired:
            self.logging.info("[Knowledge] Repaired %d item(s) without embedding", repaired)
        return repaired

    async def check_rag_health(self) -> bool:
        """True iff the store holds at least one item. Never raises."""
        try:
            return await self._store.do_count_knowledge() > 0
        except Exception as exc:
            self.logging.error("[Knowledge] Health check failed: %s", exc)
            return False
