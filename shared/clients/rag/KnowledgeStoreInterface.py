from abc import ABC, abstractmethod

from shared.models.knowledge import KnowledgeItem


class KnowledgeStoreInterface(ABC):
    """
    Persistence boundary of the knowledge base.

    The store is authoritative for persisted knowledge. Implementations must
    not mask failures: every method raises on a backend error.
    """

    @abstractmethod
    async def do_get_knowledge(self, agent_id: str, id: str | None = None, limit: int | None = None) -> list[KnowledgeItem]:
        """
        Returns the item with the given id, or all items visible to the agent
        (own items and shared items), optionally capped by limit.
        """
        pass

    @abstractmethod
    async def do_search_knowledge(
        self,
        agent_id: str,
        embedding: list[float],
        match_threshold: float,
        match_count: int,
        search_text: str | None = None,
    ) -> list[KnowledgeItem]:
        """
        Returns up to match_count items visible to the agent whose similarity to
        the embedding is at least match_threshold, ordered by descending
        similarity, with ``similarity`` set.
        """
        pass

    @abstractmethod
    async def do_create_knowledge(self, item: KnowledgeItem) -> None:
        """
        Inserts the item, replacing any existing item with the same id.
        """
        pass

    @abstractmethod
    async def do_remove_knowledge(self, id: str) -> None:
        """
        Removes the item with the given id. Removing a missing id is not an error.
        """
        pass

    @abstractmethod
    async def do_clear_knowledge(self, agent_id: str, shared: bool = False) -> None:
        """
        Removes all items of the agent; with shared=True also all shared items.
        """
        pass

    @abstractmethod
    async def do_list_main_items(self) -> list[KnowledgeItem]:
        """
        Returns every item flagged as the main entry of an ingested file.
        """
        pass

    @abstractmethod
    async def do_list_missing_embeddings(self) -> list[KnowledgeItem]:
        """
        Returns every item stored without an embedding.
        """
        pass

    @abstractmethod
    async def do_count_knowledge(self) -> int:
        """
        Returns the total number of stored items.
        """
        pass

    @abstractmethod
    async def do_remove_chunks(self, original_id: str) -> None:
        """
        Removes every chunk item whose originalId is the given main item id.
        """
        pass
