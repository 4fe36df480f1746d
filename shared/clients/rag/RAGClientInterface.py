from abc import abstractmethod
from datetime import datetime, timezone
from typing import Any
import math

from shared.clients.rag.KnowledgeStoreInterface import KnowledgeStoreInterface
from shared.clients.rag.models.KnowledgePoint import KnowledgePoint
from shared.clients.rag.models.Scroll import ScrollPage
from shared.clients.ClientInterface import ClientInterface
from shared.models.knowledge import KnowledgeContent, KnowledgeItem

from shared.helper.HelperConfig import HelperConfig


class RAGClientInterface(ClientInterface, KnowledgeStoreInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.page_size = int(helper_config.get_number_val("RAG_PAGE_SIZE", default=1000))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_scroll(self) -> str:
        """
        Returns the endpoint path for scroll requests.
        """
        pass

    @abstractmethod
    def _get_endpoint_points(self) -> str:
        """
        Returns the endpoint path for points upsert and retrieve requests.
        """
        pass

    @abstractmethod
    def _get_endpoint_search(self) -> str:
        """
        Returns the endpoint path for similarity search requests.
        """
        pass

    @abstractmethod
    def _get_endpoint_delete_points(self) -> str:
        """
        Returns the endpoint path for deleting points by id or filter.
        """
        pass

    @abstractmethod
    def _get_endpoint_check_collection_existence(self) -> str:
        """
        Returns the endpoint path for collection existence check requests.
        """
        pass

    @abstractmethod
    def _get_endpoint_create_collection(self) -> str:
        """
        Returns the endpoint path for create collection requests.
        """
        pass

    @abstractmethod
    def _get_endpoint_count(self) -> str:
        """
        Returns the endpoint path for counting points matching a filter.
        """
        pass

    ################ FILTERS ##################
    @abstractmethod
    def get_visibility_filter(self, agent_id: str) -> dict:
        """
        Returns the filter matching items owned by the agent or shared with all agents.
        """
        pass

    @abstractmethod
    def get_clear_filter(self, agent_id: str, shared: bool) -> dict:
        """
        Returns the filter matching the items removed by a clear of the agent's knowledge.
        """
        pass

    @abstractmethod
    def get_main_items_filter(self) -> dict:
        """
        Returns the filter matching main entries of ingested files.
        """
        pass

    @abstractmethod
    def get_chunks_filter(self, original_id: str) -> dict:
        """
        Returns the filter matching the chunk entries of one main entry.
        """
        pass

    ################ IDS ##################
    def is_valid_point_id(self, id: str) -> bool:
        """
        Returns False for ids the backend cannot address. Such ids can never be stored.
        """
        return True

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        pass

    @abstractmethod
    def get_upsert_payload(self, points: list[dict[str, Any]]) -> dict:
        pass

    @abstractmethod
    def get_point(self, id: str, vector: list[float] | None, payload: dict) -> dict:
        """
        Builds a single backend point from an id, an optional vector and a payload.

        Raises:
            ValueError: If the id is not acceptable to the backend.
        """
        pass

    @abstractmethod
    def get_search_payload(self, vector: list[float], filter: dict | None, match_threshold: float, match_count: int) -> dict:
        pass

    @abstractmethod
    def get_retrieve_payload(self, ids: list[str]) -> dict:
        pass

    @abstractmethod
    def get_scroll_payload(self, filter: dict | None, with_payload: bool | list | dict, with_vector: bool | list, limit: int | None = None, offset: str | int | None = None) -> dict:
        """
        Returns the payload for scroll requests to the RAG backend.

        Args:
            filter (dict | None): The filter to apply to the scroll request.
            with_payload (bool | list | dict): Whether to include the payload, or which payload fields to include.
            with_vector (bool | list): Whether to include the vector, or which vector fields to include.
            limit (int | None): The maximum number of results to return.
            offset (str | int | None): Pagination cursor returned by the previous scroll page.
        """
        pass

    @abstractmethod
    def get_count_payload(self, filter: dict | None) -> dict:
        pass

    @abstractmethod
    def get_delete_payload(self, filter: dict | None = None, ids: list[str] | None = None) -> dict:
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_scroll_points(self, raw_response: dict) -> list[dict]:
        """
        Extracts the points of one scroll page.
        """
        pass

    @abstractmethod
    def extract_next_page_offset(self, raw_response: dict) -> str | int | None:
        """
        Extracts the pagination cursor for the next scroll page, or None on the last page.
        """
        pass

    @abstractmethod
    def extract_points(self, raw_response: dict) -> list[dict]:
        """
        Extracts the list of points from a search or retrieve response.
        """
        pass

    @abstractmethod
    def extract_point_vector(self, point: dict) -> list[float] | None:
        """
        Extracts the knowledge vector of a point, or None if the point has none.
        """
        pass

    ##########################################
    ############### CONVERSION ###############
    ##########################################

    def item_to_point(self, item: KnowledgeItem) -> dict:
        """
        Converts a KnowledgeItem into a backend point.
        """
        metadata = item.content.metadata
        original_id = metadata.get("originalId")
        payload = KnowledgePoint(
            agent_id=item.agent_id,
            text=item.content.text,
            metadata=metadata,
            is_shared=metadata.get("isShared") is True,
            is_main=metadata.get("isMain") is True,
            original_id=original_id if isinstance(original_id, str) else None,
            embedding_info=item.embedding_info,
            created_at=item.created_at.isoformat(),
            last_accessed=datetime.now(timezone.utc).isoformat(),
            access_count=0,
        )
        return self.get_point(item.id, item.embedding or None, payload.model_dump(mode="json"))

    def point_to_item(self, point: dict) -> KnowledgeItem:
        """
        Converts a backend point (as returned by search, retrieve or scroll) into a KnowledgeItem.
        """
        payload = KnowledgePoint.model_validate(point.get("payload") or {})
        item = KnowledgeItem(
            id=str(point.get("id")),
            agent_id=payload.agent_id,
            content=KnowledgeContent(text=payload.text, metadata=payload.metadata),
            embedding=self.extract_point_vector(point),
            embedding_info=payload.embedding_info,
            similarity=point.get("score"),
        )
        if payload.created_at:
            item.created_at = datetime.fromisoformat(payload.created_at)
        return item

    def points_to_items(self, points: list[dict]) -> list[KnowledgeItem]:
        return [self.point_to_item(point) for point in points]

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_existence_check(self) -> bool:
        """
        Returns True if the knowledge collection exists.
        """
        data = await self.do_request_json("GET", self._get_endpoint_check_collection_existence())
        return bool((data.get("result") or {}).get("exists"))

    async def do_create_collection(self, vector_size: int, distance: str = "Cosine") -> None:
        self.logging.info("[RAG] Creating collection on %s (size=%d, distance=%s)", self.get_engine_name(), vector_size, distance)
        await self.do_request_json("PUT", self._get_endpoint_create_collection(), self.get_create_collection_payload(vector_size, distance))

    async def do_ensure_collection(self, vector_size: int, distance: str = "Cosine") -> None:
        """
        Creates the knowledge collection unless it already exists.

        Args:
            vector_size (int): Dimension of the stored embeddings.
            distance (str): Similarity metric of the collection.
        """
        if await self.do_existence_check():
            self.logging.debug("[RAG] Collection on %s already exists", self.get_engine_name())
            return
        await self.do_create_collection(vector_size=vector_size, distance=distance)

    async def do_upsert_points(self, points: list[dict[str, Any]]) -> None:
        """
        Inserts the points, replacing stored points with the same id.
        """
        await self.do_request_json("PUT", self._get_endpoint_points(), self.get_upsert_payload(points))

    async def do_delete_points(self, filter: dict | None = None, ids: list[str] | None = None) -> None:
        await self.do_request_json("POST", self._get_endpoint_delete_points(), self.get_delete_payload(filter=filter, ids=ids))

    async def do_retrieve_points(self, ids: list[str]) -> list[dict]:
        data = await self.do_request_json("POST", self._get_endpoint_points(), self.get_retrieve_payload(ids))
        return self.extract_points(data)

    async def do_search_points(self, vector: list[float], filter: dict | None, match_threshold: float, match_count: int) -> list[dict]:
        """
        Similarity search over the collection, best match first.
        """
        body = self.get_search_payload(vector, filter, match_threshold, match_count)
        return self.extract_points(await self.do_request_json("POST", self._get_endpoint_search(), body))

    async def do_count(self, filter: dict | None = None) -> int:
        data = await self.do_request_json("POST", self._get_endpoint_count(), self.get_count_payload(filter))
        return int((data.get("result") or {}).get("count", 0))

    async def do_scroll(self, filter: dict | None, with_payload: bool | list | dict, with_vector: bool | list, limit: int | None = None, offset: str | int | None = None) -> ScrollPage:
        """
        Reads a single page of points. Use do_scroll_all() to read every matching point.
        """
        body = self.get_scroll_payload(filter, with_payload, with_vector, limit, offset)
        data = await self.do_request_json("POST", self._get_endpoint_scroll(), body)
        return ScrollPage(points=self.extract_scroll_points(data), next_page_offset=self.extract_next_page_offset(data))

    async def do_scroll_all(self, filter: dict | None, with_payload: bool | list | dict, with_vector: bool | list, max_points: int | None = None) -> ScrollPage:
        """
        Reads all points matching the filter, following the page cursor.

        Args:
            filter (dict | None): The filter to apply.
            with_payload (bool | list | dict): Whether to include the payload, or which fields.
            with_vector (bool | list): Whether to include the vector in each point.
            max_points (int | None): Stop once this many points were collected.

        Returns:
            ScrollPage: The merged points of every page read.
        """
        expected = await self.do_count(filter)
        if max_points is not None:
            expected = min(expected, max_points)
        pages = max(1, math.ceil(expected / self.page_size))

        points: list[dict] = []
        offset: str | int | None = None
        page_no = 0
        while True:
            remaining = None if max_points is None else max_points - len(points)
            limit = self.page_size if remaining is None else min(self.page_size, remaining)
            page = await self.do_scroll(filter=filter, with_payload=with_payload, with_vector=with_vector, limit=limit, offset=offset)
            points.extend(page.points)
            page_no += 1
            self.logging.debug("[RAG] Scrolled page %d/%d on %s (%d of %d points)", page_no, pages, self.get_engine_name(), len(points), expected)
            if page.is_last() or (max_points is not None and len(points) >= max_points):
                break
            offset = page.next_page_offset
        return ScrollPage(points=points)

    ##########################################
    ############ KNOWLEDGE STORE #############
    ##########################################

    async def do_get_knowledge(self, agent_id: str, id: str | None = None, limit: int | None = None) -> list[KnowledgeItem]:
        if id is not None:
            if not self.is_valid_point_id(id):
                self.logging.debug("[RAG] Id '%s' cannot exist on %s, no direct match", id, self.get_engine_name())
                return []
            items = self.points_to_items(await self.do_retrieve_points([id]))
            return [item for item in items if item.agent_id == agent_id or item.is_shared()]

        page = await self.do_scroll_all(filter=self.get_visibility_filter(agent_id), with_payload=True, with_vector=True, max_points=limit)
        return self.points_to_items(page.points)

    async def do_search_knowledge(
        self,
        agent_id: str,
        embedding: list[float],
        match_threshold: float,
        match_count: int,
        search_text: str | None = None,
    ) -> list[KnowledgeItem]:
        points = await self.do_search_points(
            vector=embedding,
            filter=self.get_visibility_filter(agent_id),
            match_threshold=match_threshold,
            match_count=match_count,
        )
        self.logging.debug("[RAG] Search on %s returned %d point(s)", self.get_engine_name(), len(points))
        return self.points_to_items(points)

    async def do_create_knowledge(self, item: KnowledgeItem) -> None:
        await self.do_upsert_points([self.item_to_point(item)])

    async def do_remove_knowledge(self, id: str) -> None:
        if not self.is_valid_point_id(id):
            self.logging.debug("[RAG] Id '%s' cannot exist on %s, nothing to remove", id, self.get_engine_name())
            return
        await self.do_delete_points(ids=[id])

    async def do_clear_knowledge(self, agent_id: str, shared: bool = False) -> None:
        await self.do_delete_points(filter=self.get_clear_filter(agent_id, shared))

    async def do_remove_chunks(self, original_id: str) -> None:
        await self.do_delete_points(filter=self.get_chunks_filter(original_id))

    async def do_list_main_items(self) -> list[KnowledgeItem]:
        page = await self.do_scroll_all(filter=self.get_main_items_filter(), with_payload=True, with_vector=False)
        return self.points_to_items(page.points)

    async def do_list_missing_embeddings(self) -> list[KnowledgeItem]:
        page = await self.do_scroll_all(filter=None, with_payload=True, with_vector=True)
        return [item for item in self.points_to_items(page.points) if not item.embedding]

    async def do_count_knowledge(self) -> int:
        return await self.do_count(None)
