import uuid
from typing import Any

from shared.helper.HelperConfig import HelperConfig
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.models.config import EnvConfig

# Name of the single named vector carried by every knowledge point.
# Named vectors let a point exist without a vector (pending repair).
VECTOR_NAME = "content"


class RAGClientQdrant(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._collection_name = self.get_config_val("COLLECTION", default="knowledge", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="COLLECTION", val_type="string", default="knowledge")
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"api-key": f"{self._api_key}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_scroll(self) -> str:
        return f"/collections/{self._collection_name}/points/scroll"

    def _get_endpoint_points(self) -> str:
        return f"/collections/{self._collection_name}/points"

    def _get_endpoint_search(self) -> str:
        return f"/collections/{self._collection_name}/points/search"

    def _get_endpoint_delete_points(self) -> str:
        return f"/collections/{self._collection_name}/points/delete"

    def _get_endpoint_check_collection_existence(self) -> str:
        return f"/collections/{self._collection_name}/exists"

    def _get_endpoint_create_collection(self) -> str:
        return f"/collections/{self._collection_name}"

    def _get_endpoint_count(self) -> str:
        return f"/collections/{self._collection_name}/points/count"

    ##########################################
    ################ FILTERS #################
    ##########################################

    def get_visibility_filter(self, agent_id: str) -> dict:
        return {
            "should": [
                {"key": "agent_id", "match": {"value": agent_id}},
                {"key": "is_shared", "match": {"value": True}},
            ]
        }

    def get_clear_filter(self, agent_id: str, shared: bool) -> dict:
        if shared:
            return self.get_visibility_filter(agent_id)
        return {"must": [{"key": "agent_id", "match": {"value": agent_id}}]}

    def get_main_items_filter(self) -> dict:
        return {"must": [{"key": "is_main", "match": {"value": True}}]}

    def get_chunks_filter(self, original_id: str) -> dict:
        return {"must": [{"key": "original_id", "match": {"value": original_id}}]}

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        return {"vectors": {VECTOR_NAME: {"size": vector_size, "distance": distance}}}

    def get_upsert_payload(self, points: list[dict[str, Any]]) -> dict:
        return {"points": points}

    def is_valid_point_id(self, id: str) -> bool:
        # qdrant accepts UUIDs or unsigned integers, this store only writes UUIDs
        try:
            uuid.UUID(str(id))
        except ValueError:
            return False
        return True

    def get_point(self, id: str, vector: list[float] | None, payload: dict) -> dict:
        if not self.is_valid_point_id(id):
            raise ValueError(f"Qdrant point ids must be UUIDs, got '{id}'.")
        return {
            "id": str(uuid.UUID(str(id))),
            "vector": {VECTOR_NAME: vector} if vector else {},
            "payload": payload,
        }

    def get_search_payload(self, vector: list[float], filter: dict | None, match_threshold: float, match_count: int) -> dict:
        payload = {
            "vector": {"name": VECTOR_NAME, "vector": vector},
            "limit": match_count,
            "score_threshold": match_threshold,
            "with_payload": True,
            "with_vector": False,
        }
        if filter:
            payload["filter"] = filter
        return payload

    def get_retrieve_payload(self, ids: list[str]) -> dict:
        return {"ids": ids, "with_payload": True, "with_vector": [VECTOR_NAME]}

    def get_scroll_payload(self, filter: dict | None, with_payload: bool | list | dict, with_vector: bool | list, limit: int | None = None, offset: str | int | None = None) -> dict:
        payload = {
            "limit": limit,
            "with_payload": with_payload,
            "with_vector": [VECTOR_NAME] if with_vector is True else with_vector,
        }
        if filter:
            payload["filter"] = filter
        if offset is not None:
            payload["offset"] = offset
        return payload

    def get_count_payload(self, filter: dict | None) -> dict:
        payload: dict = {"exact": True}
        if filter:
            payload["filter"] = filter
        return payload

    def get_delete_payload(self, filter: dict | None = None, ids: list[str] | None = None) -> dict:
        if ids is not None:
            return {"points": ids}
        if filter is None:
            raise ValueError("Delete requires either ids or a filter.")
        return {"filter": filter}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_scroll_points(self, raw_response: dict) -> list[dict]:
        return (raw_response.get("result") or {}).get("points") or []

    def extract_next_page_offset(self, raw_response: dict) -> str | int | None:
        return (raw_response.get("result") or {}).get("next_page_offset")

    def extract_points(self, raw_response: dict) -> list[dict]:
        return raw_response.get("result", []) or []

    def extract_point_vector(self, point: dict) -> list[float] | None:
        vector = point.get("vector")
        if isinstance(vector, dict):
            vector = vector.get(VECTOR_NAME)
        if not vector:
            return None
        return [float(v) for v in vector]
