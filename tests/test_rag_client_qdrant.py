import json
import uuid

import httpx
import pytest

from services.knowledge.KnowledgeService import KnowledgeService
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant
from shared.models.embedding import EmbeddingInfo
from shared.models.knowledge import KnowledgeContent, KnowledgeItem

ID_1 = str(uuid.uuid5(uuid.NAMESPACE_OID, "one"))
ID_2 = str(uuid.uuid5(uuid.NAMESPACE_OID, "two"))


def point(id: str, agent_id: str = "agent", vector: list[float] | None = None, score: float | None = None, **metadata) -> dict:
    data = {
        "id": id,
        "payload": {
            "agent_id": agent_id,
            "text": f"text of {id}",
            "metadata": metadata,
            "is_shared": metadata.get("isShared") is True,
            "is_main": metadata.get("isMain") is True,
            "created_at": "2024-05-01T12:00:00+00:00",
        },
        "vector": {"content": vector} if vector else {},
    }
    if score is not None:
        data["score"] = score
    return data


class QdrantStub:
    """Records requests and answers from canned per-path responses."""

    def __init__(self, responses: dict[str, list[dict]]):
        self.responses = responses
        self.requests: list[tuple[str, str, dict | None]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, request.url.path, body))
        queue = self.responses.get(request.url.path)
        if not queue:
            return httpx.Response(200, json={"result": {}, "status": "ok", "time": 0})
        return httpx.Response(200, json=queue.pop(0))

    def bodies(self, path: str) -> list[dict]:
        return [body for _, p, body in self.requests if p == path]


@pytest.fixture
def qdrant_env(env):
    env.setenv("RAG_QDRANT_BASE_URL", "http://qdrant:6333")
    env.setenv("RAG_QDRANT_COLLECTION", "kb")
    env.setenv("RAG_QDRANT_API_KEY", "qkey")
    return env


async def make_client(helper_config, stub: QdrantStub) -> RAGClientQdrant:
    client = RAGClientQdrant(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(stub))
    return client


def test_base_url_is_required(helper_config):
    with pytest.raises(ValueError, match="RAG_QDRANT_BASE_URL"):
        RAGClientQdrant(helper_config=helper_config)


def test_manager_selects_engine(helper_config, qdrant_env):
    qdrant_env.setenv("RAG_ENGINE", "qdrant")
    assert isinstance(RAGClientManager(helper_config=helper_config).get_client(), RAGClientQdrant)


def test_manager_requires_engine(helper_config, qdrant_env):
    with pytest.raises(ValueError, match="No RAG engine"):
        RAGClientManager(helper_config=helper_config)


async def test_search_payload_and_result_mapping(helper_config, qdrant_env):
    stub = QdrantStub({"/collections/kb/points/search": [
        {"result": [point(ID_1, score=0.91, title="Guide"), point(ID_2, agent_id="other", score=0.87, isShared=True)]},
    ]})
    client = await make_client(helper_config, stub)

    items = await client.do_search_knowledge("agent", [0.1, 0.2], match_threshold=0.85, match_count=16)

    body = stub.bodies("/collections/kb/points/search")[0]
    assert body["vector"] == {"name": "content", "vector": [0.1, 0.2]}
    assert body["limit"] == 16
    assert body["score_threshold"] == 0.85
    assert body["filter"] == {"should": [
        {"key": "agent_id", "match": {"value": "agent"}},
        {"key": "is_shared", "match": {"value": True}},
    ]}
    assert [item.id for item in items] == [ID_1, ID_2]
    assert items[0].similarity == 0.91
    assert items[0].content.get_title() == "Guide"
    assert items[1].is_shared()
    await client.close()


async def test_create_knowledge_upserts_named_vector_point(helper_config, qdrant_env):
    stub = QdrantStub({})
    client = await make_client(helper_config, stub)
    item = KnowledgeItem(
        id=ID_1,
        agent_id="agent",
        content=KnowledgeContent(text="hello", metadata={"path": "a.md", "isMain": True, "isShared": False}),
        embedding=[0.5, 0.5],
        embedding_info=EmbeddingInfo(embedding_dim=2, embedding_type="md", embedding_checksum="0" * 64),
    )

    await client.do_create_knowledge(item)

    method, path, body = stub.requests[0]
    assert (method, path) == ("PUT", "/collections/kb/points")
    stored = body["points"][0]
    assert stored["id"] == ID_1
    assert stored["vector"] == {"content": [0.5, 0.5]}
    assert stored["payload"]["is_main"] is True
    assert stored["payload"]["is_shared"] is False
    assert stored["payload"]["embedding_info"]["embedding_type"] == "md"
    await client.close()


async def test_point_ids_must_be_uuids(helper_config, qdrant_env):
    client = RAGClientQdrant(helper_config=helper_config)
    with pytest.raises(ValueError, match="UUID"):
        client.get_point("not-a-uuid", None, {})


async def test_get_by_id_hides_other_agents_private_items(helper_config, qdrant_env):
    stub = QdrantStub({"/collections/kb/points": [
        {"result": [point(ID_1, agent_id="other", vector=[1.0])]},
        {"result": [point(ID_1, agent_id="other", vector=[1.0], isShared=True)]},
    ]})
    client = await make_client(helper_config, stub)

    assert await client.do_get_knowledge("agent", id=ID_1) == []
    shared = await client.do_get_knowledge("agent", id=ID_1)

    assert [item.id for item in shared] == [ID_1]
    assert shared[0].embedding == [1.0]
    assert stub.bodies("/collections/kb/points")[0]["ids"] == [ID_1]
    await client.close()


async def test_missing_embeddings_are_found_across_scroll_pages(helper_config, qdrant_env):
    stub = QdrantStub({
        "/collections/kb/points/count": [{"result": {"count": 2}}],
        "/collections/kb/points/scroll": [
            {"result": {"points": [point(ID_1, vector=[0.3])], "next_page_offset": ID_2}},
            {"result": {"points": [point(ID_2)], "next_page_offset": None}},
        ],
    })
    client = await make_client(helper_config, stub)

    missing = await client.do_list_missing_embeddings()

    assert [item.id for item in missing] == [ID_2]
    assert missing[0].embedding is None
    scrolls = stub.bodies("/collections/kb/points/scroll")
    assert "offset" not in scrolls[0]
    assert scrolls[1]["offset"] == ID_2
    await client.close()


async def test_clear_and_chunk_filters(helper_config, qdrant_env):
    stub = QdrantStub({})
    client = await make_client(helper_config, stub)

    await client.do_clear_knowledge("agent")
    await client.do_clear_knowledge("agent", shared=True)
    await client.do_remove_chunks(ID_1)
    await client.do_remove_knowledge(ID_2)

    deletes = stub.bodies("/collections/kb/points/delete")
    assert deletes[0] == {"filter": {"must": [{"key": "agent_id", "match": {"value": "agent"}}]}}
    assert deletes[1]["filter"]["should"][1] == {"key": "is_shared", "match": {"value": True}}
    assert deletes[2] == {"filter": {"must": [{"key": "original_id", "match": {"value": ID_1}}]}}
    assert deletes[3] == {"points": [ID_2]}
    await client.close()


async def test_ensure_collection_creates_missing_collection(helper_config, qdrant_env):
    stub = QdrantStub({"/collections/kb/exists": [{"result": {"exists": False}}]})
    client = await make_client(helper_config, stub)

    await client.do_ensure_collection(vector_size=384)

    assert stub.requests[1] == ("PUT", "/collections/kb", {"vectors": {"content": {"size": 384, "distance": "Cosine"}}})
    await client.close()


async def test_count_and_auth_header(helper_config, qdrant_env):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"result": {"count": 7}})

    client = RAGClientQdrant(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(handler))

    assert await client.do_count_knowledge() == 7
    assert seen[0].headers["api-key"] == "qkey"
    assert json.loads(seen[0].content) == {"exact": True}
    await client.close()


async def test_backend_errors_propagate(helper_config, qdrant_env):
    client = RAGClientQdrant(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(lambda request: httpx.Response(500, text="down")))
    with pytest.raises(Exception, match="500"):
        await client.do_count_knowledge()
    await client.close()


async def test_ids_qdrant_cannot_address_never_reach_the_backend(helper_config, qdrant_env):
    stub = QdrantStub({})
    client = await make_client(helper_config, stub)

    assert not client.is_valid_point_id("doc-1")
    assert client.is_valid_point_id(ID_1)
    assert await client.do_get_knowledge(agent_id="agent", id="doc-1") == []
    await client.do_remove_knowledge("doc-1")

    assert stub.requests == []
    await client.close()


async def test_lookup_by_foreign_id_falls_back_to_search(helper_config, qdrant_env, embedding_service):
    stub = QdrantStub({
        "/collections/kb/points/search": [{"result": [point(ID_1, agent_id="default", vector=None, score=0.9)]}],
    })
    client = await make_client(helper_config, stub)
    service = KnowledgeService(helper_config=helper_config, store=client, embedding_service=embedding_service)

    results = await service.get_knowledge(id="doc-1", query="text of the first entry")

    assert [item.id for item in results] == [ID_1]
    assert [path for _, path, _ in stub.requests] == ["/collections/kb/points/search"]
    await client.close()
