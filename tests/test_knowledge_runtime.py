import json

import httpx
import pytest

from services.knowledge.KnowledgeRuntime import KnowledgeRuntime
from shared.clients.client_loader import load_client


@pytest.fixture
def runtime_env(env):
    env.setenv("RAG_ENGINE", "qdrant")
    env.setenv("RAG_QDRANT_BASE_URL", "http://qdrant:6333")
    env.setenv("RAG_QDRANT_COLLECTION", "kb")
    env.setenv("EMBED_LOCAL_ENGINE", "ollama")
    return env


def backend(ollama_status: int = 200, collection_exists: bool = False, requests: list | None = None):
    requests = requests if requests is not None else []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.host == "localhost":
            return httpx.Response(ollama_status, text="Ollama is running")
        if request.url.path == "/collections/kb/exists":
            return httpx.Response(200, json={"result": {"exists": collection_exists}})
        return httpx.Response(200, json={"result": True, "status": "ok"})

    return handler


async def test_boot_creates_missing_collection(helper_config, runtime_env):
    requests: list[httpx.Request] = []
    runtime = KnowledgeRuntime(helper_config=helper_config)

    service = await runtime.boot(transport=httpx.MockTransport(backend(requests=requests)))

    assert service.get_store() is runtime.rag_client
    assert runtime.has_embedder()
    create = [r for r in requests if r.method == "PUT" and r.url.path == "/collections/kb"]
    assert json.loads(create[0].content) == {"vectors": {"content": {"size": 384, "distance": "Cosine"}}}
    await runtime.close()
    assert not runtime.rag_client.is_booted()


async def test_existing_collection_is_kept(helper_config, runtime_env):
    requests: list[httpx.Request] = []
    runtime = KnowledgeRuntime(helper_config=helper_config)

    await runtime.boot(transport=httpx.MockTransport(backend(collection_exists=True, requests=requests)))

    assert not [r for r in requests if r.method == "PUT"]
    await runtime.close()


async def test_unhealthy_provider_is_left_out(helper_config, runtime_env):
    runtime = KnowledgeRuntime(helper_config=helper_config)

    await runtime.boot(transport=httpx.MockTransport(backend(ollama_status=503)))

    assert not runtime.has_embedder()
    assert not runtime.embed_manager.get_local_client().is_booted()
    await runtime.close()


async def test_store_outage_fails_boot(helper_config, runtime_env):
    runtime = KnowledgeRuntime(helper_config=helper_config)
    transport = httpx.MockTransport(lambda request: httpx.Response(500, text="down"))

    with pytest.raises(Exception, match="500"):
        await runtime.boot(transport=transport)
    await runtime.close()


def test_load_client_rejects_unknown_engine(helper_config):
    with pytest.raises(ValueError, match="Unsupported RAG engine 'milvus'"):
        load_client("rag", "Milvus", helper_config, label="RAG")
