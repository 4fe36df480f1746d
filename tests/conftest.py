"""
Pytest configuration for the knowledge engine test suite.

Configures:
- pytest-asyncio for async test support
- an isolated environment per test
- in-memory fakes for the knowledge store and the embedding providers
"""
import hashlib
import logging
import math
import re

import pytest

from shared.clients.rag.KnowledgeStoreInterface import KnowledgeStoreInterface
from shared.embedding.EmbeddingCache import EmbeddingCache
from shared.embedding.EmbeddingService import EmbeddingService
from shared.helper.HelperConfig import HelperConfig
from shared.models.knowledge import KnowledgeItem
from services.knowledge.KnowledgeService import KnowledgeService

pytest_plugins = ["pytest_asyncio"]

ENV_PREFIXES = ("EMBED_", "RAG_", "KNOWLEDGE_", "APP_API_KEY")


def bag_of_words(text: str, dimensions: int) -> list[float]:
    """Deterministic test embedding: hashed word counts, L2-normalised."""
    vector = [0.0] * dimensions
    for word in re.findall(r"\w+", text.lower()):
        vector[int(hashlib.md5(word.encode("utf-8")).hexdigest(), 16) % dimensions] += 1.0
    magnitude = math.sqrt(sum(v * v for v in vector))
    if magnitude == 0:
        vector[0] = 1.0
        return vector
    return [v / magnitude for v in vector]


def cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class FakeEmbedder:
    """Local embedding provider double that records every call."""

    def __init__(self, dimensions: int = 384, fail: bool = False):
        self.dimensions = dimensions
        self.fail = fail
        self.calls: list[str] = []

    async def generate_embedding(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail:
            raise RuntimeError("local model unavailable")
        return bag_of_words(text, self.dimensions)


class InMemoryKnowledgeStore(KnowledgeStoreInterface):
    """Dict-backed knowledge store with the same visibility rules as the Qdrant adapter."""

    def __init__(self):
        self.items: dict[str, KnowledgeItem] = {}
        self.fail = False
        self.search_calls = 0
        self.create_calls = 0

    def _check(self):
        if self.fail:
            raise RuntimeError("store unavailable")

    def _visible(self, item: KnowledgeItem, agent_id: str) -> bool:
        return item.agent_id == agent_id or item.is_shared()

    async def do_get_knowledge(self, agent_id, id=None, limit=None):
        self._check()
        if id is not None:
            item = self.items.get(id)
            return [item.model_copy(deep=True)] if item and self._visible(item, agent_id) else []
        visible = [item.model_copy(deep=True) for item in self.items.values() if self._visible(item, agent_id)]
        return visible[:limit] if limit is not None else visible

    async def do_search_knowledge(self, agent_id, embedding, match_threshold, match_count, search_text=None):
        self._check()
        self.search_calls += 1
        hits = []
        for item in self.items.values():
            if not item.embedding or not self._visible(item, agent_id):
                continue
            similarity = cosine(embedding, item.embedding)
            if similarity >= match_threshold:
                hits.append(item.model_copy(update={"similarity": similarity}, deep=True))
        hits.sort(key=lambda item: item.similarity, reverse=True)
        return hits[:match_count]

    async def do_create_knowledge(self, item):
        self._check()
        self.create_calls += 1
        self.items[item.id] = item.model_copy(deep=True)

    async def do_remove_knowledge(self, id):
        self._check()
        self.items.pop(id, None)

    async def do_remove_chunks(self, original_id):
        self._check()
        for id in [id for id, item in self.items.items() if item.content.metadata.get("originalId") == original_id]:
            del self.items[id]

    async def do_clear_knowledge(self, agent_id, shared=False):
        self._check()
        for id in [id for id, item in self.items.items() if item.agent_id == agent_id or (shared and item.is_shared())]:
            del self.items[id]

    async def do_list_main_items(self):
        self._check()
        return [item.model_copy(deep=True) for item in self.items.values() if item.is_main()]

    async def do_list_missing_embeddings(self):
        self._check()
        return [item.model_copy(deep=True) for item in self.items.values() if not item.embedding]

    async def do_count_knowledge(self):
        self._check()
        return len(self.items)


@pytest.fixture(autouse=True)
def env(monkeypatch, tmp_path):
    """Strip engine settings from the environment and disable retry backoff."""
    import os
    for key in list(os.environ):
        if key.startswith(ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("EMBED_REMOTE_BACKOFF", "0")
    monkeypatch.setenv("KNOWLEDGE_ROOT", str(tmp_path))
    return monkeypatch


@pytest.fixture
def helper_config(env):
    return HelperConfig(logger=logging.getLogger("knowledge_engine.tests"))


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def store():
    return InMemoryKnowledgeStore()


@pytest.fixture
def embedding_service(helper_config, embedder):
    return EmbeddingService(helper_config=helper_config, cache=EmbeddingCache(helper_config=helper_config), local_provider=embedder)


@pytest.fixture
def knowledge_service(helper_config, store, embedding_service):
    return KnowledgeService(helper_config=helper_config, store=store, embedding_service=embedding_service)
