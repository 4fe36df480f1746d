import uuid

import pytest

from conftest import bag_of_words
from services.knowledge.RAGService import RAGService
from shared.models.knowledge import KnowledgeContent, KnowledgeItem


@pytest.fixture
def rag_service(helper_config, knowledge_service):
    return RAGService(helper_config=helper_config, knowledge_service=knowledge_service)


async def test_store_then_search(rag_service, store):
    item = await rag_service.store("faq-42", "Refunds are processed within five days", {"title": "Refunds"})

    assert item.id == rag_service.make_item_id("faq-42")
    assert store.items[item.id].content.metadata == {"title": "Refunds", "source": "rag"}

    results = await rag_service.search("refunds are processed within five days")
    assert [r.id for r in results] == [item.id]
    # title boost applies because the query contains the title
    assert results[0].score > results[0].similarity + 0.3


def test_uuid_ids_pass_through(rag_service):
    id = str(uuid.uuid4())
    assert rag_service.make_item_id(id) == id
    assert rag_service.make_item_id("faq-42") == rag_service.make_item_id("faq-42")
    assert rag_service.make_item_id("faq-42") != rag_service.make_item_id("faq-43")


async def test_search_reads_the_live_store(rag_service, store):
    text = "live knowledge entry"
    store.items["a"] = KnowledgeItem(
        id="a", agent_id="default", content=KnowledgeContent(text=text), embedding=bag_of_words(text, 384),
    )

    assert [r.id for r in await rag_service.search(text)] == ["a"]
    assert [r.id for r in await rag_service.search(text)] == ["a"]
    assert store.search_calls == 2


async def test_removed_items_disappear_from_search(rag_service, knowledge_service, store):
    item = await rag_service.store("faq-1", "Deployments run every Friday")
    assert [r.id for r in await rag_service.search("Deployments run every Friday")] == [item.id]

    await knowledge_service.remove_knowledge(item.id)

    assert item.id not in store.items
    assert await rag_service.search("Deployments run every Friday") == []


async def test_cleared_items_disappear_from_search(rag_service, knowledge_service):
    await rag_service.store("faq-2", "Invoices are sent monthly")
    assert len(await rag_service.search("Invoices are sent monthly")) == 1

    await knowledge_service.clear_knowledge()

    assert await rag_service.search("Invoices are sent monthly") == []


async def test_search_failures_return_empty_results(rag_service, store):
    store.fail = True
    assert await rag_service.search("anything") == []
    assert await rag_service.search("   ") == []
