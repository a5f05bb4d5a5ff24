"""Tests for knowledge retrieval over the store."""

import pytest

from travel_journal.core.errors import SearchFailed, StoreUnavailable
from travel_journal.core.knowledge_cache import KnowledgeCache
from travel_journal.core.retrieval import KnowledgeRetriever
from travel_journal.core.schemas_knowledge import KnowledgeEntryDraft
from tests.fakes.fake_store import FakeEntryStore
from tests.fixtures_knowledge import TAIWAN_ENTRY, TURKEY_ENTRY


@pytest.fixture
def store():
    return FakeEntryStore([TURKEY_ENTRY, TAIWAN_ENTRY])


class TestSearch:
    @pytest.mark.asyncio
    async def test_food_in_taiwan(self, store):
        retriever = KnowledgeRetriever(store)

        assert await retriever.search("food in Taiwan", 3) == [TAIWAN_ENTRY]

    @pytest.mark.asyncio
    async def test_nonsense_query_is_empty(self, store):
        retriever = KnowledgeRetriever(store)

        assert await retriever.search("xyz nonsense", 3) == []

    @pytest.mark.asyncio
    async def test_default_limit_from_settings(self):
        entries = [
            TAIWAN_ENTRY.model_copy(update={"id": str(i)}) for i in range(5)
        ]
        retriever = KnowledgeRetriever(FakeEntryStore(entries))

        results = await retriever.search("food")

        assert len(results) == 3

    @pytest.mark.asyncio
    async def test_every_search_reads_the_store(self, store):
        retriever = KnowledgeRetriever(store)

        await retriever.search("food", 3)
        await retriever.search("bazaars", 3)

        assert store.call_names() == ["query_all", "query_all"]

    @pytest.mark.asyncio
    async def test_unconfirmed_writes_are_not_searched(self, store):
        cache = KnowledgeCache(store)
        await cache.start()
        retriever = KnowledgeRetriever(store)
        store.hold("insert")

        task = cache.submit_add(KnowledgeEntryDraft(location="Peru", content="Ceviche in Lima"))

        assert await retriever.search("ceviche peru", 3) == []
        store.release()
        await task
        assert [e.location for e in await retriever.search("ceviche peru", 3)] == ["Peru"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            StoreUnavailable(StoreUnavailable.UNCONFIGURED),
            SearchFailed("bad query"),
            RuntimeError("unexpected"),
        ],
    )
    async def test_store_failures_degrade_to_empty(self, store, error):
        store.fail_with["query_all"] = error
        retriever = KnowledgeRetriever(store)

        assert await retriever.search("food in Taiwan", 3) == []

    @pytest.mark.asyncio
    async def test_non_positive_limit_rejected(self, store):
        retriever = KnowledgeRetriever(store)

        with pytest.raises(ValueError):
            await retriever.search("food", 0)


class TestRetrieve:
    @pytest.mark.asyncio
    async def test_grounded_result_carries_context(self, store):
        result = await KnowledgeRetriever(store).retrieve("food in Taiwan", 3)

        assert result.entries == [TAIWAN_ENTRY]
        assert result.context == "[Location: Taiwan] Amazing street food"
        assert result.is_grounded

    @pytest.mark.asyncio
    async def test_no_match_is_ungrounded(self, store):
        result = await KnowledgeRetriever(store).retrieve("xyz nonsense", 3)

        assert result.entries == []
        assert result.context == ""
        assert not result.is_grounded
