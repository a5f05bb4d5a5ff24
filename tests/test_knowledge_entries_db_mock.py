"""Tests for knowledge entry database operations with mocked Supabase."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from travel_journal.core.errors import NotFound, SearchFailed, StoreUnavailable, WriteFailed
from travel_journal.core.schemas_knowledge import KnowledgeEntryDraft, KnowledgeEntryPatch
from travel_journal.db.knowledge_entries import SupabaseEntryStore
from travel_journal.db.supabase_client import get_supabase

ROWS = [
    {
        "id": "b6a1",
        "location": "Taiwan",
        "content": "Amazing street food",
        "created_at": "2024-02-01T10:00:00+00:00",
        "updated_at": "2024-02-01T10:00:00+00:00",
    },
    {
        "id": "a4f2",
        "location": None,
        "content": "Always carry cash",
        "created_at": "2024-01-01T10:00:00",
        "updated_at": None,
    },
]


@pytest.fixture
def mock_supabase():
    """Mock Supabase client."""
    return MagicMock()


@pytest.fixture
def store(mock_supabase):
    return SupabaseEntryStore(client_factory=lambda: mock_supabase, table="knowledge_entries")


def _response(data):
    response = MagicMock()
    response.data = data
    return response


class TestQueryAll:
    @pytest.mark.asyncio
    async def test_reads_rows_newest_first(self, store, mock_supabase):
        select = mock_supabase.table.return_value.select
        select.return_value.order.return_value.execute.return_value = _response(ROWS)

        entries = await store.query_all()

        assert [e.id for e in entries] == ["b6a1", "a4f2"]
        assert entries[0].location == "Taiwan"
        # Naive store timestamps are read as UTC
        assert entries[1].created_at.tzinfo is not None
        mock_supabase.table.assert_called_once_with("knowledge_entries")
        select.assert_called_once_with("*")
        select.return_value.order.assert_called_once_with("created_at", desc=True)

    @pytest.mark.asyncio
    async def test_empty_table(self, store, mock_supabase):
        chain = mock_supabase.table.return_value.select.return_value.order.return_value
        chain.execute.return_value = _response(None)

        assert await store.query_all() == []

    @pytest.mark.asyncio
    async def test_api_error_becomes_search_failed(self, store, mock_supabase):
        chain = mock_supabase.table.return_value.select.return_value.order.return_value
        chain.execute.side_effect = RuntimeError("relation does not exist")

        with pytest.raises(SearchFailed, match="relation does not exist"):
            await store.query_all()

    @pytest.mark.asyncio
    async def test_network_error_becomes_store_unavailable(self, store, mock_supabase):
        chain = mock_supabase.table.return_value.select.return_value.order.return_value
        chain.execute.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(StoreUnavailable) as exc_info:
            await store.query_all()

        assert exc_info.value.reason == StoreUnavailable.UNREACHABLE

    @pytest.mark.asyncio
    async def test_fetch_all_degrades_to_empty(self, store, mock_supabase):
        chain = mock_supabase.table.return_value.select.return_value.order.return_value
        chain.execute.side_effect = RuntimeError("boom")

        assert await store.fetch_all() == []

    @pytest.mark.asyncio
    async def test_fetch_all_without_configuration_is_empty(self):
        def unconfigured():
            raise StoreUnavailable(StoreUnavailable.UNCONFIGURED)

        store = SupabaseEntryStore(client_factory=unconfigured, table="knowledge_entries")

        assert await store.fetch_all() == []


class TestInsert:
    @pytest.mark.asyncio
    async def test_insert_returns_stored_row(self, store, mock_supabase):
        insert = mock_supabase.table.return_value.insert
        insert.return_value.execute.return_value = _response([ROWS[0]])

        entry = await store.insert(KnowledgeEntryDraft(location="Taiwan", content="Amazing street food"))

        assert entry.id == "b6a1"
        insert.assert_called_once_with({"location": "Taiwan", "content": "Amazing street food"})

    @pytest.mark.asyncio
    async def test_insert_omits_missing_location(self, store, mock_supabase):
        insert = mock_supabase.table.return_value.insert
        insert.return_value.execute.return_value = _response([ROWS[1]])

        await store.insert(KnowledgeEntryDraft(content="Always carry cash"))

        insert.assert_called_once_with({"content": "Always carry cash"})

    @pytest.mark.asyncio
    async def test_insert_without_returned_row_fails(self, store, mock_supabase):
        mock_supabase.table.return_value.insert.return_value.execute.return_value = _response([])

        with pytest.raises(WriteFailed):
            await store.insert(KnowledgeEntryDraft(content="x"))

    @pytest.mark.asyncio
    async def test_insert_error_becomes_write_failed(self, store, mock_supabase):
        mock_supabase.table.return_value.insert.return_value.execute.side_effect = RuntimeError("denied")

        with pytest.raises(WriteFailed, match="denied"):
            await store.insert(KnowledgeEntryDraft(content="x"))

    @pytest.mark.asyncio
    async def test_insert_without_configuration_raises(self):
        def unconfigured():
            raise StoreUnavailable(StoreUnavailable.UNCONFIGURED)

        store = SupabaseEntryStore(client_factory=unconfigured, table="knowledge_entries")

        with pytest.raises(StoreUnavailable):
            await store.insert(KnowledgeEntryDraft(content="x"))


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_sets_updated_at_at_store_boundary(self, store, mock_supabase):
        update = mock_supabase.table.return_value.update
        update.return_value.eq.return_value.execute.return_value = _response([ROWS[0]])

        entry = await store.update("b6a1", KnowledgeEntryPatch(content="Amazing street food"))

        assert entry.id == "b6a1"
        payload = update.call_args.args[0]
        assert payload["content"] == "Amazing street food"
        assert "location" not in payload
        assert "updated_at" in payload
        update.return_value.eq.assert_called_once_with("id", "b6a1")

    @pytest.mark.asyncio
    async def test_update_missing_row_is_not_found(self, store, mock_supabase):
        update = mock_supabase.table.return_value.update
        update.return_value.eq.return_value.execute.return_value = _response([])

        with pytest.raises(NotFound):
            await store.update("nope", KnowledgeEntryPatch(content="x"))

    @pytest.mark.asyncio
    async def test_update_error_becomes_write_failed(self, store, mock_supabase):
        update = mock_supabase.table.return_value.update
        update.return_value.eq.return_value.execute.side_effect = RuntimeError("timeout")

        with pytest.raises(WriteFailed) as exc_info:
            await store.update("b6a1", KnowledgeEntryPatch(content="x"))

        assert exc_info.value.entry_id == "b6a1"


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_by_id(self, store, mock_supabase):
        delete = mock_supabase.table.return_value.delete
        delete.return_value.eq.return_value.execute.return_value = _response([ROWS[0]])

        await store.delete("b6a1")

        delete.return_value.eq.assert_called_once_with("id", "b6a1")

    @pytest.mark.asyncio
    async def test_delete_error_becomes_write_failed(self, store, mock_supabase):
        delete = mock_supabase.table.return_value.delete
        delete.return_value.eq.return_value.execute.side_effect = RuntimeError("denied")

        with pytest.raises(WriteFailed):
            await store.delete("b6a1")


class TestGetSupabase:
    def setup_method(self):
        get_supabase.cache_clear()

    def teardown_method(self):
        get_supabase.cache_clear()

    def test_missing_credentials_are_unconfigured(self):
        with patch("travel_journal.db.supabase_client.get_settings") as mock_settings:
            mock_settings.return_value.supabase_configured = False

            with pytest.raises(StoreUnavailable) as exc_info:
                get_supabase()

        assert exc_info.value.reason == StoreUnavailable.UNCONFIGURED

    def test_client_creation_failure_is_unreachable(self):
        with patch("travel_journal.db.supabase_client.get_settings") as mock_settings, \
             patch("travel_journal.db.supabase_client.create_client") as mock_create:
            mock_settings.return_value.supabase_configured = True
            mock_create.side_effect = ValueError("Invalid API key")

            with pytest.raises(StoreUnavailable) as exc_info:
                get_supabase()

        assert exc_info.value.reason == StoreUnavailable.UNREACHABLE

    def test_client_is_cached(self):
        with patch("travel_journal.db.supabase_client.get_settings") as mock_settings, \
             patch("travel_journal.db.supabase_client.create_client") as mock_create:
            mock_settings.return_value.supabase_configured = True

            first = get_supabase()
            second = get_supabase()

        assert first is second
        mock_create.assert_called_once()
