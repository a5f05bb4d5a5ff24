"""Database access layer for knowledge entries.

The store is a CRUD+query gateway over one collection. It holds no cache:
caching belongs to ``KnowledgeCache`` so this boundary stays swappable.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from uuid import uuid4

import httpx
from supabase import Client

from travel_journal.core.config import get_settings
from travel_journal.core.errors import (
    KnowledgeBaseError,
    NotFound,
    SearchFailed,
    StoreUnavailable,
    WriteFailed,
)
from travel_journal.core.logging import get_logger
from travel_journal.core.schemas_knowledge import (
    KnowledgeEntry,
    KnowledgeEntryDraft,
    KnowledgeEntryPatch,
)
from travel_journal.db.supabase_client import get_supabase

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _recency_key(entry: KnowledgeEntry) -> datetime:
    return entry.created_at or datetime.min.replace(tzinfo=timezone.utc)


def sort_newest_first(entries: Iterable[KnowledgeEntry]) -> list[KnowledgeEntry]:
    """Order entries by ``created_at`` descending. Ties keep their input order."""
    return sorted(entries, key=_recency_key, reverse=True)


class EntryStore(ABC):
    """Async CRUD+query contract over a remote collection of knowledge entries."""

    async def fetch_all(self) -> list[KnowledgeEntry]:
        """
        Fetch every entry, newest first.

        Never raises: an unavailable or failing store yields an empty list so
        the chat assistant can still answer with no grounding.
        """
        try:
            return await self.query_all()
        except StoreUnavailable as e:
            logger.warning(f"Knowledge store not available, returning no entries: {e}")
            return []
        except KnowledgeBaseError:
            logger.exception("Failed to fetch knowledge entries")
            return []

    @abstractmethod
    async def query_all(self) -> list[KnowledgeEntry]:
        """
        Read every entry, newest first, straight from the store.

        Raises:
            StoreUnavailable: No reachable store
            SearchFailed: Any other read failure
        """

    @abstractmethod
    async def insert(self, draft: KnowledgeEntryDraft) -> KnowledgeEntry:
        """
        Persist a new entry.

        Returns:
            The stored entry with its server-assigned id and timestamps

        Raises:
            StoreUnavailable, WriteFailed
        """

    @abstractmethod
    async def update(self, entry_id: str, patch: KnowledgeEntryPatch) -> KnowledgeEntry:
        """
        Apply a partial update; ``updated_at`` is set here, never by the caller.

        Raises:
            StoreUnavailable, WriteFailed, NotFound
        """

    @abstractmethod
    async def delete(self, entry_id: str) -> None:
        """
        Delete an entry by id.

        Raises:
            StoreUnavailable, WriteFailed
        """


class SupabaseEntryStore(EntryStore):
    """Entry store backed by a Supabase (Postgres) table.

    The supabase client is synchronous, so each call runs in a worker
    thread via ``asyncio.to_thread``.
    """

    def __init__(
        self,
        client_factory: Callable[[], Client] = get_supabase,
        table: str | None = None,
    ):
        self._client_factory = client_factory
        self.table = table or get_settings().KNOWLEDGE_TABLE

    def _client(self) -> Client:
        # Raises StoreUnavailable when unconfigured or the client cannot be built
        return self._client_factory()

    async def query_all(self) -> list[KnowledgeEntry]:
        client = self._client()

        def _select():
            return (
                client.table(self.table)
                .select("*")
                .order("created_at", desc=True)
                .execute()
            )

        try:
            result = await asyncio.to_thread(_select)
            return [KnowledgeEntry.model_validate(row) for row in result.data or []]
        except httpx.TransportError as e:
            raise StoreUnavailable(StoreUnavailable.UNREACHABLE, str(e)) from e
        except Exception as e:
            raise SearchFailed(f"Failed to read {self.table}: {e}") from e

    async def insert(self, draft: KnowledgeEntryDraft) -> KnowledgeEntry:
        client = self._client()
        data = draft.model_dump(exclude_none=True)

        def _insert():
            return client.table(self.table).insert(data).execute()

        try:
            result = await asyncio.to_thread(_insert)
        except httpx.TransportError as e:
            raise StoreUnavailable(StoreUnavailable.UNREACHABLE, str(e)) from e
        except Exception as e:
            raise WriteFailed("insert", detail=str(e)) from e

        if not result.data:
            raise WriteFailed("insert", detail="store returned no row")
        return KnowledgeEntry.model_validate(result.data[0])

    async def update(self, entry_id: str, patch: KnowledgeEntryPatch) -> KnowledgeEntry:
        client = self._client()
        data = {**patch.changes(), "updated_at": _utcnow().isoformat()}

        def _update():
            return client.table(self.table).update(data).eq("id", entry_id).execute()

        try:
            result = await asyncio.to_thread(_update)
        except httpx.TransportError as e:
            raise StoreUnavailable(StoreUnavailable.UNREACHABLE, str(e)) from e
        except Exception as e:
            raise WriteFailed("update", entry_id, str(e)) from e

        if not result.data:
            raise NotFound(entry_id)
        return KnowledgeEntry.model_validate(result.data[0])

    async def delete(self, entry_id: str) -> None:
        client = self._client()

        def _delete():
            return client.table(self.table).delete().eq("id", entry_id).execute()

        try:
            await asyncio.to_thread(_delete)
        except httpx.TransportError as e:
            raise StoreUnavailable(StoreUnavailable.UNREACHABLE, str(e)) from e
        except Exception as e:
            raise WriteFailed("delete", entry_id, str(e)) from e


class InMemoryEntryStore(EntryStore):
    """Process-local entry store for development and tests."""

    def __init__(self, entries: Iterable[KnowledgeEntry] = ()):
        self._rows: list[KnowledgeEntry] = sort_newest_first(entries)

    async def query_all(self) -> list[KnowledgeEntry]:
        return sort_newest_first(self._rows)

    async def insert(self, draft: KnowledgeEntryDraft) -> KnowledgeEntry:
        now = _utcnow()
        entry = KnowledgeEntry(
            id=str(uuid4()),
            location=draft.location,
            content=draft.content,
            created_at=now,
            updated_at=now,
        )
        self._rows.insert(0, entry)
        return entry

    async def update(self, entry_id: str, patch: KnowledgeEntryPatch) -> KnowledgeEntry:
        for i, row in enumerate(self._rows):
            if row.id == entry_id:
                updated = row.model_copy(update={**patch.changes(), "updated_at": _utcnow()})
                self._rows[i] = updated
                return updated
        raise NotFound(entry_id)

    async def delete(self, entry_id: str) -> None:
        self._rows = [row for row in self._rows if row.id != entry_id]


def get_entry_store() -> EntryStore:
    """Build the entry store selected by ``KNOWLEDGE_STORE``."""
    settings = get_settings()
    backend = settings.KNOWLEDGE_STORE.lower()
    if backend == "memory":
        logger.info("Using in-memory knowledge store")
        return InMemoryEntryStore()
    if backend != "supabase":
        raise ValueError(f"Unknown KNOWLEDGE_STORE: {settings.KNOWLEDGE_STORE}")
    if not settings.supabase_configured:
        logger.warning(
            "Supabase credentials not found. Set SUPABASE_URL and SUPABASE_ANON_KEY; "
            "knowledge reads will return no entries until then."
        )
    return SupabaseEntryStore()
