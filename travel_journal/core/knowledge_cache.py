"""Optimistic cache of knowledge entries.

Every mutation runs a two-phase protocol:

1. Apply: the view changes synchronously, before the store call is dispatched.
2. Resolve: once the store call returns, the provisional state is replaced by
   the store's result (COMMITTED), or the view is restored to its
   pre-mutation state and the error re-raised (ROLLED_BACK).

No retries. The cache is meant for one owner per session: concurrent
mutations of the same entry are last-applied-wins in the view and the
store decides the persisted result.

Usage:
    async with KnowledgeCache(get_entry_store()) as cache:
        entry = await cache.add(KnowledgeEntryDraft(location="Taiwan", content="..."))
        await cache.update(entry.id, KnowledgeEntryPatch(content="..."))
        await cache.remove(entry.id)
"""

import asyncio
import logging
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from travel_journal.core.errors import NotFound
from travel_journal.core.logging import get_logger, log_with_context
from travel_journal.core.schemas_knowledge import (
    TEMP_ID_PREFIX,
    KnowledgeEntry,
    KnowledgeEntryDraft,
    KnowledgeEntryPatch,
)
from travel_journal.db.knowledge_entries import EntryStore, sort_newest_first

logger = get_logger(__name__)

ViewListener = Callable[[tuple[KnowledgeEntry, ...]], None]


class MutationKind(str, Enum):
    ADD = "add"
    UPDATE = "update"
    REMOVE = "remove"


class MutationStatus(str, Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass
class MutationRecord:
    """One optimistic mutation and where it ended up."""

    kind: MutationKind
    entry_id: str
    status: MutationStatus = MutationStatus.PENDING
    # What the view shows while pending (add/update)
    optimistic: KnowledgeEntry | None = None
    # The entry as it was before the mutation (update/remove)
    snapshot: KnowledgeEntry | None = None
    # The store's version once committed (add/update)
    persisted: KnowledgeEntry | None = None
    persisted_id: str | None = None
    error: Exception | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _unique(entries: Iterable[KnowledgeEntry]) -> list[KnowledgeEntry]:
    seen: set[str] = set()
    result = []
    for entry in entries:
        if entry.id not in seen:
            seen.add(entry.id)
            result.append(entry)
    return result


class KnowledgeCache:
    """Owns the in-memory entry list; the only write path to it."""

    def __init__(self, store: EntryStore, history_size: int = 50):
        self._store = store
        self._entries: list[KnowledgeEntry] = []
        self._pending: list[MutationRecord] = []
        self._listeners: list[ViewListener] = []
        self._loading = False
        self._refreshes = 0
        self._commit_seq = 0
        # Commits made while at least one refresh is reading the store
        self._late_commits: list[tuple[int, MutationRecord]] = []
        self.mutations: deque[MutationRecord] = deque(maxlen=history_size)
        self.last_error: Exception | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> "KnowledgeCache":
        """Populate the view from the store."""
        await self.refresh()
        return self

    async def close(self) -> None:
        """Drop the view and listeners at session end."""
        if self._pending:
            logger.warning(f"Closing knowledge cache with {len(self._pending)} pending mutations")
        self._listeners.clear()
        self._entries = []

    async def __aenter__(self) -> "KnowledgeCache":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def entries(self) -> tuple[KnowledgeEntry, ...]:
        """Snapshot of the current optimistic view, newest first."""
        return tuple(self._entries)

    @property
    def is_loading(self) -> bool:
        return self._loading

    def get(self, entry_id: str) -> KnowledgeEntry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def is_pending(self, entry_id: str) -> bool:
        """True while any mutation of this entry awaits the store."""
        return any(record.entry_id == entry_id for record in self._pending)

    def subscribe(self, listener: ViewListener) -> Callable[[], None]:
        """
        Call ``listener`` with the new snapshot after every view change.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def refresh(self) -> tuple[KnowledgeEntry, ...]:
        """
        Re-read the store and replace the view.

        Pending mutations are re-applied on top of the fresh rows so they keep
        superseding reads until they resolve. Mutations that committed while
        the read was in flight are re-applied too, since the read may predate
        them. A failing store yields an empty base list rather than an error.
        """
        since = self._commit_seq
        self._refreshes += 1
        self._loading = True
        self.last_error = None
        try:
            fresh = await self._store.fetch_all()
        finally:
            self._refreshes -= 1
            self._loading = self._refreshes > 0

        late = [record for seq, record in self._late_commits if seq > since]
        if not self._refreshes:
            self._late_commits.clear()

        self._set_view(self._replay(self._replay(fresh, late), self._pending))
        logger.debug(f"Knowledge cache refreshed with {len(self._entries)} entries")
        return self.entries

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    async def add(self, draft: KnowledgeEntryDraft) -> KnowledgeEntry:
        """
        Add an entry optimistically.

        Returns:
            The persisted entry (never the provisional one)

        Raises:
            WriteFailed, StoreUnavailable: After the provisional entry is removed
        """
        record = self._apply_add(draft)
        return await self._resolve_add(record, draft)

    async def update(self, entry_id: str, patch: KnowledgeEntryPatch) -> KnowledgeEntry:
        """
        Update an entry optimistically.

        Raises:
            NotFound: The id is not in the view; nothing is sent to the store
            WriteFailed, StoreUnavailable, NotFound: After the pre-update entry is restored
        """
        record = self._apply_update(entry_id, patch)
        return await self._resolve_update(record, patch)

    async def remove(self, entry_id: str) -> None:
        """
        Remove an entry optimistically.

        Raises:
            NotFound: The id is not in the view; nothing is sent to the store
            WriteFailed, StoreUnavailable: After the entry is re-inserted
        """
        record = self._apply_remove(entry_id)
        await self._resolve_remove(record)

    def submit_add(self, draft: KnowledgeEntryDraft) -> "asyncio.Task[KnowledgeEntry]":
        """Apply an add now and resolve it in a background task."""
        record = self._apply_add(draft)
        return asyncio.create_task(self._resolve_add(record, draft))

    def submit_update(
        self, entry_id: str, patch: KnowledgeEntryPatch
    ) -> "asyncio.Task[KnowledgeEntry]":
        """Apply an update now and resolve it in a background task."""
        record = self._apply_update(entry_id, patch)
        return asyncio.create_task(self._resolve_update(record, patch))

    def submit_remove(self, entry_id: str) -> "asyncio.Task[None]":
        """Apply a removal now and resolve it in a background task."""
        record = self._apply_remove(entry_id)
        return asyncio.create_task(self._resolve_remove(record))

    # ------------------------------------------------------------------
    # Phase 1: apply
    # ------------------------------------------------------------------

    def _apply_add(self, draft: KnowledgeEntryDraft) -> MutationRecord:
        now = _utcnow()
        provisional = KnowledgeEntry(
            id=f"{TEMP_ID_PREFIX}{uuid4().hex}",
            location=draft.location,
            content=draft.content,
            created_at=now,
            updated_at=now,
        )
        record = MutationRecord(MutationKind.ADD, provisional.id, optimistic=provisional)
        self._begin(record)
        self._set_view([provisional, *self._entries])
        return record

    def _apply_update(self, entry_id: str, patch: KnowledgeEntryPatch) -> MutationRecord:
        current = self._require(entry_id)
        optimistic = current.model_copy(update={**patch.changes(), "updated_at": _utcnow()})
        record = MutationRecord(
            MutationKind.UPDATE, entry_id, optimistic=optimistic, snapshot=current
        )
        self._begin(record)
        self._replace(entry_id, optimistic)
        return record

    def _apply_remove(self, entry_id: str) -> MutationRecord:
        current = self._require(entry_id)
        record = MutationRecord(MutationKind.REMOVE, entry_id, snapshot=current)
        self._begin(record)
        self._set_view([e for e in self._entries if e.id != entry_id])
        return record

    # ------------------------------------------------------------------
    # Phase 2: resolve
    # ------------------------------------------------------------------

    async def _resolve_add(self, record: MutationRecord, draft: KnowledgeEntryDraft) -> KnowledgeEntry:
        try:
            persisted = await self._store.insert(draft)
        except Exception as e:
            self._finish(record, MutationStatus.ROLLED_BACK, error=e)
            self._set_view([row for row in self._entries if row.id != record.entry_id])
            raise

        self._finish(record, MutationStatus.COMMITTED, persisted=persisted)
        # Temp row out and real row in within one view replacement
        remaining = [e for e in self._entries if e.id not in (record.entry_id, persisted.id)]
        self._set_view([persisted, *remaining])
        return persisted

    async def _resolve_update(
        self, record: MutationRecord, patch: KnowledgeEntryPatch
    ) -> KnowledgeEntry:
        try:
            persisted = await self._store.update(record.entry_id, patch)
        except Exception as e:
            self._finish(record, MutationStatus.ROLLED_BACK, error=e)
            self._replace(record.entry_id, record.snapshot)
            raise

        self._finish(record, MutationStatus.COMMITTED, persisted=persisted)
        self._replace(record.entry_id, persisted)
        return persisted

    async def _resolve_remove(self, record: MutationRecord) -> None:
        try:
            await self._store.delete(record.entry_id)
        except Exception as e:
            self._finish(record, MutationStatus.ROLLED_BACK, error=e)
            if self.get(record.entry_id) is None:
                self._set_view(sort_newest_first([*self._entries, record.snapshot]))
            raise

        self._finish(record, MutationStatus.COMMITTED, persisted_id=record.entry_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, entry_id: str) -> KnowledgeEntry:
        entry = self.get(entry_id)
        # Provisional rows have no store counterpart to mutate yet
        if entry is None or entry.is_provisional:
            raise NotFound(entry_id)
        return entry

    def _begin(self, record: MutationRecord) -> None:
        self._pending.append(record)
        self.mutations.append(record)
        log_with_context(
            logger, logging.DEBUG, f"Applied optimistic {record.kind.value}",
            entry_id=record.entry_id,
        )

    def _finish(
        self,
        record: MutationRecord,
        status: MutationStatus,
        error: Exception | None = None,
        persisted: KnowledgeEntry | None = None,
        persisted_id: str | None = None,
    ) -> None:
        record.status = status
        record.error = error
        record.persisted = persisted
        record.persisted_id = persisted.id if persisted is not None else persisted_id
        if record in self._pending:
            self._pending.remove(record)

        if status is MutationStatus.ROLLED_BACK:
            self.last_error = error
            log_with_context(
                logger, logging.WARNING, f"Rolled back {record.kind.value}: {error}",
                entry_id=record.entry_id,
            )
            return

        self._commit_seq += 1
        if self._refreshes:
            self._late_commits.append((self._commit_seq, record))
        log_with_context(
            logger, logging.DEBUG, f"Committed {record.kind.value}",
            entry_id=record.entry_id, persisted_id=record.persisted_id,
        )

    def _replace(self, entry_id: str, entry: KnowledgeEntry | None) -> None:
        # No-op when the entry left the view in the meantime
        if entry is None or self.get(entry_id) is None:
            return
        self._set_view([entry if e.id == entry_id else e for e in self._entries])

    def _replay(
        self, base: list[KnowledgeEntry], records: Iterable[MutationRecord]
    ) -> list[KnowledgeEntry]:
        """Apply records in order on top of ``base``.

        Committed records contribute the store's version, pending ones the
        optimistic version.
        """
        view = list(base)
        for record in records:
            if record.kind is MutationKind.REMOVE:
                view = [e for e in view if e.id != record.entry_id]
                continue

            shown = record.persisted if record.status is MutationStatus.COMMITTED else record.optimistic
            if record.kind is MutationKind.ADD:
                view = [shown, *(e for e in view if e.id not in (record.entry_id, shown.id))]
            else:
                view = [shown if e.id == record.entry_id else e for e in view]
        return view

    def _set_view(self, entries: Iterable[KnowledgeEntry]) -> None:
        self._entries = _unique(entries)
        snapshot = self.entries
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Knowledge cache listener failed")
