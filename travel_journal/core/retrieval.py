"""Relevance retrieval over the knowledge store.

Searches always read the store, never the optimistic cache, so the chat
assistant is only grounded in confirmed writes.
"""

from dataclasses import dataclass, field

from travel_journal.core.config import get_settings
from travel_journal.core.context_format import assemble_context
from travel_journal.core.errors import KnowledgeBaseError, StoreUnavailable
from travel_journal.core.logging import get_logger
from travel_journal.core.ranking import rank_entries
from travel_journal.core.schemas_knowledge import KnowledgeEntry
from travel_journal.db.knowledge_entries import EntryStore

logger = get_logger(__name__)


@dataclass
class RetrievalResult:
    """Ranked entries for a query plus their assembled grounding context."""

    query: str
    entries: list[KnowledgeEntry] = field(default_factory=list)
    context: str = ""

    @property
    def is_grounded(self) -> bool:
        return bool(self.context)


class KnowledgeRetriever:
    """Answers "what do we know that is relevant to this query"."""

    def __init__(self, store: EntryStore):
        self._store = store

    async def search(self, query: str, limit: int | None = None) -> list[KnowledgeEntry]:
        """
        Rank fresh store entries against the query.

        Never raises for store failures: they degrade to an empty list.

        Args:
            query: Free-text user query
            limit: Max entries to return (defaults to SEARCH_DEFAULT_LIMIT)

        Returns:
            Up to ``limit`` entries, most relevant first

        Raises:
            ValueError: If limit is not positive
        """
        if limit is None:
            limit = get_settings().SEARCH_DEFAULT_LIMIT
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")

        try:
            candidates = await self._store.query_all()
        except StoreUnavailable as e:
            logger.warning(f"Knowledge store not available, searching nothing: {e}")
            return []
        except KnowledgeBaseError:
            logger.exception("Failed to search knowledge entries")
            return []
        except Exception:
            logger.exception("Unexpected error searching knowledge entries")
            return []

        results = rank_entries(query, candidates, limit)
        logger.debug(
            f"Knowledge search matched {len(results)} of {len(candidates)} entries"
        )
        return results

    async def retrieve(self, query: str, limit: int | None = None) -> RetrievalResult:
        """Search and assemble the grounding context in one call."""
        entries = await self.search(query, limit)
        return RetrievalResult(query=query, entries=entries, context=assemble_context(entries))
