"""API endpoints for knowledge entries."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from travel_journal.api.dependencies import get_knowledge_cache, get_retriever
from travel_journal.core.context_format import assemble_context
from travel_journal.core.errors import KnowledgeBaseError, NotFound, StoreUnavailable, WriteFailed
from travel_journal.core.knowledge_cache import KnowledgeCache
from travel_journal.core.retrieval import KnowledgeRetriever
from travel_journal.core.schemas_knowledge import (
    KnowledgeEntry,
    KnowledgeEntryDraft,
    KnowledgeEntryPatch,
    KnowledgeSearchResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/knowledge", tags=["knowledge"])


def _to_http_error(error: KnowledgeBaseError) -> HTTPException:
    if isinstance(error, NotFound):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, StoreUnavailable):
        return HTTPException(status_code=503, detail=str(error))
    if isinstance(error, WriteFailed):
        return HTTPException(status_code=502, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


@router.get("", response_model=list[KnowledgeEntry])
async def list_entries(cache: KnowledgeCache = Depends(get_knowledge_cache)) -> list[KnowledgeEntry]:
    """Current optimistic view, newest first."""
    return list(cache.entries)


@router.post("/refresh", response_model=list[KnowledgeEntry])
async def refresh_entries(
    cache: KnowledgeCache = Depends(get_knowledge_cache),
) -> list[KnowledgeEntry]:
    """Re-read the store into the cache."""
    return list(await cache.refresh())


@router.post("", response_model=KnowledgeEntry, status_code=201)
async def add_entry(
    data: KnowledgeEntryDraft,
    cache: KnowledgeCache = Depends(get_knowledge_cache),
) -> KnowledgeEntry:
    """Add a knowledge entry."""
    try:
        return await cache.add(data)
    except KnowledgeBaseError as e:
        logger.exception("Failed to add knowledge entry")
        raise _to_http_error(e)


@router.patch("/{entry_id}", response_model=KnowledgeEntry)
async def update_entry(
    entry_id: str,
    data: KnowledgeEntryPatch,
    cache: KnowledgeCache = Depends(get_knowledge_cache),
) -> KnowledgeEntry:
    """Update a knowledge entry's location and/or content."""
    try:
        return await cache.update(entry_id, data)
    except KnowledgeBaseError as e:
        logger.exception(f"Failed to update knowledge entry {entry_id}")
        raise _to_http_error(e)


@router.delete("/{entry_id}", status_code=204)
async def delete_entry(
    entry_id: str,
    cache: KnowledgeCache = Depends(get_knowledge_cache),
) -> Response:
    """Delete a knowledge entry."""
    try:
        await cache.remove(entry_id)
    except KnowledgeBaseError as e:
        logger.exception(f"Failed to delete knowledge entry {entry_id}")
        raise _to_http_error(e)
    return Response(status_code=204)


@router.get("/search", response_model=KnowledgeSearchResponse)
async def search_entries(
    q: str = Query(..., min_length=1, description="Free-text query"),
    limit: int = Query(3, ge=1, le=20),
    retriever: KnowledgeRetriever = Depends(get_retriever),
) -> KnowledgeSearchResponse:
    """Rank persisted entries against a query and return the grounding context."""
    entries = await retriever.search(q, limit)
    return KnowledgeSearchResponse(entries=entries, context=assemble_context(entries))
