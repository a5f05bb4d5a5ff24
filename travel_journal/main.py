"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from travel_journal.api import router as api_router
from travel_journal.core.knowledge_cache import KnowledgeCache
from travel_journal.core.logging import get_logger
from travel_journal.core.retrieval import KnowledgeRetriever
from travel_journal.db.knowledge_entries import EntryStore, get_entry_store

logger = get_logger(__name__)


def create_app(store: EntryStore | None = None) -> FastAPI:
    """
    Build the app around one knowledge store.

    The knowledge cache lives for the app's lifetime: filled at startup,
    dropped at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        entry_store = store or get_entry_store()
        cache = KnowledgeCache(entry_store)
        await cache.start()
        app.state.knowledge_cache = cache
        app.state.retriever = KnowledgeRetriever(entry_store)
        logger.info(f"Knowledge cache started with {len(cache.entries)} entries")
        try:
            yield
        finally:
            await cache.close()

    app = FastAPI(
        title="Travel Journal",
        description="Knowledge base sync and grounded retrieval for a travel journal",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health_check() -> JSONResponse:
        """Health check endpoint."""
        return JSONResponse(content={"status": "ok"}, status_code=200)

    app.include_router(api_router, prefix="/v1")
    return app


app = create_app()
