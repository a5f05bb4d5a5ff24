"""FastAPI dependencies for the knowledge engine.

The cache and retriever are built once per app in ``main.lifespan`` and
stored on ``app.state``.
"""

from fastapi import Request

from travel_journal.core.knowledge_cache import KnowledgeCache
from travel_journal.core.retrieval import KnowledgeRetriever


def get_knowledge_cache(request: Request) -> KnowledgeCache:
    return request.app.state.knowledge_cache


def get_retriever(request: Request) -> KnowledgeRetriever:
    return request.app.state.retriever
