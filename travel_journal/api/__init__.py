"""API router for v1 endpoints."""

from fastapi import APIRouter

from travel_journal.api import chat, knowledge

router = APIRouter()

router.include_router(knowledge.router)
router.include_router(chat.router)
