"""API endpoint for the grounded travel chat."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from travel_journal.api.dependencies import get_retriever
from travel_journal.chains.travel_chat import generate_travel_reply
from travel_journal.core.retrieval import KnowledgeRetriever
from travel_journal.core.schemas_knowledge import ChatRequest, ChatResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    retriever: KnowledgeRetriever = Depends(get_retriever),
) -> ChatResponse:
    """Answer a travel question from the author's own notes."""
    try:
        reply = await generate_travel_reply(request.message, retriever, history=request.history)
    except ValueError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.exception("Failed to generate travel reply")
        raise HTTPException(status_code=502, detail=str(e))

    return ChatResponse(reply=reply.text, grounded=reply.grounded, sources=reply.entries)
