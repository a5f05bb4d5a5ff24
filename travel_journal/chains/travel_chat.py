"""Grounded travel chat.

Looks up the author's own notes for the user's message and answers from
them. When nothing relevant is found the prompt switches to a mode that
makes the assistant say it has no first-hand experience instead of
inventing a trip.
"""

from dataclasses import dataclass, field
from typing import Any

from travel_journal.core.config import get_settings
from travel_journal.core.llm import get_llm
from travel_journal.core.logging import get_logger
from travel_journal.core.retrieval import KnowledgeRetriever
from travel_journal.core.schemas_knowledge import ChatTurn, KnowledgeEntry

logger = get_logger(__name__)

PERSONA_PROMPT = """You are {name} AI, a helpful travel companion who shares personal experiences and insights from travels around the world.
You speak from {name}'s first-person perspective, using "I" and "my" when sharing experiences.
You are friendly, enthusiastic, and authentic."""

GROUNDED_PROMPT = """Here is some context from {name}'s experiences:
{context}

When answering questions:
- Use ONLY the information provided in the context above
- Reference specific experiences and locations from the context
- Share personal tips and insights from the context
- Be conversational and genuine
- If the context above has only minimal information, you may add general information about the place, but say that it is general information and where it comes from
- Do NOT make up or invent experiences that are not in the context above"""

UNGROUNDED_PROMPT = """CRITICAL INSTRUCTIONS - READ CAREFULLY:

You do NOT have any personal experiences or knowledge about the topic the user is asking about.

STRICT RULES:
1. You MUST start your response by saying "I haven't been there yet" or "I don't have personal experience with that" or similar
2. You MUST NOT use phrases like "When I visited...", "I went to...", "I experienced...", "I saw..." or any first-person statements about being there
3. You MUST NOT make up any stories, experiences, or anecdotes about this place
4. You MUST NOT pretend to have visited or know about it from personal experience
5. You CAN provide general, factual travel advice (e.g., "It's known for...", "Many travelers recommend...") but make it clear it's NOT your personal experience
6. Stay friendly and conversational, but be honest about your limitations

Remember: No knowledge context was provided, which means {name} has NOT been to this place. Be honest."""

FALLBACK_REPLY = "Sorry, I could not process that request."


@dataclass
class TravelReply:
    text: str
    grounded: bool
    entries: list[KnowledgeEntry] = field(default_factory=list)


def build_system_prompt(context: str, persona_name: str | None = None) -> str:
    """
    Build the chat system prompt for an assembled grounding context.

    Args:
        context: Output of ``assemble_context``; empty means no grounding
        persona_name: Whose notes these are (defaults to PERSONA_NAME)

    Returns:
        System prompt text
    """
    name = persona_name or get_settings().PERSONA_NAME
    parts = [PERSONA_PROMPT.format(name=name)]
    if context:
        parts.append(GROUNDED_PROMPT.format(name=name, context=context))
    else:
        parts.append(UNGROUNDED_PROMPT.format(name=name))
    return "\n\n".join(parts)


def _history_messages(history: list[ChatTurn]) -> list[dict[str, str]]:
    return [{"role": turn.role, "content": turn.text} for turn in history]


async def generate_travel_reply(
    question: str,
    retriever: KnowledgeRetriever,
    history: list[ChatTurn] | None = None,
    llm: Any = None,
) -> TravelReply:
    """
    Answer a travel question grounded in the knowledge base.

    Args:
        question: The user's new message
        retriever: Retrieval facade over the knowledge store
        history: Earlier turns of the conversation, oldest first
        llm: Chat model with ``ainvoke`` (defaults to ``get_llm()``)

    Returns:
        TravelReply with the text and the entries used for grounding

    Raises:
        ValueError: If no LLM is configured
        Exception: Whatever the LLM client raises
    """
    result = await retriever.retrieve(question)
    if not result.is_grounded:
        logger.info("No knowledge found for question, answering without grounding")

    llm = llm or get_llm()
    messages = [
        {"role": "system", "content": build_system_prompt(result.context)},
        *_history_messages(history or []),
        {"role": "user", "content": question},
    ]

    response = await llm.ainvoke(messages)
    content = response.content if isinstance(response.content, str) else ""
    text = content.strip()

    return TravelReply(
        text=text or FALLBACK_REPLY,
        grounded=result.is_grounded,
        entries=result.entries,
    )
