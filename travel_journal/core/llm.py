"""LLM client utilities for LangChain integration."""

from langchain_openai import ChatOpenAI

from travel_journal.core.config import get_settings


def get_llm(model: str | None = None, temperature: float | None = None) -> ChatOpenAI:
    """
    Get configured LLM instance for the travel chat chain.

    Args:
        model: Model name override (defaults to CHAT_MODEL)
        temperature: Temperature override (defaults to CHAT_TEMPERATURE)

    Returns:
        ChatOpenAI instance configured with API key and model

    Raises:
        ValueError: If OPENAI_API_KEY is not configured
    """
    settings = get_settings()
    if not settings.OPENAI_API_KEY:
        raise ValueError("OPENAI_API_KEY not configured")

    return ChatOpenAI(
        api_key=settings.OPENAI_API_KEY,
        model=model or settings.CHAT_MODEL,
        temperature=settings.CHAT_TEMPERATURE if temperature is None else temperature,
        max_tokens=settings.CHAT_MAX_TOKENS,
    )
