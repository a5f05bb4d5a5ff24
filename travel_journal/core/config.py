"""Configuration management for the Travel Journal knowledge engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (optional: a missing store degrades to "no grounding")
    SUPABASE_URL: str = Field(default="", description="Supabase project URL")
    SUPABASE_ANON_KEY: str = Field(default="", description="Supabase anon key")

    # Knowledge store
    KNOWLEDGE_TABLE: str = Field(
        default="knowledge_entries", description="Table holding knowledge entries"
    )
    KNOWLEDGE_STORE: str = Field(
        default="supabase", description="Store backend: supabase or memory"
    )
    SEARCH_DEFAULT_LIMIT: int = Field(
        default=3, ge=1, description="Entries returned by a search when no limit is given"
    )

    # Environment
    TRAVEL_JOURNAL_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")

    # Chat configuration
    OPENAI_API_KEY: str | None = Field(default=None, description="OpenAI API key")
    CHAT_MODEL: str = Field(default="gpt-4o-mini", description="Model for travel chat replies")
    CHAT_TEMPERATURE: float = Field(default=0.7, description="Sampling temperature for chat")
    CHAT_MAX_TOKENS: int = Field(default=500, description="Max tokens per chat reply")
    PERSONA_NAME: str = Field(default="Saba", description="Whose travel notes ground the chat")

    @property
    def supabase_configured(self) -> bool:
        """True when both the Supabase URL and key are present."""
        return bool(self.SUPABASE_URL and self.SUPABASE_ANON_KEY)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If environment variables hold invalid values
    """
    return Settings()
