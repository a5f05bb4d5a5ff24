"""Pydantic schemas for knowledge entries."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

TEMP_ID_PREFIX = "temp-"


class KnowledgeEntry(BaseModel):
    """A unit of first-person travel knowledge used to ground chat replies."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    location: str | None = None
    content: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        # Stores may hand back integer or UUID primary keys
        return str(value)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def is_provisional(self) -> bool:
        """True while the entry is waiting for its first persistence."""
        return self.id.startswith(TEMP_ID_PREFIX)


class KnowledgeEntryDraft(BaseModel):
    """Fields a caller supplies to create an entry (no id, no timestamps)."""

    location: str | None = None
    content: str = Field(..., min_length=1)


class KnowledgeEntryPatch(BaseModel):
    """Partial update. Only fields explicitly set are applied."""

    location: str | None = None
    content: str | None = Field(default=None, min_length=1)

    @field_validator("content")
    @classmethod
    def _content_not_null(cls, value: str | None) -> str:
        # Omitted means "leave as is"; an entry cannot lose its content
        if value is None:
            raise ValueError("content cannot be null")
        return value

    def changes(self) -> dict[str, Any]:
        """Fields the caller actually set."""
        return self.model_dump(exclude_unset=True)


class KnowledgeSearchResponse(BaseModel):
    entries: list[KnowledgeEntry]
    context: str


class ChatTurn(BaseModel):
    role: str = Field(..., pattern="^(user|assistant)$")
    text: str


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    history: list[ChatTurn] = Field(default_factory=list)


class ChatResponse(BaseModel):
    reply: str
    grounded: bool
    sources: list[KnowledgeEntry] = Field(default_factory=list)
