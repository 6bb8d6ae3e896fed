"""
Pydantic models for request/response validation.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Event Models
# ============================================================================

class EventBody(BaseModel):
    """Event document as submitted by clients (no identifier)."""

    model_config = ConfigDict(extra="ignore")

    entity: str = Field(
        default="",
        description="Kind of entity the event is about",
        examples=["User", "Invoice"]
    )

    action: str = Field(
        default="",
        description="Action performed on the entity",
        examples=["CREATE", "UPDATE", "DELETE"]
    )

    event: str = Field(
        default="",
        description="Free-text description of what happened",
        examples=["User alice created"]
    )

    time: datetime = Field(
        default_factory=utc_now,
        description="Event timestamp (uses server time if not provided)"
    )

    author: str = Field(
        default="",
        description="Who performed the action",
        examples=["admin@example.com"]
    )

    @field_validator('entity', 'action', 'event', 'author')
    @classmethod
    def reject_nul(cls, v: str) -> str:
        """PostgreSQL cannot store NUL characters in text or jsonb."""
        if '\x00' in v:
            raise ValueError('Must not contain NUL characters')
        return v

    @field_validator('time')
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_document(self) -> dict:
        """Serialize to the JSON document kept in the store."""
        return self.model_dump(mode="json", include=set(EventBody.model_fields))


class Event(EventBody):
    """Stored event, always carrying its store-assigned identifier."""

    id: UUID = Field(..., description="Store-assigned event identifier")

    @classmethod
    def from_document(cls, event_id: UUID, document: dict) -> "Event":
        return cls(id=event_id, **document)


# ============================================================================
# Error Models
# ============================================================================

class ErrorMessage(BaseModel):
    """Error response body."""

    message: str = Field(..., examples=["Event not found"])


# ============================================================================
# Health Check Models
# ============================================================================

class HealthStatus(BaseModel):
    """Health check response."""

    status: str = Field(..., examples=["healthy", "unhealthy"])
    version: str
    database: str = Field(..., examples=["connected", "disconnected"])
    uptime_seconds: float
    timestamp: datetime
    environment: Optional[str] = None
