"""Ticket models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid4().hex


class TicketCategory(str, Enum):
    """Categories shared by tickets and classifier predictions."""

    BILLING = "billing"
    TECH = "tech"
    SHIPPING = "shipping"
    OTHER = "other"


class TicketStatus(str, Enum):
    """Ticket lifecycle states."""

    OPEN = "open"
    TRIAGED = "triaged"
    WAITING_HUMAN = "waiting_human"
    RESOLVED = "resolved"
    CLOSED = "closed"


class Reply(BaseModel):
    """A single reply on a ticket; `author` is None for system replies."""

    author: Optional[str] = None
    content: str
    is_agent: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class Ticket(BaseModel):
    """Stored ticket document."""

    id: str = Field(default_factory=new_id)
    title: str
    description: str
    category: TicketCategory = TicketCategory.OTHER
    status: TicketStatus = TicketStatus.OPEN
    created_by: str
    assignee: Optional[str] = None
    agent_suggestion_id: Optional[str] = None
    attachment_urls: List[str] = Field(default_factory=list)
    replies: List[Reply] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def search_text(self) -> str:
        """Text fed to the classifier and the retriever."""
        return f"{self.title} {self.description}"


class TicketCreateRequest(BaseModel):
    """Inbound payload for POST /tickets."""

    title: str
    description: str
    category: TicketCategory = TicketCategory.OTHER
    attachment_urls: List[str] = Field(default_factory=list)
    created_by: str

    @field_validator("title", "description")
    @classmethod
    def validate_required(cls, value: str) -> str:
        """Reject empty strings before anything is persisted."""
        cleaned = (value or "").strip()
        if not cleaned:
            raise ValueError("title and description must be provided")
        return cleaned


class ReplyRequest(BaseModel):
    """Inbound payload for POST /tickets/{id}/replies."""

    author: str
    content: str
    is_agent: bool = False
