"""
In-memory store implementations.

Used by unit tests and local development. Every store hands out copies so
callers never mutate stored documents by accident, and a lock per store
keeps conditional updates atomic across worker threads.
"""

from __future__ import annotations

from threading import Lock
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from models.agent import Suggestion
from models.audit import AuditLogEntry
from models.config import TriageConfig
from models.knowledge import Article, ArticleStatus
from models.ticket import Reply, Ticket, TicketStatus, utcnow
from repositories.base import (
    ArticleStore,
    AuditStore,
    ConfigStore,
    SuggestionStore,
    TicketStore,
)
from utils.error_handling import ConfigurationError, ConflictError, NotFoundError
from utils.text import rank_documents


class MemoryTicketStore(TicketStore):
    def __init__(self) -> None:
        self._tickets: Dict[str, Ticket] = {}
        self._lock = Lock()

    def create(self, ticket: Ticket) -> Ticket:
        with self._lock:
            self._tickets[ticket.id] = ticket.model_copy(deep=True)
        return ticket

    def get(self, ticket_id: str) -> Optional[Ticket]:
        with self._lock:
            ticket = self._tickets.get(ticket_id)
            return ticket.model_copy(deep=True) if ticket else None

    def update(
        self,
        ticket_id: str,
        patch: Dict[str, Any],
        expected_status: Optional[TicketStatus] = None,
        reply: Optional[Reply] = None,
    ) -> Ticket:
        with self._lock:
            current = self._tickets.get(ticket_id)
            if current is None:
                raise NotFoundError(f"Ticket {ticket_id} not found")
            if expected_status is not None and current.status != expected_status:
                raise ConflictError(
                    f"Ticket {ticket_id} is {current.status.value}, "
                    f"expected {expected_status.value}"
                )
            updated = current.model_copy(update={**patch, "updated_at": utcnow()}, deep=True)
            if reply is not None:
                updated.replies.append(reply)
            self._tickets[ticket_id] = updated
            return updated.model_copy(deep=True)

    def append_reply(self, ticket_id: str, reply: Reply) -> Ticket:
        return self.update(ticket_id, {}, reply=reply)

    def delete(self, ticket_id: str) -> bool:
        """Remove a ticket; only used to simulate external deletion."""
        with self._lock:
            return self._tickets.pop(ticket_id, None) is not None


class MemoryArticleStore(ArticleStore):
    def __init__(self) -> None:
        self._articles: List[Article] = []
        self._lock = Lock()

    def create(self, article: Article) -> Article:
        with self._lock:
            self._articles.append(article.model_copy(deep=True))
        return article

    def _with_status(self, status: ArticleStatus) -> List[Article]:
        with self._lock:
            return [a.model_copy(deep=True) for a in self._articles if a.status == status]

    def search_full_text(
        self, query: str, status: ArticleStatus = ArticleStatus.PUBLISHED, limit: int = 3
    ) -> List[Article]:
        articles = self._with_status(status)
        order = rank_documents(query, [f"{a.title} {a.body}" for a in articles])
        return [articles[i] for i in order[:limit]]

    def find_by_tags(
        self,
        tags: Sequence[str],
        status: ArticleStatus = ArticleStatus.PUBLISHED,
        limit: int = 3,
    ) -> List[Article]:
        wanted = set(tags)
        return [a for a in self._with_status(status) if wanted.intersection(a.tags)][:limit]

    def find_recent(
        self, status: ArticleStatus = ArticleStatus.PUBLISHED, limit: int = 3
    ) -> List[Article]:
        articles = self._with_status(status)
        articles.sort(key=lambda a: a.created_at, reverse=True)
        return articles[:limit]


class MemorySuggestionStore(SuggestionStore):
    def __init__(self) -> None:
        self._suggestions: Dict[str, Suggestion] = {}
        self._lock = Lock()

    def create(self, suggestion: Suggestion) -> Suggestion:
        with self._lock:
            self._suggestions[suggestion.id] = suggestion.model_copy(deep=True)
        return suggestion

    def update(self, suggestion_id: str, patch: Dict[str, Any]) -> Suggestion:
        with self._lock:
            current = self._suggestions.get(suggestion_id)
            if current is None:
                raise NotFoundError(f"Suggestion {suggestion_id} not found")
            updated = current.model_copy(update=patch, deep=True)
            self._suggestions[suggestion_id] = updated
            return updated.model_copy(deep=True)

    def get(self, suggestion_id: str) -> Optional[Suggestion]:
        with self._lock:
            suggestion = self._suggestions.get(suggestion_id)
            return suggestion.model_copy(deep=True) if suggestion else None

    def find_latest_for_ticket(self, ticket_id: str) -> Optional[Suggestion]:
        matches = [s for s in self.list_all() if s.ticket_id == ticket_id]
        if not matches:
            return None
        # max() keeps the first of equal timestamps; later inserts win ties.
        return max(reversed(matches), key=lambda s: s.created_at)

    def list_all(self) -> List[Suggestion]:
        with self._lock:
            return [s.model_copy(deep=True) for s in self._suggestions.values()]


class MemoryAuditStore(AuditStore):
    def __init__(self) -> None:
        self._entries: List[AuditLogEntry] = []
        self._lock = Lock()

    def append(self, entry: AuditLogEntry) -> None:
        with self._lock:
            self._entries.append(entry.model_copy(deep=True))

    def find_for_ticket(self, ticket_id: str) -> List[AuditLogEntry]:
        with self._lock:
            entries = [e.model_copy(deep=True) for e in self._entries if e.ticket_id == ticket_id]
        # sort() is stable, so same-timestamp entries keep append order.
        entries.sort(key=lambda e: e.timestamp)
        return entries


class MemoryConfigStore(ConfigStore):
    """Keeps the raw document so malformed data can be represented."""

    def __init__(self, raw: Optional[Dict[str, Any]] = None) -> None:
        self._raw = raw
        self._lock = Lock()

    def get_or_create_default(self) -> TriageConfig:
        with self._lock:
            if self._raw is None:
                self._raw = TriageConfig().model_dump()
            raw = dict(self._raw)
        try:
            return TriageConfig.model_validate(raw)
        except PydanticValidationError as exc:
            raise ConfigurationError(
                f"Stored config is malformed: {exc.error_count()} errors"
            ) from exc

    def save(self, config: TriageConfig) -> TriageConfig:
        with self._lock:
            self._raw = config.model_dump()
        return config
