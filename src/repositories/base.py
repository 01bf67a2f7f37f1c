"""
Store interfaces consumed by the triage core.

Two backends implement them: `memory_repo` for tests and local runs, and
`dynamodb_repo` for deployed Lambdas.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from models.agent import Suggestion
from models.audit import AuditLogEntry
from models.config import TriageConfig
from models.knowledge import Article, ArticleStatus
from models.ticket import Reply, Ticket, TicketStatus


class TicketStore(ABC):
    """Ticket documents with an atomic conditional update."""

    @abstractmethod
    def create(self, ticket: Ticket) -> Ticket:
        pass

    @abstractmethod
    def get(self, ticket_id: str) -> Optional[Ticket]:
        pass

    @abstractmethod
    def update(
        self,
        ticket_id: str,
        patch: Dict[str, Any],
        expected_status: Optional[TicketStatus] = None,
        reply: Optional[Reply] = None,
    ) -> Ticket:
        """
        Apply `patch` (and optionally append `reply`) in one atomic step.

        Raises NotFoundError if the ticket is missing and ConflictError if
        `expected_status` is given and no longer matches.
        """

    @abstractmethod
    def append_reply(self, ticket_id: str, reply: Reply) -> Ticket:
        pass


class ArticleStore(ABC):
    """Knowledge base lookups."""

    @abstractmethod
    def create(self, article: Article) -> Article:
        pass

    @abstractmethod
    def search_full_text(
        self, query: str, status: ArticleStatus = ArticleStatus.PUBLISHED, limit: int = 3
    ) -> List[Article]:
        """Articles matching `query`, best text relevance first."""

    @abstractmethod
    def find_by_tags(
        self,
        tags: Sequence[str],
        status: ArticleStatus = ArticleStatus.PUBLISHED,
        limit: int = 3,
    ) -> List[Article]:
        pass

    @abstractmethod
    def find_recent(
        self, status: ArticleStatus = ArticleStatus.PUBLISHED, limit: int = 3
    ) -> List[Article]:
        pass


class SuggestionStore(ABC):
    @abstractmethod
    def create(self, suggestion: Suggestion) -> Suggestion:
        pass

    @abstractmethod
    def update(self, suggestion_id: str, patch: Dict[str, Any]) -> Suggestion:
        pass

    @abstractmethod
    def get(self, suggestion_id: str) -> Optional[Suggestion]:
        pass

    @abstractmethod
    def find_latest_for_ticket(self, ticket_id: str) -> Optional[Suggestion]:
        pass

    @abstractmethod
    def list_all(self) -> List[Suggestion]:
        pass


class AuditStore(ABC):
    """Append-only audit log. Failures surface as AuditWriteError."""

    @abstractmethod
    def append(self, entry: AuditLogEntry) -> None:
        pass

    @abstractmethod
    def find_for_ticket(self, ticket_id: str) -> List[AuditLogEntry]:
        """Entries for one ticket, oldest first."""


class ConfigStore(ABC):
    @abstractmethod
    def get_or_create_default(self) -> TriageConfig:
        """
        Return the stored config, creating the default one when absent.

        Raises ConfigurationError if a stored document cannot be parsed.
        """

    @abstractmethod
    def save(self, config: TriageConfig) -> TriageConfig:
        pass
