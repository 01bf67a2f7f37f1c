"""
Builds the triage application once per process.

Every capability choice (store backend, stub vs. Bedrock stages, queued vs.
in-process dispatch, durable vs. timer follow-ups) is made here from
`Settings`; nothing downstream inspects the environment.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from repositories.base import (
    ArticleStore,
    AuditStore,
    ConfigStore,
    SuggestionStore,
    TicketStore,
)
from services.audit_service import AuditLogger
from services.classification_service import build_classifier
from services.decision_service import DecisionService
from services.dispatch_service import WorkDispatcher, build_dispatcher
from services.followup_service import (
    FollowUpScheduler,
    SatisfactionChecker,
    build_follow_up_scheduler,
)
from services.orchestration_service import TriageOrchestrator
from services.response_service import build_drafter
from services.retrieval_service import RetrievalService
from services.stats_service import StatsService
from services.ticket_service import TicketService
from utils.error_handling import ConfigurationError
from utils.logging_config import get_logger
from utils.settings import Settings

logger = get_logger(__name__)


@dataclass
class Stores:
    tickets: TicketStore
    articles: ArticleStore
    suggestions: SuggestionStore
    audit: AuditStore
    config: ConfigStore


@dataclass
class TriageApp:
    settings: Settings
    stores: Stores
    audit: AuditLogger
    orchestrator: TriageOrchestrator
    tickets: TicketService
    stats: StatsService
    checker: SatisfactionChecker
    follow_ups: FollowUpScheduler
    dispatcher: WorkDispatcher


def build_stores(settings: Settings) -> Stores:
    if settings.store_backend == "memory":
        from repositories.memory_repo import (
            MemoryArticleStore,
            MemoryAuditStore,
            MemoryConfigStore,
            MemorySuggestionStore,
            MemoryTicketStore,
        )

        return Stores(
            tickets=MemoryTicketStore(),
            articles=MemoryArticleStore(),
            suggestions=MemorySuggestionStore(),
            audit=MemoryAuditStore(),
            config=MemoryConfigStore(),
        )

    if settings.store_backend == "dynamodb":
        from repositories.dynamodb_repo import (
            DynamoArticleStore,
            DynamoAuditStore,
            DynamoConfigStore,
            DynamoSuggestionStore,
            DynamoTicketStore,
        )

        return Stores(
            tickets=DynamoTicketStore(settings.tickets_table),
            articles=DynamoArticleStore(settings.articles_table),
            suggestions=DynamoSuggestionStore(settings.suggestions_table),
            audit=DynamoAuditStore(settings.audit_table),
            config=DynamoConfigStore(settings.config_table),
        )

    raise ConfigurationError(f"Unknown STORE_BACKEND: {settings.store_backend}")


def build_app(settings: Optional[Settings] = None, stores: Optional[Stores] = None) -> TriageApp:
    settings = settings or Settings.from_environment()
    stores = stores or build_stores(settings)

    audit = AuditLogger(stores.audit)
    checker = SatisfactionChecker(stores.tickets, audit)
    follow_ups = build_follow_up_scheduler(settings, checker)
    decider = DecisionService(
        tickets=stores.tickets,
        suggestions=stores.suggestions,
        config=stores.config,
        audit=audit,
        follow_ups=follow_ups,
        follow_up_delay_seconds=settings.follow_up_delay_hours * 3600,
    )
    orchestrator = TriageOrchestrator(
        tickets=stores.tickets,
        suggestions=stores.suggestions,
        classifier=build_classifier(settings),
        retriever=RetrievalService(stores.articles),
        drafter=build_drafter(settings),
        decider=decider,
        audit=audit,
    )
    dispatcher = build_dispatcher(settings, orchestrator.triage_ticket)

    logger.info(
        "Triage app initialised",
        extra={
            "environment": settings.environment,
            "store_backend": settings.store_backend,
            "stub_mode": settings.stub_mode,
            "dispatcher": type(dispatcher).__name__,
            "follow_ups": type(follow_ups).__name__,
        },
    )
    return TriageApp(
        settings=settings,
        stores=stores,
        audit=audit,
        orchestrator=orchestrator,
        tickets=TicketService(stores.tickets, dispatcher, follow_ups),
        stats=StatsService(stores.suggestions),
        checker=checker,
        follow_ups=follow_ups,
        dispatcher=dispatcher,
    )


_app: Optional[TriageApp] = None


def get_app() -> TriageApp:
    """Lazy-load the process-wide app so cold starts pay for it once."""
    global _app
    if _app is None:
        _app = build_app()
    return _app


def set_app(app: Optional[TriageApp]) -> None:
    """Replace (or clear) the process-wide app; tests use this."""
    global _app
    _app = app
