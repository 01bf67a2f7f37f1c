"""
Pytest configuration to ensure paths are set up correctly for tests.

This allows imports like `from handlers import health_check` to work
when running tests, simulating the Lambda environment where code
is deployed from the src/ directory.
"""

import os
import sys
from pathlib import Path
from unittest.mock import MagicMock

import boto3
import pytest


def _ensure_paths_on_sys_path() -> None:
    """Add repository root AND src/ to sys.path if missing.

    The src/ directory is added to simulate Lambda's import behavior,
    where Code.from_asset("src") makes src/ the root of the package.
    """
    repo_root = Path(__file__).resolve().parents[1]
    src_root = repo_root / "src"

    # Add repo root first (for imports like infrastructure.*)
    root_str = str(repo_root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)

    # Add src/ for Lambda-style imports (from handlers import ...)
    src_str = str(src_root)
    if src_str not in sys.path:
        sys.path.insert(0, src_str)


_ensure_paths_on_sys_path()

# Ensure boto3 has offline-friendly defaults so tests do not require AWS access.
os.environ.setdefault("AWS_REGION", "eu-west-2")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-2")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")
os.environ.setdefault("AWS_SESSION_TOKEN", "test")
os.environ.setdefault("ENVIRONMENT", "dev")
os.environ.setdefault("BEDROCK_REGION", "eu-west-2")

# Lambda environment: deterministic stages, in-memory stores, in-process dispatch.
os.environ["STUB_MODE"] = "true"
os.environ["STORE_BACKEND"] = "memory"
for _name in ("MODEL_ID", "TRIAGE_QUEUE_URL", "FOLLOW_UP_TARGET_ARN", "FOLLOW_UP_ROLE_ARN"):
    os.environ.pop(_name, None)

# Create a default boto3 session so resources/clients do not error during import.
boto3.setup_default_session(region_name="eu-west-2")

from models.knowledge import Article, ArticleStatus  # noqa: E402
from models.ticket import Ticket  # noqa: E402
from repositories.memory_repo import (  # noqa: E402
    MemoryArticleStore,
    MemoryAuditStore,
    MemoryConfigStore,
    MemorySuggestionStore,
    MemoryTicketStore,
)
from services.audit_service import AuditLogger  # noqa: E402
from services.classification_service import KeywordClassifier  # noqa: E402
from services.decision_service import DecisionService  # noqa: E402
from services.followup_service import FollowUpScheduler  # noqa: E402
from services.orchestration_service import TriageOrchestrator  # noqa: E402
from services.response_service import TemplateDrafter  # noqa: E402
from services.retrieval_service import RetrievalService  # noqa: E402
from services.wiring import Stores, set_app  # noqa: E402


@pytest.fixture(autouse=True)
def reset_app():
    """Handlers share a process-wide app; start each test without one."""
    set_app(None)
    yield
    set_app(None)


@pytest.fixture
def stores():
    return Stores(
        tickets=MemoryTicketStore(),
        articles=MemoryArticleStore(),
        suggestions=MemorySuggestionStore(),
        audit=MemoryAuditStore(),
        config=MemoryConfigStore(),
    )


@pytest.fixture
def audit(stores):
    return AuditLogger(stores.audit)


@pytest.fixture
def follow_ups():
    return MagicMock(spec=FollowUpScheduler)


@pytest.fixture
def make_ticket(stores):
    """Create and persist a ticket."""

    def _make(title="Refund needed", description="Please help", **kwargs):
        kwargs.setdefault("created_by", "user-1")
        return stores.tickets.create(Ticket(title=title, description=description, **kwargs))

    return _make


@pytest.fixture
def publish(stores):
    """Create and persist a published article."""

    def _publish(title, body="Article body.", tags=None, **kwargs):
        kwargs.setdefault("status", ArticleStatus.PUBLISHED)
        return stores.articles.create(Article(title=title, body=body, tags=tags or [], **kwargs))

    return _publish


@pytest.fixture
def make_orchestrator(stores, audit, follow_ups):
    """Build an orchestrator over the memory stores; stages can be swapped."""

    def _make(classifier=None, drafter=None, retriever=None):
        decider = DecisionService(
            tickets=stores.tickets,
            suggestions=stores.suggestions,
            config=stores.config,
            audit=audit,
            follow_ups=follow_ups,
        )
        return TriageOrchestrator(
            tickets=stores.tickets,
            suggestions=stores.suggestions,
            classifier=classifier or KeywordClassifier(),
            retriever=retriever or RetrievalService(stores.articles),
            drafter=drafter or TemplateDrafter(),
            decider=decider,
            audit=audit,
        )

    return _make
