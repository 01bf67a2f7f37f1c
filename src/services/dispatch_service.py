"""
Work dispatch for triage runs.

Ticket creation hands the ticket id to a `WorkDispatcher` and returns at
once. `QueuedDispatcher` puts it on SQS for the worker Lambda;
`ImmediateDispatcher` runs it as a short-delay APScheduler job when no queue
exists.
Both end in the same `TriageOrchestrator.triage_ticket` call.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional
from uuid import uuid4

import boto3
from apscheduler.schedulers.background import BackgroundScheduler

from utils.background import start_background_scheduler
from utils.logging_config import get_logger
from utils.settings import Settings

logger = get_logger(__name__)


class WorkDispatcher(ABC):
    @abstractmethod
    def dispatch(self, ticket_id: str) -> Optional[str]:
        """Schedule triage for a ticket without waiting for it."""


class QueuedDispatcher(WorkDispatcher):
    """Send triage jobs to SQS; the triage worker handler consumes them."""

    def __init__(self, queue_url: str, client=None) -> None:
        self.queue_url = queue_url
        self.client = client or boto3.client("sqs")

    def dispatch(self, ticket_id: str) -> Optional[str]:
        resp = self.client.send_message(
            QueueUrl=self.queue_url,
            MessageBody=json.dumps({"ticket_id": ticket_id}),
        )
        message_id = resp.get("MessageId")
        logger.info(
            "Triage job enqueued",
            extra={"ticket_id": ticket_id, "message_id": message_id},
        )
        return message_id


class ImmediateDispatcher(WorkDispatcher):
    """Fire-and-forget in-process fallback."""

    def __init__(
        self,
        run: Callable[[str], Any],
        delay_seconds: float = 0.1,
        scheduler: Optional[BackgroundScheduler] = None,
    ) -> None:
        self.run = run
        self.delay_seconds = delay_seconds
        self.scheduler = scheduler or start_background_scheduler()

    def dispatch(self, ticket_id: str) -> Optional[str]:
        job = self.scheduler.add_job(
            self._run_safely,
            "date",
            run_date=datetime.now(timezone.utc) + timedelta(seconds=self.delay_seconds),
            args=[ticket_id],
            id=f"triage-{ticket_id}-{uuid4().hex[:8]}",
        )
        logger.info("Triage scheduled in-process", extra={"ticket_id": ticket_id, "job_id": job.id})
        return job.id

    def _run_safely(self, ticket_id: str) -> None:
        # The run already recorded its failure in the audit trail.
        try:
            self.run(ticket_id)
        except Exception:
            logger.exception("Background triage failed", extra={"ticket_id": ticket_id})

    def shutdown(self, wait: bool = True) -> None:
        """Stop the scheduler; with `wait`, block until running triage jobs finish."""
        self.scheduler.shutdown(wait=wait)


def build_dispatcher(settings: Settings, run: Callable[[str], Any]) -> WorkDispatcher:
    """Chosen once at startup from the available infrastructure."""
    if settings.triage_queue_url:
        return QueuedDispatcher(settings.triage_queue_url)
    logger.info("No triage queue configured; using in-process dispatch")
    return ImmediateDispatcher(run, delay_seconds=settings.immediate_dispatch_delay_seconds)
