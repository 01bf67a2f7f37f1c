"""
Satisfaction follow-ups after an auto-close.

Two schedulers share one interface:
- `TimerFollowUpScheduler` keeps cancellable APScheduler date jobs in-process
  (local runs);
- `EventBridgeFollowUpScheduler` creates a one-shot EventBridge Scheduler
  schedule that invokes the satisfaction-check Lambda, so pending follow-ups
  survive restarts.
The check itself is idempotent: a ticket that is gone or no longer resolved
produces no audit entry.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional
from uuid import uuid4

import boto3
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler

from models.audit import SatisfactionCheckFailedMeta, SatisfactionCheckMeta
from models.ticket import TicketStatus
from repositories.base import TicketStore
from services.audit_service import AuditLogger
from utils.background import start_background_scheduler
from utils.logging_config import get_logger
from utils.settings import Settings

logger = get_logger(__name__)

SCHEDULE_PREFIX = "satisfaction"


class SatisfactionChecker:
    """Emits SATISFACTION_CHECK for tickets still resolved when the check fires."""

    def __init__(self, tickets: TicketStore, audit: AuditLogger) -> None:
        self.tickets = tickets
        self.audit = audit

    def check(self, ticket_id: str) -> bool:
        """Return True when a check entry was recorded."""
        trace_id = uuid4().hex
        try:
            ticket = self.tickets.get(ticket_id)
            if ticket is None or ticket.status != TicketStatus.RESOLVED:
                logger.info("Satisfaction check skipped", extra={"ticket_id": ticket_id})
                return False

            hours_open = round(
                (datetime.now(timezone.utc) - ticket.created_at).total_seconds() / 3600
            )
            self.audit.log(
                ticket_id,
                trace_id,
                SatisfactionCheckMeta(ticket_status=ticket.status.value, hours_open=hours_open),
            )
            logger.info("Satisfaction survey sent", extra={"ticket_id": ticket_id})
            return True
        except Exception as exc:
            logger.exception("Satisfaction check failed", extra={"ticket_id": ticket_id})
            self.audit.log(ticket_id, trace_id, SatisfactionCheckFailedMeta(error=str(exc)[:500]))
            return False


class FollowUpScheduler(ABC):
    @abstractmethod
    def schedule(self, ticket_id: str, delay_seconds: float) -> str:
        """Arrange a satisfaction check; returns a handle name."""

    @abstractmethod
    def cancel_for_ticket(self, ticket_id: str) -> int:
        """Cancel pending checks for a ticket; returns how many were cancelled."""


class TimerFollowUpScheduler(FollowUpScheduler):
    """In-process date jobs. Lost on restart; use the EventBridge variant when deployed."""

    def __init__(
        self, on_due: Callable[[str], Any], scheduler: Optional[BackgroundScheduler] = None
    ) -> None:
        self.on_due = on_due
        self.scheduler = scheduler or start_background_scheduler()

    def schedule(self, ticket_id: str, delay_seconds: float) -> str:
        run_date = datetime.now(timezone.utc) + timedelta(seconds=delay_seconds)
        job = self.scheduler.add_job(
            self.on_due,
            "date",
            run_date=run_date,
            args=[ticket_id],
            id=f"{SCHEDULE_PREFIX}-{ticket_id}-{uuid4().hex[:8]}",
        )
        logger.info(
            "Follow-up scheduled",
            extra={"ticket_id": ticket_id, "job_id": job.id, "fire_at": run_date.isoformat()},
        )
        return job.id

    def cancel_for_ticket(self, ticket_id: str) -> int:
        cancelled = 0
        for job_id in self.pending(ticket_id):
            try:
                self.scheduler.remove_job(job_id)
            except JobLookupError:
                # Fired between listing and removal.
                continue
            cancelled += 1
        return cancelled

    def pending(self, ticket_id: str) -> List[str]:
        prefix = f"{SCHEDULE_PREFIX}-{ticket_id}-"
        return [job.id for job in self.scheduler.get_jobs() if job.id.startswith(prefix)]


class EventBridgeFollowUpScheduler(FollowUpScheduler):
    """One-shot `at()` schedules that delete themselves after firing."""

    def __init__(
        self,
        target_arn: str,
        role_arn: str,
        group_name: str = "default",
        client=None,
    ) -> None:
        self.target_arn = target_arn
        self.role_arn = role_arn
        self.group_name = group_name
        self.client = client or boto3.client("scheduler")

    def schedule(self, ticket_id: str, delay_seconds: float) -> str:
        name = f"{SCHEDULE_PREFIX}-{ticket_id}-{uuid4().hex[:8]}"
        fire_at = datetime.now(timezone.utc) + timedelta(seconds=delay_seconds)
        self.client.create_schedule(
            Name=name,
            GroupName=self.group_name,
            ScheduleExpression=f"at({fire_at:%Y-%m-%dT%H:%M:%S})",
            ScheduleExpressionTimezone="UTC",
            FlexibleTimeWindow={"Mode": "OFF"},
            ActionAfterCompletion="DELETE",
            Target={
                "Arn": self.target_arn,
                "RoleArn": self.role_arn,
                "Input": json.dumps({"ticket_id": ticket_id}),
            },
        )
        logger.info(
            "Follow-up schedule created",
            extra={"ticket_id": ticket_id, "schedule": name, "fire_at": fire_at.isoformat()},
        )
        return name

    def cancel_for_ticket(self, ticket_id: str) -> int:
        prefix = f"{SCHEDULE_PREFIX}-{ticket_id}-"
        paginator = self.client.get_paginator("list_schedules")
        cancelled = 0
        for page in paginator.paginate(GroupName=self.group_name, NamePrefix=prefix):
            for schedule in page.get("Schedules", []):
                self.client.delete_schedule(Name=schedule["Name"], GroupName=self.group_name)
                cancelled += 1
        return cancelled


def build_follow_up_scheduler(
    settings: Settings, checker: SatisfactionChecker
) -> FollowUpScheduler:
    """Durable schedules when a target Lambda is configured, timers otherwise."""
    if settings.follow_up_target_arn and settings.follow_up_role_arn:
        return EventBridgeFollowUpScheduler(
            target_arn=settings.follow_up_target_arn,
            role_arn=settings.follow_up_role_arn,
            group_name=settings.follow_up_schedule_group,
        )
    return TimerFollowUpScheduler(on_due=checker.check)

