"""Audit trail writer. A failed write is logged and never stops triage."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel

from models.audit import SYSTEM_ACTOR, AuditLogEntry
from repositories.base import AuditStore
from utils.error_handling import AuditWriteError
from utils.logging_config import get_logger

logger = get_logger(__name__)


class AuditLogger:
    def __init__(self, store: AuditStore) -> None:
        self.store = store

    def log(
        self, ticket_id: str, trace_id: str, meta: BaseModel, actor: str = SYSTEM_ACTOR
    ) -> AuditLogEntry:
        """Append one entry built from a metadata variant and return it."""
        entry = AuditLogEntry.record(ticket_id, trace_id, meta, actor=actor)
        try:
            self.store.append(entry)
        except AuditWriteError as exc:
            logger.error(
                "Failed to log action",
                extra={
                    "ticket_id": ticket_id,
                    "trace_id": trace_id,
                    "action": entry.action.value,
                    "error": str(exc),
                },
            )
        return entry

    def trail(self, ticket_id: str) -> List[AuditLogEntry]:
        return self.store.find_for_ticket(ticket_id)
