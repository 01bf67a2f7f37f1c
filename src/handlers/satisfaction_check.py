"""EventBridge Scheduler target: runs the satisfaction check for one ticket."""

from __future__ import annotations

from typing import Dict

from utils.logging_config import get_logger

logger = get_logger(__name__)


def _get_checker():
    from services.wiring import get_app

    return get_app().checker


def lambda_handler(event, context) -> Dict:
    ticket_id = (event or {}).get("ticket_id")
    if not ticket_id:
        logger.error("Satisfaction check invoked without ticket_id")
        return {"checked": False}
    return {"ticket_id": ticket_id, "checked": _get_checker().check(ticket_id)}
