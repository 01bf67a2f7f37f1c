"""
Runtime settings for the triage Lambdas and local workers.

Business configuration (auto-close, threshold, SLA) is NOT here; it lives in
the config store so admins can change it between runs.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


def _flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes")


@dataclass
class Settings:
    """Process-level settings resolved once at startup."""

    environment: str = "dev"
    aws_region: str = "eu-west-2"

    # Deterministic keyword/template stages unless explicitly disabled.
    stub_mode: bool = True
    model_id: Optional[str] = None

    # memory | dynamodb
    store_backend: str = "memory"
    tickets_table: str = "helpdesk-tickets"
    articles_table: str = "helpdesk-articles"
    suggestions_table: str = "helpdesk-suggestions"
    audit_table: str = "helpdesk-audit-log"
    config_table: str = "helpdesk-config"

    # Queued dispatch is used only when a queue is configured.
    triage_queue_url: Optional[str] = None
    immediate_dispatch_delay_seconds: float = 0.1

    follow_up_delay_hours: float = 24.0
    follow_up_target_arn: Optional[str] = None
    follow_up_role_arn: Optional[str] = None
    follow_up_schedule_group: str = "default"

    @classmethod
    def from_environment(cls) -> "Settings":
        """Load settings from environment variables."""
        region = (
            os.environ.get("BEDROCK_REGION")
            or os.environ.get("AWS_REGION")
            or "eu-west-2"
        )
        return cls(
            environment=os.environ.get("ENVIRONMENT", "dev"),
            aws_region=region,
            stub_mode=_flag("STUB_MODE", "true"),
            model_id=os.environ.get("MODEL_ID") or None,
            store_backend=os.environ.get("STORE_BACKEND", "memory").lower(),
            tickets_table=os.environ.get("TICKETS_TABLE", cls.tickets_table),
            articles_table=os.environ.get("ARTICLES_TABLE", cls.articles_table),
            suggestions_table=os.environ.get("SUGGESTIONS_TABLE", cls.suggestions_table),
            audit_table=os.environ.get("AUDIT_TABLE", cls.audit_table),
            config_table=os.environ.get("CONFIG_TABLE", cls.config_table),
            triage_queue_url=os.environ.get("TRIAGE_QUEUE_URL") or None,
            follow_up_delay_hours=float(os.environ.get("FOLLOW_UP_DELAY_HOURS", "24")),
            follow_up_target_arn=os.environ.get("FOLLOW_UP_TARGET_ARN") or None,
            follow_up_role_arn=os.environ.get("FOLLOW_UP_ROLE_ARN") or None,
            follow_up_schedule_group=os.environ.get("FOLLOW_UP_SCHEDULE_GROUP", "default"),
        )
