"""Lightweight health check handler."""

import os
from datetime import datetime, timezone

from utils.http import json_response


def lambda_handler(event, context):
    """Return a simple 200 response to verify the stack is alive."""
    return json_response(
        200,
        {
            "status": "ok",
            "environment": os.environ.get("ENVIRONMENT", "dev"),
            "stub_mode": os.environ.get("STUB_MODE", "true").lower() in ("1", "true", "yes"),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
