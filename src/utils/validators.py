"""Lightweight validation helpers for handler payloads."""

from typing import Any

from utils.error_handling import ValidationError


def ensure_present(value: Any, field: str) -> None:
    """Raise ValidationError if value is falsy."""
    if value in (None, "", []):
        raise ValidationError(f"{field} is required")
