"""Custom exceptions and helpers for consistent error responses."""

from typing import Any, Dict, Optional

from utils.http import json_response


class AppError(Exception):
    """Base class for application errors."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(AppError):
    """Raised when a requested resource is missing."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class ValidationError(AppError):
    """Raised when input validation fails."""

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, status_code=422)


class ConflictError(AppError):
    """Raised when a conditional update loses a race on the same record."""

    def __init__(self, message: str = "Resource was modified concurrently"):
        super().__init__(message, status_code=409)


class UpstreamError(AppError):
    """A triage stage failed; `stage` names which one."""

    stage = "upstream"

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message, status_code=502)
        if stage:
            self.stage = stage


class ClassificationError(UpstreamError):
    stage = "classification"


class RetrievalError(UpstreamError):
    stage = "retrieval"


class DraftingError(UpstreamError):
    stage = "drafting"


class ConfigurationError(AppError):
    """Stored configuration could not be parsed."""

    def __init__(self, message: str = "Malformed configuration"):
        super().__init__(message, status_code=500)


class AuditWriteError(AppError):
    """Audit append failed. Never surfaced past the audit logger."""

    def __init__(self, message: str = "Audit write failed"):
        super().__init__(message, status_code=500)


def to_response(error: AppError, correlation_id: Optional[str] = None) -> Dict[str, Any]:
    """Convert an AppError into a Lambda proxy integration response."""
    body: Dict[str, Any] = {"message": str(error), "status": "error"}
    if correlation_id:
        body["correlation_id"] = correlation_id
    return json_response(error.status_code, body)
