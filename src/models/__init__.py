"""Pydantic models for tickets, knowledge articles, suggestions and audit."""

from models.agent import (  # noqa: F401
    ClassificationResult,
    Complexity,
    DraftResult,
    ExecutionPlan,
    ModelInfo,
    RetrievalResult,
    RetrievalStrategy,
    Suggestion,
)
from models.audit import AuditAction, AuditLogEntry  # noqa: F401
from models.config import TriageConfig  # noqa: F401
from models.knowledge import Article, ArticleStatus, RankedArticle  # noqa: F401
from models.response import ApiResponse  # noqa: F401
from models.ticket import (  # noqa: F401
    Reply,
    ReplyRequest,
    Ticket,
    TicketCategory,
    TicketCreateRequest,
    TicketStatus,
)
