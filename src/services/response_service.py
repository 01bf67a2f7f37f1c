"""
Reply drafting.

`TemplateDrafter` renders a fixed reply around the ranked articles and is the
default. `BedrockDrafter` asks a model for the reply text but keeps the same
numbered citations so the two are interchangeable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from models.agent import DraftResult
from models.knowledge import RankedArticle
from services.bedrock_service import BedrockModelClient
from utils.logging_config import get_logger
from utils.settings import Settings

logger = get_logger(__name__)

EXCERPT_LENGTH = 100

GREETING = (
    "Thank you for contacting our support team. Based on your inquiry, "
    "I've found some relevant information that might help:"
)
SIGN_OFF = (
    "If you need further assistance, please don't hesitate to reach out.\n\n"
    "Best regards,\nHelpdesk Assistant"
)


def build_citations(articles: Sequence[RankedArticle]) -> List[str]:
    return [f"[{i}] {ranked.article.title}" for i, ranked in enumerate(articles, start=1)]


class Drafter(ABC):
    """Produces a reply draft with citations for the ranked articles."""

    provider = "stub"
    model_name = "deterministic-v1"
    prompt_version = "1.0"

    @abstractmethod
    def draft(self, text: str, articles: Sequence[RankedArticle]) -> DraftResult:
        pass


class TemplateDrafter(Drafter):
    """Deterministic templated reply; renders with zero articles too."""

    def draft(self, text: str, articles: Sequence[RankedArticle]) -> DraftResult:
        listing = "\n\n".join(
            f"{i}. {ranked.article.title} - {ranked.article.body[:EXCERPT_LENGTH]}..."
            for i, ranked in enumerate(articles, start=1)
        )
        draft_reply = f"{GREETING}\n\n{listing}\n\n{SIGN_OFF}"
        return DraftResult(draft_reply=draft_reply, citations=build_citations(articles))


class BedrockDrafter(Drafter):
    """Model-written reply grounded on the ranked articles."""

    provider = "bedrock"

    def __init__(self, client: Optional[BedrockModelClient] = None) -> None:
        self.client = client or BedrockModelClient()
        self.model_name = self.client.model_id or "unconfigured"

    def draft(self, text: str, articles: Sequence[RankedArticle]) -> DraftResult:
        if not self.client.configured:
            raise NotImplementedError("LLM drafting backend is not configured")

        reply = self.client.invoke(self._build_prompt(text, articles), max_tokens=600, temperature=0.4)
        return DraftResult(draft_reply=reply.strip(), citations=build_citations(articles))

    def _build_prompt(self, text: str, articles: Sequence[RankedArticle]) -> str:
        """Concise prompt listing numbered sources for citation."""
        sources = "\n".join(
            f"[{i}] {ranked.article.title}: {ranked.article.body[:500]}"
            for i, ranked in enumerate(articles, start=1)
        )
        return (
            "You are a concise, empathetic support assistant. "
            "Write one reply to the customer. Cite sources as [n]. "
            "Do not promise anything the sources do not support.\n"
            f"Ticket: {text}\n"
            f"Sources:\n{sources or 'No sources available.'}"
        )


def build_drafter(settings: Settings) -> Drafter:
    if settings.stub_mode:
        return TemplateDrafter()
    logger.info("Using Bedrock drafter", extra={"model_id": settings.model_id})
    return BedrockDrafter(
        BedrockModelClient(model_id=settings.model_id, region=settings.aws_region)
    )
