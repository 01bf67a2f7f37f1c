"""
Ticket classification.

The baseline is a deterministic keyword counter. A Bedrock-backed classifier
implements the same contract for deployments that turn STUB_MODE off.
"""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

from models.agent import ClassificationResult
from models.ticket import TicketCategory
from services.bedrock_service import BedrockModelClient
from utils.cache_service import LRUCache
from utils.logging_config import get_logger
from utils.settings import Settings

logger = get_logger(__name__)

# Checked in this order; a later category must beat the current best strictly.
CATEGORY_KEYWORDS: Sequence[Tuple[TicketCategory, Tuple[str, ...]]] = (
    (
        TicketCategory.BILLING,
        ("refund", "invoice", "payment", "billing", "charge", "subscription"),
    ),
    (
        TicketCategory.TECH,
        ("error", "bug", "crash", "login", "password", "not working", "broken"),
    ),
    (
        TicketCategory.SHIPPING,
        ("delivery", "shipment", "shipping", "package", "tracking", "arrived"),
    ),
)

BASE_CONFIDENCE = 0.3
CONFIDENCE_PER_MATCH = 0.2
MAX_CONFIDENCE = 0.95


class Classifier(ABC):
    """Maps ticket text to a category and a confidence in [0, 1]."""

    provider = "stub"
    model_name = "deterministic-v1"

    @abstractmethod
    def classify(self, text: str) -> ClassificationResult:
        pass


class KeywordClassifier(Classifier):
    """Counts keyword hits per category; pure function of the text."""

    def classify(self, text: str) -> ClassificationResult:
        lower_text = text.lower()

        category = TicketCategory.OTHER
        matches = 0
        for candidate, keywords in CATEGORY_KEYWORDS:
            count = sum(1 for keyword in keywords if keyword in lower_text)
            if count > matches:
                category = candidate
                matches = count

        confidence = min(BASE_CONFIDENCE + CONFIDENCE_PER_MATCH * matches, MAX_CONFIDENCE)
        return ClassificationResult(predicted_category=category, confidence=round(confidence, 2))


class BedrockClassifier(Classifier):
    """Bedrock classification with a small result cache."""

    provider = "bedrock"

    def __init__(self, client: Optional[BedrockModelClient] = None) -> None:
        self.client = client or BedrockModelClient()
        self.model_name = self.client.model_id or "unconfigured"
        self.cache = LRUCache(
            max_size=int(os.environ.get("CACHE_MAX_SIZE", "128")),
            ttl_seconds=int(os.environ.get("CACHE_TTL_SECONDS", "300")),
        )

    def classify(self, text: str) -> ClassificationResult:
        if not self.client.configured:
            raise NotImplementedError("LLM classification backend is not configured")

        cached = self.cache.get(text)
        if cached:
            return cached

        raw = self.client.invoke(self._build_prompt(text), max_tokens=120, temperature=0.0)
        result = self._parse_response(raw)
        self.cache.set(text, result)
        return result

    def _build_prompt(self, text: str) -> str:
        """Small prompt to minimize tokens while extracting needed fields."""
        categories = "|".join(c.value for c in TicketCategory)
        return (
            "You are a support triage assistant. "
            f"Return only JSON with fields: category ({categories}), confidence (0-1). "
            f"Ticket: {text}"
        )

    def _parse_response(self, text: str) -> ClassificationResult:
        try:
            parsed = json.loads(text)
            return ClassificationResult(
                predicted_category=parsed["category"], confidence=parsed["confidence"]
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise ValueError("Model returned unparseable classification") from exc


def build_classifier(settings: Settings) -> Classifier:
    """Keyword classifier in stub mode, Bedrock otherwise."""
    if settings.stub_mode:
        return KeywordClassifier()
    logger.info("Using Bedrock classifier", extra={"model_id": settings.model_id})
    return BedrockClassifier(
        BedrockModelClient(model_id=settings.model_id, region=settings.aws_region)
    )
