"""Aggregate statistics over stored suggestions."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, List

from pydantic import BaseModel

from models.agent import Suggestion
from repositories.base import SuggestionStore


class TriageStats(BaseModel):
    total_suggestions: int = 0
    auto_closed_count: int = 0
    average_confidence: float = 0.0
    average_latency_ms: float = 0.0


class CategoryStats(BaseModel):
    category: str
    count: int
    average_confidence: float
    auto_closed_rate: float


class StatsService:
    def __init__(self, suggestions: SuggestionStore) -> None:
        self.suggestions = suggestions

    def triage_stats(self) -> TriageStats:
        items = self.suggestions.list_all()
        if not items:
            return TriageStats()
        latencies = [s.model_info.latency_ms for s in items if s.model_info.latency_ms is not None]
        return TriageStats(
            total_suggestions=len(items),
            auto_closed_count=sum(1 for s in items if s.auto_closed),
            average_confidence=sum(s.confidence for s in items) / len(items),
            average_latency_ms=sum(latencies) / len(latencies) if latencies else 0.0,
        )

    def category_stats(self) -> List[CategoryStats]:
        """Per predicted category, most frequent first."""
        groups: Dict[str, List[Suggestion]] = defaultdict(list)
        for suggestion in self.suggestions.list_all():
            groups[suggestion.predicted_category.value].append(suggestion)

        stats = [
            CategoryStats(
                category=category,
                count=len(items),
                average_confidence=sum(s.confidence for s in items) / len(items),
                auto_closed_rate=sum(1 for s in items if s.auto_closed) / len(items),
            )
            for category, items in groups.items()
        ]
        stats.sort(key=lambda s: s.count, reverse=True)
        return stats
