"""
Knowledge base retrieval.

Candidates come from the first strategy that yields anything:
full-text search, then category/general tags, then the newest articles.
Every candidate is then re-scored against the ticket and re-ordered.
"""

from __future__ import annotations

from typing import Callable, List, Sequence, Tuple

from models.agent import ClassificationResult, RetrievalResult, RetrievalStrategy
from models.knowledge import Article, ArticleStatus, RankedArticle
from models.ticket import Ticket
from repositories.base import ArticleStore
from utils.logging_config import get_logger

logger = get_logger(__name__)

MAX_ARTICLES = 3
GENERAL_TAG = "general"

TAG_MATCH_WEIGHT = 0.3
TITLE_WORD_WEIGHT = 0.2
CATEGORY_TAG_BONUS = 0.5
MIN_TITLE_WORD_LENGTH = 3


class RetrievalService:
    """Select and rank up to three published articles for a ticket."""

    def __init__(self, articles: ArticleStore, limit: int = MAX_ARTICLES) -> None:
        self.articles = articles
        self.limit = limit

    def retrieve(self, ticket: Ticket, classification: ClassificationResult) -> RetrievalResult:
        category = classification.predicted_category.value
        strategies: Sequence[Tuple[RetrievalStrategy, Callable[[], List[Article]]]] = (
            (
                RetrievalStrategy.TEXT_SEARCH,
                lambda: self.articles.search_full_text(
                    ticket.search_text, ArticleStatus.PUBLISHED, self.limit
                ),
            ),
            (
                RetrievalStrategy.CATEGORY_FALLBACK,
                lambda: self.articles.find_by_tags(
                    [category, GENERAL_TAG], ArticleStatus.PUBLISHED, self.limit
                ),
            ),
            (
                RetrievalStrategy.RECENT_FALLBACK,
                lambda: self.articles.find_recent(ArticleStatus.PUBLISHED, self.limit),
            ),
        )

        for strategy, fetch in strategies:
            candidates = fetch()[: self.limit]
            if candidates:
                logger.info(
                    "KB candidates selected",
                    extra={"ticket_id": ticket.id, "strategy": strategy.value},
                )
                return RetrievalResult(
                    articles=score_articles(candidates, ticket, classification),
                    strategy=strategy,
                )

        return RetrievalResult(articles=[], strategy=RetrievalStrategy.NONE)


def score_articles(
    articles: Sequence[Article], ticket: Ticket, classification: ClassificationResult
) -> List[RankedArticle]:
    """Score each article against the ticket; best first, ties keep input order."""
    category = classification.predicted_category.value
    title = ticket.title.lower()
    description = ticket.description.lower()
    ticket_words = ticket.search_text.lower().split()

    ranked: List[RankedArticle] = []
    for article in articles:
        score = 0.0

        matching_tags = [
            tag for tag in article.tags if tag in description or tag in title or tag == category
        ]
        score += TAG_MATCH_WEIGHT * len(matching_tags)

        title_matches = [
            word
            for word in article.title.lower().split()
            if len(word) > MIN_TITLE_WORD_LENGTH and word in ticket_words
        ]
        score += TITLE_WORD_WEIGHT * len(title_matches)

        if category in article.tags:
            score += CATEGORY_TAG_BONUS

        ranked.append(RankedArticle(article=article, relevance_score=min(score, 1.0)))

    ranked.sort(key=lambda r: r.relevance_score, reverse=True)
    return ranked
