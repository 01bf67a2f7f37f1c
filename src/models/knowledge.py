"""Knowledge base models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, Field

from models.ticket import new_id, utcnow


class ArticleStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


class Article(BaseModel):
    """A help document usable as a citation source."""

    id: str = Field(default_factory=new_id)
    title: str
    body: str
    tags: List[str] = Field(default_factory=list)
    status: ArticleStatus = ArticleStatus.DRAFT
    created_at: datetime = Field(default_factory=utcnow)


class RankedArticle(BaseModel):
    """Article paired with the retriever's relevance score."""

    article: Article
    relevance_score: float = Field(ge=0, le=1)
