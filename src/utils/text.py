"""Small text helpers shared by the triage stages and the article stores."""

from __future__ import annotations

import re
from typing import List, Sequence

from rank_bm25 import BM25L

_TOKEN_RE = re.compile(r"[a-z0-9]+")


def truncate(text: str, limit: int, suffix: str = "...") -> str:
    """Cut text to `limit` characters and append `suffix`."""
    return text[:limit] + suffix


def tokenize(text: str) -> List[str]:
    """Lower-case alphanumeric tokens."""
    return _TOKEN_RE.findall(text.lower())


def rank_documents(query: str, documents: Sequence[str]) -> List[int]:
    """
    BM25 full-text ranking.

    Returns indexes of the documents sharing at least one token with `query`,
    best score first; equal scores keep document order. BM25L keeps every
    term's IDF positive, so single-article and tiny corpora still rank.
    """
    terms = tokenize(query)
    corpus = [tokenize(document) for document in documents]
    if not terms or not any(corpus):
        return []

    scores = BM25L(corpus).get_scores(terms)
    wanted = set(terms)
    hits = [i for i, tokens in enumerate(corpus) if wanted.intersection(tokens)]
    return sorted(hits, key=lambda i: scores[i], reverse=True)


def readability_score(text: str) -> float:
    """Average words per sentence scaled to [0, 1] at 25 words."""
    sentences = len(re.split(r"[.!?]+", text))
    words = len(re.split(r"\s+", text))
    return min(words / sentences / 25, 1.0)
