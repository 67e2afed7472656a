"""Keyword relevance scoring for knowledge base documents."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

PHRASE_MATCH_SCORE = 100
TOKEN_MATCH_SCORE = 10
TAG_MATCH_SCORE = 15
DEFAULT_MIN_TOKEN_LENGTH = 3
DEFAULT_LIMIT = 10


def score_document(
    document: Mapping[str, Any],
    query: str,
    *,
    min_token_length: int = DEFAULT_MIN_TOKEN_LENGTH,
) -> int:
    """Score how well ``document`` answers ``query``.

    The whole lower-cased query found in the content earns 100 points; each
    whitespace token longer than ``min_token_length`` characters found in the
    content earns 10, counted once per occurrence in the query; each document
    tag found in the query earns 15. An empty tag is found in every query.
    """

    query_lower = (query or "").lower()
    content_lower = str(document.get("content") or "").lower()
    score = 0
    if query_lower and query_lower in content_lower:
        score += PHRASE_MATCH_SCORE
    for token in query_lower.split():
        if len(token) > min_token_length and token in content_lower:
            score += TOKEN_MATCH_SCORE
    for tag in document.get("tags") or []:
        tag_lower = str(tag).lower()
        if tag_lower in query_lower:
            score += TAG_MATCH_SCORE
    return score


def rank_documents(
    documents: Iterable[Mapping[str, Any]],
    query: str,
    *,
    limit: int = DEFAULT_LIMIT,
    min_token_length: int = DEFAULT_MIN_TOKEN_LENGTH,
) -> List[Dict[str, Any]]:
    """Return the top ``limit`` documents with a positive score.

    Results are copies of the inputs carrying ``relevance_score``, ordered by
    score descending; equal scores keep input order.
    """

    scored: List[Dict[str, Any]] = []
    for document in documents:
        score = score_document(document, query, min_token_length=min_token_length)
        if score > 0:
            scored.append({**document, "relevance_score": score})
    scored.sort(key=lambda item: item["relevance_score"], reverse=True)
    return scored[: max(limit, 0)]


__all__ = [
    "PHRASE_MATCH_SCORE",
    "TAG_MATCH_SCORE",
    "TOKEN_MATCH_SCORE",
    "rank_documents",
    "score_document",
]
