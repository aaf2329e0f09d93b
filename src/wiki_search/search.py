# -*- coding: utf-8 -*-
"""
Ranked full-text search over the FTS5 index.

User input never reaches FTS5 query syntax directly: the query is reduced
to plain word tokens, each token is quoted, and tokens are combined with
AND (or OR) before matching.
"""
import logging
import re

from .config import settings
from .database import Database
from .db_models import SearchResult

logger = logging.getLogger(__name__)

# Anything that is not a word character, whitespace or hyphen
_UNSAFE_CHARS = re.compile(r"[^\w\s-]")
_WORD_CHAR = re.compile(r"\w")

SEARCH_SQL = """
    SELECT
        p.title AS title,
        p.url AS url,
        snippet(pages_fts, 1, :open, :close, :ellipsis, :tokens) AS snippet,
        bm25(pages_fts, :title_weight, :body_weight) AS score
    FROM pages_fts
    JOIN pages p ON p.id = pages_fts.rowid
    WHERE pages_fts MATCH :expression
    ORDER BY score, p.title COLLATE BINARY
    LIMIT :limit
"""


def sanitize_query(query: str | None) -> list[str]:
    """
    Reduce free text to search tokens.

    Punctuation and FTS5 operators become spaces; tokens made only of
    hyphens are dropped.
    """
    if not query:
        return []
    cleaned = _UNSAFE_CHARS.sub(" ", query)
    return [token for token in cleaned.split() if _WORD_CHAR.search(token)]


def build_match_expression(tokens: list[str], match_all: bool = True) -> str:
    """Quote every token and join them into an FTS5 MATCH expression."""
    operator = " AND " if match_all else " OR "
    return operator.join(f'"{token}"' for token in tokens)


class SearchEngine:
    """Query side of the document store."""

    def __init__(self, db: Database):
        self.db = db

    async def search(self, query: str | None, limit: int | None = None) -> list[SearchResult]:
        """
        Search documents, best match first.

        Title matches are weighted above body matches through bm25 column
        weights. ``relevance_score`` is the negated bm25 value, so higher is
        better.

        Returns:
            At most ``limit`` results; empty for blank queries or limit < 1
        """
        if limit is None:
            limit = settings.SEARCH_DEFAULT_LIMIT
        tokens = sanitize_query(query)
        if not tokens or limit < 1:
            return []

        expression = build_match_expression(tokens, settings.SEARCH_MATCH_ALL)
        rows = await self.db.fetchall(
            SEARCH_SQL,
            {
                "open": settings.SEARCH_HIGHLIGHT_OPEN,
                "close": settings.SEARCH_HIGHLIGHT_CLOSE,
                "ellipsis": settings.SEARCH_ELLIPSIS,
                "tokens": settings.SEARCH_SNIPPET_TOKENS,
                "title_weight": settings.SEARCH_TITLE_WEIGHT,
                "body_weight": settings.SEARCH_BODY_WEIGHT,
                "expression": expression,
                "limit": limit,
            },
        )

        logger.debug(
            "Search executed",
            extra={"expression": expression, "results": len(rows)},
        )

        return [
            SearchResult(
                title=row["title"],
                snippet=row["snippet"] or "",
                url=row["url"],
                relevance_score=round(-row["score"], settings.SEARCH_SCORE_PRECISION),
            )
            for row in rows
        ]
