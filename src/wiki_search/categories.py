# -*- coding: utf-8 -*-
"""
Category aggregation over stored documents.

The ``categories`` table is a materialized view of the per-document
category lists. It is rebuilt wholesale by ``refresh()`` after ingestion.
"""
import json
import logging
from collections import Counter

from .database import Database
from .db_models import Category

logger = logging.getLogger(__name__)


class CategoryAggregator:
    """Maintains and queries per-category page counts."""

    def __init__(self, db: Database):
        self.db = db

    async def refresh(self) -> int:
        """
        Recompute every category count from the documents.

        Runs as one transaction, so readers see either the old or the new
        counts. Rows whose categories column is not a JSON list are skipped.

        Returns:
            Number of categories written
        """
        counts: Counter[str] = Counter()
        skipped = 0

        async with self.db.transaction() as conn:
            await conn.execute("DELETE FROM categories")

            async with conn.execute("SELECT title, categories FROM pages") as cursor:
                rows = await cursor.fetchall()

            for title, raw in rows:
                try:
                    names = json.loads(raw) if raw else []
                except json.JSONDecodeError:
                    names = None
                if not isinstance(names, list):
                    skipped += 1
                    logger.warning(
                        "Skipping malformed categories",
                        extra={"title": title},
                    )
                    continue
                counts.update(set(str(name) for name in names))

            await conn.executemany(
                "INSERT INTO categories (name, page_count) VALUES (?, ?)",
                [(name, count) for name, count in counts.items() if count > 0],
            )

        logger.info(
            f"Categories refreshed: {len(counts)} categories",
            extra={"categories": len(counts), "skipped_pages": skipped},
        )
        return len(counts)

    async def list_categories(self) -> list[Category]:
        """All categories with their page counts, sorted by name."""
        rows = await self.db.fetchall(
            "SELECT name, page_count FROM categories ORDER BY name COLLATE BINARY"
        )
        return [Category.model_validate(row) for row in rows]

    async def pages_in_category(self, name: str) -> list[str]:
        """
        Titles of the documents that list ``name`` as a category.

        Membership is an exact match on a list element, never a substring
        of the serialized list.
        """
        rows = await self.db.fetchall(
            """
            SELECT title FROM pages
            WHERE EXISTS (
                SELECT 1 FROM json_each(
                    CASE WHEN json_valid(pages.categories) THEN pages.categories ELSE '[]' END
                )
                WHERE value = ?
            )
            ORDER BY title COLLATE BINARY
            """,
            (name,),
        )
        return [row["title"] for row in rows]

    async def similar_categories(self, name: str, limit: int = 5) -> list[Category]:
        """Categories whose name contains ``name``, ignoring case, largest first."""
        needle = name.strip()
        if not needle or limit < 1:
            return []
        rows = await self.db.fetchall(
            """
            SELECT name, page_count FROM categories
            WHERE instr(lower(name), lower(?)) > 0
            ORDER BY page_count DESC, name COLLATE BINARY
            LIMIT ?
            """,
            (needle, limit),
        )
        return [Category.model_validate(row) for row in rows]
