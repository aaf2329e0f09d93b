# -*- coding: utf-8 -*-
"""
SQLite document store with an FTS5 full-text index.

The index is an external-content FTS5 table kept in sync with ``pages`` by
triggers, so every committed insert, update or delete is reflected in the
index inside the same transaction.

Writes go through one connection guarded by an asyncio lock; reads use a
second connection. With WAL journaling readers only ever see committed
state, never a half-applied batch.
"""
import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncIterator, Iterable, Mapping, Sequence

import aiosqlite
from pydantic import ValidationError

from .config import settings
from .db_models import Document, DocumentBase, DocumentCreate, title_key

logger = logging.getLogger(__name__)

QueryParams = Sequence[Any] | Mapping[str, Any]

# Database schema
SCHEMA = """
-- One row per wiki page; title_key is the case-folded title
CREATE TABLE IF NOT EXISTS pages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    title_key TEXT NOT NULL UNIQUE,
    content TEXT NOT NULL,
    url TEXT NOT NULL,
    categories TEXT NOT NULL DEFAULT '[]',
    last_modified TEXT,
    indexed_at TEXT NOT NULL
);

-- Materialized category counts, rebuilt from pages
CREATE TABLE IF NOT EXISTS categories (
    name TEXT PRIMARY KEY,
    page_count INTEGER NOT NULL DEFAULT 0 CHECK(page_count >= 0)
);
"""

# FTS5 schema for full-text search
FTS_SCHEMA = """
CREATE VIRTUAL TABLE IF NOT EXISTS pages_fts USING fts5(
    title,
    content,
    content='pages',
    content_rowid='id',
    tokenize='unicode61 remove_diacritics 2'
);

-- Triggers to sync FTS with main table
CREATE TRIGGER IF NOT EXISTS pages_ai AFTER INSERT ON pages BEGIN
    INSERT INTO pages_fts(rowid, title, content)
    VALUES (NEW.id, NEW.title, NEW.content);
END;

CREATE TRIGGER IF NOT EXISTS pages_ad AFTER DELETE ON pages BEGIN
    INSERT INTO pages_fts(pages_fts, rowid, title, content)
    VALUES ('delete', OLD.id, OLD.title, OLD.content);
END;

CREATE TRIGGER IF NOT EXISTS pages_au AFTER UPDATE ON pages BEGIN
    INSERT INTO pages_fts(pages_fts, rowid, title, content)
    VALUES ('delete', OLD.id, OLD.title, OLD.content);
    INSERT INTO pages_fts(rowid, title, content)
    VALUES (NEW.id, NEW.title, NEW.content);
END;
"""

# Insert-or-replace keyed on the folded title; the stored title keeps its first casing
UPSERT_SQL = """
    INSERT INTO pages (title, title_key, content, url, categories, last_modified, indexed_at)
    VALUES (:title, :title_key, :content, :url, :categories, :last_modified, :indexed_at)
    ON CONFLICT(title_key) DO UPDATE SET
        content = excluded.content,
        url = excluded.url,
        categories = excluded.categories,
        last_modified = excluded.last_modified,
        indexed_at = excluded.indexed_at
"""


class WriteFailure(Exception):
    """A write could not complete; the transaction was rolled back."""

    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Database:
    """Async document store over SQLite + FTS5."""

    def __init__(self, path: Path | str | None = None):
        self._path = Path(path) if path is not None else settings.DATABASE_PATH
        self._writer: aiosqlite.Connection | None = None
        self._reader: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()
        self._initialized = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_initialized(self) -> bool:
        """Check if database is initialized."""
        return self._initialized

    async def initialize(self) -> None:
        """Open both connections and create the schema if needed."""
        if self._initialized:
            return

        self._path.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Connecting to database: {self._path}")

        # Autocommit mode: transactions are opened explicitly in transaction()
        self._writer = await aiosqlite.connect(self._path, isolation_level=None)
        await self._writer.execute("PRAGMA journal_mode=WAL")
        await self._writer.execute("PRAGMA foreign_keys=ON")

        fts_existed = await self._table_exists("pages_fts")
        await self._writer.executescript(SCHEMA)
        try:
            await self._writer.executescript(FTS_SCHEMA)
        except aiosqlite.OperationalError as e:
            await self._writer.close()
            self._writer = None
            raise RuntimeError(f"SQLite FTS5 support is required: {e}") from e

        self._reader = await aiosqlite.connect(self._path)
        self._reader.row_factory = aiosqlite.Row
        self._initialized = True

        if not fts_existed and await self.count() > 0:
            logger.info("Full-text index created over existing pages, rebuilding")
            await self.rebuild_index()

        logger.info("Database initialized", extra={"path": str(self._path)})

    async def close(self) -> None:
        """Close both connections."""
        for conn in (self._reader, self._writer):
            if conn is not None:
                await conn.close()
        self._reader = None
        self._writer = None
        if self._initialized:
            self._initialized = False
            logger.info("Database connection closed")

    def _require_writer(self) -> aiosqlite.Connection:
        if not self._writer:
            raise RuntimeError("Database not initialized")
        return self._writer

    def _require_reader(self) -> aiosqlite.Connection:
        if not self._reader:
            raise RuntimeError("Database not initialized")
        return self._reader

    async def _table_exists(self, name: str) -> bool:
        async with self._require_writer().execute(
                "SELECT 1 FROM sqlite_master WHERE name = ?", (name,)
        ) as cursor:
            return await cursor.fetchone() is not None

    # ------------------------------------------------------------------
    # Transactions and raw reads
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Run writes as one unit on the writer connection.

        Commits when the block exits normally, rolls back on any exception
        (including cancellation) and re-raises it.
        """
        writer = self._require_writer()
        async with self._write_lock:
            await writer.execute("BEGIN IMMEDIATE")
            try:
                yield writer
            except BaseException:
                await writer.execute("ROLLBACK")
                raise
            await writer.execute("COMMIT")

    async def fetchall(self, query: str, params: QueryParams = ()) -> list[dict[str, Any]]:
        """Run a read query and return every row as a dict."""
        async with self._require_reader().execute(query, params) as cursor:
            rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def fetchone(self, query: str, params: QueryParams = ()) -> dict[str, Any] | None:
        """Run a read query and return the first row as a dict, or None."""
        async with self._require_reader().execute(query, params) as cursor:
            row = await cursor.fetchone()
        return dict(row) if row is not None else None

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def upsert(self, doc: DocumentBase | Mapping[str, Any]) -> None:
        """Insert or fully replace one document (title match ignores case)."""
        await self.upsert_batch([doc])

    async def upsert_batch(self, docs: Iterable[DocumentBase | Mapping[str, Any]]) -> int:
        """
        Insert or replace a sequence of documents atomically.

        Mappings are validated inside the transaction, so one invalid element
        rolls back the whole batch.

        Returns:
            Number of documents written

        Raises:
            WriteFailure: if any element is invalid or SQLite rejects a write
        """
        indexed_at = _utcnow().isoformat()
        written = 0

        try:
            async with self.transaction() as conn:
                for item in docs:
                    doc = item if isinstance(item, DocumentBase) else DocumentCreate.model_validate(item)
                    await conn.execute(UPSERT_SQL, self._document_params(doc, indexed_at))
                    written += 1
        except (ValidationError, aiosqlite.Error) as e:
            logger.error(
                "Batch write rolled back",
                extra={"failed_at": written, "error": str(e)[:200]},
            )
            raise WriteFailure(f"Batch write rolled back at element {written}: {e}") from e

        logger.debug(f"Upserted {written} documents")
        return written

    async def get(self, title: str) -> Document | None:
        """
        Get a document by title, ignoring case.

        Returns:
            Document or None if not found
        """
        row = await self.fetchone("SELECT * FROM pages WHERE title_key = ?", (title_key(title),))
        if row is None:
            return None
        return self._row_to_document(row)

    async def delete(self, title: str) -> bool:
        """
        Delete a document by title, ignoring case.

        Returns:
            True if deleted, False otherwise
        """
        async with self.transaction() as conn:
            cursor = await conn.execute("DELETE FROM pages WHERE title_key = ?", (title_key(title),))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Document deleted", extra={"title": title})
        return deleted

    async def all_titles(self) -> list[str]:
        """All stored titles in plain lexicographic (code point) order."""
        rows = await self.fetchall("SELECT title FROM pages ORDER BY title COLLATE BINARY")
        return [row["title"] for row in rows]

    async def scraped_at(self, title: str) -> datetime | None:
        """When ``title`` was last written, or None if it is not stored."""
        row = await self.fetchone("SELECT indexed_at FROM pages WHERE title_key = ?", (title_key(title),))
        if row is None:
            return None
        return datetime.fromisoformat(row["indexed_at"])

    async def count(self) -> int:
        """Total number of stored documents."""
        row = await self.fetchone("SELECT COUNT(*) AS total FROM pages")
        return row["total"] if row else 0

    async def rebuild_index(self) -> None:
        """Repopulate the full-text index from the pages table."""
        async with self.transaction() as conn:
            await conn.execute("INSERT INTO pages_fts(pages_fts) VALUES ('rebuild')")
        logger.info("Full-text index rebuilt")

    @staticmethod
    def _document_params(doc: DocumentBase, indexed_at: str) -> dict[str, Any]:
        return {
            "title": doc.title,
            "title_key": title_key(doc.title),
            "content": doc.content,
            "url": doc.url,
            "categories": json.dumps(doc.categories, ensure_ascii=False),
            "last_modified": doc.last_modified.isoformat() if doc.last_modified else None,
            "indexed_at": indexed_at,
        }

    @staticmethod
    def decode_categories(raw: str | None) -> list[str]:
        """Deserialize a categories column; malformed values read as no categories."""
        if not raw:
            return []
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Malformed categories column ignored")
            return []
        if not isinstance(value, list):
            return []
        return [str(item) for item in value]

    @classmethod
    def _row_to_document(cls, row: dict[str, Any]) -> Document:
        row["categories"] = cls.decode_categories(row.get("categories"))
        return Document.model_validate(row)
