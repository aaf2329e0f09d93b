# -*- coding: utf-8 -*-
"""
Wiki retrieval through the MediaWiki api.php endpoint.

Features:
- Title enumeration with apcontinue pagination
- Wikitext and category retrieval per page
- Rate limiting between requests
- Retry with exponential backoff (tenacity) on transport errors, 429 and 5xx
- Incremental mode: only new pages and pages edited since the last scrape
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .categories import CategoryAggregator
from .config import settings
from .database import Database, WriteFailure
from .db_models import DocumentCreate
from .pipeline import MarkupNormalizer, markup_normalizer

logger = logging.getLogger(__name__)

# Progress is logged every N pages
PROGRESS_INTERVAL = 50


@dataclass
class RawPage:
    """Unprocessed page as returned by the wiki."""

    title: str
    wikitext: str
    categories: list[str] = field(default_factory=list)
    last_modified: datetime | None = None


@dataclass
class ScrapeSummary:
    """Counters for one scrape run."""

    total: int = 0
    stored: int = 0
    skipped: int = 0
    failed: int = 0
    categories: int = 0
    duration_ms: int = 0


class RetryableError(Exception):
    """Exception that triggers retry."""

    pass


def title_to_url(title: str) -> str:
    """Public page URL for a title (spaces become underscores)."""
    return settings.WIKI_BASE_URL + quote(title.replace(" ", "_"), safe="()!*'")


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a MediaWiki ISO-8601 timestamp such as ``2024-01-31T12:00:00Z``."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable revision timestamp: {value}")
        return None


class WikiScraper:
    """Fetches pages from the wiki and feeds them into the document store."""

    def __init__(
            self,
            db: Database,
            client: httpx.AsyncClient | None = None,
            normalizer: MarkupNormalizer | None = None,
            rate_limit_ms: int | None = None,
    ):
        self.db = db
        self.normalizer = normalizer or markup_normalizer
        self.rate_limit_ms = settings.RATE_LIMIT_MS if rate_limit_ms is None else rate_limit_ms
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=settings.HTTP_TIMEOUT,
            headers={"User-Agent": settings.USER_AGENT, "Accept": "application/json"},
            follow_redirects=True,
        )

    async def close(self):
        """Close the HTTP client if this scraper created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "WikiScraper":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    title_to_url = staticmethod(title_to_url)

    async def _pause(self):
        if self.rate_limit_ms > 0:
            await asyncio.sleep(self.rate_limit_ms / 1000)

    async def _api_request(self, params: dict[str, str]) -> dict[str, Any]:
        """
        GET api.php with retry on transient failures, then pause.

        Raises:
            RetryableError: transient failure that persisted past the last attempt
            httpx.HTTPStatusError: non-retryable HTTP error (4xx other than 429)
        """
        query = {"format": "json", **params}
        attempt = 0

        @retry(
            retry=retry_if_exception_type(RetryableError),
            stop=stop_after_attempt(settings.RETRY_MAX_ATTEMPTS),
            wait=wait_exponential(
                min=settings.RETRY_MIN_WAIT, max=settings.RETRY_MAX_WAIT
            ),
            reraise=True,
        )
        async def _inner():
            nonlocal attempt
            attempt += 1
            try:
                response = await self._client.get(settings.WIKI_API_URL, params=query)
            except httpx.TransportError as e:
                logger.warning(
                    f"Wiki API transport error (attempt {attempt}): {e}",
                    extra={"action": params.get("action")},
                )
                raise RetryableError(str(e)) from e

            if response.status_code == 429 or response.status_code >= 500:
                logger.warning(
                    f"Wiki API returned {response.status_code} (attempt {attempt})",
                    extra={"action": params.get("action")},
                )
                raise RetryableError(f"HTTP {response.status_code}")

            response.raise_for_status()
            return response.json()

        try:
            return await _inner()
        finally:
            await self._pause()

    async def fetch_all_titles(self) -> list[str]:
        """All main-namespace page titles, following apcontinue pagination."""
        titles: list[str] = []
        continue_token: str | None = None

        logger.info("Fetching all page titles")
        while True:
            params = {
                "action": "query",
                "list": "allpages",
                "aplimit": "500",
                "apnamespace": "0",
            }
            if continue_token:
                params["apcontinue"] = continue_token

            data = await self._api_request(params)
            for page in data.get("query", {}).get("allpages", []):
                titles.append(page["title"])

            continue_token = data.get("continue", {}).get("apcontinue")
            logger.debug(f"Fetched {len(titles)} titles so far")
            if not continue_token:
                break

        logger.info(f"Found {len(titles)} pages", extra={"titles": len(titles)})
        return titles

    async def fetch_page(self, title: str) -> RawPage | None:
        """
        Wikitext and categories of one page, following redirects.

        Returns:
            RawPage, or None when the API reports an error, the page has no
            wikitext or the request fails
        """
        try:
            data = await self._api_request(
                {
                    "action": "parse",
                    "page": title,
                    "prop": "wikitext|categories",
                    "redirects": "1",
                }
            )
        except (RetryableError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to fetch page: {e}", extra={"title": title})
            return None

        if "error" in data:
            logger.warning(
                "Wiki API error for page",
                extra={"title": title, "code": data["error"].get("code")},
            )
            return None

        parsed = data.get("parse") or {}
        wikitext = (parsed.get("wikitext") or {}).get("*")
        if not wikitext:
            return None

        categories = [
            category["*"].replace("_", " ")
            for category in parsed.get("categories", [])
            if "*" in category
        ]
        # Hidden maintenance categories start with "__"
        categories = [name for name in categories if not name.startswith("__")]

        return RawPage(title=title, wikitext=wikitext, categories=categories)

    async def fetch_last_modified(self, title: str) -> datetime | None:
        """Timestamp of the page's latest revision, or None if unavailable."""
        try:
            data = await self._api_request(
                {
                    "action": "query",
                    "titles": title,
                    "prop": "revisions",
                    "rvprop": "timestamp",
                    "rvlimit": "1",
                }
            )
        except (RetryableError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to fetch revision: {e}", extra={"title": title})
            return None

        for page in data.get("query", {}).get("pages", {}).values():
            revisions = page.get("revisions") or []
            if revisions:
                return parse_timestamp(revisions[0].get("timestamp"))
        return None

    async def _select_changed(
            self, titles: list[str], remote_modified: dict[str, datetime]
    ) -> list[str]:
        """Keep titles that are not stored yet or were edited after they were stored."""
        selected = []
        for title in titles:
            stored_at = await self.db.scraped_at(title)
            if stored_at is None:
                selected.append(title)
                continue

            modified = await self.fetch_last_modified(title)
            if modified is None:
                continue
            remote_modified[title] = modified
            if modified > stored_at:
                selected.append(title)

        logger.info(
            f"Incremental mode: {len(selected)} of {len(titles)} pages to scrape",
            extra={"selected": len(selected), "listed": len(titles)},
        )
        return selected

    async def _flush(self, batch: list[DocumentCreate], summary: ScrapeSummary):
        try:
            summary.stored += await self.db.upsert_batch(batch)
        except WriteFailure as e:
            summary.failed += len(batch)
            logger.error(f"Batch of {len(batch)} pages not stored: {e}")

    async def run(self, incremental: bool = False) -> ScrapeSummary:
        """
        Scrape the wiki into the document store.

        Pages are normalized, stubs shorter than MIN_CONTENT_LENGTH are
        skipped, the rest are written in batches of SCRAPE_BATCH_SIZE.
        Category counts are refreshed once at the end.

        Args:
            incremental: only scrape new pages and pages edited since stored

        Returns:
            ScrapeSummary with per-run counters
        """
        start_time = time.time()
        summary = ScrapeSummary()

        titles = await self.fetch_all_titles()
        remote_modified: dict[str, datetime] = {}
        if incremental:
            titles = await self._select_changed(titles, remote_modified)
        summary.total = len(titles)

        batch: list[DocumentCreate] = []
        for processed, title in enumerate(titles, start=1):
            page = await self.fetch_page(title)
            if page is None:
                summary.failed += 1
                logger.warning(f"[{processed}/{summary.total}] Failed: {title}")
                continue

            content = self.normalizer.normalize(page.wikitext)
            if len(content) < settings.MIN_CONTENT_LENGTH:
                summary.skipped += 1
                logger.info(f"[{processed}/{summary.total}] Skipped (stub): {title}")
                continue

            last_modified = remote_modified.get(title) or await self.fetch_last_modified(title)
            batch.append(
                DocumentCreate(
                    title=title,
                    content=content,
                    url=self.title_to_url(title),
                    categories=page.categories,
                    last_modified=last_modified,
                )
            )

            if len(batch) >= settings.SCRAPE_BATCH_SIZE:
                await self._flush(batch, summary)
                batch = []

            if processed % PROGRESS_INTERVAL == 0 or processed == summary.total:
                logger.info(
                    f"[{processed}/{summary.total}] Scraped: {title}",
                    extra={"failed": summary.failed},
                )

        if batch:
            await self._flush(batch, summary)

        summary.categories = await CategoryAggregator(self.db).refresh()
        summary.duration_ms = int((time.time() - start_time) * 1000)

        logger.info(
            f"Scrape complete: {summary.stored}/{summary.total} pages stored",
            extra={
                "stored": summary.stored,
                "skipped": summary.skipped,
                "failed": summary.failed,
                "duration_ms": summary.duration_ms,
            },
        )
        return summary
