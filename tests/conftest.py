# -*- coding: utf-8 -*-
"""
Pytest configuration and fixtures.
"""
import asyncio

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from wiki_search.api import app
from wiki_search.categories import CategoryAggregator
from wiki_search.config import settings
from wiki_search.database import Database
from wiki_search.search import SearchEngine

SAMPLE_PAGES = [
    {
        "title": "Fishing",
        "content": "Fishing is an activity where the player catches fish at the lake "
                   "using a fishing rod.",
        "url": "https://sneaky-sasquatch.fandom.com/wiki/Fishing",
        "categories": ["Activities", "Gameplay"],
        "last_modified": "2024-01-15T10:30:00Z",
    },
    {
        "title": "Cooking",
        "content": "Cooking lets the player prepare meals on the campsite stove "
                   "while avoiding the ranger.",
        "url": "https://sneaky-sasquatch.fandom.com/wiki/Cooking",
        "categories": ["Activities", "Food"],
        "last_modified": "2024-02-01T08:00:00Z",
    },
    {
        "title": "Fishing Rod",
        "content": "The rod is a tool sold at the general store. You need it "
                   "before going out on the lake.",
        "url": "https://sneaky-sasquatch.fandom.com/wiki/Fishing_Rod",
        "categories": ["Items", "Tools"],
        "last_modified": None,
    },
    {
        "title": "Racing",
        "content": "Racing is a job where the player drives a race car around "
                   "the track to earn coins.",
        "url": "https://sneaky-sasquatch.fandom.com/wiki/Racing",
        "categories": ["Jobs"],
        "last_modified": None,
    },
    {
        "title": "Ranger",
        "content": "The ranger patrols the campground and chases anyone caught "
                   "stealing picnic baskets.",
        "url": "https://sneaky-sasquatch.fandom.com/wiki/Ranger",
        "categories": ["Characters"],
        "last_modified": None,
    },
]


@pytest.fixture
def sample_pages():
    """Fresh copies of the sample pages."""
    return [dict(page) for page in SAMPLE_PAGES]


@pytest_asyncio.fixture
async def test_db(tmp_path):
    """Create a temporary test database."""
    db = Database(tmp_path / "wiki.db")
    await db.initialize()

    yield db

    # Cleanup
    await db.close()


@pytest_asyncio.fixture
async def seeded_db(test_db, sample_pages):
    """Test database holding the sample pages and their category counts."""
    await test_db.upsert_batch(sample_pages)
    await CategoryAggregator(test_db).refresh()
    return test_db


@pytest.fixture
def search_engine(seeded_db):
    return SearchEngine(seeded_db)


@pytest.fixture
def aggregator(seeded_db):
    return CategoryAggregator(seeded_db)


@pytest.fixture
def no_retry_wait(monkeypatch):
    """Retry immediately instead of backing off."""
    monkeypatch.setattr(settings, "RETRY_MIN_WAIT", 0)
    monkeypatch.setattr(settings, "RETRY_MAX_WAIT", 0)


async def _seed(path):
    db = Database(path)
    await db.initialize()
    try:
        await db.upsert_batch(SAMPLE_PAGES)
        await CategoryAggregator(db).refresh()
    finally:
        await db.close()


@pytest.fixture
def client(tmp_path, monkeypatch):
    """FastAPI test client backed by a seeded temporary database."""
    path = tmp_path / "api.db"
    asyncio.run(_seed(path))

    # Override config
    monkeypatch.setattr(settings, "DATABASE_PATH", path)

    with TestClient(app) as test_client:
        yield test_client
