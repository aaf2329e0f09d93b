# -*- coding: utf-8 -*-
"""
FastAPI API for the wiki search service.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .categories import CategoryAggregator
from .config import settings
from .database import Database
from .logging_config import setup_logging
from .middleware import RequestIDMiddleware
from .models import (
    CategoryListResponse,
    CategoryPagesResponse,
    HealthResponse,
    PageNotFoundResponse,
    PageResponse,
    SearchHit,
    SearchResponse,
)
from .search import SearchEngine

# Setup structured logging
setup_logging()
logger = logging.getLogger(__name__)

# Number of titles suggested for an unknown page
SUGGESTION_LIMIT = 3


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    """Application lifecycle management."""
    logger.info("Starting wiki search service", extra={"version": __version__})

    # Startup
    db = Database(settings.DATABASE_PATH)
    await db.initialize()
    fastapi_app.state.db = db
    fastapi_app.state.search_engine = SearchEngine(db)
    fastapi_app.state.categories = CategoryAggregator(db)

    yield

    # Shutdown
    logger.info("Shutting down wiki search service")
    await db.close()


app = FastAPI(
    title="Wiki Search Service",
    description="Full-text search over a scraped MediaWiki wiki (SQLite FTS5)",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.DOCS_ENABLED else None,
    redoc_url="/redoc" if settings.DOCS_ENABLED else None,
    openapi_url="/openapi.json" if settings.DOCS_ENABLED else None,
)

# Middleware stack (order matters: last added = first executed)
app.add_middleware(GZipMiddleware, minimum_size=settings.GZIP_MIN_SIZE)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIDMiddleware)


@app.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Service health endpoint."""
    db: Database | None = getattr(request.app.state, "db", None)
    ready = db is not None and db.is_initialized
    return HealthResponse(
        status="healthy" if ready else "degraded",
        version=__version__,
        database_ready=ready,
        page_count=await db.count() if ready else 0,
    )


@app.get("/search", response_model=SearchResponse)
async def search_pages(
        request: Request,
        query: str = Query(..., min_length=1, description="Free-text search query"),
        limit: int = Query(
            settings.SEARCH_DEFAULT_LIMIT, ge=1, le=settings.SEARCH_MAX_LIMIT
        ),
) -> SearchResponse:
    """
    Ranked full-text search.

    - **query**: words to look for; punctuation is ignored
    - **limit**: maximum number of results
    """
    engine: SearchEngine = request.app.state.search_engine
    results = await engine.search(query, limit)

    logger.info(
        "Search request served",
        extra={"query": query[:80], "results": len(results)},
    )

    return SearchResponse(
        query=query,
        count=len(results),
        results=[
            SearchHit(rank=rank, **result.model_dump())
            for rank, result in enumerate(results, start=1)
        ],
    )


@app.get(
    "/pages/{title:path}",
    response_model=PageResponse,
    responses={404: {"model": PageNotFoundResponse}},
)
async def get_page(request: Request, title: str):
    """Full text of one page, looked up by title ignoring case."""
    db: Database = request.app.state.db
    document = await db.get(title)
    if document is None:
        engine: SearchEngine = request.app.state.search_engine
        suggestions = [hit.title for hit in await engine.search(title, SUGGESTION_LIMIT)]
        logger.info("Page not found", extra={"title": title[:80]})
        return JSONResponse(
            status_code=404,
            content=PageNotFoundResponse(
                detail=f"Page not found: {title}",
                suggestions=suggestions,
            ).model_dump(),
        )

    return PageResponse.model_validate(document.model_dump())


@app.get("/categories", response_model=CategoryListResponse)
async def list_categories(request: Request) -> CategoryListResponse:
    """All categories with their page counts."""
    aggregator: CategoryAggregator = request.app.state.categories
    categories = await aggregator.list_categories()
    return CategoryListResponse(count=len(categories), categories=categories)


@app.get("/categories/{name:path}/pages", response_model=CategoryPagesResponse)
async def category_pages(request: Request, name: str) -> CategoryPagesResponse:
    """
    Titles in one category.

    An unknown or empty category is not an error: ``pages`` is empty and
    ``suggestions`` lists similarly named categories.
    """
    aggregator: CategoryAggregator = request.app.state.categories
    pages = await aggregator.pages_in_category(name)

    suggestions: list[str] = []
    if not pages:
        similar = await aggregator.similar_categories(name)
        suggestions = [category.name for category in similar if category.name != name]

    return CategoryPagesResponse(
        category=name,
        page_count=len(pages),
        pages=pages,
        suggestions=suggestions,
    )
