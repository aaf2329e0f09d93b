# -*- coding: utf-8 -*-
"""
Pydantic data models for the API.
"""
from datetime import datetime

from pydantic import BaseModel, Field

from .db_models import Category


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    version: str
    database_ready: bool = False
    page_count: int = 0


class SearchHit(BaseModel):
    """One search result with its 1-based position."""

    rank: int = Field(..., ge=1)
    title: str
    snippet: str
    url: str
    relevance_score: float


class SearchResponse(BaseModel):
    """Search response schema."""

    query: str
    count: int
    results: list[SearchHit] = Field(default_factory=list)


class PageResponse(BaseModel):
    """Full stored page."""

    title: str
    content: str
    url: str
    categories: list[str] = Field(default_factory=list)
    last_modified: datetime | None = None
    indexed_at: datetime


class PageNotFoundResponse(BaseModel):
    """404 body for an unknown page, with title suggestions."""

    detail: str
    suggestions: list[str] = Field(default_factory=list)


class CategoryListResponse(BaseModel):
    """All categories with their page counts."""

    count: int
    categories: list[Category] = Field(default_factory=list)


class CategoryPagesResponse(BaseModel):
    """Pages of one category; suggestions are filled when it has none."""

    category: str
    page_count: int
    pages: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
