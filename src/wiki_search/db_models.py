# -*- coding: utf-8 -*-
"""
Pydantic models for stored documents, categories and search results.
"""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


def title_key(title: str) -> str:
    """Lookup key for a title: trimmed and Unicode case-folded."""
    return title.strip().casefold()


class DocumentBase(BaseModel):
    """Fields supplied by the ingestion side for one wiki page."""

    title: str = Field(min_length=1)
    content: str
    url: str = ""
    categories: list[str] = Field(default_factory=list)
    last_modified: datetime | None = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("categories")
    @classmethod
    def dedupe_categories(cls, value: list[str]) -> list[str]:
        """Categories behave as a set; keep the first occurrence of each name."""
        return list(dict.fromkeys(value))


class DocumentCreate(DocumentBase):
    """Model for inserting or replacing a document."""

    pass


class Document(DocumentBase):
    """Stored document with its write timestamp."""

    indexed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Category(BaseModel):
    """Category with the number of documents that list it."""

    name: str
    page_count: int = Field(ge=0)

    model_config = ConfigDict(from_attributes=True)


class SearchResult(BaseModel):
    """One ranked search hit."""

    title: str
    snippet: str
    url: str
    relevance_score: float
