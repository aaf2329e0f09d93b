# -*- coding: utf-8 -*-
"""
Wiki Search Service - full-text search over a scraped MediaWiki wiki.
"""
__version__ = "1.0.0"

from .api import app  # noqa: E402
from .database import Database, WriteFailure  # noqa: E402
from .pipeline import MarkupNormalizer, normalize  # noqa: E402
from .search import SearchEngine  # noqa: E402

__all__ = [
    "app",
    "Database",
    "WriteFailure",
    "MarkupNormalizer",
    "normalize",
    "SearchEngine",
    "__version__",
]
