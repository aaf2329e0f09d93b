# -*- coding: utf-8 -*-
"""
Entry point to run the service via python -m wiki_search.
"""
import uvicorn

from wiki_search.config import settings


def main():
    """Start the Uvicorn server."""
    uvicorn.run(
        "wiki_search.api:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=False,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
