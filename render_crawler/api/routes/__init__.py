"""
API Routes sub-package for render_crawler.

The extraction router from `crawler_routes.py` is re-exported here for
inclusion in the main FastAPI application setup (`api/main.py`).
"""

from .crawler_routes import router as crawler_router

__all__ = [
    "crawler_router",
]
