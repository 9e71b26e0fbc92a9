"""
API sub-package for render_crawler.

This package contains the FastAPI application and its route definitions.
Nothing is exported at this level; import `api.main` or the routers from
`api.routes` directly.
"""

__all__ = []
