"""Mini README: Web interface (JSON API and HTML pages) for Fundtracker.

Exports the FastAPI application factory. API routers, auth helpers, request
schemas, and request-scoped dependencies live alongside it in this package.
"""

from .web_app import create_application

__all__ = ["create_application"]
