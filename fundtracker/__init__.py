"""Mini README: Core package initializer for Fundtracker.

Fundtracker records sponsors, receipts, costs, and funds, distributes incoming
money across funds by percentage, and reports on where money came from and
went. The package is split into ``finance`` (pure arithmetic), ``storage``
(SQLAlchemy persistence), ``interface`` (FastAPI app), and ``client`` (a cached
HTTP client for the API). Only the logger factory is re-exported here so that
importing the package stays cheap.
"""

from .logging_utils import get_logger

__all__ = ["get_logger"]
