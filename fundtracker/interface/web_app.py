"""Mini README: FastAPI application factory for Fundtracker.

Structure:
    * create_application - builds the app, database wiring, middleware, routes.
    * Error handlers - uniform ``{"message": ...}`` bodies for every failure.
    * HTML pages - dashboard, reports, and login rendered with Jinja2.

The JSON API lives in ``api.py`` and ``auth.py``; this module only assembles
them. Browser pages share the signed session cookie with the API, so the
dashboard's scripts call the same endpoints as any other client.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from sqlalchemy.engine import Engine
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from ..configuration import FundtrackerSettings, get_settings
from ..finance import DateRange
from ..logging_utils import configure_root_logger, get_logger
from ..storage import FinanceRepository, UserRepository, build_engine, build_session_factory, init_db
from .api import build_api_router
from .auth import build_auth_router
from .dependencies import SESSION_USER_KEY

LOGGER = get_logger(__name__)

REPORT_KINDS = {
    "expenses": "Expenses by category",
    "sponsors": "Receipts by sponsor",
    "fund-balance": "Fund balances",
}


def create_application(
    settings: Optional[FundtrackerSettings] = None,
    engine: Optional[Engine] = None,
) -> FastAPI:
    """Create the FastAPI application with routes and dependencies."""

    settings = settings or get_settings()
    configure_root_logger(settings.log_level)
    engine = engine or build_engine(settings.database_url)
    init_db(engine)

    app = FastAPI(title="Fundtracker", version="1.0.0")
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie="fundtracker_session",
        max_age=settings.session_max_age,
        same_site="lax",
        https_only=settings.is_production,
    )

    templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
    static_directory = Path(__file__).parent / "static"
    app.mount("/static", StaticFiles(directory=str(static_directory)), name="static")

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, error: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            {"message": error.detail},
            status_code=error.status_code,
            headers=getattr(error, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, error: RequestValidationError) -> JSONResponse:
        LOGGER.warning("Validation error on %s %s", request.method, request.url.path)
        return JSONResponse(
            {"message": "Validation error", "errors": jsonable_encoder(error.errors())},
            status_code=400,
        )

    app.include_router(build_auth_router())
    app.include_router(build_api_router(settings))

    def _page_repository(request: Request, session) -> Optional[FinanceRepository]:
        user_id = request.session.get(SESSION_USER_KEY)
        if not user_id or UserRepository(session).get(user_id) is None:
            return None
        return FinanceRepository(session, user_id)

    @app.get("/login", response_class=HTMLResponse)
    async def login_page(request: Request) -> Response:
        """Render the login/registration form."""

        return templates.TemplateResponse(request, "login.html", {"title": "Sign in"})

    @app.get("/", response_class=HTMLResponse)
    def dashboard(request: Request) -> Response:
        """Render the dashboard with stats, fund balances, and recent activity."""

        session = app.state.session_factory()
        try:
            repo = _page_repository(request, session)
            if repo is None:
                return RedirectResponse("/login", status_code=303)
            stats = repo.dashboard_stats()
            activity = repo.recent_activity(settings.activity_limit)
            LOGGER.debug(
                "Dashboard -> receipts: %.2f costs: %.2f unallocated: %.2f",
                stats["total_receipts"],
                stats["total_costs"],
                stats["unallocated_amount"],
            )
            return templates.TemplateResponse(
                request,
                "dashboard.html",
                {
                    "title": "Dashboard",
                    "stats": stats,
                    "funds": repo.funds_with_balances(),
                    "recent_receipts": activity["recent_receipts"],
                    "recent_costs": activity["recent_costs"],
                    "can_distribute": stats["unallocated_amount"] > 0,
                },
            )
        finally:
            session.close()

    @app.get("/reports", response_class=HTMLResponse)
    def reports_page(
        request: Request,
        kind: str = "expenses",
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Response:
        """Render a report for the selected kind and period."""

        if kind not in REPORT_KINDS:
            raise HTTPException(status_code=404, detail=f"Unknown report '{kind}'")
        session = app.state.session_factory()
        try:
            repo = _page_repository(request, session)
            if repo is None:
                return RedirectResponse("/login", status_code=303)
            report = None
            error = None
            if date_from and date_to:
                try:
                    period = DateRange(date_from, date_to)
                except ValueError as exc:
                    error = str(exc)
                else:
                    builders = {
                        "expenses": repo.expense_report,
                        "sponsors": repo.sponsor_report,
                        "fund-balance": repo.fund_balance_report,
                    }
                    report = builders[kind](period)
            return templates.TemplateResponse(
                request,
                "reports.html",
                {
                    "title": "Reports",
                    "kinds": REPORT_KINDS,
                    "kind": kind,
                    "date_from": date_from,
                    "date_to": date_to,
                    "report": report,
                    "error": error,
                },
            )
        finally:
            session.close()

    LOGGER.info("Fundtracker application created (%s)", settings.environment)
    return app
