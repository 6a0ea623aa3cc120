"""Mini README: FastAPI dependencies shared by the API routers.

Structure:
    * get_db_session - one SQLAlchemy session per request.
    * get_current_user - resolve the session cookie into a ``User`` or fail with 401.
    * get_repository - user-scoped ``FinanceRepository`` for route handlers.

The session factory lives on ``app.state`` so tests can point the application
at an in-memory database by passing their own engine to the factory.
"""

from __future__ import annotations

from typing import Iterator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from ..logging_utils import get_logger
from ..storage import FinanceRepository, User, UserRepository

LOGGER = get_logger(__name__)

SESSION_USER_KEY = "user_id"


def get_db_session(request: Request) -> Iterator[Session]:
    session = request.app.state.session_factory()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_current_user(request: Request, session: Session = Depends(get_db_session)) -> User:
    """Return the logged in user or raise 401."""

    user_id = request.session.get(SESSION_USER_KEY)
    user = UserRepository(session).get(user_id) if user_id else None
    if user is None:
        if user_id:
            LOGGER.warning("Session references unknown user %s; clearing", user_id)
            request.session.clear()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user


def get_repository(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_db_session),
) -> FinanceRepository:
    return FinanceRepository(session, user.id)
