"""Mini README: Username/password authentication for the web interface.

Structure:
    * hash_password / verify_password - bcrypt helpers.
    * build_auth_router - register, login, logout, and current-user endpoints.

A successful register or login stores the user id in the signed session
cookie managed by Starlette's ``SessionMiddleware``; logout clears it.
"""

from __future__ import annotations

import bcrypt
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from ..logging_utils import get_logger
from ..storage import User, UserRepository
from .dependencies import SESSION_USER_KEY, get_current_user, get_db_session
from .schemas import LoginRequest, RegisterRequest, UserOut

LOGGER = get_logger(__name__)

BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    encoded = password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Passwords are limited to {BCRYPT_MAX_BYTES} bytes")
    return encoded


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
    except ValueError:
        return False


def build_auth_router() -> APIRouter:
    """Create the ``/api/auth`` routes."""

    router = APIRouter(prefix="/api/auth", tags=["auth"])

    @router.post("/register", status_code=status.HTTP_201_CREATED, response_model=UserOut)
    def register(
        payload: RegisterRequest,
        request: Request,
        session: Session = Depends(get_db_session),
    ) -> UserOut:
        """Create an account and log it in immediately."""

        users = UserRepository(session)
        try:
            user = users.create(
                payload.username,
                hash_password(payload.password),
                first_name=payload.first_name,
                last_name=payload.last_name,
            )
        except ValueError as error:
            raise HTTPException(status_code=400, detail=str(error)) from error
        request.session[SESSION_USER_KEY] = user.id
        return UserOut.model_validate(user)

    @router.post("/login", response_model=UserOut)
    def login(
        payload: LoginRequest,
        request: Request,
        session: Session = Depends(get_db_session),
    ) -> UserOut:
        user = UserRepository(session).get_by_username(payload.username)
        if user is None or not verify_password(payload.password, user.password_hash):
            LOGGER.warning("Failed login attempt for %s", payload.username)
            raise HTTPException(status_code=401, detail="Invalid username or password")
        request.session[SESSION_USER_KEY] = user.id
        LOGGER.info("User %s logged in", user.username)
        return UserOut.model_validate(user)

    @router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
    def logout(request: Request) -> Response:
        request.session.clear()
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @router.get("/user", response_model=UserOut)
    def current_user(user: User = Depends(get_current_user)) -> UserOut:
        return UserOut.model_validate(user)

    return router
