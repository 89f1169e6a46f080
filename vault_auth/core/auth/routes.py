"""
FastAPI routes for authentication endpoints.
Handles registration, login, token refresh, logout and the current user.
"""

from fastapi import APIRouter, Cookie, Depends, Request, Response, status
from typing import Optional
import logging

from ..config import Settings
from ..errors import NotFoundError
from .guard import require_identity
from .models import Identity, UserCreate, UserLogin
from .service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])

REFRESH_TOKEN_COOKIE = "refreshToken"


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _set_refresh_cookie(response: Response, refresh_token: str, settings: Settings) -> None:
    response.set_cookie(
        key=REFRESH_TOKEN_COOKIE,
        value=refresh_token,
        max_age=settings.refresh_token_ttl_seconds,
        path=settings.refresh_cookie_path,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Register a new user account.

    Raises:
        ConflictError: 409 if email or username is taken
    """
    user = await auth_service.register_user(user_data.email, user_data.username, user_data.password)
    return {
        "status": "success",
        "data": {"user": user.model_dump(by_alias=True, mode="json", exclude={"updated_at"})},
    }


@router.post("/login")
async def login(
    login_data: UserLogin,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """
    Authenticate user. The refresh token is set as an HTTP-only cookie.

    Raises:
        UnauthorizedError: 401 if credentials are invalid
    """
    tokens = await auth_service.login_user(login_data.email, login_data.password)
    _set_refresh_cookie(response, tokens.refresh_token, settings)
    return {"status": "success", "data": {"accessToken": tokens.access_token}}


@router.post("/refresh")
async def refresh_access_token(
    response: Response,
    refresh_token: Optional[str] = Cookie(None, alias=REFRESH_TOKEN_COOKIE),
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """
    Rotate the refresh token cookie and return a new access token.

    Raises:
        UnauthorizedError: 401 if the refresh token is missing, invalid or expired
    """
    tokens = await auth_service.refresh_tokens(refresh_token)
    _set_refresh_cookie(response, tokens.refresh_token, settings)
    return {"status": "success", "data": {"accessToken": tokens.access_token}}


@router.post("/logout")
async def logout(
    response: Response,
    identity: Identity = Depends(require_identity),
    refresh_token: Optional[str] = Cookie(None, alias=REFRESH_TOKEN_COOKIE),
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """
    Revoke the caller's refresh token and clear the cookie.

    Raises:
        UnauthorizedError: 401 without a valid access token
        ForbiddenError: 403 if the refresh token belongs to another user
    """
    await auth_service.logout_user(refresh_token, identity.id)
    response.delete_cookie(
        REFRESH_TOKEN_COOKIE,
        path=settings.refresh_cookie_path,
        secure=settings.is_production,
        httponly=True,
        samesite="lax",
    )
    return {"status": "success", "message": "Logged out successfully"}


@router.get("/me")
async def me(
    identity: Identity = Depends(require_identity),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Return the authenticated user."""
    user = await auth_service.get_user_by_id(identity.id)
    if user is None:
        raise NotFoundError("User not found")
    return {
        "status": "success",
        "data": {"user": user.model_dump(by_alias=True, mode="json", exclude={"updated_at"})},
    }
