"""
Auth controller — login, token refresh, logout & current user.

Login and refresh are PUBLIC (no permission dependency).  The access
token is returned in the body and also set as an HTTP-only cookie, so
browser clients need not manage the header themselves.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.rbac.dependencies import AuthContext, authenticate
from app.schemas import (
    CurrentUserOut,
    LoginRequest,
    MessageResponse,
    RefreshTokenRequest,
    TokenResponse,
)
from app.services import auth_service

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _set_auth_cookie(response: Response, access_token: str) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=access_token,
        httponly=True,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, response: Response, db: AsyncSession = Depends(get_db)):
    """Authenticate with username + password → receive a JWT pair."""
    tokens = await auth_service.authenticate_user(body.username, body.password, db)
    _set_auth_cookie(response, tokens["access_token"])
    return tokens


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    body: RefreshTokenRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """Exchange a valid refresh token for a new access + refresh pair."""
    tokens = await auth_service.refresh_access_token(body.refresh_token, db)
    _set_auth_cookie(response, tokens["access_token"])
    return tokens


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    """Clear the auth cookie.  Tokens are stateless; clients drop their copy."""
    response.delete_cookie(settings.AUTH_COOKIE_NAME)
    return MessageResponse(detail="Logged out successfully")


@router.get("/me", response_model=CurrentUserOut)
async def me(auth: AuthContext = Depends(authenticate)):
    """Profile of the caller, with roles and the ability derived for this request."""
    return auth_service.build_profile(auth.user, auth.ability)
