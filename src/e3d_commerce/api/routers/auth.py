"""
e3d_commerce.api.routers.auth

Registration, login and current-user endpoints.

Responsibilities:
- Create customer accounts and mint bearer tokens for them.
- Exchange credentials for a bearer JWT.
- Return the signed-in user's profile.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from e3d_commerce.api import serializers
from e3d_commerce.api.deps import db_session, settings_dep
from e3d_commerce.auth.deps import get_principal
from e3d_commerce.auth.jwt import JwtConfig, issue_token
from e3d_commerce.auth.models import Principal
from e3d_commerce.db.models import User
from e3d_commerce.services.accounts import AccountService, LoginRequest, RegisterRequest
from e3d_commerce.settings import Settings

router = APIRouter(prefix="/v1/auth", tags=["auth"])


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: dict[str, Any]


def _token_for(user: User, settings: Settings) -> TokenResponse:
    ttl = timedelta(minutes=settings.jwt_ttl_minutes)
    token = issue_token(
        cfg=JwtConfig.from_settings(settings),
        subject=str(user.id),
        roles=user.role_names,
        email=user.email,
        ttl=ttl,
    )
    return TokenResponse(
        access_token=token,
        expires_in=int(ttl.total_seconds()),
        user=serializers.user_profile(user),
    )


@router.post("/register", response_model=TokenResponse, status_code=HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> TokenResponse:
    user = await AccountService(session=session).register(body)
    return _token_for(user, settings)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> TokenResponse:
    user = await AccountService(session=session).authenticate(body)
    return _token_for(user, settings)


@router.get("/me")
async def me(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    user = await AccountService(session=session).profile(principal.user_id)
    return serializers.user_profile(user)
