"""
e3d_commerce.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Convert a bearer token into a typed `Principal`.
- Enforce RBAC via reusable dependency factories.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from e3d_commerce.api.deps import settings_dep
from e3d_commerce.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate
from e3d_commerce.auth.models import Principal
from e3d_commerce.settings import Settings

_bearer = HTTPBearer(auto_error=False)


def get_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(settings_dep),
) -> Principal:
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    try:
        payload = decode_and_validate(cfg=JwtConfig.from_settings(settings), token=creds.credentials)
    except JwtValidationError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}") from e

    subject = str(payload.get("sub", ""))
    roles_raw = payload.get("roles", [])
    try:
        uuid.UUID(subject)
    except ValueError:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token subject") from None
    if not isinstance(roles_raw, list):
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token roles")

    principal = Principal(
        subject=subject,
        roles=frozenset(str(r) for r in roles_raw),
        email=payload.get("email"),
    )
    structlog.contextvars.bind_contextvars(user_id=principal.subject)
    return principal


def require_roles(*required: str):
    required_set = frozenset(required)

    def _dep(principal: Principal = Depends(get_principal)) -> Principal:
        # Admin is allowed to bypass role checks.
        if principal.is_admin:
            return principal
        if not required_set.issubset(principal.roles):
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Insufficient role")
        return principal

    return _dep


require_admin = require_roles("admin")


# --- Module Notes -----------------------------------------------------------
# Public catalogue endpoints take no auth dependency; cart/checkout/orders depend on
# `get_principal`; catalogue writes and dashboards depend on `require_admin`.
