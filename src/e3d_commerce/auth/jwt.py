"""
e3d_commerce.auth.jwt

JWT issuing and validation helpers.

Responsibilities:
- Issue access tokens for logged-in shoppers and admins.
- Decode and validate JWTs with strict claim requirements (iss/aud/exp/iat/sub).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import InvalidTokenError

from e3d_commerce.settings import Settings


@dataclass(frozen=True, slots=True)
class JwtConfig:
    alg: str
    issuer: str
    audience: str
    secret: str

    @classmethod
    def from_settings(cls, settings: Settings) -> JwtConfig:
        return cls(
            alg=settings.jwt_alg,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            secret=settings.jwt_secret,
        )


class JwtValidationError(Exception):
    pass


def issue_token(
    *,
    cfg: JwtConfig,
    subject: str,
    roles: list[str],
    email: str | None = None,
    ttl: timedelta = timedelta(days=7),
) -> str:
    now = datetime.now(tz=UTC)
    payload: dict[str, Any] = {
        "iss": cfg.issuer,
        "aud": cfg.audience,
        "sub": subject,
        "roles": roles,
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    if email is not None:
        payload["email"] = email
    return jwt.encode(payload, cfg.secret, algorithm=cfg.alg)


def decode_and_validate(*, cfg: JwtConfig, token: str) -> dict[str, Any]:
    try:
        return jwt.decode(
            token,
            cfg.secret,
            algorithms=[cfg.alg],
            issuer=cfg.issuer,
            audience=cfg.audience,
            options={
                "require": ["exp", "iat", "iss", "aud", "sub"],
            },
        )
    except InvalidTokenError as e:
        raise JwtValidationError(str(e)) from e


# --- Module Notes -----------------------------------------------------------
# Token issuing is used by `api/routers/auth.py` (login/register).
