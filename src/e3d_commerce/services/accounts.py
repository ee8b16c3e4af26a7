"""
e3d_commerce.services.accounts

Customer registration and credential checks.

Responsibilities:
- Validate registration input and create customer accounts.
- Verify email/password pairs without revealing which half was wrong.
"""

from __future__ import annotations

import uuid

from pydantic import BaseModel, EmailStr, Field, model_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from e3d_commerce.auth.passwords import hash_password, verify_password
from e3d_commerce.db.models import RoleName, User
from e3d_commerce.db.repositories.users import UserRepo
from e3d_commerce.errors import AuthenticationError, ConflictError, NotFoundError
from e3d_commerce.observability.logging import get_logger

log = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
EMAIL_TAKEN = "An account with this email already exists"


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    confirm_password: str
    full_name: str = Field(min_length=2, max_length=255)
    phone: str | None = Field(default=None, max_length=32)

    @model_validator(mode="after")
    def _passwords_match(self) -> RegisterRequest:
        if self.password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class AccountService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._users = UserRepo(session)

    async def register(self, body: RegisterRequest) -> User:
        if await self._users.get_by_email(body.email) is not None:
            raise ConflictError(EMAIL_TAKEN)
        role = await self._users.get_or_create_role(RoleName.customer.value)
        try:
            user = await self._users.create(
                email=body.email,
                password_hash=hash_password(body.password),
                full_name=body.full_name,
                phone=body.phone,
                roles=[role],
            )
            await self._session.commit()
        except IntegrityError as exc:
            # Another registration for the same email committed first.
            await self._session.rollback()
            raise ConflictError(EMAIL_TAKEN) from exc
        log.info("user_registered", user_id=str(user.id))
        return user

    async def authenticate(self, body: LoginRequest) -> User:
        user = await self._users.get_by_email(body.email)
        valid = (
            user is not None
            and user.is_active
            and verify_password(body.password, user.password_hash)
        )
        if not valid:
            log.info("login_failed")
            raise AuthenticationError(INVALID_CREDENTIALS)
        log.info("login_succeeded", user_id=str(user.id))
        return user

    async def profile(self, user_id: uuid.UUID) -> User:
        user = await self._users.get(user_id)
        if user is None or not user.is_active:
            raise NotFoundError("User not found")
        return user
