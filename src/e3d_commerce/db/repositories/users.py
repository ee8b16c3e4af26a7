"""
e3d_commerce.db.repositories.users

Repository for `User`, `Role` and `Address` entities.
"""

from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from e3d_commerce.db.models import Address, Role, User


class UserRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: uuid.UUID) -> User | None:
        return await self._session.get(User, user_id)

    async def get_by_email(self, email: str) -> User | None:
        # Emails are stored lower-cased; compare the same way.
        stmt = select(User).where(User.email == email.strip().lower())
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_with_addresses(self, user_id: uuid.UUID) -> User | None:
        stmt = select(User).where(User.id == user_id).options(selectinload(User.addresses))
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def create(
        self,
        *,
        email: str,
        password_hash: str,
        full_name: str,
        roles: list[Role],
        phone: str | None = None,
    ) -> User:
        user = User(
            email=email.strip().lower(),
            password_hash=password_hash,
            full_name=full_name,
            phone=phone,
            is_active=True,
        )
        user.roles = roles
        user.addresses = []
        self._session.add(user)
        await self._session.flush()
        return user

    async def get_or_create_role(self, name: str) -> Role:
        stmt = select(Role).where(Role.name == name)
        role = (await self._session.execute(stmt)).scalar_one_or_none()
        if role is None:
            role = Role(name=name)
            self._session.add(role)
            await self._session.flush()
        return role

    async def add_address(self, user: User, address: Address) -> Address:
        # Callers must load `user.addresses` first (see `get_with_addresses`).
        if address.is_default:
            for existing in user.addresses:
                existing.is_default = False
        user.addresses.append(address)
        await self._session.flush()
        return address

    async def count_with_role(self, name: str) -> int:
        stmt = select(func.count(User.id)).join(User.roles).where(Role.name == name)
        return int((await self._session.execute(stmt)).scalar_one())
