"""
e3d_commerce.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity type (`Principal`) injected into endpoints.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from e3d_commerce.db.models import RoleName


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated caller identity.
    """

    subject: str
    roles: frozenset[str]
    email: str | None = None

    @property
    def user_id(self) -> uuid.UUID:
        return uuid.UUID(self.subject)

    @property
    def is_admin(self) -> bool:
        return RoleName.admin.value in self.roles
