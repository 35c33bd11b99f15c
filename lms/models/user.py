from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class User:
    """Read-only projection of an account owned by the auth service."""

    id: UUID
    email: str
    full_name: str
    role: str = "student"  # student|instructor|admin

    @staticmethod
    def new(*, email: str, full_name: str, role: str = "student") -> User:
        return User(id=uuid4(), email=email, full_name=full_name, role=role)
