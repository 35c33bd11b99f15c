from __future__ import annotations

from collections.abc import Collection
from typing import Protocol
from uuid import UUID

from lms.models.user import User


class UserRepo(Protocol):
    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def list_by_ids(self, user_ids: Collection[UUID]) -> list[User]: ...
    async def add(self, user: User) -> None: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, User] = {}

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    async def list_by_ids(self, user_ids: Collection[UUID]) -> list[User]:
        return [self._by_id[i] for i in user_ids if i in self._by_id]

    async def add(self, user: User) -> None:
        if user.id in self._by_id:
            raise ValueError("user already exists")
        self._by_id[user.id] = user
