from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.enrollment import Enrollment


class EnrollmentRepo(Protocol):
    async def get(self, user_id: UUID, course_id: UUID) -> Enrollment | None: ...
    async def add(self, enrollment: Enrollment) -> None: ...
    async def update(self, enrollment: Enrollment) -> None: ...
    async def list_by_user(self, user_id: UUID) -> list[Enrollment]: ...
    async def list_by_course(self, course_id: UUID) -> list[Enrollment]: ...


class InMemoryEnrollmentRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], Enrollment] = {}

    async def get(self, user_id: UUID, course_id: UUID) -> Enrollment | None:
        return self._store.get((user_id, course_id))

    async def add(self, enrollment: Enrollment) -> None:
        key = (enrollment.user_id, enrollment.course_id)
        if key in self._store:
            raise ValueError("enrollment already exists")
        self._store[key] = enrollment

    async def update(self, enrollment: Enrollment) -> None:
        key = (enrollment.user_id, enrollment.course_id)
        if key not in self._store:
            raise KeyError("enrollment not found")
        self._store[key] = enrollment

    async def list_by_user(self, user_id: UUID) -> list[Enrollment]:
        found = [e for e in self._store.values() if e.user_id == user_id]
        return sorted(found, key=lambda e: e.enrolled_at)

    async def list_by_course(self, course_id: UUID) -> list[Enrollment]:
        found = [e for e in self._store.values() if e.course_id == course_id]
        return sorted(found, key=lambda e: e.enrolled_at)
