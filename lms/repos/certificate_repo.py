from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.certificate import Certificate


class CertificateRepo(Protocol):
    async def get(self, user_id: UUID, course_id: UUID) -> Certificate | None: ...
    async def add(self, certificate: Certificate) -> None: ...
    async def list_by_user(self, user_id: UUID) -> list[Certificate]: ...


class InMemoryCertificateRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], Certificate] = {}

    async def get(self, user_id: UUID, course_id: UUID) -> Certificate | None:
        return self._store.get((user_id, course_id))

    async def add(self, certificate: Certificate) -> None:
        key = (certificate.user_id, certificate.course_id)
        if key in self._store:
            raise ValueError("certificate already issued")
        self._store[key] = certificate

    async def list_by_user(self, user_id: UUID) -> list[Certificate]:
        found = [c for c in self._store.values() if c.user_id == user_id]
        return sorted(found, key=lambda c: c.generated_at, reverse=True)
