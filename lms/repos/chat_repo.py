from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.chat import ChatMessage


class ChatRepo(Protocol):
    async def add(self, message: ChatMessage) -> None: ...
    async def list_by_course(self, course_id: UUID) -> list[ChatMessage]: ...


class InMemoryChatRepo:
    def __init__(self) -> None:
        # Insertion order is persistence order.
        self._messages: list[ChatMessage] = []

    async def add(self, message: ChatMessage) -> None:
        self._messages.append(message)

    async def list_by_course(self, course_id: UUID) -> list[ChatMessage]:
        return [m for m in self._messages if m.course_id == course_id]
