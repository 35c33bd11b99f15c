from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID, uuid4


class ChatRole(StrEnum):
    STUDENT = "student"
    INSTRUCTOR = "instructor"


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """Append-only; no edit or delete."""

    id: UUID
    course_id: UUID
    sender_id: UUID
    receiver_id: UUID
    message: str
    sent_at: datetime

    @staticmethod
    def new(
        *, course_id: UUID, sender_id: UUID, receiver_id: UUID, message: str
    ) -> ChatMessage:
        return ChatMessage(
            id=uuid4(),
            course_id=course_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            message=message,
            sent_at=datetime.now(UTC),
        )


def room_name(course_id: UUID) -> str:
    return f"course-{course_id}"
