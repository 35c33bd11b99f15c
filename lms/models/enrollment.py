from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID


class EnrollmentStatus(StrEnum):
    NOT_STARTED = "NotStarted"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"


@dataclass(frozen=True, slots=True)
class Enrollment:
    """One per (user_id, course_id).  Status is mutated, the row never deleted."""

    user_id: UUID
    course_id: UUID
    enrolled_at: datetime
    status: EnrollmentStatus = EnrollmentStatus.NOT_STARTED
    started_at: datetime | None = None
    last_accessed: datetime | None = None
    completed_at: datetime | None = None

    @staticmethod
    def new(*, user_id: UUID, course_id: UUID) -> Enrollment:
        return Enrollment(
            user_id=user_id,
            course_id=course_id,
            enrolled_at=datetime.now(UTC),
        )
