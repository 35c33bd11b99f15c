from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID, uuid4

from lms.models.enrollment import EnrollmentStatus


@dataclass(frozen=True, slots=True)
class LessonCompletion:
    """Append-only fact: user finished a lesson.  One per (lesson_id, user_id)."""

    lesson_id: UUID
    user_id: UUID
    completed_at: datetime

    @staticmethod
    def new(*, lesson_id: UUID, user_id: UUID) -> LessonCompletion:
        return LessonCompletion(
            lesson_id=lesson_id, user_id=user_id, completed_at=datetime.now(UTC)
        )


@dataclass(frozen=True, slots=True)
class LessonVideoProgress:
    """Resume position for a lesson video.  Upserted per (user_id, lesson_id)."""

    lesson_id: UUID
    user_id: UUID
    last_watched_seconds: int
    last_updated_at: datetime


@dataclass(frozen=True, slots=True)
class QuizAttempt:
    id: UUID
    quiz_id: UUID
    user_id: UUID
    score: int
    passed: bool
    attempt_date: datetime

    @staticmethod
    def new(*, quiz_id: UUID, user_id: UUID, score: int, passed: bool) -> QuizAttempt:
        return QuizAttempt(
            id=uuid4(),
            quiz_id=quiz_id,
            user_id=user_id,
            score=score,
            passed=passed,
            attempt_date=datetime.now(UTC),
        )


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    """Computed, never stored: a user's completion state for one course."""

    user_id: UUID
    course_id: UUID
    course_title: str
    status: EnrollmentStatus
    completion_percentage: int
    completed_lessons: int
    total_lessons: int
    completed_quizzes: int
    passed_quizzes: int
    total_quizzes: int
    next_lesson_id: UUID | None = None
    last_accessed: datetime | None = None
