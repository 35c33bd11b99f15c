"""Enrollment and lesson-progress writes.

Every write here runs inside the caller's unit of work and ends with
progress_service.sync_enrollment_status() for the affected course, so
the stored enrollment never disagrees with computed progress once the
transaction commits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from uuid import UUID

from lms.core.errors import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from lms.core.metrics import ENROLLMENT_TRANSITIONS
from lms.models.course import Lesson
from lms.models.enrollment import Enrollment, EnrollmentStatus
from lms.models.progress import LessonCompletion, LessonVideoProgress, ProgressSnapshot
from lms.models.user_context import UserContext
from lms.repos.store import Store
from lms.services.progress_service import sync_enrollment_status

logger = logging.getLogger(__name__)


async def enroll(store: Store, user: UserContext, course_id: UUID) -> Enrollment:
    course = await store.courses.get_course(course_id)
    if course is None or not course.is_published:
        raise NotFoundError("course not found or not published")

    if await store.enrollments.get(user.user_id, course_id) is not None:
        logger.warning(
            "Rejected duplicate enrollment",
            extra={"user_id": str(user.user_id), "course_id": str(course_id)},
        )
        raise ConflictError("already enrolled in this course")

    enrollment = Enrollment.new(user_id=user.user_id, course_id=course_id)
    await store.enrollments.add(enrollment)
    ENROLLMENT_TRANSITIONS.labels(status=enrollment.status.value).inc()
    logger.info(
        "Enrolled",
        extra={"user_id": str(user.user_id), "course_id": str(course_id)},
    )
    return enrollment


async def start_course(store: Store, user: UserContext, course_id: UUID) -> Enrollment:
    enrollment = await store.enrollments.get(user.user_id, course_id)
    if enrollment is None:
        raise NotFoundError("not enrolled in this course")
    if enrollment.status != EnrollmentStatus.NOT_STARTED:
        raise ValidationError("course already started", code="already_started")

    now = datetime.now(UTC)
    started = replace(
        enrollment,
        status=EnrollmentStatus.IN_PROGRESS,
        started_at=now,
        last_accessed=now,
    )
    await store.enrollments.update(started)
    ENROLLMENT_TRANSITIONS.labels(status=started.status.value).inc()
    logger.info(
        "Course started",
        extra={"user_id": str(user.user_id), "course_id": str(course_id)},
    )
    return started


async def _enrolled_lesson(store: Store, user: UserContext, lesson_id: UUID) -> Lesson:
    lesson = await store.courses.get_lesson(lesson_id)
    if lesson is None:
        raise NotFoundError("lesson not found")
    if await store.enrollments.get(user.user_id, lesson.course_id) is None:
        logger.warning(
            "Rejected lesson write without enrollment",
            extra={"user_id": str(user.user_id), "course_id": str(lesson.course_id)},
        )
        raise UnauthorizedError("you must be enrolled in this course")
    return lesson


async def complete_lesson(
    store: Store, user: UserContext, lesson_id: UUID
) -> ProgressSnapshot:
    lesson = await _enrolled_lesson(store, user, lesson_id)
    if await store.lesson_progress.get_completion(lesson_id, user.user_id) is not None:
        raise ConflictError("lesson already completed")

    await store.lesson_progress.add_completion(
        LessonCompletion.new(lesson_id=lesson_id, user_id=user.user_id)
    )
    return await sync_enrollment_status(store, user.user_id, lesson.course_id)


async def save_video_progress(
    store: Store, user: UserContext, lesson_id: UUID, last_watched_seconds: int
) -> tuple[LessonVideoProgress, UUID]:
    """Upsert the resume position.  Returns it with the lesson's course id."""
    if last_watched_seconds < 0:
        raise ValidationError("lastWatchedSeconds must be non-negative")
    lesson = await _enrolled_lesson(store, user, lesson_id)

    progress = LessonVideoProgress(
        lesson_id=lesson_id,
        user_id=user.user_id,
        last_watched_seconds=last_watched_seconds,
        last_updated_at=datetime.now(UTC),
    )
    await store.lesson_progress.save_video_progress(progress)
    await sync_enrollment_status(store, user.user_id, lesson.course_id)
    return progress, lesson.course_id


# ---------------------------------------------------------------------------
# Offline sync
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class OfflineVideoUpdate:
    lesson_id: UUID
    last_watched_seconds: int


@dataclass
class OfflineSyncResult:
    synced_progress_count: int = 0
    synced_completion_count: int = 0
    failed_lesson_ids: list[UUID] = field(default_factory=list)
    affected_course_ids: set[UUID] = field(default_factory=set)


async def sync_offline_progress(
    store: Store,
    user: UserContext,
    progress_updates: list[OfflineVideoUpdate],
    completed_lesson_ids: list[UUID],
) -> OfflineSyncResult:
    """Apply a batch recorded while the client was offline.

    Per item: an unknown lesson or a lesson outside the user's
    enrollments is reported in failed_lesson_ids and skipped; the rest
    of the batch still applies.  Video positions only move forward and
    already-completed lessons count as synced.
    """
    result = OfflineSyncResult()
    now = datetime.now(UTC)

    for update in progress_updates:
        lesson = await store.courses.get_lesson(update.lesson_id)
        if (
            lesson is None
            or update.last_watched_seconds < 0
            or await store.enrollments.get(user.user_id, lesson.course_id) is None
        ):
            result.failed_lesson_ids.append(update.lesson_id)
            continue

        existing = await store.lesson_progress.get_video_progress(
            update.lesson_id, user.user_id
        )
        if (
            existing is None
            or update.last_watched_seconds > existing.last_watched_seconds
        ):
            await store.lesson_progress.save_video_progress(
                LessonVideoProgress(
                    lesson_id=update.lesson_id,
                    user_id=user.user_id,
                    last_watched_seconds=update.last_watched_seconds,
                    last_updated_at=now,
                ),
                forward_only=True,
            )
        result.synced_progress_count += 1
        result.affected_course_ids.add(lesson.course_id)

    for lesson_id in completed_lesson_ids:
        lesson = await store.courses.get_lesson(lesson_id)
        if (
            lesson is None
            or await store.enrollments.get(user.user_id, lesson.course_id) is None
        ):
            result.failed_lesson_ids.append(lesson_id)
            continue

        if await store.lesson_progress.get_completion(lesson_id, user.user_id) is None:
            await store.lesson_progress.add_completion(
                LessonCompletion.new(lesson_id=lesson_id, user_id=user.user_id)
            )
        result.synced_completion_count += 1
        result.affected_course_ids.add(lesson.course_id)

    for course_id in result.affected_course_ids:
        await sync_enrollment_status(store, user.user_id, course_id, now=now)

    logger.info(
        "Offline sync applied progress=%d completions=%d failed=%d",
        result.synced_progress_count,
        result.synced_completion_count,
        len(result.failed_lesson_ids),
        extra={"user_id": str(user.user_id)},
    )
    return result
