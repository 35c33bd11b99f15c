"""Course progress aggregation and enrollment status sync.

compute_snapshot() is pure: it folds a learner's lesson completions and
quiz attempts over a course's content into a ProgressSnapshot.  The
async wrappers load the inputs from a Store and, for writes, reconcile
the stored enrollment status with the computed one.

Status rules:
  NotStarted  no completion, no attempt and no explicit start
  Completed   every lesson complete and every quiz passed (or no quizzes)
  InProgress  anything in between

A course without lessons is always 0% and reads back its stored status.
The sync moves that stored status on quiz activity alone: any attempt
starts it, passing every quiz completes it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from uuid import UUID

from lms.core.config import SETTINGS
from lms.core.errors import NotFoundError
from lms.core.metrics import CERTIFICATES_ISSUED, ENROLLMENT_TRANSITIONS
from lms.models.certificate import Certificate
from lms.models.course import Course, Lesson, Quiz
from lms.models.enrollment import Enrollment, EnrollmentStatus
from lms.models.progress import LessonCompletion, ProgressSnapshot, QuizAttempt
from lms.models.user_context import UserContext
from lms.repos.store import Store

logger = logging.getLogger(__name__)


def percentage(part: int, whole: int) -> int:
    """round(100 * part / whole), half-up, in integer arithmetic; 0 if whole is 0."""
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)


def _lesson_sort_key(lesson: Lesson) -> tuple[int, str]:
    return (lesson.order, str(lesson.id))


def _passed_quiz_ids(
    quizzes: dict[UUID, Quiz], attempts: Iterable[QuizAttempt], policy: str
) -> set[UUID]:
    if policy == "latest":
        latest: dict[UUID, QuizAttempt] = {}
        for a in attempts:
            seen = latest.get(a.quiz_id)
            if seen is None or a.attempt_date >= seen.attempt_date:
                latest[a.quiz_id] = a
        chosen: Iterable[QuizAttempt] = latest.values()
    else:
        chosen = attempts
    return {
        a.quiz_id for a in chosen if a.score >= quizzes[a.quiz_id].passing_score
    }


def compute_snapshot(
    *,
    enrollment: Enrollment,
    course: Course,
    lessons: list[Lesson],
    quizzes: list[Quiz],
    completions: list[LessonCompletion],
    attempts: list[QuizAttempt],
    pass_policy: str | None = None,
    completion_count: str | None = None,
) -> ProgressSnapshot:
    pass_policy = pass_policy or SETTINGS.quiz_pass_policy
    completion_count = completion_count or SETTINGS.quiz_completion_count

    lesson_ids = {ls.id for ls in lessons}
    done = {c.lesson_id for c in completions if c.lesson_id in lesson_ids}

    quiz_by_id = {q.id: q for q in quizzes}
    course_attempts = [a for a in attempts if a.quiz_id in quiz_by_id]
    if completion_count == "attempts":
        completed_quizzes = len(course_attempts)
    else:
        completed_quizzes = len({a.quiz_id for a in course_attempts})
    passed_quizzes = len(_passed_quiz_ids(quiz_by_id, course_attempts, pass_policy))

    total_lessons = len(lessons)
    has_activity = bool(done or course_attempts or enrollment.started_at)

    if total_lessons == 0:
        status = enrollment.status
    elif not has_activity:
        status = EnrollmentStatus.NOT_STARTED
    elif len(done) == total_lessons and passed_quizzes == len(quizzes):
        status = EnrollmentStatus.COMPLETED
    else:
        status = EnrollmentStatus.IN_PROGRESS

    next_lesson = next(
        (ls for ls in sorted(lessons, key=_lesson_sort_key) if ls.id not in done),
        None,
    )

    last_accessed = enrollment.last_accessed
    if last_accessed is None:
        stamps = [c.completed_at for c in completions if c.lesson_id in done]
        stamps += [a.attempt_date for a in course_attempts]
        last_accessed = max(stamps, default=None)

    return ProgressSnapshot(
        user_id=enrollment.user_id,
        course_id=course.id,
        course_title=course.title,
        status=status,
        completion_percentage=percentage(len(done), total_lessons),
        completed_lessons=len(done),
        total_lessons=total_lessons,
        completed_quizzes=completed_quizzes,
        passed_quizzes=passed_quizzes,
        total_quizzes=len(quizzes),
        next_lesson_id=next_lesson.id if next_lesson else None,
        last_accessed=last_accessed,
    )


async def _load_snapshot(
    store: Store, course: Course, enrollment: Enrollment
) -> tuple[ProgressSnapshot, list[Lesson]]:
    lessons = await store.courses.list_lessons(course.id)
    quizzes = await store.courses.list_quizzes(course.id)
    completions = await store.lesson_progress.list_completions(
        enrollment.user_id, [ls.id for ls in lessons]
    )
    attempts = await store.quiz_attempts.list_for_quizzes(
        enrollment.user_id, [q.id for q in quizzes]
    )
    snapshot = compute_snapshot(
        enrollment=enrollment,
        course=course,
        lessons=lessons,
        quizzes=quizzes,
        completions=completions,
        attempts=attempts,
    )
    return snapshot, lessons


async def _require_enrollment(
    store: Store, user_id: UUID, course_id: UUID
) -> tuple[Course, Enrollment]:
    course = await store.courses.get_course(course_id)
    if course is None:
        raise NotFoundError("course not found")
    enrollment = await store.enrollments.get(user_id, course_id)
    if enrollment is None:
        raise NotFoundError("not enrolled in this course")
    return course, enrollment


async def get_progress(
    store: Store, user: UserContext, course_id: UUID
) -> ProgressSnapshot:
    """Read-only.  Raises NotFoundError for an unknown course or enrollment."""
    course, enrollment = await _require_enrollment(store, user.user_id, course_id)
    snapshot, _ = await _load_snapshot(store, course, enrollment)
    return snapshot


def _sync_target(snapshot: ProgressSnapshot, enrollment: Enrollment) -> EnrollmentStatus:
    if snapshot.total_lessons > 0:
        return snapshot.status
    if snapshot.total_quizzes and snapshot.passed_quizzes == snapshot.total_quizzes:
        return EnrollmentStatus.COMPLETED
    if snapshot.completed_quizzes or enrollment.started_at:
        return EnrollmentStatus.IN_PROGRESS
    return enrollment.status


async def sync_enrollment_status(
    store: Store, user_id: UUID, course_id: UUID, *, now: datetime | None = None
) -> ProgressSnapshot:
    """Reconcile the stored enrollment with freshly computed progress.

    Called after every learning write, inside the same unit of work.
    Issues the course certificate on the first transition to Completed.
    """
    now = now or datetime.now(UTC)
    course, enrollment = await _require_enrollment(store, user_id, course_id)
    snapshot, _ = await _load_snapshot(store, course, enrollment)

    updated = replace(enrollment, last_accessed=now)
    stored = enrollment.status
    target = _sync_target(snapshot, enrollment)

    if target == EnrollmentStatus.COMPLETED:
        if stored != EnrollmentStatus.COMPLETED:
            updated = replace(
                updated,
                status=EnrollmentStatus.COMPLETED,
                completed_at=now,
                started_at=enrollment.started_at or now,
            )
            if await store.certificates.get(user_id, course_id) is None:
                certificate = Certificate.new(user_id=user_id, course_id=course_id)
                await store.certificates.add(certificate)
                CERTIFICATES_ISSUED.inc()
                logger.info(
                    "Issued certificate %s",
                    certificate.verification_code,
                    extra={"user_id": str(user_id), "course_id": str(course_id)},
                )
    elif stored == EnrollmentStatus.COMPLETED:
        # New content was added after completion.
        updated = replace(
            updated, status=EnrollmentStatus.IN_PROGRESS, completed_at=None
        )
    elif stored == EnrollmentStatus.NOT_STARTED and target != stored:
        updated = replace(
            updated,
            status=EnrollmentStatus.IN_PROGRESS,
            started_at=enrollment.started_at or now,
        )

    await store.enrollments.update(updated)

    if updated.status != stored:
        ENROLLMENT_TRANSITIONS.labels(status=updated.status.value).inc()
        logger.info(
            "Enrollment %s -> %s",
            stored.value,
            updated.status.value,
            extra={"user_id": str(user_id), "course_id": str(course_id)},
        )

    return replace(snapshot, status=updated.status, last_accessed=now)


# ---------------------------------------------------------------------------
# Dashboard and continue-learning views
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DashboardSummary:
    total_enrolled_courses: int
    completed_courses: int
    in_progress_courses: int
    overall_completion_percentage: float


@dataclass(frozen=True, slots=True)
class Dashboard:
    summary: DashboardSummary
    courses: list[ProgressSnapshot]


@dataclass(frozen=True, slots=True)
class ContinueLearning:
    course_completed: bool
    lesson_id: UUID | None = None
    lesson_title: str | None = None
    lesson_order: int | None = None


async def get_dashboard(store: Store, user: UserContext) -> Dashboard:
    snapshots: list[ProgressSnapshot] = []
    for enrollment in await store.enrollments.list_by_user(user.user_id):
        course = await store.courses.get_course(enrollment.course_id)
        if course is None:
            continue
        snapshot, _ = await _load_snapshot(store, course, enrollment)
        snapshots.append(snapshot)

    overall = 0.0
    if snapshots:
        overall = round(
            sum(s.completion_percentage for s in snapshots) / len(snapshots), 1
        )

    return Dashboard(
        summary=DashboardSummary(
            total_enrolled_courses=len(snapshots),
            completed_courses=sum(
                1 for s in snapshots if s.status == EnrollmentStatus.COMPLETED
            ),
            in_progress_courses=sum(
                1 for s in snapshots if s.status == EnrollmentStatus.IN_PROGRESS
            ),
            overall_completion_percentage=overall,
        ),
        courses=snapshots,
    )


async def continue_learning(
    store: Store, user: UserContext, course_id: UUID
) -> ContinueLearning:
    course, enrollment = await _require_enrollment(store, user.user_id, course_id)
    snapshot, lessons = await _load_snapshot(store, course, enrollment)

    if (
        snapshot.status == EnrollmentStatus.COMPLETED
        or snapshot.total_lessons == 0
        or snapshot.next_lesson_id is None
    ):
        return ContinueLearning(course_completed=True)

    lesson = next(ls for ls in lessons if ls.id == snapshot.next_lesson_id)
    return ContinueLearning(
        course_completed=False,
        lesson_id=lesson.id,
        lesson_title=lesson.title,
        lesson_order=lesson.order,
    )
