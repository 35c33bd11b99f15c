"""Student learning endpoints.

Reads:   dashboard, per-course progress (read-through cached), continue
         learning, quiz for attempt, attempt history, certificates.
Writes:  enroll, start, complete lesson, video progress, offline sync,
         quiz attempt.  Each write invalidates the progress cache entry
         for the affected (user, course) once its unit of work commits.
"""

from __future__ import annotations

from datetime import datetime
from functools import partial
from uuid import UUID

from fastapi import APIRouter, status

from lms.api.dependencies import StoreDep, Student
from lms.api.schemas import ApiModel
from lms.models.enrollment import Enrollment
from lms.models.progress import ProgressSnapshot
from lms.services import grading_service, learning_service, progress_service
from lms.services.cache import cache_progress, get_cached_progress, invalidate_progress

router = APIRouter(prefix="/api/student", tags=["student"])


# ---------------------------------------------------------------------------
# Response / request models
# ---------------------------------------------------------------------------


class ProgressOut(ApiModel):
    course_id: UUID
    course_title: str
    status: str
    completion_percentage: int
    completed_lessons: int
    total_lessons: int
    completed_quizzes: int
    passed_quizzes: int
    total_quizzes: int
    next_lesson_id: UUID | None = None
    last_accessed: datetime | None = None

    @classmethod
    def from_snapshot(cls, s: ProgressSnapshot) -> ProgressOut:
        return cls(
            course_id=s.course_id,
            course_title=s.course_title,
            status=s.status.value,
            completion_percentage=s.completion_percentage,
            completed_lessons=s.completed_lessons,
            total_lessons=s.total_lessons,
            completed_quizzes=s.completed_quizzes,
            passed_quizzes=s.passed_quizzes,
            total_quizzes=s.total_quizzes,
            next_lesson_id=s.next_lesson_id,
            last_accessed=s.last_accessed,
        )


class DashboardSummaryOut(ApiModel):
    total_enrolled_courses: int
    completed_courses: int
    in_progress_courses: int
    overall_completion_percentage: float


class DashboardOut(ApiModel):
    summary: DashboardSummaryOut
    courses: list[ProgressOut]


class ContinueLearningOut(ApiModel):
    course_completed: bool
    lesson_id: UUID | None = None
    lesson_title: str | None = None
    lesson_order: int | None = None


class EnrollmentOut(ApiModel):
    user_id: UUID
    course_id: UUID
    status: str
    enrolled_at: datetime
    started_at: datetime | None = None
    last_accessed: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_enrollment(cls, e: Enrollment) -> EnrollmentOut:
        return cls(
            user_id=e.user_id,
            course_id=e.course_id,
            status=e.status.value,
            enrolled_at=e.enrolled_at,
            started_at=e.started_at,
            last_accessed=e.last_accessed,
            completed_at=e.completed_at,
        )


class VideoProgressIn(ApiModel):
    last_watched_seconds: int


class VideoProgressOut(ApiModel):
    lesson_id: UUID
    last_watched_seconds: int
    last_updated_at: datetime


class OfflineProgressItemIn(ApiModel):
    lesson_id: UUID
    last_watched_seconds: int


class OfflineSyncIn(ApiModel):
    progress_updates: list[OfflineProgressItemIn] = []
    completed_lesson_ids: list[UUID] = []


class OfflineSyncOut(ApiModel):
    synced_progress_count: int
    synced_completion_count: int
    failed_lesson_ids: list[UUID]


class AnswerOptionOut(ApiModel):
    id: UUID
    text: str


class QuestionOut(ApiModel):
    id: UUID
    text: str
    question_type: str
    answers: list[AnswerOptionOut]


class QuizForAttemptOut(ApiModel):
    id: UUID
    course_id: UUID
    lesson_id: UUID | None = None
    title: str
    passing_score: int
    time_limit: int
    questions: list[QuestionOut]


class SubmittedAnswerIn(ApiModel):
    question_id: UUID
    selected_answer_ids: list[UUID] = []


class QuizSubmissionIn(ApiModel):
    answers: list[SubmittedAnswerIn] = []


class AttemptOut(ApiModel):
    attempt_id: UUID
    quiz_id: UUID
    score: int
    total_questions: int
    correct_answers: int
    passing_score: int
    passed: bool
    attempt_date: datetime


class AttemptHistoryOut(ApiModel):
    id: UUID
    quiz_id: UUID
    quiz_title: str
    course_id: UUID
    score: int
    passed: bool
    passing_score: int
    attempt_date: datetime


class CertificateOut(ApiModel):
    id: UUID
    course_id: UUID
    verification_code: str
    generated_at: datetime


# ---------------------------------------------------------------------------
# Progress reads
# ---------------------------------------------------------------------------


@router.get("/dashboard", response_model=DashboardOut)
async def dashboard(user: Student, store: StoreDep) -> DashboardOut:
    d = await progress_service.get_dashboard(store, user)
    return DashboardOut(
        summary=DashboardSummaryOut(
            total_enrolled_courses=d.summary.total_enrolled_courses,
            completed_courses=d.summary.completed_courses,
            in_progress_courses=d.summary.in_progress_courses,
            overall_completion_percentage=d.summary.overall_completion_percentage,
        ),
        courses=[ProgressOut.from_snapshot(s) for s in d.courses],
    )


@router.get("/courses/{course_id}/progress", response_model=ProgressOut)
async def course_progress(
    course_id: UUID, user: Student, store: StoreDep
) -> ProgressOut:
    """Read-through cached snapshot for (user, course)."""
    cached = await get_cached_progress(user.user_id, course_id)
    if cached is not None:
        return ProgressOut.model_validate_json(cached)

    snapshot = await progress_service.get_progress(store, user, course_id)
    out = ProgressOut.from_snapshot(snapshot)
    await cache_progress(user.user_id, course_id, out.model_dump_json(by_alias=True))
    return out


@router.get("/courses/{course_id}/continue", response_model=ContinueLearningOut)
async def continue_learning(
    course_id: UUID, user: Student, store: StoreDep
) -> ContinueLearningOut:
    c = await progress_service.continue_learning(store, user, course_id)
    return ContinueLearningOut(
        course_completed=c.course_completed,
        lesson_id=c.lesson_id,
        lesson_title=c.lesson_title,
        lesson_order=c.lesson_order,
    )


# ---------------------------------------------------------------------------
# Enrollment and lesson writes
# ---------------------------------------------------------------------------


@router.post(
    "/enroll/{course_id}",
    response_model=EnrollmentOut,
    status_code=status.HTTP_201_CREATED,
)
async def enroll(course_id: UUID, user: Student, store: StoreDep) -> EnrollmentOut:
    enrollment = await learning_service.enroll(store, user, course_id)
    return EnrollmentOut.from_enrollment(enrollment)


@router.post("/courses/{course_id}/start", response_model=EnrollmentOut)
async def start_course(
    course_id: UUID, user: Student, store: StoreDep
) -> EnrollmentOut:
    enrollment = await learning_service.start_course(store, user, course_id)
    store.on_commit(partial(invalidate_progress, user.user_id, course_id))
    return EnrollmentOut.from_enrollment(enrollment)


@router.post("/lessons/{lesson_id}/complete", response_model=ProgressOut)
async def complete_lesson(
    lesson_id: UUID, user: Student, store: StoreDep
) -> ProgressOut:
    snapshot = await learning_service.complete_lesson(store, user, lesson_id)
    store.on_commit(partial(invalidate_progress, user.user_id, snapshot.course_id))
    return ProgressOut.from_snapshot(snapshot)


@router.post("/lessons/{lesson_id}/video-progress", response_model=VideoProgressOut)
async def save_video_progress(
    lesson_id: UUID, body: VideoProgressIn, user: Student, store: StoreDep
) -> VideoProgressOut:
    progress, course_id = await learning_service.save_video_progress(
        store, user, lesson_id, body.last_watched_seconds
    )
    store.on_commit(partial(invalidate_progress, user.user_id, course_id))
    return VideoProgressOut(
        lesson_id=progress.lesson_id,
        last_watched_seconds=progress.last_watched_seconds,
        last_updated_at=progress.last_updated_at,
    )


@router.post("/lessons/offline-progress/sync", response_model=OfflineSyncOut)
async def sync_offline_progress(
    body: OfflineSyncIn, user: Student, store: StoreDep
) -> OfflineSyncOut:
    result = await learning_service.sync_offline_progress(
        store,
        user,
        [
            learning_service.OfflineVideoUpdate(
                lesson_id=item.lesson_id,
                last_watched_seconds=item.last_watched_seconds,
            )
            for item in body.progress_updates
        ],
        body.completed_lesson_ids,
    )
    for course_id in result.affected_course_ids:
        store.on_commit(partial(invalidate_progress, user.user_id, course_id))
    return OfflineSyncOut(
        synced_progress_count=result.synced_progress_count,
        synced_completion_count=result.synced_completion_count,
        failed_lesson_ids=result.failed_lesson_ids,
    )


# ---------------------------------------------------------------------------
# Quizzes
# ---------------------------------------------------------------------------


@router.get("/quizzes/{quiz_id}", response_model=QuizForAttemptOut)
async def get_quiz(quiz_id: UUID, user: Student, store: StoreDep) -> QuizForAttemptOut:
    quiz, questions = await grading_service.get_quiz_for_attempt(store, user, quiz_id)
    return QuizForAttemptOut(
        id=quiz.id,
        course_id=quiz.course_id,
        lesson_id=quiz.lesson_id,
        title=quiz.title,
        passing_score=quiz.passing_score,
        time_limit=quiz.time_limit,
        questions=[
            QuestionOut(
                id=q.id,
                text=q.text,
                question_type=q.question_type,
                answers=[AnswerOptionOut(id=a.id, text=a.text) for a in q.answers],
            )
            for q in questions
        ],
    )


@router.post("/quizzes/{quiz_id}/attempt", response_model=AttemptOut)
async def submit_quiz_attempt(
    quiz_id: UUID, body: QuizSubmissionIn, user: Student, store: StoreDep
) -> AttemptOut:
    result = await grading_service.submit_attempt(
        store,
        user,
        quiz_id,
        [
            grading_service.SubmittedAnswer(
                question_id=a.question_id,
                selected_answer_ids=frozenset(a.selected_answer_ids),
            )
            for a in body.answers
        ],
    )
    store.on_commit(partial(invalidate_progress, user.user_id, result.course_id))
    return AttemptOut(
        attempt_id=result.attempt_id,
        quiz_id=result.quiz_id,
        score=result.score,
        total_questions=result.total_questions,
        correct_answers=result.correct_answers,
        passing_score=result.passing_score,
        passed=result.passed,
        attempt_date=result.attempt_date,
    )


@router.get("/quiz-attempts", response_model=list[AttemptHistoryOut])
async def quiz_attempts(user: Student, store: StoreDep) -> list[AttemptHistoryOut]:
    return [
        AttemptHistoryOut(
            id=item.attempt.id,
            quiz_id=item.attempt.quiz_id,
            quiz_title=item.quiz_title,
            course_id=item.course_id,
            score=item.attempt.score,
            passed=item.attempt.passed,
            passing_score=item.passing_score,
            attempt_date=item.attempt.attempt_date,
        )
        for item in await grading_service.list_attempts(store, user)
    ]


@router.get("/certificates", response_model=list[CertificateOut])
async def certificates(user: Student, store: StoreDep) -> list[CertificateOut]:
    return [
        CertificateOut(
            id=c.id,
            course_id=c.course_id,
            verification_code=c.verification_code,
            generated_at=c.generated_at,
        )
        for c in await store.certificates.list_by_user(user.user_id)
    ]
