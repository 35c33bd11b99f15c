"""Repository bundle and unit-of-work scope.

A Store groups one instance of every repo.  With DATABASE_URL set, each
`store_scope()` opens a session (one transaction) and builds Pg repos
over it; the transaction commits when the scope exits cleanly.  Without
a database a process-wide in-memory Store is shared by every scope.

Hooks registered with `Store.on_commit()` run only after the scope has
committed, so cache invalidation never precedes the write it covers.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace

from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.engine import async_session_factory, session_scope
from lms.models.course import Course, Lesson, Question, Quiz
from lms.models.user import User
from lms.repos.certificate_repo import CertificateRepo, InMemoryCertificateRepo
from lms.repos.chat_repo import ChatRepo, InMemoryChatRepo
from lms.repos.course_repo import CourseRepo, InMemoryCourseRepo
from lms.repos.enrollment_repo import EnrollmentRepo, InMemoryEnrollmentRepo
from lms.repos.lesson_progress_repo import (
    InMemoryLessonProgressRepo,
    LessonProgressRepo,
)
from lms.repos.pg_certificate_repo import PgCertificateRepo
from lms.repos.pg_chat_repo import PgChatRepo
from lms.repos.pg_course_repo import PgCourseRepo
from lms.repos.pg_enrollment_repo import PgEnrollmentRepo
from lms.repos.pg_lesson_progress_repo import PgLessonProgressRepo
from lms.repos.pg_quiz_attempt_repo import PgQuizAttemptRepo
from lms.repos.pg_user_repo import PgUserRepo
from lms.repos.quiz_attempt_repo import InMemoryQuizAttemptRepo, QuizAttemptRepo
from lms.repos.user_repo import InMemoryUserRepo, UserRepo

logger = logging.getLogger(__name__)


@dataclass
class Store:
    courses: CourseRepo
    enrollments: EnrollmentRepo
    lesson_progress: LessonProgressRepo
    quiz_attempts: QuizAttemptRepo
    certificates: CertificateRepo
    chat: ChatRepo
    users: UserRepo
    after_commit: list[Callable[[], Awaitable[None]]] = field(
        default_factory=list, repr=False
    )

    def on_commit(self, hook: Callable[[], Awaitable[None]]) -> None:
        self.after_commit.append(hook)

    async def run_after_commit(self) -> None:
        hooks, self.after_commit = self.after_commit, []
        for hook in hooks:
            await hook()


def in_memory_store() -> Store:
    return Store(
        courses=InMemoryCourseRepo(),
        enrollments=InMemoryEnrollmentRepo(),
        lesson_progress=InMemoryLessonProgressRepo(),
        quiz_attempts=InMemoryQuizAttemptRepo(),
        certificates=InMemoryCertificateRepo(),
        chat=InMemoryChatRepo(),
        users=InMemoryUserRepo(),
    )


def pg_store(session: AsyncSession) -> Store:
    return Store(
        courses=PgCourseRepo(session),
        enrollments=PgEnrollmentRepo(session),
        lesson_progress=PgLessonProgressRepo(session),
        quiz_attempts=PgQuizAttemptRepo(session),
        certificates=PgCertificateRepo(session),
        chat=PgChatRepo(session),
        users=PgUserRepo(session),
    )


memory_store: Store | None = in_memory_store() if async_session_factory is None else None


def reset_memory_store() -> None:
    """Swap in empty repos.  Used by the test suite between tests."""
    if memory_store is None:
        return
    fresh = in_memory_store()
    for name in fresh.__dataclass_fields__:
        setattr(memory_store, name, getattr(fresh, name))


@asynccontextmanager
async def store_scope() -> AsyncGenerator[Store, None]:
    """One unit of work: a request, or one chat hub invocation."""
    if memory_store is not None:
        # Shared repos, per-scope hooks.
        store = replace(memory_store, after_commit=[])
        yield store
    else:
        async with session_scope() as session:
            store = pg_store(session)
            yield store
    await store.run_after_commit()


# ---------------------------------------------------------------------------
# Dev seed
# ---------------------------------------------------------------------------


async def seed_demo_course(store: Store) -> Course:
    """Create an instructor, a student and a small published course."""
    instructor = User.new(
        email="instructor@example.com", full_name="Demo Instructor", role="instructor"
    )
    student = User.new(email="student@example.com", full_name="Demo Student")
    await store.users.add(instructor)
    await store.users.add(student)

    course = Course.new(title="Introduction to Python", created_by=instructor.id)
    await store.courses.add_course(course)

    for order, title in enumerate(
        ("Installing Python", "Variables and Types", "Control Flow"), start=1
    ):
        await store.courses.add_lesson(
            Lesson.new(
                course_id=course.id,
                title=title,
                order=order,
                estimated_duration=10,
            )
        )

    quiz = Quiz.new(course_id=course.id, title="Python Basics", passing_score=70)
    await store.courses.add_quiz(quiz)
    await store.courses.add_question(
        Question.new(
            quiz_id=quiz.id,
            text="Which keyword defines a function?",
            answers=[("def", True), ("fun", False), ("lambda", False)],
        )
    )
    await store.courses.add_question(
        Question.new(
            quiz_id=quiz.id,
            text="Which of these are immutable?",
            question_type="MSQ",
            answers=[("tuple", True), ("str", True), ("list", False)],
        )
    )

    logger.info(
        "Seeded demo course=%s instructor=%s student=%s",
        course.id,
        instructor.id,
        student.id,
    )
    return course
