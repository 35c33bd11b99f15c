from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from lms.main import app
from lms.models.course import Course, Lesson, Question, Quiz
from lms.models.enrollment import Enrollment
from lms.models.user import User
from lms.models.user_context import UserContext
from lms.repos.store import Store, memory_store, reset_memory_store
from lms.services import token_service
from lms.services.cache import cache_service
from lms.services.chat_hub import chat_hub

# Ensure repo root is on sys.path so `import lms` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_store() -> None:
    """Fresh in-memory repos for every test."""
    reset_memory_store()


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear cache between tests."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_chat_hub() -> None:
    chat_hub.reset()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def store() -> Store:
    assert memory_store is not None, "tests run without DATABASE_URL"
    return memory_store


def mint_token(
    user_id: UUID | None = None,
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(
        sub=str(user_id or uuid4()), roles=roles
    )


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def student_context(user_id: UUID | None = None) -> UserContext:
    return UserContext(user_id=user_id or uuid4(), roles=frozenset({"student"}))


# ---------------------------------------------------------------------------
# Course fixtures
# ---------------------------------------------------------------------------


@dataclass
class SeededCourse:
    """A published course with three lessons and one two-question quiz.

    Question 1 is single choice (correct: q1_right); question 2 is
    multi-select (correct: both q2_right answers).
    """

    course: Course
    instructor: User
    student: User
    lessons: list[Lesson]
    quiz: Quiz
    questions: list[Question]

    @property
    def q1_right(self) -> UUID:
        return next(a.id for a in self.questions[0].answers if a.is_correct)

    @property
    def q1_wrong(self) -> UUID:
        return next(a.id for a in self.questions[0].answers if not a.is_correct)

    @property
    def q2_right(self) -> list[UUID]:
        return [a.id for a in self.questions[1].answers if a.is_correct]


async def _seed_course(
    store: Store,
    *,
    lesson_count: int,
    passing_score: int,
    enroll_student: bool,
    published: bool,
) -> SeededCourse:
    instructor = User.new(
        email=f"instructor-{uuid4().hex[:6]}@example.com",
        full_name="Ada Instructor",
        role="instructor",
    )
    student = User.new(
        email=f"student-{uuid4().hex[:6]}@example.com", full_name="Sam Student"
    )
    await store.users.add(instructor)
    await store.users.add(student)

    course = Course.new(
        title="Data Structures", created_by=instructor.id, is_published=published
    )
    await store.courses.add_course(course)

    lessons = []
    for order in range(1, lesson_count + 1):
        lesson = Lesson.new(course_id=course.id, title=f"Lesson {order}", order=order)
        await store.courses.add_lesson(lesson)
        lessons.append(lesson)

    quiz = Quiz.new(course_id=course.id, title="Checkpoint", passing_score=passing_score)
    await store.courses.add_quiz(quiz)
    questions = [
        Question.new(
            quiz_id=quiz.id,
            text="Which structure is FIFO?",
            answers=[("queue", True), ("stack", False)],
        ),
        Question.new(
            quiz_id=quiz.id,
            text="Which are hash based?",
            question_type="MSQ",
            answers=[("dict", True), ("set", True), ("list", False)],
        ),
    ]
    for q in questions:
        await store.courses.add_question(q)

    if enroll_student:
        await store.enrollments.add(
            Enrollment.new(user_id=student.id, course_id=course.id)
        )

    return SeededCourse(
        course=course,
        instructor=instructor,
        student=student,
        lessons=lessons,
        quiz=quiz,
        questions=questions,
    )


def seed_course(
    store: Store,
    *,
    lesson_count: int = 3,
    passing_score: int = 70,
    enroll_student: bool = True,
    published: bool = True,
) -> SeededCourse:
    """Synchronous wrapper so API tests can seed before calling the client."""
    return asyncio.run(
        _seed_course(
            store,
            lesson_count=lesson_count,
            passing_score=passing_score,
            enroll_student=enroll_student,
            published=published,
        )
    )


@pytest.fixture
def seeded(store: Store) -> SeededCourse:
    return seed_course(store)
