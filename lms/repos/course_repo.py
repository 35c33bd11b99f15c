from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.course import Course, Lesson, Question, Quiz


class CourseRepo(Protocol):
    """Read access to the content hierarchy.

    Content is authored elsewhere; the add_* methods exist for seeding
    and tests.
    """

    async def get_course(self, course_id: UUID) -> Course | None: ...
    async def get_lesson(self, lesson_id: UUID) -> Lesson | None: ...
    async def list_lessons(self, course_id: UUID) -> list[Lesson]: ...
    async def get_quiz(self, quiz_id: UUID) -> Quiz | None: ...
    async def list_quizzes(self, course_id: UUID) -> list[Quiz]: ...
    async def list_questions(self, quiz_id: UUID) -> list[Question]: ...
    async def add_course(self, course: Course) -> None: ...
    async def add_lesson(self, lesson: Lesson) -> None: ...
    async def add_quiz(self, quiz: Quiz) -> None: ...
    async def add_question(self, question: Question) -> None: ...


class InMemoryCourseRepo:
    def __init__(self) -> None:
        self._courses: dict[UUID, Course] = {}
        self._lessons: dict[UUID, Lesson] = {}
        self._quizzes: dict[UUID, Quiz] = {}
        self._questions: dict[UUID, Question] = {}

    async def get_course(self, course_id: UUID) -> Course | None:
        return self._courses.get(course_id)

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        return self._lessons.get(lesson_id)

    async def list_lessons(self, course_id: UUID) -> list[Lesson]:
        lessons = [ls for ls in self._lessons.values() if ls.course_id == course_id]
        return sorted(lessons, key=lambda ls: (ls.order, str(ls.id)))

    async def get_quiz(self, quiz_id: UUID) -> Quiz | None:
        return self._quizzes.get(quiz_id)

    async def list_quizzes(self, course_id: UUID) -> list[Quiz]:
        return [q for q in self._quizzes.values() if q.course_id == course_id]

    async def list_questions(self, quiz_id: UUID) -> list[Question]:
        return [q for q in self._questions.values() if q.quiz_id == quiz_id]

    async def add_course(self, course: Course) -> None:
        if course.id in self._courses:
            raise ValueError("course already exists")
        self._courses[course.id] = course

    async def add_lesson(self, lesson: Lesson) -> None:
        if lesson.course_id not in self._courses:
            raise KeyError("course not found")
        self._lessons[lesson.id] = lesson

    async def add_quiz(self, quiz: Quiz) -> None:
        if quiz.course_id not in self._courses:
            raise KeyError("course not found")
        self._quizzes[quiz.id] = quiz

    async def add_question(self, question: Question) -> None:
        if question.quiz_id not in self._quizzes:
            raise KeyError("quiz not found")
        self._questions[question.id] = question
