"""PostgreSQL implementation of CourseRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import AnswerRow, CourseRow, LessonRow, QuestionRow, QuizRow
from lms.models.course import Answer, Course, Lesson, Question, Quiz


class PgCourseRepo:
    """Satisfies the CourseRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_course(self, course_id: UUID) -> Course | None:
        row = await self._session.get(CourseRow, course_id)
        return _row_to_course(row) if row is not None else None

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        row = await self._session.get(LessonRow, lesson_id)
        return _row_to_lesson(row) if row is not None else None

    async def list_lessons(self, course_id: UUID) -> list[Lesson]:
        stmt = (
            select(LessonRow)
            .where(LessonRow.course_id == course_id)
            .order_by(LessonRow.order, LessonRow.id)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_lesson(r) for r in rows]

    async def get_quiz(self, quiz_id: UUID) -> Quiz | None:
        row = await self._session.get(QuizRow, quiz_id)
        return _row_to_quiz(row) if row is not None else None

    async def list_quizzes(self, course_id: UUID) -> list[Quiz]:
        stmt = select(QuizRow).where(QuizRow.course_id == course_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_quiz(r) for r in rows]

    async def list_questions(self, quiz_id: UUID) -> list[Question]:
        q_stmt = (
            select(QuestionRow)
            .where(QuestionRow.quiz_id == quiz_id)
            .order_by(QuestionRow.id)
        )
        question_rows = (await self._session.execute(q_stmt)).scalars().all()
        if not question_rows:
            return []

        a_stmt = (
            select(AnswerRow)
            .where(AnswerRow.question_id.in_([r.id for r in question_rows]))
            .order_by(AnswerRow.id)
        )
        answers: dict[UUID, list[Answer]] = {}
        for a in (await self._session.execute(a_stmt)).scalars():
            answers.setdefault(a.question_id, []).append(
                Answer(
                    id=a.id,
                    question_id=a.question_id,
                    text=a.text,
                    is_correct=a.is_correct,
                )
            )

        return [
            Question(
                id=r.id,
                quiz_id=r.quiz_id,
                text=r.text,
                question_type=r.question_type,
                answers=tuple(answers.get(r.id, [])),
            )
            for r in question_rows
        ]

    async def add_course(self, course: Course) -> None:
        self._session.add(
            CourseRow(
                id=course.id,
                title=course.title,
                created_by=course.created_by,
                is_published=course.is_published,
                created_at=course.created_at,
            )
        )
        await self._session.flush()

    async def add_lesson(self, lesson: Lesson) -> None:
        self._session.add(
            LessonRow(
                id=lesson.id,
                course_id=lesson.course_id,
                title=lesson.title,
                order=lesson.order,
                estimated_duration=lesson.estimated_duration,
                video_url=lesson.video_url,
            )
        )
        await self._session.flush()

    async def add_quiz(self, quiz: Quiz) -> None:
        self._session.add(
            QuizRow(
                id=quiz.id,
                course_id=quiz.course_id,
                lesson_id=quiz.lesson_id,
                title=quiz.title,
                passing_score=quiz.passing_score,
                time_limit=quiz.time_limit,
            )
        )
        await self._session.flush()

    async def add_question(self, question: Question) -> None:
        self._session.add(
            QuestionRow(
                id=question.id,
                quiz_id=question.quiz_id,
                text=question.text,
                question_type=question.question_type,
            )
        )
        # Parent row must exist before its answers reference it.
        await self._session.flush()
        self._session.add_all(
            AnswerRow(
                id=a.id,
                question_id=question.id,
                text=a.text,
                is_correct=a.is_correct,
            )
            for a in question.answers
        )
        await self._session.flush()


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        title=row.title,
        created_by=row.created_by,
        is_published=row.is_published,
        created_at=row.created_at,
    )


def _row_to_lesson(row: LessonRow) -> Lesson:
    return Lesson(
        id=row.id,
        course_id=row.course_id,
        title=row.title,
        order=row.order,
        estimated_duration=row.estimated_duration,
        video_url=row.video_url,
    )


def _row_to_quiz(row: QuizRow) -> Quiz:
    return Quiz(
        id=row.id,
        course_id=row.course_id,
        title=row.title,
        passing_score=row.passing_score,
        time_limit=row.time_limit,
        lesson_id=row.lesson_id,
    )
