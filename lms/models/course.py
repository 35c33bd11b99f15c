from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    title: str
    created_by: UUID  # owning instructor
    is_published: bool = False
    created_at: datetime | None = None

    @staticmethod
    def new(*, title: str, created_by: UUID, is_published: bool = True) -> Course:
        return Course(
            id=uuid4(),
            title=title,
            created_by=created_by,
            is_published=is_published,
            created_at=datetime.now(UTC),
        )


@dataclass(frozen=True, slots=True)
class Lesson:
    id: UUID
    course_id: UUID
    title: str
    order: int
    estimated_duration: int = 0  # minutes
    video_url: str | None = None

    @staticmethod
    def new(
        *,
        course_id: UUID,
        title: str,
        order: int,
        estimated_duration: int = 0,
        video_url: str | None = None,
    ) -> Lesson:
        return Lesson(
            id=uuid4(),
            course_id=course_id,
            title=title,
            order=order,
            estimated_duration=estimated_duration,
            video_url=video_url,
        )


@dataclass(frozen=True, slots=True)
class Quiz:
    id: UUID
    course_id: UUID
    title: str
    passing_score: int  # 0..100
    time_limit: int = 0  # minutes, 0 = no limit
    lesson_id: UUID | None = None

    @staticmethod
    def new(
        *,
        course_id: UUID,
        title: str,
        passing_score: int,
        time_limit: int = 0,
        lesson_id: UUID | None = None,
    ) -> Quiz:
        return Quiz(
            id=uuid4(),
            course_id=course_id,
            title=title,
            passing_score=passing_score,
            time_limit=time_limit,
            lesson_id=lesson_id,
        )


@dataclass(frozen=True, slots=True)
class Answer:
    id: UUID
    question_id: UUID
    text: str
    is_correct: bool = False


@dataclass(frozen=True, slots=True)
class Question:
    """A quiz question with its answer options attached.

    Repos assemble the answers tuple at read time; there is no lazy
    navigation back to the quiz.
    """

    id: UUID
    quiz_id: UUID
    text: str
    question_type: str = "MCQ"  # MCQ|TF|MSQ
    answers: tuple[Answer, ...] = ()

    @property
    def correct_answer_ids(self) -> frozenset[UUID]:
        return frozenset(a.id for a in self.answers if a.is_correct)

    @property
    def answer_ids(self) -> frozenset[UUID]:
        return frozenset(a.id for a in self.answers)

    @staticmethod
    def new(
        *,
        quiz_id: UUID,
        text: str,
        question_type: str = "MCQ",
        answers: list[tuple[str, bool]] | None = None,
    ) -> Question:
        question_id = uuid4()
        return Question(
            id=question_id,
            quiz_id=quiz_id,
            text=text,
            question_type=question_type,
            answers=tuple(
                Answer(id=uuid4(), question_id=question_id, text=t, is_correct=c)
                for t, c in (answers or [])
            ),
        )
