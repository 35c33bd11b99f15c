"""Quiz grading.

grade() is pure: exact set match per question, no partial credit,
unanswered questions count as wrong.  submit_attempt() validates the
submission against the quiz, persists the attempt and syncs the
enrollment status in the caller's unit of work.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from lms.core.errors import NotFoundError, UnauthorizedError, ValidationError
from lms.core.metrics import QUIZ_ATTEMPTS
from lms.models.course import Question, Quiz
from lms.models.progress import QuizAttempt
from lms.models.user_context import UserContext
from lms.repos.store import Store
from lms.services.progress_service import percentage, sync_enrollment_status

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SubmittedAnswer:
    question_id: UUID
    selected_answer_ids: frozenset[UUID]


@dataclass(frozen=True, slots=True)
class GradeResult:
    score: int
    total_questions: int
    correct_answers: int


@dataclass(frozen=True, slots=True)
class AttemptResult:
    attempt_id: UUID
    quiz_id: UUID
    course_id: UUID
    score: int
    total_questions: int
    correct_answers: int
    passing_score: int
    passed: bool
    attempt_date: datetime


def validate_submission(
    questions: Sequence[Question], answers: Sequence[SubmittedAnswer]
) -> None:
    """Raise ValidationError for anything that does not belong to the quiz."""
    if not questions:
        raise ValidationError("quiz has no questions")

    by_id = {q.id: q for q in questions}
    seen: set[UUID] = set()
    for a in answers:
        question = by_id.get(a.question_id)
        if question is None:
            raise ValidationError(f"question {a.question_id} is not part of this quiz")
        if a.question_id in seen:
            raise ValidationError(f"question {a.question_id} answered more than once")
        seen.add(a.question_id)
        stray = a.selected_answer_ids - question.answer_ids
        if stray:
            raise ValidationError(
                f"answer {sorted(str(s) for s in stray)[0]} does not belong "
                f"to question {a.question_id}"
            )


def grade(
    questions: Sequence[Question], answers: Sequence[SubmittedAnswer]
) -> GradeResult:
    selected = {a.question_id: a.selected_answer_ids for a in answers}
    correct = sum(
        1 for q in questions if selected.get(q.id) == q.correct_answer_ids
    )
    return GradeResult(
        score=percentage(correct, len(questions)),
        total_questions=len(questions),
        correct_answers=correct,
    )


async def _enrolled_quiz(store: Store, user: UserContext, quiz_id: UUID) -> Quiz:
    quiz = await store.courses.get_quiz(quiz_id)
    if quiz is None:
        raise NotFoundError("quiz not found")
    if await store.enrollments.get(user.user_id, quiz.course_id) is None:
        logger.warning(
            "Rejected quiz access without enrollment",
            extra={"user_id": str(user.user_id), "course_id": str(quiz.course_id)},
        )
        raise UnauthorizedError("you must be enrolled in this course")
    return quiz


async def submit_attempt(
    store: Store,
    user: UserContext,
    quiz_id: UUID,
    answers: Sequence[SubmittedAnswer],
) -> AttemptResult:
    quiz = await _enrolled_quiz(store, user, quiz_id)
    questions = await store.courses.list_questions(quiz_id)
    validate_submission(questions, answers)

    graded = grade(questions, answers)
    passed = graded.score >= quiz.passing_score

    attempt = QuizAttempt.new(
        quiz_id=quiz_id, user_id=user.user_id, score=graded.score, passed=passed
    )
    await store.quiz_attempts.add(attempt)
    await sync_enrollment_status(
        store, user.user_id, quiz.course_id, now=attempt.attempt_date
    )

    QUIZ_ATTEMPTS.labels(passed=str(passed).lower()).inc()
    logger.info(
        "Quiz %s graded score=%d passed=%s",
        quiz_id,
        graded.score,
        passed,
        extra={"user_id": str(user.user_id), "course_id": str(quiz.course_id)},
    )

    return AttemptResult(
        attempt_id=attempt.id,
        quiz_id=quiz_id,
        course_id=quiz.course_id,
        score=graded.score,
        total_questions=graded.total_questions,
        correct_answers=graded.correct_answers,
        passing_score=quiz.passing_score,
        passed=passed,
        attempt_date=attempt.attempt_date,
    )


async def get_quiz_for_attempt(
    store: Store, user: UserContext, quiz_id: UUID
) -> tuple[Quiz, list[Question]]:
    """The quiz and its questions; callers must not expose is_correct."""
    quiz = await _enrolled_quiz(store, user, quiz_id)
    return quiz, await store.courses.list_questions(quiz_id)


@dataclass(frozen=True, slots=True)
class AttemptHistoryItem:
    attempt: QuizAttempt
    quiz_title: str
    course_id: UUID
    passing_score: int


async def list_attempts(store: Store, user: UserContext) -> list[AttemptHistoryItem]:
    """The user's attempts, newest first."""
    items: list[AttemptHistoryItem] = []
    quizzes: dict[UUID, Quiz | None] = {}
    for attempt in await store.quiz_attempts.list_by_user(user.user_id):
        if attempt.quiz_id not in quizzes:
            quizzes[attempt.quiz_id] = await store.courses.get_quiz(attempt.quiz_id)
        quiz = quizzes[attempt.quiz_id]
        if quiz is None:
            continue
        items.append(
            AttemptHistoryItem(
                attempt=attempt,
                quiz_title=quiz.title,
                course_id=quiz.course_id,
                passing_score=quiz.passing_score,
            )
        )
    return items
