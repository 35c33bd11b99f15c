"""PostgreSQL implementation of QuizAttemptRepo."""

from __future__ import annotations

from collections.abc import Collection
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import QuizAttemptRow
from lms.models.progress import QuizAttempt


class PgQuizAttemptRepo:
    """Satisfies the QuizAttemptRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, attempt: QuizAttempt) -> None:
        self._session.add(
            QuizAttemptRow(
                id=attempt.id,
                quiz_id=attempt.quiz_id,
                user_id=attempt.user_id,
                score=attempt.score,
                passed=attempt.passed,
                attempt_date=attempt.attempt_date,
            )
        )
        await self._session.flush()

    async def list_for_quizzes(
        self, user_id: UUID, quiz_ids: Collection[UUID]
    ) -> list[QuizAttempt]:
        if not quiz_ids:
            return []
        stmt = (
            select(QuizAttemptRow)
            .where(
                QuizAttemptRow.user_id == user_id,
                QuizAttemptRow.quiz_id.in_(list(quiz_ids)),
            )
            .order_by(QuizAttemptRow.attempt_date)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_attempt(r) for r in rows]

    async def list_by_user(self, user_id: UUID) -> list[QuizAttempt]:
        stmt = (
            select(QuizAttemptRow)
            .where(QuizAttemptRow.user_id == user_id)
            .order_by(QuizAttemptRow.attempt_date.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_attempt(r) for r in rows]


def _row_to_attempt(row: QuizAttemptRow) -> QuizAttempt:
    return QuizAttempt(
        id=row.id,
        quiz_id=row.quiz_id,
        user_id=row.user_id,
        score=row.score,
        passed=row.passed,
        attempt_date=row.attempt_date,
    )
