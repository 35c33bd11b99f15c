from __future__ import annotations

from collections.abc import Collection
from typing import Protocol
from uuid import UUID

from lms.models.progress import QuizAttempt


class QuizAttemptRepo(Protocol):
    async def add(self, attempt: QuizAttempt) -> None: ...
    async def list_for_quizzes(
        self, user_id: UUID, quiz_ids: Collection[UUID]
    ) -> list[QuizAttempt]: ...
    async def list_by_user(self, user_id: UUID) -> list[QuizAttempt]: ...


class InMemoryQuizAttemptRepo:
    def __init__(self) -> None:
        self._attempts: list[QuizAttempt] = []

    async def add(self, attempt: QuizAttempt) -> None:
        self._attempts.append(attempt)

    async def list_for_quizzes(
        self, user_id: UUID, quiz_ids: Collection[UUID]
    ) -> list[QuizAttempt]:
        wanted = set(quiz_ids)
        return [
            a for a in self._attempts if a.user_id == user_id and a.quiz_id in wanted
        ]

    async def list_by_user(self, user_id: UUID) -> list[QuizAttempt]:
        """Newest first."""
        found = [a for a in self._attempts if a.user_id == user_id]
        return sorted(found, key=lambda a: a.attempt_date, reverse=True)
