from __future__ import annotations

from collections.abc import Collection
from typing import Protocol
from uuid import UUID

from lms.models.progress import LessonCompletion, LessonVideoProgress


class LessonProgressRepo(Protocol):
    """Lesson completions (append-only) and video resume positions (upsert)."""

    async def get_completion(
        self, lesson_id: UUID, user_id: UUID
    ) -> LessonCompletion | None: ...
    async def add_completion(self, completion: LessonCompletion) -> None: ...
    async def list_completions(
        self, user_id: UUID, lesson_ids: Collection[UUID]
    ) -> list[LessonCompletion]: ...
    async def get_video_progress(
        self, lesson_id: UUID, user_id: UUID
    ) -> LessonVideoProgress | None: ...
    async def save_video_progress(
        self, progress: LessonVideoProgress, *, forward_only: bool = False
    ) -> None:
        """Upsert the resume position.  forward_only never lowers a stored one."""
        ...


class InMemoryLessonProgressRepo:
    def __init__(self) -> None:
        self._completions: dict[tuple[UUID, UUID], LessonCompletion] = {}
        self._video: dict[tuple[UUID, UUID], LessonVideoProgress] = {}

    async def get_completion(
        self, lesson_id: UUID, user_id: UUID
    ) -> LessonCompletion | None:
        return self._completions.get((lesson_id, user_id))

    async def add_completion(self, completion: LessonCompletion) -> None:
        key = (completion.lesson_id, completion.user_id)
        if key in self._completions:
            raise ValueError("lesson already completed")
        self._completions[key] = completion

    async def list_completions(
        self, user_id: UUID, lesson_ids: Collection[UUID]
    ) -> list[LessonCompletion]:
        wanted = set(lesson_ids)
        return [
            c
            for c in self._completions.values()
            if c.user_id == user_id and c.lesson_id in wanted
        ]

    async def get_video_progress(
        self, lesson_id: UUID, user_id: UUID
    ) -> LessonVideoProgress | None:
        return self._video.get((lesson_id, user_id))

    async def save_video_progress(
        self, progress: LessonVideoProgress, *, forward_only: bool = False
    ) -> None:
        key = (progress.lesson_id, progress.user_id)
        existing = self._video.get(key)
        if (
            forward_only
            and existing is not None
            and existing.last_watched_seconds >= progress.last_watched_seconds
        ):
            return
        self._video[key] = progress
