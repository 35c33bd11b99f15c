"""PostgreSQL implementation of LessonProgressRepo."""

from __future__ import annotations

from collections.abc import Collection
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import LessonCompletionRow, LessonVideoProgressRow
from lms.models.progress import LessonCompletion, LessonVideoProgress


class PgLessonProgressRepo:
    """Satisfies the LessonProgressRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_completion(
        self, lesson_id: UUID, user_id: UUID
    ) -> LessonCompletion | None:
        row = await self._session.get(LessonCompletionRow, (lesson_id, user_id))
        if row is None:
            return None
        return LessonCompletion(
            lesson_id=row.lesson_id, user_id=row.user_id, completed_at=row.completed_at
        )

    async def add_completion(self, completion: LessonCompletion) -> None:
        self._session.add(
            LessonCompletionRow(
                lesson_id=completion.lesson_id,
                user_id=completion.user_id,
                completed_at=completion.completed_at,
            )
        )
        await self._session.flush()

    async def list_completions(
        self, user_id: UUID, lesson_ids: Collection[UUID]
    ) -> list[LessonCompletion]:
        if not lesson_ids:
            return []
        stmt = select(LessonCompletionRow).where(
            LessonCompletionRow.user_id == user_id,
            LessonCompletionRow.lesson_id.in_(list(lesson_ids)),
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [
            LessonCompletion(
                lesson_id=r.lesson_id, user_id=r.user_id, completed_at=r.completed_at
            )
            for r in rows
        ]

    async def get_video_progress(
        self, lesson_id: UUID, user_id: UUID
    ) -> LessonVideoProgress | None:
        # The upsert below bypasses the identity map; reload any cached row.
        stmt = (
            select(LessonVideoProgressRow)
            .where(
                LessonVideoProgressRow.lesson_id == lesson_id,
                LessonVideoProgressRow.user_id == user_id,
            )
            .execution_options(populate_existing=True)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return LessonVideoProgress(
            lesson_id=row.lesson_id,
            user_id=row.user_id,
            last_watched_seconds=row.last_watched_seconds,
            last_updated_at=row.last_updated_at,
        )

    async def save_video_progress(
        self, progress: LessonVideoProgress, *, forward_only: bool = False
    ) -> None:
        # INSERT ... ON CONFLICT keeps one row per (user, lesson) under
        # concurrent saves from several devices.
        stmt = insert(LessonVideoProgressRow).values(
            id=uuid4(),
            lesson_id=progress.lesson_id,
            user_id=progress.user_id,
            last_watched_seconds=progress.last_watched_seconds,
            last_updated_at=progress.last_updated_at,
        )
        stmt = stmt.on_conflict_do_update(
            constraint="uq_video_progress_user_lesson",
            set_={
                "last_watched_seconds": stmt.excluded.last_watched_seconds,
                "last_updated_at": stmt.excluded.last_updated_at,
            },
            where=(
                LessonVideoProgressRow.last_watched_seconds
                < stmt.excluded.last_watched_seconds
            )
            if forward_only
            else None,
        )
        await self._session.execute(stmt)
