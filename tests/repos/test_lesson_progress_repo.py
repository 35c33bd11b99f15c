"""Video resume positions in both LessonProgressRepo implementations.

The Pg repo is checked through the statements it issues, so no database
is needed.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy.dialects import postgresql

from lms.models.progress import LessonVideoProgress
from lms.repos.lesson_progress_repo import InMemoryLessonProgressRepo
from lms.repos.pg_lesson_progress_repo import PgLessonProgressRepo

_NOW = datetime(2026, 3, 2, 8, 30, tzinfo=UTC)


class _EmptyResult:
    def scalar_one_or_none(self):
        return None


class _RecordingSession:
    def __init__(self) -> None:
        self.statements: list = []

    async def execute(self, stmt):
        self.statements.append(stmt)
        return _EmptyResult()


def _position(lesson_id, user_id, seconds: int) -> LessonVideoProgress:
    return LessonVideoProgress(
        lesson_id=lesson_id,
        user_id=user_id,
        last_watched_seconds=seconds,
        last_updated_at=_NOW,
    )


def _on_conflict_clause(stmt) -> str:
    sql = str(stmt.compile(dialect=postgresql.dialect()))
    return sql.split("DO UPDATE", 1)[1]


# ---- in-memory ----


def test_memory_save_overwrites_by_default() -> None:
    repo = InMemoryLessonProgressRepo()
    lesson_id, user_id = uuid4(), uuid4()

    async def scenario():
        await repo.save_video_progress(_position(lesson_id, user_id, 300))
        await repo.save_video_progress(_position(lesson_id, user_id, 120))
        return await repo.get_video_progress(lesson_id, user_id)

    assert asyncio.run(scenario()).last_watched_seconds == 120


def test_memory_forward_only_keeps_furthest_position() -> None:
    repo = InMemoryLessonProgressRepo()
    lesson_id, user_id = uuid4(), uuid4()

    async def scenario():
        await repo.save_video_progress(_position(lesson_id, user_id, 300))
        await repo.save_video_progress(
            _position(lesson_id, user_id, 120), forward_only=True
        )
        await repo.save_video_progress(
            _position(lesson_id, user_id, 450), forward_only=True
        )
        return await repo.get_video_progress(lesson_id, user_id)

    assert asyncio.run(scenario()).last_watched_seconds == 450


# ---- PostgreSQL statements ----


def test_pg_read_refreshes_rows_already_in_session() -> None:
    session = _RecordingSession()
    repo = PgLessonProgressRepo(session)  # type: ignore[arg-type]

    assert asyncio.run(repo.get_video_progress(uuid4(), uuid4())) is None

    [stmt] = session.statements
    assert stmt.get_execution_options().get("populate_existing") is True


def test_pg_forward_only_upsert_guards_update() -> None:
    session = _RecordingSession()
    repo = PgLessonProgressRepo(session)  # type: ignore[arg-type]
    lesson_id, user_id = uuid4(), uuid4()

    asyncio.run(repo.save_video_progress(_position(lesson_id, user_id, 200)))
    asyncio.run(
        repo.save_video_progress(
            _position(lesson_id, user_id, 200), forward_only=True
        )
    )

    plain, guarded = (_on_conflict_clause(s) for s in session.statements)
    assert "WHERE" not in plain
    assert "WHERE" in guarded
    assert "excluded.last_watched_seconds" in guarded
