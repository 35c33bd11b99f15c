"""PostgreSQL implementation of ChatRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import ChatMessageRow
from lms.models.chat import ChatMessage


class PgChatRepo:
    """Satisfies the ChatRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, message: ChatMessage) -> None:
        self._session.add(
            ChatMessageRow(
                id=message.id,
                course_id=message.course_id,
                sender_id=message.sender_id,
                receiver_id=message.receiver_id,
                message=message.message,
                sent_at=message.sent_at,
            )
        )
        await self._session.flush()

    async def list_by_course(self, course_id: UUID) -> list[ChatMessage]:
        stmt = (
            select(ChatMessageRow)
            .where(ChatMessageRow.course_id == course_id)
            .order_by(ChatMessageRow.sent_at, ChatMessageRow.id)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [
            ChatMessage(
                id=r.id,
                course_id=r.course_id,
                sender_id=r.sender_id,
                receiver_id=r.receiver_id,
                message=r.message,
                sent_at=r.sent_at,
            )
            for r in rows
        ]
