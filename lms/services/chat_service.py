"""Chat room authorization and message persistence.

A course room admits exactly two kinds of participant:

  instructor  the course's created_by (even if also enrolled)
  student     anyone with an enrollment in the course

Students may only message the instructor; the instructor may only
message an enrolled student.  Every hub invocation re-authorizes, so
losing an enrollment takes effect on the next message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from uuid import UUID

from lms.core.errors import NotFoundError, UnauthorizedError, ValidationError
from lms.core.metrics import CHAT_MESSAGES
from lms.models.chat import ChatMessage, ChatRole
from lms.models.course import Course
from lms.models.user_context import UserContext
from lms.repos.store import Store

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4000
UNKNOWN_SENDER = "Unknown"


@dataclass(frozen=True, slots=True)
class RoomAccess:
    course: Course
    role: ChatRole


@dataclass(frozen=True, slots=True)
class Participant:
    id: UUID
    full_name: str


@dataclass(frozen=True, slots=True)
class AccessVerification:
    has_access: bool
    course_id: UUID
    role: ChatRole | None = None
    other_party_id: UUID | None = None
    enrolled_students: list[Participant] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class DeliveredMessage:
    message: ChatMessage
    sender_name: str


async def _get_course(store: Store, course_id: UUID) -> Course:
    course = await store.courses.get_course(course_id)
    if course is None:
        raise NotFoundError("course not found")
    return course


async def _role_in(store: Store, course: Course, user_id: UUID) -> ChatRole | None:
    if course.created_by == user_id:
        return ChatRole.INSTRUCTOR
    if await store.enrollments.get(user_id, course.id) is not None:
        return ChatRole.STUDENT
    return None


async def authorize_room(
    store: Store, user: UserContext, course_id: UUID
) -> RoomAccess:
    course = await _get_course(store, course_id)
    role = await _role_in(store, course, user.user_id)
    if role is None:
        logger.warning(
            "Chat room access denied",
            extra={"user_id": str(user.user_id), "course_id": str(course_id)},
        )
        raise UnauthorizedError("not a participant of this course")
    return RoomAccess(course=course, role=role)


async def authorize_message(
    store: Store, user: UserContext, course_id: UUID, receiver_id: UUID
) -> RoomAccess:
    access = await authorize_room(store, user, course_id)

    if receiver_id == user.user_id:
        raise UnauthorizedError("cannot message yourself")

    if access.role == ChatRole.STUDENT:
        allowed = receiver_id == access.course.created_by
        reason = "students may only message the course instructor"
    else:
        allowed = await store.enrollments.get(receiver_id, course_id) is not None
        reason = "receiver is not enrolled in this course"

    if not allowed:
        logger.warning(
            "Chat message rejected: %s",
            reason,
            extra={"user_id": str(user.user_id), "course_id": str(course_id)},
        )
        raise UnauthorizedError(reason)
    return access


async def _sender_name(store: Store, user_id: UUID) -> str:
    sender = await store.users.get_by_id(user_id)
    return sender.full_name if sender and sender.full_name else UNKNOWN_SENDER


async def send_message(
    store: Store,
    user: UserContext,
    course_id: UUID,
    receiver_id: UUID,
    text: str,
) -> DeliveredMessage:
    text = (text or "").strip()
    if not text:
        raise ValidationError("message must be non-empty")
    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"message exceeds {MAX_MESSAGE_LENGTH} characters")

    await authorize_message(store, user, course_id, receiver_id)

    message = ChatMessage.new(
        course_id=course_id,
        sender_id=user.user_id,
        receiver_id=receiver_id,
        message=text,
    )
    await store.chat.add(message)
    CHAT_MESSAGES.inc()
    logger.debug(
        "Chat message %s persisted",
        message.id,
        extra={"user_id": str(user.user_id), "course_id": str(course_id)},
    )
    return DeliveredMessage(
        message=message, sender_name=await _sender_name(store, user.user_id)
    )


async def verify_access(
    store: Store, user: UserContext, course_id: UUID
) -> AccessVerification:
    course = await _get_course(store, course_id)
    role = await _role_in(store, course, user.user_id)

    if role is None:
        return AccessVerification(has_access=False, course_id=course_id)

    if role == ChatRole.STUDENT:
        return AccessVerification(
            has_access=True,
            course_id=course_id,
            role=role,
            other_party_id=course.created_by,
        )

    student_ids = [
        e.user_id
        for e in await store.enrollments.list_by_course(course_id)
        if e.user_id != user.user_id
    ]
    names = {u.id: u.full_name for u in await store.users.list_by_ids(student_ids)}
    return AccessVerification(
        has_access=True,
        course_id=course_id,
        role=role,
        enrolled_students=[
            Participant(id=sid, full_name=names.get(sid) or UNKNOWN_SENDER)
            for sid in student_ids
        ],
    )


async def message_history(
    store: Store, user: UserContext, course_id: UUID
) -> list[DeliveredMessage]:
    """All room messages in persistence order."""
    await authorize_room(store, user, course_id)
    messages = await store.chat.list_by_course(course_id)

    sender_ids = {m.sender_id for m in messages}
    names = {u.id: u.full_name for u in await store.users.list_by_ids(sender_ids)}
    return [
        DeliveredMessage(
            message=m, sender_name=names.get(m.sender_id) or UNKNOWN_SENDER
        )
        for m in messages
    ]
