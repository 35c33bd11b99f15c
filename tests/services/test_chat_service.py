from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from lms.core.errors import NotFoundError, UnauthorizedError, ValidationError
from lms.models.chat import ChatRole
from lms.models.enrollment import Enrollment
from lms.models.user import User
from lms.repos.store import Store
from lms.services import chat_service
from tests.conftest import SeededCourse, student_context


def _instructor(seeded: SeededCourse):
    return student_context(seeded.instructor.id)


def _student(seeded: SeededCourse):
    return student_context(seeded.student.id)


# ---- room authorization ----


def test_creator_joins_as_instructor(store: Store, seeded: SeededCourse) -> None:
    access = asyncio.run(
        chat_service.authorize_room(store, _instructor(seeded), seeded.course.id)
    )
    assert access.role == ChatRole.INSTRUCTOR


def test_enrolled_user_joins_as_student(store: Store, seeded: SeededCourse) -> None:
    access = asyncio.run(
        chat_service.authorize_room(store, _student(seeded), seeded.course.id)
    )
    assert access.role == ChatRole.STUDENT


def test_outsider_cannot_join(store: Store, seeded: SeededCourse) -> None:
    with pytest.raises(UnauthorizedError):
        asyncio.run(
            chat_service.authorize_room(store, student_context(), seeded.course.id)
        )


def test_unknown_course_room(store: Store) -> None:
    with pytest.raises(NotFoundError):
        asyncio.run(chat_service.authorize_room(store, student_context(), uuid4()))


# ---- message rules ----


def test_student_messages_instructor(store: Store, seeded: SeededCourse) -> None:
    delivered = asyncio.run(
        chat_service.send_message(
            store,
            _student(seeded),
            seeded.course.id,
            seeded.instructor.id,
            "  When is the deadline?  ",
        )
    )
    assert delivered.message.message == "When is the deadline?"
    assert delivered.sender_name == "Sam Student"
    assert delivered.message.receiver_id == seeded.instructor.id


def test_student_cannot_message_another_student(
    store: Store, seeded: SeededCourse
) -> None:
    classmate = User.new(email="peer@example.com", full_name="Pat Peer")

    async def scenario():
        await store.users.add(classmate)
        await store.enrollments.add(
            Enrollment.new(user_id=classmate.id, course_id=seeded.course.id)
        )
        await chat_service.send_message(
            store, _student(seeded), seeded.course.id, classmate.id, "hi"
        )

    with pytest.raises(UnauthorizedError, match="only message the course instructor"):
        asyncio.run(scenario())


def test_instructor_messages_enrolled_student_only(
    store: Store, seeded: SeededCourse
) -> None:
    asyncio.run(
        chat_service.send_message(
            store, _instructor(seeded), seeded.course.id, seeded.student.id, "Welcome"
        )
    )
    with pytest.raises(UnauthorizedError, match="not enrolled"):
        asyncio.run(
            chat_service.send_message(
                store, _instructor(seeded), seeded.course.id, uuid4(), "Hello?"
            )
        )


def test_cannot_message_yourself(store: Store, seeded: SeededCourse) -> None:
    with pytest.raises(UnauthorizedError, match="yourself"):
        asyncio.run(
            chat_service.send_message(
                store, _student(seeded), seeded.course.id, seeded.student.id, "me"
            )
        )


@pytest.mark.parametrize(
    "text", ["", "   ", "x" * (chat_service.MAX_MESSAGE_LENGTH + 1)]
)
def test_rejects_empty_or_oversized_text(
    store: Store, seeded: SeededCourse, text: str
) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(
            chat_service.send_message(
                store, _student(seeded), seeded.course.id, seeded.instructor.id, text
            )
        )
    assert asyncio.run(store.chat.list_by_course(seeded.course.id)) == []


def test_message_at_length_limit_is_accepted(
    store: Store, seeded: SeededCourse
) -> None:
    text = "y" * chat_service.MAX_MESSAGE_LENGTH
    delivered = asyncio.run(
        chat_service.send_message(
            store, _student(seeded), seeded.course.id, seeded.instructor.id, text
        )
    )
    assert len(delivered.message.message) == chat_service.MAX_MESSAGE_LENGTH


# ---- access verification and history ----


def test_verify_access_for_student(store: Store, seeded: SeededCourse) -> None:
    v = asyncio.run(chat_service.verify_access(store, _student(seeded), seeded.course.id))
    assert v.has_access is True
    assert v.role == ChatRole.STUDENT
    assert v.other_party_id == seeded.instructor.id
    assert v.enrolled_students == []


def test_verify_access_for_instructor_lists_students(
    store: Store, seeded: SeededCourse
) -> None:
    v = asyncio.run(
        chat_service.verify_access(store, _instructor(seeded), seeded.course.id)
    )
    assert v.has_access is True
    assert v.role == ChatRole.INSTRUCTOR
    assert [(p.id, p.full_name) for p in v.enrolled_students] == [
        (seeded.student.id, "Sam Student")
    ]


def test_verify_access_for_outsider(store: Store, seeded: SeededCourse) -> None:
    v = asyncio.run(chat_service.verify_access(store, student_context(), seeded.course.id))
    assert v.has_access is False
    assert v.role is None


def test_history_is_in_persistence_order(store: Store, seeded: SeededCourse) -> None:
    async def scenario():
        await chat_service.send_message(
            store, _student(seeded), seeded.course.id, seeded.instructor.id, "first"
        )
        await chat_service.send_message(
            store, _instructor(seeded), seeded.course.id, seeded.student.id, "second"
        )
        return await chat_service.message_history(
            store, _student(seeded), seeded.course.id
        )

    history = asyncio.run(scenario())
    assert [d.message.message for d in history] == ["first", "second"]
    assert [d.sender_name for d in history] == ["Sam Student", "Ada Instructor"]


def test_unknown_sender_name_falls_back(store: Store, seeded: SeededCourse) -> None:
    # An enrolled user with no local profile row.
    ghost = uuid4()

    async def scenario():
        await store.enrollments.add(
            Enrollment.new(user_id=ghost, course_id=seeded.course.id)
        )
        return await chat_service.send_message(
            store, student_context(ghost), seeded.course.id, seeded.instructor.id, "?"
        )

    delivered = asyncio.run(scenario())
    assert delivered.sender_name == chat_service.UNKNOWN_SENDER
