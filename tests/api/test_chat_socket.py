"""WebSocket hub at /hubs/chat.

Each websocket_connect() session runs the endpoint on its own portal
thread; frames are exchanged through the TestClient's queues, so two
open sessions can exercise room fan-out.
"""

from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from lms.repos.store import Store
from lms.services import chat_service
from lms.services.chat_hub import chat_hub
from tests.conftest import SeededCourse, mint_token


def _hub_url(user_id=None) -> str:
    return f"/hubs/chat?access_token={mint_token(user_id)}"


def test_connect_without_token_is_rejected(client: TestClient) -> None:
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/hubs/chat"):
            pass
    assert exc_info.value.code == 1008


def test_connect_with_invalid_token_is_rejected(client: TestClient) -> None:
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/hubs/chat?access_token=garbage"):
            pass
    assert exc_info.value.code == 1008


def test_join_broadcasts_user_joined(client: TestClient, seeded: SeededCourse) -> None:
    with client.websocket_connect(_hub_url(seeded.student.id)) as ws:
        ws.send_json({"type": "JoinCourseRoom", "courseId": str(seeded.course.id)})
        frame = ws.receive_json()

    assert frame == {"type": "UserJoined", "userId": str(seeded.student.id)}


def test_join_without_access_returns_error_frame(
    client: TestClient, seeded: SeededCourse
) -> None:
    with client.websocket_connect(_hub_url()) as ws:
        ws.send_json({"type": "JoinCourseRoom", "courseId": str(seeded.course.id)})
        frame = ws.receive_json()

        assert frame["type"] == "Error"
        assert frame["invocation"] == "JoinCourseRoom"
        assert frame["error"] == "not a participant of this course"

        # The connection survives a rejected invocation.
        ws.send_json({"type": "Bogus"})
        assert ws.receive_json()["invocation"] == "Bogus"


def test_malformed_frames_return_errors(client: TestClient) -> None:
    with client.websocket_connect(_hub_url()) as ws:
        ws.send_text("{not json")
        assert ws.receive_json()["error"] == "frame is not valid JSON"

        ws.send_json({"type": "SendMessage", "courseId": "nope"})
        frame = ws.receive_json()
        assert frame["invocation"] == "SendMessage"
        assert frame["error"] == "invalid payload"


def test_non_string_invocation_keeps_connection(client: TestClient) -> None:
    with client.websocket_connect(_hub_url()) as ws:
        ws.send_json({"type": ["JoinCourseRoom"]})
        frame = ws.receive_json()
        assert frame["type"] == "Error"
        assert frame["invocation"] is None
        assert frame["error"] == "unknown invocation ['JoinCourseRoom']"

        ws.send_json({"type": {"name": "SendMessage"}})
        assert ws.receive_json()["invocation"] is None

        ws.send_json({"type": "Bogus"})
        assert ws.receive_json()["invocation"] == "Bogus"


def test_unexpected_failure_returns_generic_error(
    client: TestClient, seeded: SeededCourse, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def broken(*args, **kwargs):
        raise RuntimeError("database went away")

    monkeypatch.setattr(chat_service, "authorize_room", broken)
    room = str(seeded.course.id)

    with client.websocket_connect(_hub_url(seeded.student.id)) as ws:
        ws.send_json({"type": "JoinCourseRoom", "courseId": room})
        frame = ws.receive_json()
        assert frame == {
            "type": "Error",
            "invocation": "JoinCourseRoom",
            "error": "internal error",
        }

        monkeypatch.undo()
        ws.send_json({"type": "JoinCourseRoom", "courseId": room})
        assert ws.receive_json()["type"] == "UserJoined"


def test_message_fans_out_to_room(
    client: TestClient, store: Store, seeded: SeededCourse
) -> None:
    room = str(seeded.course.id)
    with client.websocket_connect(_hub_url(seeded.instructor.id)) as teacher:
        teacher.send_json({"type": "JoinCourseRoom", "courseId": room})
        assert teacher.receive_json()["type"] == "UserJoined"

        with client.websocket_connect(_hub_url(seeded.student.id)) as student:
            student.send_json({"type": "JoinCourseRoom", "courseId": room})
            assert student.receive_json()["userId"] == str(seeded.student.id)
            assert teacher.receive_json()["userId"] == str(seeded.student.id)

            student.send_json(
                {
                    "type": "SendMessage",
                    "courseId": room,
                    "receiverId": str(seeded.instructor.id),
                    "message": "Office hours today?",
                }
            )
            mine = student.receive_json()
            theirs = teacher.receive_json()

    assert mine == theirs
    assert mine["type"] == "ReceiveMessage"
    data = mine["data"]
    assert data["message"] == "Office hours today?"
    assert data["senderName"] == "Sam Student"
    assert data["receiverId"] == str(seeded.instructor.id)

    persisted = asyncio.run(store.chat.list_by_course(seeded.course.id))
    assert [m.message for m in persisted] == ["Office hours today?"]


def test_rejected_send_is_not_persisted(
    client: TestClient, store: Store, seeded: SeededCourse
) -> None:
    with client.websocket_connect(_hub_url(seeded.student.id)) as ws:
        ws.send_json(
            {
                "type": "SendMessage",
                "courseId": str(seeded.course.id),
                "receiverId": str(seeded.student.id),
                "message": "talking to myself",
            }
        )
        frame = ws.receive_json()

    assert frame["type"] == "Error"
    assert frame["error"] == "cannot message yourself"
    assert asyncio.run(store.chat.list_by_course(seeded.course.id)) == []


def test_disconnect_leaves_rooms(client: TestClient, seeded: SeededCourse) -> None:
    with client.websocket_connect(_hub_url(seeded.student.id)) as ws:
        ws.send_json({"type": "JoinCourseRoom", "courseId": str(seeded.course.id)})
        ws.receive_json()
        assert len(chat_hub.members(seeded.course.id)) == 1

    assert chat_hub.members(seeded.course.id) == frozenset()
