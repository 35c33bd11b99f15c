"""Course chat: REST access checks and history, plus the WebSocket hub.

Hub protocol (JSON frames over /hubs/chat?access_token=<jwt>):

  client → server   {"type": "JoinCourseRoom", "courseId": ...}
                    {"type": "SendMessage", "courseId": ..., "receiverId": ...,
                     "message": ...}
  server → client   {"type": "UserJoined", "userId": ...}
                    {"type": "ReceiveMessage", "data": {...}}
                    {"type": "Error", "invocation": ..., "error": ...}

A missing or invalid token closes the socket with 1008 before accept.
A rejected invocation only produces an Error frame for its caller; the
connection and its joined rooms stay intact.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

import jwt
import pydantic
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from lms.api.dependencies import CurrentUser, StoreDep, user_context_from_token
from lms.api.schemas import ApiModel
from lms.core.errors import DomainError, ValidationError
from lms.core.metrics import CHAT_REJECTIONS
from lms.models.user_context import UserContext
from lms.repos.store import store_scope
from lms.services import chat_service
from lms.services.chat_hub import chat_hub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


class ParticipantOut(ApiModel):
    id: UUID
    full_name: str


class AccessOut(ApiModel):
    has_access: bool
    role: str | None = None
    course_id: UUID
    other_party_id: UUID | None = None
    enrolled_students: list[ParticipantOut] = []


class MessageOut(ApiModel):
    id: UUID
    course_id: UUID
    sender_id: UUID
    sender_name: str
    receiver_id: UUID
    message: str
    sent_at: datetime

    @classmethod
    def from_delivered(cls, d: chat_service.DeliveredMessage) -> MessageOut:
        m = d.message
        return cls(
            id=m.id,
            course_id=m.course_id,
            sender_id=m.sender_id,
            sender_name=d.sender_name,
            receiver_id=m.receiver_id,
            message=m.message,
            sent_at=m.sent_at,
        )


class JoinCourseRoomIn(ApiModel):
    course_id: UUID


class SendMessageIn(ApiModel):
    course_id: UUID
    receiver_id: UUID
    message: str


# ---------------------------------------------------------------------------
# REST
# ---------------------------------------------------------------------------


@router.get("/api/chat/verify/{course_id}", response_model=AccessOut)
async def verify_access(course_id: UUID, user: CurrentUser, store: StoreDep) -> AccessOut:
    v = await chat_service.verify_access(store, user, course_id)
    return AccessOut(
        has_access=v.has_access,
        role=v.role.value if v.role else None,
        course_id=v.course_id,
        other_party_id=v.other_party_id,
        enrolled_students=[
            ParticipantOut(id=p.id, full_name=p.full_name) for p in v.enrolled_students
        ],
    )


@router.get("/api/chat/messages/{course_id}", response_model=list[MessageOut])
async def message_history(
    course_id: UUID, user: CurrentUser, store: StoreDep
) -> list[MessageOut]:
    return [
        MessageOut.from_delivered(d)
        for d in await chat_service.message_history(store, user, course_id)
    ]


# ---------------------------------------------------------------------------
# WebSocket hub
# ---------------------------------------------------------------------------

_OPERATIONS = {"JoinCourseRoom": "join", "SendMessage": "send"}


async def _join(connection_id: str, user: UserContext, frame: dict[str, Any]) -> None:
    cmd = JoinCourseRoomIn.model_validate(frame)
    async with store_scope() as store:
        await chat_service.authorize_room(store, user, cmd.course_id)
    chat_hub.join(cmd.course_id, connection_id)
    logger.info(
        "Connection %s joined room",
        connection_id,
        extra={"user_id": str(user.user_id), "course_id": str(cmd.course_id)},
    )
    await chat_hub.broadcast(
        cmd.course_id, {"type": "UserJoined", "userId": str(user.user_id)}
    )


async def _send(user: UserContext, frame: dict[str, Any]) -> None:
    cmd = SendMessageIn.model_validate(frame)
    # Commit before fan-out so every receiver sees a persisted message.
    async with store_scope() as store:
        delivered = await chat_service.send_message(
            store, user, cmd.course_id, cmd.receiver_id, cmd.message
        )
    await chat_hub.broadcast(
        cmd.course_id,
        {
            "type": "ReceiveMessage",
            "data": MessageOut.from_delivered(delivered).model_dump(
                mode="json", by_alias=True
            ),
        },
    )


async def _dispatch(
    websocket: WebSocket, connection_id: str, user: UserContext, raw: str
) -> None:
    invocation: str | None = None
    try:
        try:
            frame = json.loads(raw)
        except json.JSONDecodeError:
            raise ValidationError("frame is not valid JSON") from None
        if not isinstance(frame, dict):
            raise ValidationError("frame must be a JSON object")

        kind = frame.get("type")
        invocation = kind if isinstance(kind, str) else None
        if invocation == "JoinCourseRoom":
            await _join(connection_id, user, frame)
        elif invocation == "SendMessage":
            await _send(user, frame)
        else:
            raise ValidationError(f"unknown invocation {kind!r}")
    except (DomainError, pydantic.ValidationError) as e:
        error = e.message if isinstance(e, DomainError) else "invalid payload"
        await _reject(websocket, invocation, error)
    except WebSocketDisconnect:
        raise
    except Exception:
        logger.exception(
            "Chat invocation %s failed on connection %s",
            invocation,
            connection_id,
            extra={"user_id": str(user.user_id)},
        )
        await _reject(websocket, invocation, "internal error")


async def _reject(websocket: WebSocket, invocation: str | None, error: str) -> None:
    CHAT_REJECTIONS.labels(operation=_OPERATIONS.get(invocation or "", "unknown")).inc()
    await websocket.send_json({"type": "Error", "invocation": invocation, "error": error})


@router.websocket("/hubs/chat")
async def chat_socket(websocket: WebSocket, access_token: str | None = None) -> None:
    token = access_token
    auth_header = websocket.headers.get("authorization")
    if not token and auth_header and auth_header.lower().startswith("bearer "):
        token = auth_header.split(" ", 1)[1]

    if not token:
        CHAT_REJECTIONS.labels(operation="connect").inc()
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    try:
        user = user_context_from_token(token)
    except jwt.InvalidTokenError as e:
        logger.warning("Chat hub token rejected: %s", e)
        CHAT_REJECTIONS.labels(operation="connect").inc()
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    connection_id = str(uuid4())
    chat_hub.connect(connection_id, websocket)
    logger.info(
        "Chat connection %s opened", connection_id, extra={"user_id": str(user.user_id)}
    )

    try:
        while True:
            raw = await websocket.receive_text()
            await _dispatch(websocket, connection_id, user, raw)
    except WebSocketDisconnect:
        pass
    finally:
        chat_hub.disconnect(connection_id)
        logger.info(
            "Chat connection %s closed",
            connection_id,
            extra={"user_id": str(user.user_id)},
        )
