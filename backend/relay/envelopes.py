"""시그널링 메시지(envelope) 정의.

클라이언트 → 서버 메시지 파싱과 서버 → 클라이언트 메시지 생성을 담당합니다.
offer/answer/ICE candidate 페이로드는 검사하지 않고 그대로 전달합니다.

Inbound:
    {type: "join-room", roomId, userId?, userName?}
    {type: "offer"|"answer", offer|answer, roomId, to?}
    {type: "ice-candidate", candidate, roomId, to?}

Outbound:
    {type: "joined", userId, roomId, existingUsers, existingUsersWithNames}
    {type: "user-joined", userId, userName}
    {type: "user-left", userId}
    {type: "offer"|"answer", offer|answer, from}
    {type: "ice-candidate", candidate, from}
    {type: "error", message}
"""
import json
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .room_directory import JoinResult


class EnvelopeType(str, Enum):
    """메시지 타입 태그."""
    JOIN_ROOM = "join-room"
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice-candidate"
    JOINED = "joined"
    USER_JOINED = "user-joined"
    USER_LEFT = "user-left"
    ERROR = "error"


# 릴레이 타입별 페이로드 키
RELAY_PAYLOAD_KEYS = {
    EnvelopeType.OFFER: "offer",
    EnvelopeType.ANSWER: "answer",
    EnvelopeType.ICE_CANDIDATE: "candidate",
}


class ProtocolError(Exception):
    """파싱할 수 없거나 형식이 잘못된 수신 메시지."""


class JoinRoomRequest(BaseModel):
    """join-room 요청."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    room_id: str = Field(..., alias="roomId", min_length=1)
    user_id: Optional[str] = Field(default=None, alias="userId")
    user_name: Optional[str] = Field(default=None, alias="userName")

    @field_validator("user_id", "user_name", mode="before")
    @classmethod
    def empty_to_none(cls, v):
        return v or None


def parse_frame(frame: Union[str, bytes, None], max_bytes: int) -> dict:
    """수신 프레임을 JSON 객체로 파싱합니다.

    Raises:
        ProtocolError: UTF-8/JSON 형식 오류, 크기 초과, 객체가 아닌 경우
    """
    if frame is None:
        raise ProtocolError("Empty frame")

    if isinstance(frame, bytes):
        if len(frame) > max_bytes:
            raise ProtocolError(f"Message exceeds {max_bytes} bytes")
        try:
            frame = frame.decode("utf-8")
        except UnicodeDecodeError:
            raise ProtocolError("Binary frame is not valid UTF-8 text")
    elif len(frame.encode("utf-8")) > max_bytes:
        raise ProtocolError(f"Message exceeds {max_bytes} bytes")

    try:
        data = json.loads(frame)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Invalid JSON: {e.msg}")

    if not isinstance(data, dict):
        raise ProtocolError("Message must be a JSON object")
    return data


def parse_join_request(data: dict) -> JoinRoomRequest:
    """join-room 메시지를 검증합니다.

    Raises:
        ProtocolError: roomId가 없거나 필드 타입이 잘못된 경우
    """
    if not data.get("roomId"):
        raise ProtocolError("roomId is required")
    try:
        return JoinRoomRequest.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        raise ProtocolError(f"Invalid join-room message: {fields}")


def parse_target(data: dict) -> Optional[str]:
    """릴레이 대상 userId(`to`)를 읽습니다. 비어있으면 None."""
    target = data.get("to")
    if not target:
        return None
    if not isinstance(target, str):
        raise ProtocolError("'to' must be a string")
    return target


def joined_message(result: JoinResult) -> dict:
    return {
        "type": EnvelopeType.JOINED.value,
        "userId": result.user_id,
        "roomId": result.room_id,
        "existingUsers": [m.user_id for m in result.existing_members],
        "existingUsersWithNames": [m.to_dict() for m in result.existing_members],
    }


def user_joined_message(user_id: str, user_name: Optional[str]) -> dict:
    return {"type": EnvelopeType.USER_JOINED.value, "userId": user_id, "userName": user_name}


def user_left_message(user_id: str) -> dict:
    return {"type": EnvelopeType.USER_LEFT.value, "userId": user_id}


def relay_message(message_type: EnvelopeType, payload: Any, sender_id: str) -> dict:
    """릴레이 메시지를 생성합니다. `from`은 항상 서버가 배정한 발신자 ID."""
    return {
        "type": message_type.value,
        RELAY_PAYLOAD_KEYS[message_type]: payload,
        "from": sender_id,
    }


def error_message(message: str) -> dict:
    return {"type": EnvelopeType.ERROR.value, "message": message}
