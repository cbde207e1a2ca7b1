"""시그널링 메시지 라우터.

수신 메시지의 type에 따라 처리기를 선택하고, 룸 디렉토리를 조회해
수신자를 결정한 뒤 메시지를 전달합니다.

Dispatch:
    - join-room: 룸 참가, 본인에게 joined, 기존 멤버에게 user-joined
    - offer / answer / ice-candidate: `to`가 있으면 해당 사용자에게만,
      없으면 본인을 제외한 룸 전체에 전달
    - 그 외: 로그만 남기고 무시

수신자 스냅샷은 디렉토리 잠금 안에서 얻고, 전송은 잠금 밖에서 수행합니다.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable

from .connection import Connection
from .envelopes import (
    EnvelopeType,
    RELAY_PAYLOAD_KEYS,
    joined_message,
    parse_join_request,
    parse_target,
    relay_message,
    user_joined_message,
    user_left_message,
)
from .room_directory import RoomDirectory

logger = logging.getLogger(__name__)

Handler = Callable[[Connection, EnvelopeType, dict], Awaitable[None]]


async def broadcast(recipients: Iterable[Connection], message: dict) -> int:
    """여러 연결에 동시에 전송합니다.

    Returns:
        int: 전송에 성공한 수
    """
    results = await asyncio.gather(*(recipient.send(message) for recipient in recipients))
    return sum(1 for ok in results if ok)


class MessageRouter:
    """수신 메시지를 해석하고 룸 멤버에게 전달하는 라우터.

    Attributes:
        directory (RoomDirectory): 공유 룸 디렉토리
    """

    def __init__(self, directory: RoomDirectory):
        self.directory = directory
        self._handlers: Dict[EnvelopeType, Handler] = {EnvelopeType.JOIN_ROOM: self._handle_join}
        for relay_type in RELAY_PAYLOAD_KEYS:
            self._handlers[relay_type] = self._handle_relay

    async def dispatch(self, connection: Connection, envelope: dict) -> None:
        """메시지 하나를 처리합니다.

        Raises:
            ProtocolError: join-room 형식 오류 등 발신자에게 알려야 하는 오류
        """
        raw_type = envelope.get("type")
        try:
            message_type = EnvelopeType(raw_type)
        except (ValueError, TypeError):
            message_type = None

        handler = self._handlers.get(message_type)
        if handler is None:
            logger.warning(f"Unknown message type from {connection.user_id or connection.connection_id}: {raw_type!r}")
            return

        logger.debug(f"Received message: {message_type.value}")
        await handler(connection, message_type, envelope)

    async def _handle_join(self, connection: Connection, message_type: EnvelopeType, envelope: dict) -> None:
        request = parse_join_request(envelope)
        result = await self.directory.join(connection, request.room_id, request.user_id, request.user_name)
        if result is None:
            return

        # joined는 이후 이 연결로 가는 user-left보다 먼저 전송
        await connection.send(joined_message(result))
        await broadcast(result.recipients, user_joined_message(result.user_id, connection.display_name))

        if result.previous_room_id is not None and result.previous_user_id and not result.previous_user_id_present:
            await broadcast(result.previous_recipients, user_left_message(result.previous_user_id))

    async def _handle_relay(self, connection: Connection, message_type: EnvelopeType, envelope: dict) -> None:
        room_id = connection.room_id
        if room_id is None:
            logger.warning(f"Dropping {message_type.value} from {connection.connection_id}: not joined")
            return

        target = parse_target(envelope)
        claimed_room = envelope.get("roomId")
        if claimed_room is not None and claimed_room != room_id:
            logger.debug(f"{message_type.value} roomId '{claimed_room}' differs from joined room '{room_id}'")

        message = relay_message(message_type, envelope.get(RELAY_PAYLOAD_KEYS[message_type]), connection.user_id)

        if target is None:
            # 대상 미지정: 본인 제외 룸 전체 (2인 룸 호환 동작)
            recipients = await self.directory.members_of(room_id, exclude=connection)
            await broadcast(recipients, message)
            return

        recipient = await self.directory.find_in_room(room_id, target, exclude=connection)
        if recipient is None:
            logger.debug(f"{message_type.value} target '{target}' not in room '{room_id}', dropped")
            return
        await recipient.send(message)
