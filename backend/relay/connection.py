"""시그널링 연결 레코드 모듈.

WebSocket 연결 하나를 나타내는 고정 형태의 레코드와 상태 전이를 정의합니다.
연결 레코드는 Lifecycle 매니저가 소유하며, 필드는 정의된 전이 메서드를
통해서만 변경됩니다.

States:
    CONNECTING: 전송 연결 수락, join 전
    JOINED: 룸 배정 완료
    CLOSED: 종료 (최종 상태, 재사용 불가)
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """연결 상태."""
    CONNECTING = "connecting"
    JOINED = "joined"
    CLOSED = "closed"


@dataclass(eq=False)
class Connection:
    """하나의 시그널링 연결.

    동등성 비교는 객체 identity 기반이므로 set/dict 키로 사용할 수 있습니다.

    Attributes:
        websocket (WebSocket): 전송 계층 연결
        connection_id (str): 서버 내부 식별자 (UUID)
        user_id (Optional[str]): join 시 배정된 사용자 ID
        display_name (Optional[str]): 사용자 표시 이름
        room_id (Optional[str]): 현재 참가 중인 룸
        state (ConnectionState): 현재 상태
    """
    websocket: WebSocket
    connection_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_id: Optional[str] = None
    display_name: Optional[str] = None
    room_id: Optional[str] = None
    state: ConnectionState = ConnectionState.CONNECTING
    _send_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def is_closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    @property
    def is_open(self) -> bool:
        """전송 계층이 송신 가능한 상태인지 여부."""
        return (
            not self.is_closed
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def mark_joined(self, room_id: str, user_id: str, display_name: Optional[str]) -> None:
        """CONNECTING/JOINED → JOINED 전이.

        Raises:
            RuntimeError: 이미 종료된 연결인 경우
        """
        if self.is_closed:
            raise RuntimeError(f"Connection {self.connection_id} is closed")
        self.room_id = room_id
        self.user_id = user_id
        self.display_name = display_name
        self.state = ConnectionState.JOINED

    def mark_left(self) -> None:
        """룸 멤버십만 해제합니다. 상태는 유지됩니다."""
        self.room_id = None

    def mark_closed(self) -> bool:
        """CLOSED로 전이합니다.

        Returns:
            bool: 이번 호출로 전이했으면 True, 이미 종료 상태였으면 False
        """
        if self.is_closed:
            return False
        self.state = ConnectionState.CLOSED
        return True

    async def send(self, message: dict) -> bool:
        """메시지를 JSON 텍스트 프레임으로 전송합니다.

        열려있지 않은 연결은 건너뜁니다. 전송 실패는 로그만 남기며,
        정리는 해당 연결의 Lifecycle이 담당합니다.

        Returns:
            bool: 전송 성공 여부
        """
        if not self.is_open:
            logger.debug(f"Skip send to {self.user_id or self.connection_id}: transport not open")
            return False

        try:
            async with self._send_lock:
                await self.websocket.send_json(message)
            return True
        except Exception as e:
            logger.warning(f"Send to {self.user_id or self.connection_id} failed: {e}")
            return False
