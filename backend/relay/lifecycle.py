"""연결 생명주기 매니저.

WebSocket 연결 하나의 수신 루프를 실행하고 상태 전이(CONNECTING → JOINED →
CLOSED)에 따른 디렉토리 갱신과 피어 알림을 처리합니다.

Error handling:
    - 형식 오류 메시지: error 응답 후 연결 유지
    - 메시지 처리 중 예외: 로그 + error 응답 후 연결 유지
    - 전송 계층 종료/오류: CLOSED 전이 및 정리 (다른 연결에 영향 없음)
"""
import asyncio
import logging
from typing import Optional, Union

from fastapi import WebSocket, WebSocketDisconnect

from .config import signaling_config
from .connection import Connection
from .envelopes import ProtocolError, error_message, parse_frame, user_left_message
from .room_directory import RoomDirectory
from .router import MessageRouter, broadcast

logger = logging.getLogger(__name__)


class ConnectionLifecycle:
    """연결별 수신 루프와 종료 정리를 담당합니다.

    Attributes:
        directory (RoomDirectory): 공유 룸 디렉토리
        router (MessageRouter): 메시지 라우터
        max_message_bytes (int): 수신 프레임 최대 크기
    """

    def __init__(
        self,
        directory: RoomDirectory,
        router: Optional[MessageRouter] = None,
        max_message_bytes: int = signaling_config.MAX_MESSAGE_BYTES,
    ):
        self.directory = directory
        self.router = router or MessageRouter(directory)
        self.max_message_bytes = max_message_bytes

    async def serve(self, websocket: WebSocket) -> None:
        """연결을 수락하고 종료될 때까지 메시지를 처리합니다."""
        await websocket.accept()

        connection = Connection(websocket=websocket)
        await self.directory.register(connection)
        logger.info(f"New WebSocket connection {connection.connection_id}")

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                frame = message.get("text")
                if frame is None:
                    frame = message.get("bytes")
                await self.handle_frame(connection, frame)
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.error(f"Transport error on {connection.connection_id}: {e}")
        finally:
            # 수신 태스크가 취소되어도 정리는 끝까지 실행
            await asyncio.shield(self.close(connection))

    async def handle_frame(self, connection: Connection, frame: Union[str, bytes, None]) -> None:
        """수신 프레임 하나를 처리합니다. 예외는 연결 밖으로 전파하지 않습니다."""
        try:
            envelope = parse_frame(frame, self.max_message_bytes)
            await self.router.dispatch(connection, envelope)
        except ProtocolError as e:
            logger.warning(f"Protocol error from {connection.user_id or connection.connection_id}: {e}")
            await connection.send(error_message(str(e)))
        except Exception as e:
            logger.error(f"Error handling message from {connection.connection_id}: {e}", exc_info=True)
            await connection.send(error_message(str(e)))

    async def close(self, connection: Connection) -> None:
        """CLOSED로 전이하고 룸에서 제거한 뒤 남은 멤버에게 알립니다.

        여러 번 호출해도 정리는 한 번만 수행됩니다.
        """
        if not connection.mark_closed():
            return

        result = await self.directory.leave(connection)
        await self.directory.unregister(connection)
        logger.info(f"WebSocket connection {connection.connection_id} closed")

        if result is not None and result.user_id and not result.user_id_present:
            await broadcast(result.remaining, user_left_message(result.user_id))

    async def shutdown(self, code: int = 1001) -> None:
        """서버 종료 시 모든 연결을 닫고 정리합니다."""
        connections = await self.directory.connections()
        for connection in connections:
            try:
                await connection.websocket.close(code=code)
            except Exception as e:
                logger.debug(f"Close {connection.connection_id} failed: {e}")
            await self.close(connection)
        if connections:
            logger.info(f"Closed {len(connections)} connections on shutdown")
