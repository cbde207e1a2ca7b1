"""WebRTC 시그널링 릴레이 코어.

룸 기반 연결 관리와 offer/answer/ICE candidate 메시지 중계를 제공합니다.

Classes:
    Connection: 시그널링 연결 레코드
    RoomDirectory: 연결 레지스트리 및 룸 → 멤버 매핑
    MessageRouter: 메시지 타입별 처리 및 전달
    ConnectionLifecycle: 연결별 수신 루프와 종료 정리

Config:
    server_config: 서버/CORS 설정
    log_config: 로깅 설정
    signaling_config: 시그널링 설정
"""

from .config import (
    server_config,
    log_config,
    signaling_config,
    ServerConfig,
    LoggingConfig,
    SignalingConfig,
)
from .connection import Connection, ConnectionState
from .envelopes import EnvelopeType, ProtocolError
from .room_directory import RoomDirectory, JoinResult, LeaveResult, MemberInfo, generate_user_id
from .router import MessageRouter
from .lifecycle import ConnectionLifecycle

__all__ = [
    # Classes
    "Connection",
    "ConnectionState",
    "RoomDirectory",
    "JoinResult",
    "LeaveResult",
    "MemberInfo",
    "MessageRouter",
    "ConnectionLifecycle",
    "EnvelopeType",
    "ProtocolError",
    "generate_user_id",
    # Config
    "server_config",
    "log_config",
    "signaling_config",
    "ServerConfig",
    "LoggingConfig",
    "SignalingConfig",
]
