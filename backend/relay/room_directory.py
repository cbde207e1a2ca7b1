"""룸 디렉토리 및 연결 레지스트리 모듈.

살아있는 시그널링 연결 목록과 룸 → 멤버 연결 매핑을 관리합니다.
모든 읽기/쓰기는 하나의 asyncio.Lock으로 직렬화되며, 잠금 안에서는
I/O를 수행하지 않습니다. 호출자는 반환된 스냅샷으로 잠금 밖에서 전송합니다.

Architecture:
    - connections: Dict[str, Connection] - connection_id → 연결 (레지스트리)
    - rooms: Dict[str, Dict[str, Connection]] - 룸 ID → {connection_id: 연결}

Rules:
    - 처음 join 시 룸 생성, 마지막 멤버가 나가면 즉시 삭제
    - 하나의 연결은 동시에 최대 하나의 룸에만 속함
    - 룸 멤버십은 역참조일 뿐이며 연결 생존 여부의 기준이 아님

Examples:
    >>> directory = RoomDirectory()
    >>> result = await directory.join(connection, "studio-1", user_name="Host")
    >>> others = await directory.members_of("studio-1", exclude=connection)
"""
import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .config import signaling_config
from .connection import Connection

logger = logging.getLogger(__name__)


def generate_user_id(prefix: str = signaling_config.USER_ID_PREFIX) -> str:
    """타임스탬프 + 랜덤 접미사 형식의 사용자 ID를 생성합니다.

    Examples:
        >>> generate_user_id()
        'user_1760851200000_3f9a1c2b7'
    """
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


@dataclass(frozen=True)
class MemberInfo:
    """룸 멤버 스냅샷."""
    user_id: str
    display_name: Optional[str]

    def to_dict(self) -> dict:
        return {"userId": self.user_id, "userName": self.display_name}


@dataclass
class JoinResult:
    """join 처리 결과.

    Attributes:
        user_id: 배정된 사용자 ID
        room_id: 참가한 룸
        existing_members: join 시점의 기존 멤버 정보
        recipients: user-joined 알림 대상 (기존 멤버 연결)
        room_created: 이번 join으로 룸이 생성되었는지 여부
        previous_room_id: 재참가로 떠난 이전 룸
        previous_user_id: 이전 룸에서 사용하던 사용자 ID
        previous_recipients: 이전 룸에 남은 멤버 (user-left 알림 대상)
        previous_user_id_present: 이전 룸에 같은 userId를 쓰는 다른 연결이 남아있는지 여부
    """
    user_id: str
    room_id: str
    existing_members: List[MemberInfo] = field(default_factory=list)
    recipients: List[Connection] = field(default_factory=list)
    room_created: bool = False
    previous_room_id: Optional[str] = None
    previous_user_id: Optional[str] = None
    previous_recipients: List[Connection] = field(default_factory=list)
    previous_user_id_present: bool = False


@dataclass
class LeaveResult:
    """leave 처리 결과.

    user_id_present는 같은 userId를 쓰는 다른 연결이 룸에 남아있는지 여부이며,
    이 경우 user-left를 알리지 않습니다.
    """
    room_id: str
    user_id: Optional[str]
    remaining: List[Connection] = field(default_factory=list)
    room_deleted: bool = False
    user_id_present: bool = False


class RoomDirectory:
    """연결 레지스트리와 룸 디렉토리.

    하나의 인스턴스가 모든 연결 핸들러에 공유됩니다.
    """

    def __init__(self):
        # connection_id -> Connection
        self._connections: Dict[str, Connection] = {}

        # room_id -> {connection_id: Connection}
        self._rooms: Dict[str, Dict[str, Connection]] = {}

        self._lock = asyncio.Lock()

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def register(self, connection: Connection) -> None:
        """새 연결을 레지스트리에 등록합니다."""
        async with self._lock:
            self._connections[connection.connection_id] = connection

    async def unregister(self, connection: Connection) -> None:
        """연결을 레지스트리에서 제거합니다. 여러 번 호출해도 안전합니다."""
        async with self._lock:
            self._connections.pop(connection.connection_id, None)

    async def connections(self) -> List[Connection]:
        """살아있는 연결 스냅샷."""
        async with self._lock:
            return list(self._connections.values())

    async def join(
        self,
        connection: Connection,
        room_id: str,
        user_id: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> Optional[JoinResult]:
        """연결을 룸에 참가시킵니다.

        룸이 없으면 생성합니다. 이미 다른 룸(또는 같은 룸)에 참가 중이면
        먼저 이전 멤버십을 제거합니다. userId가 없으면 이전에 배정된 ID를
        재사용하고, 그것도 없으면 새로 생성합니다.

        Args:
            connection: 참가할 연결
            room_id: 룸 ID (형식 검증 없음)
            user_id: 클라이언트가 제시한 사용자 ID
            display_name: 표시 이름

        Returns:
            Optional[JoinResult]: 처리 결과. 이미 종료된 연결이면 None
        """
        async with self._lock:
            if connection.is_closed:
                logger.debug(f"Join ignored for closed connection {connection.connection_id}")
                return None

            result = JoinResult(user_id="", room_id=room_id)

            if connection.room_id is not None:
                result.previous_room_id = connection.room_id
                result.previous_user_id = connection.user_id
                self._remove_member(connection)
                result.previous_recipients = list(self._rooms.get(result.previous_room_id, {}).values())
                result.previous_user_id_present = any(
                    c.user_id == result.previous_user_id for c in result.previous_recipients
                )

            result.user_id = user_id or connection.user_id or generate_user_id()
            if display_name is None:
                display_name = connection.display_name

            room = self._rooms.get(room_id)
            if room is None:
                room = self._rooms[room_id] = {}
                result.room_created = True
                logger.info(f"Room '{room_id}' created")

            result.recipients = list(room.values())
            result.existing_members = [
                MemberInfo(member.user_id, member.display_name) for member in result.recipients
            ]

            room[connection.connection_id] = connection
            self._connections[connection.connection_id] = connection
            connection.mark_joined(room_id, result.user_id, display_name)

            logger.info(f"User '{result.user_id}' joined room '{room_id}'. Room has {len(room)} members")
            return result

    async def leave(self, connection: Connection) -> Optional[LeaveResult]:
        """연결을 현재 룸에서 제거합니다.

        룸이 비면 삭제합니다. 참가한 적이 없거나 이미 제거된 연결이면
        아무 작업도 하지 않습니다.

        Returns:
            Optional[LeaveResult]: 제거 결과. no-op이면 None
        """
        async with self._lock:
            room_id = connection.room_id
            if room_id is None:
                return None

            if not self._remove_member(connection):
                return None

            remaining = list(self._rooms.get(room_id, {}).values())
            return LeaveResult(
                room_id=room_id,
                user_id=connection.user_id,
                remaining=remaining,
                room_deleted=room_id not in self._rooms,
                user_id_present=any(c.user_id == connection.user_id for c in remaining),
            )

    async def members_of(self, room_id: str, exclude: Optional[Connection] = None) -> List[Connection]:
        """룸 멤버 스냅샷. 없는 룸이면 빈 리스트."""
        async with self._lock:
            return [c for c in self._rooms.get(room_id, {}).values() if c is not exclude]

    async def find_in_room(
        self, room_id: str, user_id: str, exclude: Optional[Connection] = None
    ) -> Optional[Connection]:
        """룸에서 userId로 연결을 찾습니다.

        같은 userId가 여러 개면 가장 최근에 참가한 연결을 반환합니다.
        """
        async with self._lock:
            members = list(self._rooms.get(room_id, {}).values())
            for member in reversed(members):
                if member.user_id == user_id and member is not exclude:
                    return member
            return None

    async def has_room(self, room_id: str) -> bool:
        async with self._lock:
            return room_id in self._rooms

    async def room_list(self) -> List[dict]:
        """모든 룸 정보 스냅샷.

        Returns:
            List[dict]: room_id, member_count, members(userId, userName)
        """
        async with self._lock:
            return [self._describe(room_id, room) for room_id, room in self._rooms.items()]

    async def room_info(self, room_id: str) -> Optional[dict]:
        async with self._lock:
            room = self._rooms.get(room_id)
            return self._describe(room_id, room) if room is not None else None

    @staticmethod
    def _describe(room_id: str, room: Dict[str, Connection]) -> dict:
        return {
            "room_id": room_id,
            "member_count": len(room),
            "members": [MemberInfo(c.user_id, c.display_name).to_dict() for c in room.values()],
        }

    def _remove_member(self, connection: Connection) -> bool:
        """잠금 안에서 호출. 멤버십 제거 후 빈 룸을 삭제합니다."""
        room_id = connection.room_id
        connection.mark_left()

        room = self._rooms.get(room_id)
        if room is None or room.get(connection.connection_id) is not connection:
            return False

        del room[connection.connection_id]
        if not room:
            del self._rooms[room_id]
            logger.info(f"Room '{room_id}' deleted (empty)")
        else:
            logger.info(f"User '{connection.user_id}' left room '{room_id}'. Room has {len(room)} members")
        return True
