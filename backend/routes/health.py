"""Health Check API 라우터.

서비스 상태 확인을 위한 엔드포인트들을 제공합니다.
"""

from fastapi import APIRouter, Depends

from relay import RoomDirectory
from .deps import get_directory

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(directory: RoomDirectory = Depends(get_directory)):
    """서버 상태와 활성 룸 수를 반환합니다.

    Returns:
        dict: {"status": "ok", "rooms": 활성 룸 수}
    """
    return {"status": "ok", "rooms": directory.room_count}


@router.get("/api/health")
async def api_health_check(directory: RoomDirectory = Depends(get_directory)):
    """활성 룸 수와 연결 수를 포함한 상태 정보."""
    return {
        "status": "ok",
        "rooms": directory.room_count,
        "connections": directory.connection_count,
    }
