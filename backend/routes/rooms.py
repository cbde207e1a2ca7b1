"""룸 조회 API 라우터.

활성 룸과 참가자 목록을 조회합니다. 관리 대시보드용이며 룸 상태를 변경하지 않습니다.
"""

from fastapi import APIRouter, Depends, HTTPException

from relay import RoomDirectory
from .deps import get_directory, verify_auth_header

router = APIRouter(prefix="/api/rooms", tags=["rooms"], dependencies=[Depends(verify_auth_header)])


@router.get("")
async def list_rooms(directory: RoomDirectory = Depends(get_directory)):
    """활성화된 모든 룸의 목록을 조회합니다.

    Returns:
        dict: {"rooms": [{room_id, member_count, members}]}
    """
    return {"rooms": await directory.room_list()}


@router.get("/{room_id}")
async def get_room(room_id: str, directory: RoomDirectory = Depends(get_directory)):
    """룸 하나의 정보를 조회합니다.

    Raises:
        HTTPException: 룸이 존재하지 않으면 404
    """
    room = await directory.room_info(room_id)
    if room is None:
        raise HTTPException(status_code=404, detail=f"Room '{room_id}' not found")
    return room
