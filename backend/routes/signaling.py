"""WebRTC 시그널링 WebSocket 라우터.

룸 참가, offer/answer 교환, ICE candidate 중계를 위한 WebSocket 엔드포인트를 제공합니다.
실제 처리는 앱에 등록된 ConnectionLifecycle이 담당합니다.
"""

from fastapi import APIRouter, WebSocket

router = APIRouter()


@router.websocket("/")
@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebRTC 시그널링을 위한 WebSocket 엔드포인트.

    처리하는 메시지 타입:
        - join-room: 룸 참가 (roomId, userId?, userName?)
        - offer / answer: 세션 설명 전달 (to?)
        - ice-candidate: ICE candidate 전달 (to?)
    """
    lifecycle = websocket.app.state.lifecycle
    await lifecycle.serve(websocket)
