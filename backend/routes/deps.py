"""공유 의존성 모듈.

라우터들이 공통으로 사용하는 의존성을 정의합니다.
"""

from typing import Optional

from fastapi import Header, HTTPException, Request

from relay import RoomDirectory, server_config

# 관리용 엔드포인트 비밀번호 (비어있으면 인증 생략)
ACCESS_PASSWORD = server_config.ACCESS_PASSWORD


async def verify_auth_header(authorization: Optional[str] = Header(None)) -> bool:
    """Authorization 헤더를 검증합니다.

    Args:
        authorization: Authorization 헤더 값

    Returns:
        bool: 검증 성공 시 True

    Raises:
        HTTPException: 인증 실패 시
    """
    if not ACCESS_PASSWORD:
        return True
    if not authorization:
        raise HTTPException(status_code=401, detail="Authorization header required")
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid authorization format")
    if parts[1] != ACCESS_PASSWORD:
        raise HTTPException(status_code=401, detail="Invalid password")
    return True


def get_directory(request: Request) -> RoomDirectory:
    """앱에 등록된 RoomDirectory를 반환합니다."""
    return request.app.state.directory
