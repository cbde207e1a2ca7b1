"""FastAPI WebRTC Signaling Relay.

브라우저 피어 간 WebRTC 연결 수립을 위해 offer/answer와 ICE candidate를
중계하는 시그널링 서버입니다. 룸 단위로 참가자를 관리하며 메시지는
같은 룸의 대상에게만 전달됩니다.

주요 기능:
    - 룸 기반 참가자 관리 (첫 참가 시 생성, 비면 삭제)
    - offer/answer/ICE candidate 중계 (지정 대상 또는 룸 브로드캐스트)
    - 참가자 입/퇴장 알림
    - 헬스체크 및 룸 조회 API

Architecture:
    - RoomDirectory: 연결 레지스트리 및 룸 멤버 관리
    - MessageRouter: 메시지 타입별 처리 및 전달
    - ConnectionLifecycle: 연결별 수신 루프와 종료 정리
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from relay import (
    ConnectionLifecycle, MessageRouter, RoomDirectory,
    server_config, log_config, signaling_config,
)
from relay.logging_config import setup_logging, cleanup_old_logs
from routes import health_router, rooms_router, signaling_router


# 로그 설정
setup_logging(log_config.LOG_LEVEL, log_config.LOG_DIR)
logger = logging.getLogger(__name__)
logger.info(f"로깅 초기화 완료: level={log_config.LOG_LEVEL}, env={log_config.ENV}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI 앱의 생명주기를 관리하는 컨텍스트 매니저.

    종료 시 모든 활성 연결을 닫아 각 연결의 정리 루틴이 실행되도록 합니다.

    Args:
        app (FastAPI): FastAPI 애플리케이션 인스턴스

    Yields:
        None: 앱이 실행되는 동안 제어를 반환
    """
    logger.info("WebRTC 시그널링 서버 시작 중...")

    # 오래된 로그 파일 정리
    deleted_logs = cleanup_old_logs(log_config.LOG_DIR, log_config.LOG_RETENTION_DAYS)
    if deleted_logs > 0:
        logger.info(f"오래된 로그 파일 {deleted_logs}개 정리 완료 ({log_config.LOG_RETENTION_DAYS}일 이상)")

    yield

    logger.info("서버 종료 중...")
    await app.state.lifecycle.shutdown()


def create_app() -> FastAPI:
    """시그널링 앱을 생성합니다.

    앱마다 독립된 RoomDirectory를 생성해 app.state에 등록합니다.

    Returns:
        FastAPI: 설정이 완료된 애플리케이션
    """
    app = FastAPI(title="WebRTC Signaling Relay", lifespan=lifespan)

    directory = RoomDirectory()
    app.state.directory = directory
    app.state.lifecycle = ConnectionLifecycle(
        directory,
        MessageRouter(directory),
        max_message_bytes=signaling_config.MAX_MESSAGE_BYTES,
    )

    origins = list(server_config.cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 라우터 등록
    app.include_router(health_router)
    app.include_router(rooms_router)
    app.include_router(signaling_router)

    return app


app = create_app()


def main():
    """uvicorn으로 서버를 실행합니다."""
    import uvicorn
    uvicorn.run(app, host=server_config.HOST, port=server_config.PORT, log_level=log_config.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
