"""시그널링 릴레이 설정.

서버 바인딩, CORS, 로깅, 시그널링 관련 상수와 환경변수 기반 설정.
"""

import os
import logging
from pathlib import Path
from dataclasses import dataclass
from typing import Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_env_path = Path(__file__).parent.parent / "config" / ".env"
load_dotenv(_env_path)


# ============================================================
# 서버 설정
# ============================================================

@dataclass(frozen=True)
class ServerConfig:
    """HTTP/WebSocket 서버 설정."""

    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3001"))

    # 콤마로 구분된 허용 오리진 목록 ("*"는 전체 허용)
    CORS_ORIGIN: str = os.getenv("CORS_ORIGIN", "*")

    # 관리용 HTTP 엔드포인트 비밀번호 (비어있으면 인증 생략)
    ACCESS_PASSWORD: str = os.getenv("ACCESS_PASSWORD", "")

    @property
    def cors_origins(self) -> Tuple[str, ...]:
        """CORS 허용 오리진 목록."""
        return tuple(o.strip() for o in self.CORS_ORIGIN.split(",") if o.strip()) or ("*",)


# ============================================================
# 로깅 설정
# ============================================================

@dataclass(frozen=True)
class LoggingConfig:
    """로그 레벨 및 파일 보관 설정."""

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # 빈 문자열이면 파일 로깅 비활성화
    LOG_DIR: str = os.getenv("LOG_DIR", "logs")

    # 로그 보관 기간 (일) - 기본 60일
    LOG_RETENTION_DAYS: int = int(os.getenv("LOG_RETENTION_DAYS", "60"))

    ENV: str = os.getenv("ENV", "development")


# ============================================================
# 시그널링 설정
# ============================================================

@dataclass(frozen=True)
class SignalingConfig:
    """시그널링 메시지 처리 관련 설정."""

    # 서버 생성 userId 접두사 (user_<ms>_<suffix>)
    USER_ID_PREFIX: str = "user"

    # 수신 프레임 최대 크기 (bytes)
    MAX_MESSAGE_BYTES: int = int(os.getenv("MAX_MESSAGE_BYTES", "65536"))


# ============================================================
# 싱글톤 인스턴스
# ============================================================

server_config = ServerConfig()
log_config = LoggingConfig()
signaling_config = SignalingConfig()

logger.debug(f"[Relay Config] .env 경로: {_env_path} (존재: {_env_path.exists()})")
