"""FastAPI 라우터 모듈.

app.py에서 분리된 API 엔드포인트들을 제공합니다.
"""

from .health import router as health_router
from .rooms import router as rooms_router
from .signaling import router as signaling_router
from .deps import verify_auth_header, get_directory

__all__ = [
    "health_router",
    "rooms_router",
    "signaling_router",
    "verify_auth_header",
    "get_directory",
]
