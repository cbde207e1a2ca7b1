"""로깅 설정 모듈.

콘솔 출력과 날짜별 로그 파일 저장, 오래된 로그 파일 정리를 담당합니다.

사용 예시:
    from relay.logging_config import setup_logging

    # 애플리케이션 시작 시 한 번 호출
    setup_logging("INFO", "logs")
"""

import glob
import logging
import os
from datetime import datetime, timedelta
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = "INFO", log_dir: Optional[str] = None) -> Optional[str]:
    """루트 로거를 설정합니다.

    Args:
        level: 로그 레벨 이름 (DEBUG, INFO, ...)
        log_dir: 로그 파일 디렉토리. 비어있으면 콘솔에만 출력

    Returns:
        Optional[str]: 생성된 로그 파일 경로. 파일 로깅을 하지 않으면 None
    """
    handlers = [logging.StreamHandler()]  # 콘솔 출력
    log_filename = None

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_filename = os.path.join(log_dir, f"server_{datetime.now().strftime('%Y%m%d')}.log")
        handlers.append(logging.FileHandler(log_filename, encoding="utf-8"))  # 파일 저장

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    return log_filename


def cleanup_old_logs(log_dir: str, retention_days: int) -> int:
    """보관 기간이 지난 로그 파일을 삭제합니다.

    Args:
        log_dir: 로그 디렉토리 경로
        retention_days: 보관 기간 (일)

    Returns:
        삭제된 파일 수
    """
    if not log_dir or not os.path.exists(log_dir):
        return 0

    cutoff_date = datetime.now() - timedelta(days=retention_days)
    deleted_count = 0

    for log_file in glob.glob(os.path.join(log_dir, "server_*.log")):
        try:
            date_str = os.path.basename(log_file).replace("server_", "").replace(".log", "")
            file_date = datetime.strptime(date_str, "%Y%m%d")

            if file_date < cutoff_date:
                os.remove(log_file)
                deleted_count += 1
        except (ValueError, OSError):
            continue

    return deleted_count
