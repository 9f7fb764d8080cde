import logging
import sys

from config.settings import settings

LOG_FORMAT = "%(asctime)s - [%(name)s] - %(levelname)s - %(message)s"


def setup_logging():
    """
    애플리케이션 전역 로깅 설정.
    - 루트 로거에 stdout 핸들러 하나만 붙여 포맷을 통일
    - 레벨은 settings.LOG_LEVEL
    """
    root = logging.getLogger()
    root.setLevel(settings.LOG_LEVEL)

    # uvicorn 등이 먼저 붙인 핸들러 제거
    if root.hasHandlers():
        root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)

    # 라이브러리 디버그 로그 억제
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
