import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("attendance.access")


class TimingMiddleware(BaseHTTPMiddleware):
    """요청 처리 시간을 X-Latency-Ms 헤더로 붙이고 한 줄 로그를 남긴다"""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        latency_ms = int((time.perf_counter() - start) * 1000)
        response.headers["X-Latency-Ms"] = str(latency_ms)
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({latency_ms}ms)")
        return response
