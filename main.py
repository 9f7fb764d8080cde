from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from config.settings import settings
from config.logging_config import setup_logging

# ✅ 모든 모델 등록 (create_all, 관계 해석용)
import models  # noqa: F401
from database.db import Base, engine

# ✅ 미들웨어 임포트
from middlewares.timing import TimingMiddleware
from middlewares.error_handler import add_error_handlers

# ✅ 라우터 임포트
from routers import attendance, auth, students, subjects, summary, users

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
)

# ✅ CORS 설정 (프론트엔드 연동)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ✅ 요청 지연 측정 미들웨어 (응답 헤더 X-Latency-Ms 추가)
app.add_middleware(TimingMiddleware)

# ✅ 전역 에러 핸들러 등록 ({"success": false, "error": "..."} 포맷)
add_error_handlers(app)

# ✅ /v1 프리픽스 라우터 등록
app.include_router(auth.router,       prefix="/v1")
app.include_router(users.router,      prefix="/v1")
app.include_router(students.router,   prefix="/v1")
app.include_router(subjects.router,   prefix="/v1")
app.include_router(attendance.router, prefix="/v1")
app.include_router(summary.router,    prefix="/v1")


# ✅ 헬스체크 엔드포인트
@app.get("/health")
def health_check():
    return {"status": "ok", "message": "API is running"}


@app.on_event("startup")
def _create_tables():
    # 스키마 마이그레이션 도구 없이 누락 테이블만 생성
    Base.metadata.create_all(bind=engine)
    logger.info(f"{settings.APP_TITLE} started (env={settings.ENV})")
