from sqlalchemy import create_engine               # SQLAlchemy 엔진 생성 도구
from sqlalchemy.orm import declarative_base, sessionmaker

from config.settings import settings               # ✅ 환경변수 설정 파일 불러오기

# ✅ sqlite는 요청 스레드가 달라도 같은 연결을 쓰도록 허용
_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

# ✅ 환경변수에서 DB 연결 URL을 불러와 엔진 생성
engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True, connect_args=_connect_args)

# ✅ 세션 팩토리: DB 연결에 사용할 세션 생성기 정의
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# ✅ 모델 정의 시 상속할 Base 클래스 (Declarative 방식 사용)
Base = declarative_base()


# ✅ 요청 단위 DB 세션 (FastAPI Depends 용)
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
