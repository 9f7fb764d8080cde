# tests/conftest.py
import os

# 앱 import 전에 테스트용 환경 변수 지정
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("SQLALCHEMY_DATABASE_URL", "sqlite://")
os.environ.setdefault("ENV", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database.db import Base, get_db
from main import app
from models.enrollments import StudentSubject, TeacherSubject
from models.enums import UserRole
from models.subjects import Subject
from models.users import User
from utils.security import create_access_token, hash_password

DEFAULT_PASSWORD = "secret123"


# --- DB / Client Fixtures ---

@pytest.fixture
def engine():
    """테스트마다 비어 있는 in-memory sqlite (모든 세션이 같은 연결 공유)"""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with_client = TestClient(app)
    yield with_client
    app.dependency_overrides.clear()


# --- Data Helpers ---

def make_user(db, username: str, role: UserRole, **extra) -> User:
    user = User(
        username=username,
        password=hash_password(extra.pop("password", DEFAULT_PASSWORD)),
        name=extra.pop("name", username.replace("_", " ").title()),
        email=extra.pop("email", f"{username}@example.com"),
        role=role.value,
        **extra,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_subject(db, code: str, **extra) -> Subject:
    subject = Subject(
        code=code,
        name=extra.pop("name", f"Subject {code}"),
        department=extra.pop("department", "CS"),
        **extra,
    )
    db.add(subject)
    db.commit()
    db.refresh(subject)
    return subject


def assign(db, teacher: User, subject: Subject) -> None:
    db.add(TeacherSubject(teacher_id=teacher.id, subject_id=subject.id))
    db.commit()


def enroll(db, student: User, subject: Subject) -> None:
    db.add(StudentSubject(student_id=student.id, subject_id=subject.id))
    db.commit()


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


# --- Account Fixtures ---

@pytest.fixture
def super_admin(db_session):
    return make_user(db_session, "super_admin", UserRole.SUPER_ADMIN)


@pytest.fixture
def admin(db_session):
    return make_user(db_session, "admin", UserRole.ADMIN)


@pytest.fixture
def teacher(db_session):
    return make_user(db_session, "teacher1", UserRole.TEACHER, department="CS")


@pytest.fixture
def other_teacher(db_session):
    return make_user(db_session, "teacher2", UserRole.TEACHER, department="EE")


@pytest.fixture
def student(db_session):
    return make_user(db_session, "student1", UserRole.STUDENT, student_id="STU001", semester="3rd Semester")


@pytest.fixture
def other_student(db_session):
    return make_user(db_session, "student2", UserRole.STUDENT, student_id="STU002")


@pytest.fixture
def third_student(db_session):
    return make_user(db_session, "student3", UserRole.STUDENT, student_id="STU003")


@pytest.fixture
def subject(db_session):
    return make_subject(db_session, "CS101", name="Intro CS")
