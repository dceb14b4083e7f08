"""
Pytest fixtures for backend tests.

Usage:
    pytest tests/ --cov=. --cov-report=html
"""
import os
import pytest
from typing import Callable, Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Set test environment before importing app modules
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-testing-only")
os.environ["BCRYPT_ROUNDS"] = "4"

from database import Base, get_db
from main import app
from models import User, Student
from auth.passwords import hash_password
from utils.rate_limiter import clear_rate_limits


# In-memory SQLite for fast tests (no external DB dependency)
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

test_engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

DEFAULT_PASSWORD = "secret123"


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """
    Create a fresh database session for each test.
    Tables are created before and dropped after each test.
    """
    # Create all tables
    Base.metadata.create_all(bind=test_engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """
    FastAPI test client with overridden database dependency.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Rate-limit state is process-global; start every test clean."""
    clear_rate_limits()
    yield
    clear_rate_limits()


# ============================================================================
# Account Factories
# ============================================================================

@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    """Create a staff user. Usage: make_user("t@x.com", role="TEACHER")."""
    def _make(email: str, role: str = "TEACHER", password: str = DEFAULT_PASSWORD, name: str = None) -> User:
        user = User(
            email=email,
            password=hash_password(password),
            name=name or email.split("@")[0].title(),
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make


@pytest.fixture
def make_student(db_session: Session) -> Callable[..., Student]:
    """Create a student owned by a teacher, optionally with a login password."""
    def _make(teacher: User, name: str = "Ana Souza", email: str = None, password: str = None) -> Student:
        student = Student(
            name=name,
            email=email,
            password=hash_password(password) if password else None,
            teacher_id=teacher.id,
            status="ACTIVE",
        )
        db_session.add(student)
        db_session.commit()
        db_session.refresh(student)
        return student
    return _make


@pytest.fixture
def login(client: TestClient) -> Callable[..., dict]:
    """Log in through the API and return the Authorization header."""
    def _login(email: str, password: str = DEFAULT_PASSWORD) -> dict:
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}
    return _login


@pytest.fixture
def admin(make_user) -> User:
    return make_user("admin@example.com", role="ADMIN", name="Admin")


@pytest.fixture
def teacher(make_user) -> User:
    return make_user("teacher.a@example.com", role="TEACHER", name="Teacher A")


@pytest.fixture
def other_teacher(make_user) -> User:
    return make_user("teacher.b@example.com", role="TEACHER", name="Teacher B")


@pytest.fixture
def admin_headers(admin, login) -> dict:
    return login(admin.email)


@pytest.fixture
def teacher_headers(teacher, login) -> dict:
    return login(teacher.email)


@pytest.fixture
def other_teacher_headers(other_teacher, login) -> dict:
    return login(other_teacher.email)


@pytest.fixture
def student(teacher, make_student) -> Student:
    """A student of Teacher A who can log in."""
    return make_student(teacher, name="Ana Souza", email="ana@example.com", password=DEFAULT_PASSWORD)


@pytest.fixture
def student_headers(student, login) -> dict:
    return login(student.email)
