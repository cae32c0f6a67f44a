import pytest
import os
import sys

CURRENT_DIR = os.path.dirname(__file__)
REPO_ROOT = os.path.dirname(CURRENT_DIR)
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

# до импорта настроек: движок приложения не должен создавать файл БД
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from training_platform.application.dto import Actor
from training_platform.domain.entities import Course, User
from training_platform.domain.enums import CourseStatus, UserRole
from training_platform.infrastructure.models import Base
from training_platform.infrastructure.repositories import SqlAlchemyUnitOfWork

# Тестовая БД в памяти, одно соединение на все сессии
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


class PlainHasher:
    """Быстрый хешер для тестов use case'ов (bcrypt тут не нужен)"""

    def hash(self, plain: str) -> str:
        return f"plain${plain}"

    def verify(self, plain: str, hashed: str) -> bool:
        return hashed == f"plain${plain}"


@pytest.fixture
def db():
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def uow(db):
    return SqlAlchemyUnitOfWork(db)


@pytest.fixture
def hasher():
    return PlainHasher()


@pytest.fixture
def make_user(uow, hasher):
    """Создает пользователя в БД и возвращает доменную сущность"""
    def _make(email: str, role: UserRole = UserRole.PARTICIPANT, password: str = "secret123") -> User:
        with uow.transaction():
            return uow.users.create(User(id=None, email=email, role=role), hasher.hash(password))
    return _make


@pytest.fixture
def make_course(uow):
    def _make(title: str = "Python Basics", description: str = "Introductory Python course",
              status: CourseStatus = CourseStatus.ACTIVE) -> Course:
        with uow.transaction():
            return uow.courses.create(Course(id=None, title=title, description=description, status=status))
    return _make


def actor_for(user: User) -> Actor:
    return Actor(user_id=user.id, role=user.role, email=user.email)


@pytest.fixture
def admin(make_user):
    return make_user("admin@example.com", UserRole.ADMIN)


@pytest.fixture
def trainer(make_user):
    return make_user("trainer@example.com", UserRole.TRAINER)


@pytest.fixture
def participant(make_user):
    return make_user("student@example.com", UserRole.PARTICIPANT)
