import pytest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from training_platform.domain.entities import Course, User
from training_platform.domain.enums import UserRole
from training_platform.infrastructure.db import get_db
from training_platform.infrastructure.security import PasswordHasher, create_access_token
from training_platform.interfaces.http.routers.auth import get_limiter
from training_platform.main import app

from conftest import TestingSessionLocal


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

# Отключаем rate limiting в тестах
def override_get_limiter():
    mock_limiter = MagicMock()
    def noop_limit(*args, **kwargs):
        def decorator(func):
            return func
        return decorator
    mock_limiter.limit = noop_limit
    return mock_limiter


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_limiter] = override_get_limiter
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seed(uow):
    """Создает пользователя с настоящим bcrypt-хешем и возвращает (user, заголовки)"""
    hasher = PasswordHasher()
    def _seed(email: str, role: UserRole = UserRole.PARTICIPANT, password: str = "password123"):
        with uow.transaction():
            user = uow.users.create(User(id=None, email=email, role=role), hasher.hash(password))
        token = create_access_token(user_id=user.id, email=user.email, role=user.role.value)
        return user, {"Authorization": f"Bearer {token}"}
    return _seed


@pytest.fixture
def course(uow):
    with uow.transaction():
        return uow.courses.create(Course(id=None, title="Python Basics", description="Introductory Python course"))


def test_health(client):
    """Тест health endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_register_user_success(client):
    """Тест успешной регистрации: роль всегда PARTICIPANT"""
    response = client.post(
        "/api/auth/register",
        json={"email": "test@example.com", "password": "password123", "role": "ADMIN"}
    )
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "test@example.com"
    assert data["role"] == "PARTICIPANT"
    assert "id" in data


def test_register_user_duplicate(client):
    """Тест регистрации с существующим email"""
    payload = {"email": "test@example.com", "password": "password123"}
    assert client.post("/api/auth/register", json=payload).status_code == 201
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 409
    assert response.json()["error"] == "CONFLICT"


def test_register_user_invalid_email(client):
    """Тест регистрации с невалидным email"""
    response = client.post(
        "/api/auth/register",
        json={"email": "invalid-email", "password": "password123"}
    )
    assert response.status_code == 422


def test_register_user_short_password(client):
    """Тест регистрации с коротким паролем"""
    response = client.post(
        "/api/auth/register",
        json={"email": "test@example.com", "password": "123"}
    )
    assert response.status_code == 400
    body = response.json()
    assert body["statusCode"] == 400
    assert body["details"]["field"] == "password"
    assert response.headers["content-type"] == "application/json; charset=utf-8"


def test_login_and_me(client, seed):
    """Тест входа и получения текущего пользователя"""
    seed("test@example.com")
    response = client.post("/api/auth/login", json={"email": "test@example.com", "password": "password123"})
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["role"] == "PARTICIPANT"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "test@example.com"


def test_login_invalid_credentials(client, seed):
    """Тест входа с неверным паролем"""
    seed("test@example.com")
    response = client.post("/api/auth/login", json={"email": "test@example.com", "password": "wrongpassword"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


def test_me_without_token(client):
    """Тест запроса без токена"""
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["details"]["reason"] == "missing_token"


def test_me_invalid_token(client):
    """Тест запроса с невалидным токеном"""
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer invalid_token"})
    assert response.status_code == 401


def test_create_course_forbidden_for_participant(client, seed):
    """Тест создания курса участником"""
    _, headers = seed("student@example.com")
    response = client.post(
        "/api/courses",
        json={"title": "Test Course", "description": "Test Description"},
        headers=headers,
    )
    assert response.status_code == 403
    body = response.json()
    assert body["error"] == "FORBIDDEN"
    assert body["details"]["requiredRole"] == ["ADMIN", "TRAINER"]
    assert body["details"]["currentRole"] == "PARTICIPANT"


def test_create_course_validation(client, seed):
    """Тест валидации курса: ошибка домена, а не 422"""
    _, headers = seed("trainer@example.com", UserRole.TRAINER)
    response = client.post("/api/courses", json={"title": "ab", "description": "Test Description"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["details"]["field"] == "title"

    response = client.post("/api/courses", json={"title": "abc", "description": "Test Description"}, headers=headers)
    assert response.status_code == 201
    assert response.json()["status"] == "active"


def test_list_courses_with_pagination(client, seed, uow):
    """Тест пагинации курсов"""
    _, headers = seed("student@example.com")
    with uow.transaction():
        for i in range(15):
            uow.courses.create(Course(id=None, title=f"Course {i}", description=f"Description {i:04d}"))

    response = client.get("/api/courses?limit=10&page=1", headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert len(data["courses"]) == 10
    assert data["total"] == 15

    response = client.get("/api/courses?limit=10&page=2", headers=headers)
    assert len(response.json()["courses"]) == 5


def test_list_courses_invalid_pagination(client, seed):
    """Тест невалидной пагинации"""
    _, headers = seed("student@example.com")
    assert client.get("/api/courses?limit=0", headers=headers).status_code == 422
    assert client.get("/api/courses?limit=101", headers=headers).status_code == 422
    assert client.get("/api/courses?page=0", headers=headers).status_code == 422


def test_enroll_and_force_delete_course(client, seed, course):
    """Сценарий: участник записался, тренер не может удалить курс, админ удаляет принудительно"""
    _, student = seed("student@example.com")
    _, trainer = seed("trainer@example.com", UserRole.TRAINER)
    _, admin = seed("admin@example.com", UserRole.ADMIN)

    response = client.post(f"/api/enrollments/courses/{course.id}/enroll", headers=student)
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "active"
    assert data["course"]["title"] == "Python Basics"
    assert data["courseEnrollmentCount"] == 1

    duplicate = client.post(f"/api/enrollments/courses/{course.id}/enroll", headers=student)
    assert duplicate.status_code == 409

    blocked = client.delete(f"/api/courses/{course.id}", headers=trainer)
    assert blocked.status_code == 409
    assert blocked.json()["details"]["enrollmentCount"] == 1

    assert client.delete(f"/api/courses/{course.id}?force=true", headers=trainer).status_code == 403

    deleted = client.delete(f"/api/courses/{course.id}?force=true", headers=admin)
    assert deleted.status_code == 200
    assert deleted.json()["enrollmentsCancelled"] == 1

    assert client.get(f"/api/courses/{course.id}", headers=student).status_code == 404
    mine = client.get("/api/enrollments/users/me/courses", headers=student).json()
    assert mine == {"activeCourses": [], "finishedCourses": []}


def test_cancel_own_enrollment(client, seed, course):
    """Тест отмены своей записи и повторной отмены"""
    _, student = seed("student@example.com")
    client.post(f"/api/enrollments/courses/{course.id}/enroll", headers=student)

    response = client.delete(f"/api/enrollments/courses/{course.id}/enroll", headers=student)
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    again = client.delete(f"/api/enrollments/courses/{course.id}/enroll", headers=student)
    assert again.status_code == 404


def test_bulk_cancel(client, seed, course):
    """Тест массовой отмены"""
    user, student = seed("student@example.com")
    _, trainer = seed("trainer@example.com", UserRole.TRAINER)
    client.post(f"/api/enrollments/courses/{course.id}/enroll", headers=student)

    response = client.request(
        "DELETE", f"/api/enrollments/courses/{course.id}/cancel-all",
        json={"reason": "Course closed"}, headers=trainer,
    )
    assert response.status_code == 200
    assert response.json() == {
        "cancelled": 1,
        "message": "1 enrollments cancelled. Reason: Course closed",
        "affectedUsers": [user.id],
    }


def test_self_delete_with_password(client, seed):
    """Тест самоудаления: без пароля 400, с паролем 200"""
    user, headers = seed("student@example.com")
    response = client.delete(f"/api/users/{user.id}", headers=headers)
    assert response.status_code == 400

    response = client.request("DELETE", f"/api/users/{user.id}", json={"password": "password123"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["email"] == "student@example.com"

    # токен остался, а пользователя уже нет
    assert client.get("/api/users/me", headers=headers).status_code == 404


def test_admin_force_deletes_user(client, seed, course):
    """Тест принудительного удаления пользователя: записи отменяются"""
    user, student = seed("student@example.com")
    _, admin = seed("admin@example.com", UserRole.ADMIN)
    client.post(f"/api/enrollments/courses/{course.id}/enroll", headers=student)

    assert client.delete(f"/api/users/{user.id}", headers=admin).status_code == 409
    response = client.post(f"/api/admin/users/{user.id}/force-delete", headers=admin)
    assert response.status_code == 200
    assert response.json()["enrollmentsCancelled"] == 1

    history = client.get(f"/api/enrollments/courses/{course.id}/history", headers=admin).json()
    assert [e["status"] for e in history] == ["cancelled"]


def test_role_change_takes_effect_immediately(client, seed, course):
    """Тест: новая роль действует без перевыпуска токена"""
    user, student = seed("student@example.com")
    _, admin = seed("admin@example.com", UserRole.ADMIN)

    response = client.put(f"/api/admin/users/{user.id}/role", json={"role": "TRAINER"}, headers=admin)
    assert response.status_code == 200
    assert response.json()["role"] == "TRAINER"

    assert client.post(f"/api/enrollments/courses/{course.id}/enroll", headers=student).status_code == 403


def test_admin_stats(client, seed, course):
    """Тест статистики"""
    _, trainer = seed("trainer@example.com", UserRole.TRAINER)
    _, admin = seed("admin@example.com", UserRole.ADMIN)
    assert client.get("/api/admin/stats", headers=trainer).status_code == 403
    data = client.get("/api/admin/stats", headers=admin).json()
    assert data["users"]["totalUsers"] == 2
    assert data["courses"]["totalCourses"] == 1


def test_metrics_endpoint(client):
    """Тест endpoint метрик"""
    client.get("/health")
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "text/plain" in response.headers["content-type"]
    assert "http_requests_total" in response.text
