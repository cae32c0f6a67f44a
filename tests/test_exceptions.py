from training_platform.domain.enums import UserRole
from training_platform.domain.exceptions import (
    ConflictError,
    DomainError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)


def test_status_codes():
    """Тест HTTP статусов таксономии"""
    assert ValidationError("x").status_code == 400
    assert UnauthorizedError().status_code == 401
    assert ForbiddenError("x").status_code == 403
    assert NotFoundError("Course", 1).status_code == 404
    assert ConflictError("x").status_code == 409
    assert all(issubclass(c, DomainError) for c in
               (ValidationError, UnauthorizedError, ForbiddenError, NotFoundError, ConflictError))


def test_to_dict_shape():
    """Тест тела ответа об ошибке"""
    body = NotFoundError.course(42).to_dict()
    assert body == {
        "error": "NOT_FOUND",
        "message": "Course with ID 42 not found",
        "statusCode": 404,
        "details": {"resource": "Course", "identifier": 42},
    }


def test_to_dict_without_details():
    """Тест: пустые детали не попадают в тело"""
    assert "details" not in ConflictError("boom").to_dict()


def test_validation_message():
    """Тест сообщения ошибки валидации"""
    err = ValidationError.validation("title", "ab", "Course title must be at least 3 characters long")
    assert err.message == "Validation failed for field 'title': Course title must be at least 3 characters long"
    assert err.error_code == "BAD_REQUEST"


def test_conflict_carries_exact_count():
    """Тест: конфликт удаления несет точное число активных записей"""
    err = ConflictError.course_has_enrollments(3, 5)
    assert err.details["enrollmentCount"] == 5
    assert "5 active enrollments" in err.message


def test_forbidden_renders_enum_values():
    """Тест: роли в сообщении в виде значений, а не имен enum"""
    err = ForbiddenError.insufficient_role([UserRole.ADMIN, UserRole.TRAINER], UserRole.PARTICIPANT, "create course")
    assert err.message == "Insufficient permissions to create course. Required: ADMIN or TRAINER, Current: PARTICIPANT"
    assert err.details["requiredRole"] == ["ADMIN", "TRAINER"]


def test_unauthorized_variants():
    """Тест вариантов 401"""
    assert UnauthorizedError.missing_token().details["reason"] == "missing_token"
    assert UnauthorizedError.invalid_credentials().message == "Invalid email or password"


def test_not_found_keeps_zero_identifier():
    """Тест: id 0 попадает в сообщение, отсутствующий id нет"""
    assert NotFoundError("User", 0).message == "User with ID 0 not found"
    assert NotFoundError("User").message == "User not found"
