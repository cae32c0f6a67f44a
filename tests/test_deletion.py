import pytest

from training_platform.application.dto import EnrollmentQuery
from training_platform.application.use_cases.deletion import DeleteCourse, DeleteUser
from training_platform.application.use_cases.enrollments import CancelEnrollment, EnrollInCourse
from training_platform.domain.enums import EnrollmentStatus
from training_platform.domain.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError

from conftest import actor_for


@pytest.fixture
def enrolled(uow, participant, make_course):
    """Участник записан на курс"""
    course = make_course()
    EnrollInCourse(uow).execute(actor_for(participant), course.id)
    return participant, course


# --- Удаление курса

def test_delete_empty_course(uow, trainer, make_course):
    """Тест удаления курса без записей"""
    course = make_course()
    result = DeleteCourse(uow).execute(actor_for(trainer), course.id)
    assert result.id == course.id
    assert result.enrollments_cancelled == 0
    assert uow.courses.get(course.id) is None


def test_delete_course_with_enrollments_conflicts(uow, trainer, enrolled):
    """Тест: курс с активными записями без force не удаляется"""
    _, course = enrolled
    with pytest.raises(ConflictError) as exc:
        DeleteCourse(uow).execute(actor_for(trainer), course.id)
    assert exc.value.details["enrollmentCount"] == 1
    assert uow.courses.get(course.id) is not None


def test_delete_course_keeps_cancelled_history(uow, trainer, enrolled):
    """Тест: отмененные записи не мешают удалению и остаются историей"""
    participant, course = enrolled
    CancelEnrollment(uow).execute(actor_for(participant), course.id)
    DeleteCourse(uow).execute(actor_for(trainer), course.id)
    history = uow.enrollments.list(EnrollmentQuery(user_id=participant.id))
    assert len(history) == 1
    assert history[0].is_cancelled()
    assert history[0].course is None


def test_force_delete_course_requires_admin(uow, trainer, enrolled):
    """Тест: force только для админа"""
    _, course = enrolled
    with pytest.raises(ForbiddenError):
        DeleteCourse(uow).execute(actor_for(trainer), course.id, force=True)


def test_force_delete_course_removes_enrollments(uow, admin, make_user, enrolled):
    """Тест принудительного удаления курса: записи удаляются вместе с курсом"""
    participant, course = enrolled
    other = make_user("other@example.com")
    EnrollInCourse(uow).execute(actor_for(other), course.id)
    CancelEnrollment(uow).execute(actor_for(other), course.id)

    result = DeleteCourse(uow).execute(actor_for(admin), course.id, force=True)
    assert result.enrollments_cancelled == 2
    assert result.to_dict()["enrollmentsCancelled"] == 2
    assert uow.courses.get(course.id) is None
    assert uow.enrollments.count(EnrollmentQuery(course_id=course.id)) == 0
    assert uow.users.get(participant.id).active_enrollment_count == 0


def test_delete_missing_course(uow, admin):
    """Тест удаления несуществующего курса"""
    with pytest.raises(NotFoundError):
        DeleteCourse(uow).execute(actor_for(admin), 999, force=True)


def test_permission_checked_before_lookup(uow, participant):
    """Тест: участник получает 403, даже если курса нет"""
    with pytest.raises(ForbiddenError):
        DeleteCourse(uow).execute(actor_for(participant), 999)


def test_force_delete_rolls_back_on_failure(uow, admin, enrolled, monkeypatch):
    """Тест атомарности: сбой после удаления записей откатывает всё"""
    participant, course = enrolled

    def broken_delete(course_id):
        raise RuntimeError("storage failure")

    monkeypatch.setattr(uow.courses, "delete", broken_delete)
    with pytest.raises(RuntimeError):
        DeleteCourse(uow).execute(actor_for(admin), course.id, force=True)
    monkeypatch.undo()

    assert uow.courses.get(course.id) is not None
    assert uow.enrollments.find_active(participant.id, course.id) is not None


# --- Удаление пользователя

def test_admin_deletes_user_without_enrollments(uow, admin, participant):
    """Тест удаления пользователя админом (пароль не нужен)"""
    result = DeleteUser(uow, None).execute(actor_for(admin), participant.id)
    assert result.email == participant.email
    assert result.to_dict()["email"] == participant.email
    assert uow.users.get(participant.id) is None


def test_delete_user_with_enrollments_conflicts(uow, admin, enrolled):
    """Тест: пользователь с активными записями без force не удаляется"""
    participant, _ = enrolled
    with pytest.raises(ConflictError) as exc:
        DeleteUser(uow, None).execute(actor_for(admin), participant.id)
    assert exc.value.details["enrollmentCount"] == 1


def test_force_delete_user_cancels_enrollments(uow, admin, enrolled):
    """Тест принудительного удаления: записи отменяются, но остаются"""
    participant, course = enrolled
    result = DeleteUser(uow, None).execute(actor_for(admin), participant.id, force=True)
    assert result.enrollments_cancelled == 1
    assert uow.users.get(participant.id) is None
    rows = uow.enrollments.list(EnrollmentQuery(course_id=course.id))
    assert [e.status for e in rows] == [EnrollmentStatus.CANCELLED]
    assert uow.courses.get(course.id).enrollment_count == 0


def test_self_delete_requires_password(uow, hasher, participant):
    """Тест самоудаления: пароль обязателен и проверяется"""
    uc = DeleteUser(uow, hasher)
    actor = actor_for(participant)
    with pytest.raises(ValidationError) as exc:
        uc.execute(actor, participant.id)
    assert "required" in exc.value.details["constraint"]
    with pytest.raises(ValidationError) as exc:
        uc.execute(actor, participant.id, password="wrong-password")
    assert exc.value.details["constraint"] == "Invalid password"

    uc.execute(actor, participant.id, password="secret123")
    assert uow.users.get(participant.id) is None


def test_participant_cannot_delete_others(uow, hasher, participant, make_user):
    """Тест: чужой аккаунт удаляет только админ"""
    other = make_user("other@example.com")
    with pytest.raises(ForbiddenError):
        DeleteUser(uow, hasher).execute(actor_for(participant), other.id, password="secret123")


def test_self_force_delete_requires_admin(uow, hasher, enrolled):
    """Тест: force-удаление себя участником запрещено"""
    participant, _ = enrolled
    with pytest.raises(ForbiddenError):
        DeleteUser(uow, hasher).execute(actor_for(participant), participant.id, force=True, password="secret123")


def test_self_delete_with_enrollments_conflicts(uow, hasher, enrolled):
    """Тест: верный пароль, но активные записи без force дают конфликт"""
    participant, _ = enrolled
    with pytest.raises(ConflictError):
        DeleteUser(uow, hasher).execute(actor_for(participant), participant.id, password="secret123")
    assert uow.users.get(participant.id) is not None


def test_end_to_end_enroll_then_force_delete(uow, admin, make_user, make_course):
    """Сценарий: участник 7 записывается на курс 3, админ удаляет курс принудительно"""
    # админ уже занял id 1, добиваем до 6
    for i in range(5):
        make_user(f"filler{i}@example.com")
    participant = make_user("p7@example.com")
    make_course(title="Course one")
    make_course(title="Course two")
    course = make_course(title="Course three")
    assert (participant.id, course.id) == (7, 3)
    assert course.enrollment_count == 0

    result = EnrollInCourse(uow).execute(actor_for(participant), 3)
    assert {k: result.to_dict()[k] for k in ("userId", "courseId", "status")} == \
        {"userId": 7, "courseId": 3, "status": "active"}
    assert uow.courses.get(3).enrollment_count == 1

    deleted = DeleteCourse(uow).execute(actor_for(admin), 3, force=True)
    assert deleted.to_dict()["enrollmentsCancelled"] == 1
    assert uow.courses.get(3) is None
    assert uow.enrollments.list(EnrollmentQuery(user_id=7)) == []
