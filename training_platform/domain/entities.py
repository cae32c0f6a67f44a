"""Immutable domain entities.

Invariants are checked in ``__post_init__`` so every instance, whether built
from a request or from a stored row, is re-validated. State changes go through
``with_*`` / ``cancel`` and return a new instance.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any

from .enums import CourseStatus, EnrollmentStatus, UserRole
from .exceptions import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
EMAIL_MAX_LENGTH = 255
TITLE_MIN_LENGTH, TITLE_MAX_LENGTH = 3, 100
DESCRIPTION_MIN_LENGTH, DESCRIPTION_MAX_LENGTH = 10, 1000


def _check_id(field: str, value: Any, *, required: bool = False) -> None:
    if value is None and not required:
        return
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError.validation(field, value, "must be a positive integer")


def _check_count(field: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError.validation(field, value, "cannot be negative")


def _check_text(field: str, label: str, value: Any, min_len: int, max_len: int) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError.validation(field, value, f"{label} cannot be empty")
    if len(value) < min_len:
        raise ValidationError.validation(field, value, f"{label} must be at least {min_len} characters long")
    if len(value) > max_len:
        raise ValidationError.validation(field, value, f"{label} cannot exceed {max_len} characters")


def validate_email(email: Any) -> None:
    if not isinstance(email, str) or not email.strip():
        raise ValidationError.validation("email", email, "Email cannot be empty")
    if not EMAIL_RE.match(email):
        raise ValidationError.validation("email", email, "Invalid email format")
    if len(email) > EMAIL_MAX_LENGTH:
        raise ValidationError.validation("email", email, f"Email cannot exceed {EMAIL_MAX_LENGTH} characters")


@dataclass(frozen=True)
class User:
    id: int | None
    email: str
    role: UserRole = UserRole.PARTICIPANT
    active_enrollment_count: int = 0

    def __post_init__(self):
        _check_id("id", self.id)
        validate_email(self.email)
        object.__setattr__(self, "role", UserRole.parse(self.role, "role"))
        _check_count("activeEnrollmentCount", self.active_enrollment_count)

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN

    @property
    def is_trainer(self) -> bool:
        return self.role is UserRole.TRAINER

    @property
    def is_participant(self) -> bool:
        return self.role is UserRole.PARTICIPANT

    def can_manage_courses(self) -> bool:
        return self.is_admin or self.is_trainer

    def can_enroll_in_courses(self) -> bool:
        return self.is_participant

    def can_delete_users(self) -> bool:
        return self.is_admin

    def can_change_roles(self) -> bool:
        return self.is_admin

    def can_be_deleted(self) -> bool:
        return self.active_enrollment_count == 0

    def has_active_enrollments(self) -> bool:
        return self.active_enrollment_count > 0

    def with_email(self, email: str) -> "User":
        return replace(self, email=email)

    def with_role(self, role: UserRole | str) -> "User":
        new_role = UserRole.parse(role, "role")
        if not self.is_valid_role_transition(self.role, new_role):
            raise ValidationError.business_rule("Invalid role transition",
                                                currentRole=self.role.value, targetRole=new_role.value)
        return replace(self, role=new_role)

    def with_enrollment_count(self, count: int) -> "User":
        return replace(self, active_enrollment_count=count)

    @staticmethod
    def is_valid_role_transition(current: UserRole, target: UserRole) -> bool:
        # Ограничений пока нет (например, "последний админ"), решение за продуктом
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role.value,
            "enrollmentCount": self.active_enrollment_count,
        }


@dataclass(frozen=True)
class Course:
    id: int | None
    title: str
    description: str
    status: CourseStatus = CourseStatus.ACTIVE
    enrollment_count: int = 0

    def __post_init__(self):
        _check_id("id", self.id)
        _check_text("title", "Course title", self.title, TITLE_MIN_LENGTH, TITLE_MAX_LENGTH)
        _check_text("description", "Course description", self.description,
                    DESCRIPTION_MIN_LENGTH, DESCRIPTION_MAX_LENGTH)
        object.__setattr__(self, "status", CourseStatus.parse(self.status, "status"))
        _check_count("enrollmentCount", self.enrollment_count)

    def can_accept_enrollments(self) -> bool:
        return self.status is CourseStatus.ACTIVE

    def can_be_deleted(self) -> bool:
        return self.enrollment_count == 0

    def can_be_finished(self) -> bool:
        return self.status is CourseStatus.ACTIVE

    def has_active_enrollments(self) -> bool:
        return self.enrollment_count > 0

    def with_status(self, status: CourseStatus | str) -> "Course":
        new_status = CourseStatus.parse(status, "status")
        if new_status is CourseStatus.FINISHED and not self.can_be_finished():
            raise ValidationError.invalid_status_transition(self.status.value, new_status.value, "course")
        return replace(self, status=new_status)

    def with_details(self, title: str | None = None, description: str | None = None) -> "Course":
        return replace(
            self,
            title=self.title if title is None else title,
            description=self.description if description is None else description,
        )

    def with_enrollment_count(self, count: int) -> "Course":
        return replace(self, enrollment_count=count)

    def snapshot(self) -> "CourseSnapshot":
        return CourseSnapshot(id=self.id, title=self.title, status=self.status)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "enrollmentCount": self.enrollment_count,
        }


@dataclass(frozen=True)
class CourseSnapshot:
    """Denormalized course fields carried by an enrollment for display."""

    id: int
    title: str
    status: CourseStatus

    def __post_init__(self):
        _check_id("course.id", self.id, required=True)
        object.__setattr__(self, "status", CourseStatus.parse(self.status, "course.status"))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "status": self.status.value}


@dataclass(frozen=True)
class Enrollment:
    id: int | None
    user_id: int
    course_id: int
    status: EnrollmentStatus = EnrollmentStatus.ACTIVE
    course: CourseSnapshot | None = None

    def __post_init__(self):
        _check_id("id", self.id)
        if isinstance(self.user_id, bool) or not isinstance(self.user_id, int) or self.user_id <= 0:
            raise ValidationError.validation("userId", self.user_id, "Invalid user ID")
        if isinstance(self.course_id, bool) or not isinstance(self.course_id, int) or self.course_id <= 0:
            raise ValidationError.validation("courseId", self.course_id, "Invalid course ID")
        object.__setattr__(self, "status", EnrollmentStatus.parse(self.status, "status"))
        if self.course is not None and self.course.id != self.course_id:
            raise ValidationError.validation("course", self.course.id, "Course ID mismatch")

    def is_active(self) -> bool:
        return self.status is EnrollmentStatus.ACTIVE

    def is_cancelled(self) -> bool:
        return self.status is EnrollmentStatus.CANCELLED

    def can_be_cancelled(self) -> bool:
        return self.is_active()

    def is_course_active(self) -> bool:
        return self.course is not None and self.course.status is CourseStatus.ACTIVE

    def is_active_in_active_course(self) -> bool:
        return self.is_active() and self.is_course_active()

    def is_active_in_finished_course(self) -> bool:
        return self.is_active() and self.course is not None and self.course.status is CourseStatus.FINISHED

    def cancel(self) -> "Enrollment":
        if not self.can_be_cancelled():
            raise ValidationError.invalid_status_transition(
                self.status.value, EnrollmentStatus.CANCELLED.value, "enrollment")
        return replace(self, status=EnrollmentStatus.CANCELLED)

    def with_course(self, course: CourseSnapshot) -> "Enrollment":
        return replace(self, course=course)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "courseId": self.course_id,
            "status": self.status.value,
            "course": self.course.to_dict() if self.course else None,
        }


__all__ = ["User", "Course", "CourseSnapshot", "Enrollment", "validate_email"]
