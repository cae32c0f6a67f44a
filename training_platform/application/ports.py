"""Storage and credential ports the use cases depend on.

Implementations live in ``infrastructure``; tests may substitute their own.
Repositories never commit: the unit of work owns the transaction boundary.
"""
from __future__ import annotations

from contextlib import AbstractContextManager

from ..domain.entities import Course, Enrollment, User
from ..domain.enums import CourseStatus, EnrollmentStatus, UserRole
from .dto import CourseQuery, EnrollmentQuery


class IUserRepository:
    def get(self, user_id: int, for_update: bool = False) -> User | None: ...
    def get_by_email(self, email: str) -> User | None: ...
    def get_password_hash(self, user_id: int) -> str | None: ...
    def get_credentials(self, email: str) -> tuple[User, str] | None: ...
    def create(self, user: User, password_hash: str) -> User: ...
    def update(self, user: User) -> User: ...
    def set_password_hash(self, user_id: int, password_hash: str) -> None: ...
    def delete(self, user_id: int) -> None: ...
    def email_exists(self, email: str, exclude_user_id: int | None = None) -> bool: ...
    def list(self, offset: int, limit: int) -> list[User]: ...
    def count(self) -> int: ...
    def count_by_role(self) -> dict[UserRole, int]: ...


class ICourseRepository:
    def get(self, course_id: int, for_update: bool = False) -> Course | None: ...
    def list(self, query: CourseQuery) -> list[Course]: ...
    def count(self, query: CourseQuery | None = None) -> int: ...
    def create(self, course: Course) -> Course: ...
    def update(self, course: Course) -> Course: ...
    def delete(self, course_id: int) -> None: ...
    def count_by_status(self) -> dict[CourseStatus, int]: ...


class IEnrollmentRepository:
    def find_active(self, user_id: int, course_id: int) -> Enrollment | None: ...
    def add(self, enrollment: Enrollment) -> Enrollment: ...
    def save_status(self, enrollment: Enrollment) -> Enrollment: ...
    def list(self, query: EnrollmentQuery) -> list[Enrollment]: ...
    def count(self, query: EnrollmentQuery | None = None) -> int: ...
    def count_by_status(self) -> dict[EnrollmentStatus, int]: ...
    def count_active_for_course(self, course_id: int) -> int: ...
    def count_active_for_user(self, user_id: int) -> int: ...
    def active_user_ids_for_course(self, course_id: int) -> list[int]: ...
    def cancel_all_for_course(self, course_id: int) -> int: ...
    def cancel_all_for_user(self, user_id: int) -> int: ...
    def delete_all_for_course(self, course_id: int) -> int: ...


class IUnitOfWork:
    users: IUserRepository
    courses: ICourseRepository
    enrollments: IEnrollmentRepository

    def transaction(self) -> AbstractContextManager[None]:
        """Commit on normal exit, roll back and re-raise on any exception."""
        ...


class IPasswordHasher:
    def hash(self, plain: str) -> str: ...
    def verify(self, plain: str, hashed: str) -> bool: ...
