from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..domain.entities import Enrollment
from ..domain.enums import CourseStatus, EnrollmentStatus, UserRole


@dataclass(frozen=True)
class Actor:
    """Identity already verified by the authentication collaborator."""
    user_id: int
    role: UserRole
    email: str | None = None


@dataclass
class RegisterUserInput:
    email: str
    password: str
    role: UserRole | None = None


@dataclass
class CourseQuery:
    status: CourseStatus | None = None
    page: int = 1
    limit: int = 10
    enrolled_for_user_id: int | None = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class EnrollmentQuery:
    user_id: int | None = None
    course_id: int | None = None
    status: EnrollmentStatus | None = None
    page: int | None = None
    limit: int | None = None

    @property
    def offset(self) -> int | None:
        if self.page is None or self.limit is None:
            return None
        return (self.page - 1) * self.limit


@dataclass
class Page:
    items: list[Any]
    total: int
    page: int
    limit: int

    def to_dict(self, key: str) -> dict[str, Any]:
        return {
            key: [i.to_dict() for i in self.items],
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
        }


@dataclass
class DeletionResult:
    id: int
    message: str
    enrollments_cancelled: int = 0
    email: str | None = None

    def to_dict(self) -> dict[str, Any]:
        body = {"id": self.id, "message": self.message, "enrollmentsCancelled": self.enrollments_cancelled}
        if self.email is not None:
            body["email"] = self.email
        return body


@dataclass
class BulkCancelResult:
    cancelled: int
    message: str
    affected_users: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"cancelled": self.cancelled, "message": self.message, "affectedUsers": self.affected_users}


@dataclass
class UserCourses:
    active_courses: list[Enrollment]
    finished_courses: list[Enrollment]

    def to_dict(self) -> dict[str, Any]:
        return {
            "activeCourses": [e.to_dict() for e in self.active_courses],
            "finishedCourses": [e.to_dict() for e in self.finished_courses],
        }


@dataclass
class EnrollmentResult:
    enrollment: Enrollment
    course_enrollment_count: int

    def to_dict(self) -> dict[str, Any]:
        return {**self.enrollment.to_dict(), "courseEnrollmentCount": self.course_enrollment_count}


@dataclass
class AdminStats:
    users_by_role: dict[UserRole, int]
    courses_by_status: dict[CourseStatus, int]
    enrollments_by_status: dict[EnrollmentStatus, int]
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "users": {
                "totalUsers": sum(self.users_by_role.values()),
                "usersByRole": {r.value: self.users_by_role.get(r, 0) for r in UserRole},
            },
            "courses": {
                "totalCourses": sum(self.courses_by_status.values()),
                "coursesByStatus": {s.value: self.courses_by_status.get(s, 0) for s in CourseStatus},
            },
            "enrollments": {
                "totalEnrollments": sum(self.enrollments_by_status.values()),
                "enrollmentsByStatus": {s.value: self.enrollments_by_status.get(s, 0) for s in EnrollmentStatus},
            },
            "generatedAt": self.generated_at.isoformat(),
        }


__all__ = [
    "Actor", "RegisterUserInput", "CourseQuery", "EnrollmentQuery", "Page",
    "DeletionResult", "BulkCancelResult", "UserCourses", "EnrollmentResult", "AdminStats",
]
