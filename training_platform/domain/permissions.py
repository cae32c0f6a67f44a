"""Role-based permission decisions.

``decide`` is total over (role, operation): every operation has an explicit
allowed-role set, a few are also open to the actor acting on their own record,
and anything else is denied.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .enums import UserRole
from .exceptions import ForbiddenError

ALL_ROLES = frozenset(UserRole)
STAFF = frozenset({UserRole.ADMIN, UserRole.TRAINER})
ADMIN_ONLY = frozenset({UserRole.ADMIN})
PARTICIPANT_ONLY = frozenset({UserRole.PARTICIPANT})


class Operation(str, Enum):
    CREATE_COURSE = "create course"
    UPDATE_COURSE = "update course"
    DELETE_COURSE = "delete course"
    FORCE_DELETE_COURSE = "force delete course"

    VIEW_OWN_PROFILE = "view own profile"
    CHANGE_OWN_PASSWORD = "change own password"
    VIEW_USER = "view user profile"
    UPDATE_USER = "update user profile"
    DELETE_USER = "delete user account"
    FORCE_DELETE_USER = "force delete user account"
    CHANGE_ROLE = "change user role"
    LIST_USERS = "view all users"
    CREATE_USER = "create user"

    ENROLL = "enroll in course"
    CANCEL_OWN_ENROLLMENT = "cancel own enrollment"
    CANCEL_USER_ENROLLMENT = "cancel user enrollment"
    BULK_CANCEL_COURSE_ENROLLMENTS = "cancel all enrollments for course"
    VIEW_OWN_ENROLLMENTS = "view own enrollments"
    VIEW_ALL_ENROLLMENTS = "view all enrollments"
    VIEW_USER_ENROLLMENTS = "view user enrollments"
    VIEW_COURSE_ENROLLMENTS = "view course enrollments"
    VIEW_COURSE_ENROLLMENT_HISTORY = "view course enrollment history"

    VIEW_ADMIN_STATS = "view admin statistics"

    def __str__(self) -> str:
        return self.value


ROLE_MATRIX: dict[Operation, frozenset[UserRole]] = {
    Operation.CREATE_COURSE: STAFF,
    Operation.UPDATE_COURSE: STAFF,
    Operation.DELETE_COURSE: STAFF,
    Operation.FORCE_DELETE_COURSE: ADMIN_ONLY,
    Operation.VIEW_OWN_PROFILE: ALL_ROLES,
    Operation.CHANGE_OWN_PASSWORD: ALL_ROLES,
    Operation.VIEW_USER: ADMIN_ONLY,
    Operation.UPDATE_USER: ADMIN_ONLY,
    Operation.DELETE_USER: ADMIN_ONLY,
    Operation.FORCE_DELETE_USER: ADMIN_ONLY,
    Operation.CHANGE_ROLE: ADMIN_ONLY,
    Operation.LIST_USERS: ADMIN_ONLY,
    Operation.CREATE_USER: ADMIN_ONLY,
    Operation.ENROLL: PARTICIPANT_ONLY,
    Operation.CANCEL_OWN_ENROLLMENT: PARTICIPANT_ONLY,
    Operation.CANCEL_USER_ENROLLMENT: STAFF,
    Operation.BULK_CANCEL_COURSE_ENROLLMENTS: STAFF,
    Operation.VIEW_OWN_ENROLLMENTS: ALL_ROLES,
    Operation.VIEW_ALL_ENROLLMENTS: STAFF,
    Operation.VIEW_USER_ENROLLMENTS: STAFF,
    Operation.VIEW_COURSE_ENROLLMENTS: STAFF,
    Operation.VIEW_COURSE_ENROLLMENT_HISTORY: ADMIN_ONLY,
    Operation.VIEW_ADMIN_STATS: ADMIN_ONLY,
}

# Операции, которые любой пользователь может выполнить над своей записью
SELF_SERVICE = frozenset({
    Operation.VIEW_USER,
    Operation.UPDATE_USER,
    Operation.DELETE_USER,
    Operation.VIEW_USER_ENROLLMENTS,
})


@dataclass(frozen=True)
class Decision:
    allowed: bool
    operation: Operation
    actor_role: UserRole
    required_roles: tuple[UserRole, ...] = field(default_factory=tuple)
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.allowed

    def enforce(self) -> "Decision":
        if not self.allowed:
            raise ForbiddenError.insufficient_role(self.required_roles, self.actor_role, str(self.operation))
        return self


def _ordered(roles: frozenset[UserRole]) -> tuple[UserRole, ...]:
    return tuple(r for r in UserRole if r in roles)


def decide(actor_role: UserRole | str, actor_id: int | None, operation: Operation,
           target_user_id: int | None = None) -> Decision:
    role = UserRole.parse(actor_role, "role")
    allowed_roles = ROLE_MATRIX.get(operation, frozenset())
    required = _ordered(allowed_roles)

    if role in allowed_roles:
        return Decision(True, operation, role, required)

    is_self = actor_id is not None and target_user_id is not None and actor_id == target_user_id
    if operation in SELF_SERVICE and is_self:
        return Decision(True, operation, role, required, reason="self")

    if operation in SELF_SERVICE:
        reason = f"{role.value} may only {operation} for their own account"
    else:
        reason = f"{role.value} is not allowed to {operation}"
    return Decision(False, operation, role, required, reason=reason)


def require(actor_role: UserRole | str, actor_id: int | None, operation: Operation,
            target_user_id: int | None = None) -> Decision:
    return decide(actor_role, actor_id, operation, target_user_id).enforce()


__all__ = ["Operation", "Decision", "ROLE_MATRIX", "SELF_SERVICE", "decide", "require"]
