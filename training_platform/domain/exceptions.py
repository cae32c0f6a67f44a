"""Domain error taxonomy.

Every rule violation raised by the core is one of the classes below. The HTTP
layer only reads `status_code` and `to_dict()`; it never re-derives context.
"""
from __future__ import annotations

from typing import Any, Iterable


def _value(role: Any) -> str:
    return getattr(role, "value", role)


class DomainError(Exception):
    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
            "statusCode": self.status_code,
        }
        if self.details:
            body["details"] = self.details
        return body

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, details={self.details!r})"


class ValidationError(DomainError):
    """400: malformed value, business rule violation, bad state transition request."""

    status_code = 400
    error_code = "BAD_REQUEST"

    @classmethod
    def validation(cls, field: str, value: Any = None, constraint: str | None = None) -> "ValidationError":
        message = (
            f"Validation failed for field '{field}': {constraint}"
            if constraint else f"Invalid value for field '{field}'"
        )
        return cls(message, {"field": field, "value": value, "constraint": constraint})

    @classmethod
    def duplicate(cls, resource: str, field: str, value: Any) -> "ValidationError":
        return cls(f"{resource} with {field} '{value}' already exists",
                   {"resource": resource, "field": field, "value": value})

    @classmethod
    def business_rule(cls, rule: str, **details: Any) -> "ValidationError":
        return cls(f"Business rule violation: {rule}", {"rule": rule, **details})

    @classmethod
    def enrollment(cls, reason: str, **details: Any) -> "ValidationError":
        return cls(f"Enrollment error: {reason}", {"type": "enrollment", **details})

    @classmethod
    def invalid_status_transition(cls, current: str, target: str, resource: str) -> "ValidationError":
        return cls(
            f"Invalid status transition from '{current}' to '{target}' for {resource}",
            {"from": current, "to": target, "resource": resource},
        )


class UnauthorizedError(DomainError):
    """401: produced by the authentication collaborator, passed through as is."""

    status_code = 401
    error_code = "UNAUTHORIZED"

    def __init__(self, message: str = "Authentication required", details: dict[str, Any] | None = None):
        super().__init__(message, details)

    @classmethod
    def missing_token(cls) -> "UnauthorizedError":
        return cls("Authentication token is required", {"reason": "missing_token"})

    @classmethod
    def invalid_token(cls, reason: str | None = None) -> "UnauthorizedError":
        return cls("Invalid authentication token", {"reason": reason or "invalid_token"})

    @classmethod
    def invalid_credentials(cls) -> "UnauthorizedError":
        return cls("Invalid email or password", {"reason": "invalid_credentials"})


class ForbiddenError(DomainError):
    """403: the actor's role or ownership is insufficient."""

    status_code = 403
    error_code = "FORBIDDEN"

    @classmethod
    def insufficient_role(cls, required: Iterable[str], current: str,
                          operation: str | None = None) -> "ForbiddenError":
        required = [_value(r) for r in required]
        joined = " or ".join(required)
        if operation:
            message = f"Insufficient permissions to {operation}. Required: {joined}, Current: {_value(current)}"
        else:
            message = f"Insufficient permissions. Required: {joined}, Current: {_value(current)}"
        return cls(message, {"requiredRole": required, "currentRole": _value(current), "operation": operation})

    @classmethod
    def admin_only(cls, operation: str, current: str) -> "ForbiddenError":
        return cls(
            f"Operation '{operation}' requires administrator privileges",
            {"operation": operation, "requiredRole": ["ADMIN"], "currentRole": _value(current)},
        )

    @classmethod
    def course_management(cls, operation: str, course_id: int | None, current: str) -> "ForbiddenError":
        target = f"course {course_id}" if course_id else "courses"
        return cls(
            f"Insufficient permissions to {operation} {target}",
            {"operation": operation, "courseId": course_id,
             "requiredRole": ["ADMIN", "TRAINER"], "currentRole": _value(current)},
        )

    @classmethod
    def enrollment_restriction(cls, reason: str, current: str) -> "ForbiddenError":
        return cls(
            f"Enrollment forbidden: {reason}",
            {"type": "enrollment", "reason": reason,
             "requiredRole": ["PARTICIPANT"], "currentRole": _value(current)},
        )


class NotFoundError(DomainError):
    """404: a referenced entity does not exist."""

    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} with ID {identifier} not found" if identifier is not None else f"{resource} not found"
        super().__init__(message, {"resource": resource, "identifier": identifier})

    @classmethod
    def course(cls, course_id: int) -> "NotFoundError":
        return cls("Course", course_id)

    @classmethod
    def user(cls, user_id: int) -> "NotFoundError":
        return cls("User", user_id)

    @classmethod
    def enrollment(cls, enrollment_id: int | None = None) -> "NotFoundError":
        return cls("Enrollment", enrollment_id)


class ConflictError(DomainError):
    """409: duplicates, deletes blocked by dependent rows, concurrent state changes."""

    status_code = 409
    error_code = "CONFLICT"

    @classmethod
    def duplicate_enrollment(cls, user_id: int, course_id: int) -> "ConflictError":
        return cls("User is already enrolled in this course",
                   {"userId": user_id, "courseId": course_id, "type": "duplicate_enrollment"})

    @classmethod
    def duplicate_email(cls, email: str) -> "ConflictError":
        return cls("User with this email already exists", {"email": email, "type": "duplicate_email"})

    @classmethod
    def course_has_enrollments(cls, course_id: int, enrollment_count: int) -> "ConflictError":
        return cls(
            f"Cannot delete course with {enrollment_count} active enrollments",
            {"courseId": course_id, "enrollmentCount": enrollment_count, "type": "course_has_enrollments"},
        )

    @classmethod
    def user_has_enrollments(cls, user_id: int, enrollment_count: int) -> "ConflictError":
        return cls(
            f"Cannot delete user with {enrollment_count} active enrollments",
            {"userId": user_id, "enrollmentCount": enrollment_count, "type": "user_has_enrollments"},
        )

    @classmethod
    def invalid_state_transition(cls, resource: str, current: str, target: str,
                                 reason: str | None = None) -> "ConflictError":
        if reason:
            message = f"Cannot transition {resource} from {current} to {target}: {reason}"
        else:
            message = f"Invalid state transition for {resource} from {current} to {target}"
        return cls(message, {"resource": resource, "currentState": current, "targetState": target,
                             "reason": reason, "type": "invalid_state_transition"})


__all__ = [
    "DomainError",
    "ValidationError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
]
