"""Enrollment state machine: active -> cancelled (terminal).

Creation is commit-or-reject; the checks below run in a fixed order and the
first failing one decides the error.
"""
from __future__ import annotations

from .entities import Course, Enrollment, User
from .enums import EnrollmentStatus
from .exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from .permissions import Operation, decide


def check_can_enroll(actor: User, course_id: int, course: Course | None,
                     existing: Enrollment | None) -> Course:
    if not decide(actor.role, actor.id, Operation.ENROLL):
        raise ForbiddenError.enrollment_restriction("Only participants can enroll in courses", actor.role)
    if course is None:
        raise NotFoundError.course(course_id)
    if existing is not None and existing.is_active():
        raise ConflictError.duplicate_enrollment(actor.id, course.id)
    if not course.can_accept_enrollments():
        raise ValidationError.enrollment("Cannot enroll in inactive course",
                                         courseId=course.id, courseStatus=course.status.value)
    return course


def new_enrollment(user_id: int, course: Course) -> Enrollment:
    return Enrollment(
        id=None,
        user_id=user_id,
        course_id=course.id,
        status=EnrollmentStatus.ACTIVE,
        course=course.snapshot(),
    )


def check_can_cancel(enrollment: Enrollment | None) -> Enrollment:
    """Return the cancelled version of ``enrollment``.

    A missing active enrollment is NotFound; an enrollment that is no longer
    active is rejected by the entity itself (ValidationError).
    """
    if enrollment is None:
        raise NotFoundError.enrollment()
    return enrollment.cancel()


def check_participant_may_cancel(actor: User) -> None:
    if not decide(actor.role, actor.id, Operation.CANCEL_OWN_ENROLLMENT):
        raise ForbiddenError.enrollment_restriction("Only participants can cancel enrollments", actor.role)
