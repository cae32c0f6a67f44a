"""Cascading deletes of courses and users.

The existence check, the active-enrollment count and every mutation happen in
one transaction with the parent row locked, so an enrollment created
concurrently cannot slip in between the check and the delete. Cascades are
explicit: dependent enrollments first, then the parent row.

Course force delete removes the enrollment rows; user delete only cancels
them and keeps the rows as history.
"""
import structlog

from ...domain.exceptions import ConflictError, NotFoundError, ValidationError
from ...domain.permissions import Operation, require
from ..dto import Actor, DeletionResult
from ..ports import IPasswordHasher, IUnitOfWork
from .base import load_actor

logger = structlog.get_logger(__name__)


class DeleteCourse:
    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def execute(self, actor: Actor, course_id: int, force: bool = False) -> DeletionResult:
        with self.uow.transaction():
            user = load_actor(self.uow, actor)
            require(user.role, user.id, Operation.FORCE_DELETE_COURSE if force else Operation.DELETE_COURSE)

            course = self.uow.courses.get(course_id, for_update=True)
            if course is None:
                raise NotFoundError.course(course_id)
            course = course.with_enrollment_count(self.uow.enrollments.count_active_for_course(course_id))
            if not force and not course.can_be_deleted():
                raise ConflictError.course_has_enrollments(course_id, course.enrollment_count)

            removed = self.uow.enrollments.delete_all_for_course(course_id) if force else 0
            self.uow.courses.delete(course_id)

        logger.info("course_deleted", course_id=course_id, force=force,
                    enrollments_removed=removed, actor_id=user.id)
        return DeletionResult(id=course_id, message="Course deleted successfully", enrollments_cancelled=removed)


class DeleteUser:
    def __init__(self, uow: IUnitOfWork, hasher: IPasswordHasher):
        self.uow = uow
        self.hasher = hasher

    def _verify_password(self, user_id: int, password: str | None) -> None:
        if not password:
            raise ValidationError.validation("password", None, "Password is required for self-deletion")
        stored = self.uow.users.get_password_hash(user_id)
        if not stored or not self.hasher.verify(password, stored):
            raise ValidationError.validation("password", None, "Invalid password")

    def execute(self, actor: Actor, user_id: int, force: bool = False,
                password: str | None = None) -> DeletionResult:
        with self.uow.transaction():
            requester = load_actor(self.uow, actor)
            operation = Operation.FORCE_DELETE_USER if force else Operation.DELETE_USER
            require(requester.role, requester.id, operation, user_id)

            target = self.uow.users.get(user_id, for_update=True)
            if target is None:
                raise NotFoundError.user(user_id)
            if requester.id == user_id:
                self._verify_password(user_id, password)

            target = target.with_enrollment_count(self.uow.enrollments.count_active_for_user(user_id))
            if not force and not target.can_be_deleted():
                raise ConflictError.user_has_enrollments(user_id, target.active_enrollment_count)

            cancelled = self.uow.enrollments.cancel_all_for_user(user_id) if target.has_active_enrollments() else 0
            self.uow.users.delete(user_id)

        logger.info("user_deleted", user_id=user_id, force=force,
                    enrollments_cancelled=cancelled, actor_id=requester.id)
        return DeletionResult(id=user_id, message="User deleted successfully",
                              enrollments_cancelled=cancelled, email=target.email)
