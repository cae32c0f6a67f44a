"""Enrollment use cases: enroll, cancel (own / on behalf of a user / bulk) and views."""
import structlog

from ...domain import lifecycle
from ...domain.entities import Enrollment
from ...domain.enums import CourseStatus, EnrollmentStatus
from ...domain.exceptions import NotFoundError
from ...domain.permissions import Operation, require
from ..dto import Actor, BulkCancelResult, EnrollmentQuery, EnrollmentResult, Page, UserCourses
from ..ports import IUnitOfWork
from .base import load_actor

logger = structlog.get_logger(__name__)


class EnrollInCourse:
    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def execute(self, actor: Actor, course_id: int) -> EnrollmentResult:
        with self.uow.transaction():
            user = load_actor(self.uow, actor)
            # строка курса блокируется, чтобы запись не пересеклась с удалением курса
            course = self.uow.courses.get(course_id, for_update=True)
            existing = self.uow.enrollments.find_active(user.id, course_id) if course else None
            lifecycle.check_can_enroll(user, course_id, course, existing)

            enrollment = self.uow.enrollments.add(lifecycle.new_enrollment(user.id, course))
            count = self.uow.enrollments.count_active_for_course(course_id)
        logger.info("enrollment_created", enrollment_id=enrollment.id, user_id=user.id,
                    course_id=course_id, course_enrollment_count=count)
        return EnrollmentResult(enrollment=enrollment, course_enrollment_count=count)


class CancelEnrollment:
    """Participant cancels their own active enrollment in a course."""

    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def execute(self, actor: Actor, course_id: int) -> Enrollment:
        with self.uow.transaction():
            user = load_actor(self.uow, actor)
            lifecycle.check_participant_may_cancel(user)
            current = self.uow.enrollments.find_active(user.id, course_id)
            cancelled = self.uow.enrollments.save_status(lifecycle.check_can_cancel(current))
        logger.info("enrollment_cancelled", enrollment_id=cancelled.id, user_id=user.id, course_id=course_id)
        return cancelled


class CancelEnrollmentForUser:
    """Administrative cancel: staff cancels a given user's enrollment."""

    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def execute(self, actor: Actor, course_id: int, target_user_id: int) -> Enrollment:
        with self.uow.transaction():
            user = load_actor(self.uow, actor)
            require(user.role, user.id, Operation.CANCEL_USER_ENROLLMENT)
            if self.uow.courses.get(course_id) is None:
                raise NotFoundError.course(course_id)
            current = self.uow.enrollments.find_active(target_user_id, course_id)
            cancelled = self.uow.enrollments.save_status(lifecycle.check_can_cancel(current))
        logger.info("enrollment_cancelled", enrollment_id=cancelled.id, user_id=target_user_id,
                    course_id=course_id, actor_id=user.id)
        return cancelled


class BulkCancelCourseEnrollments:
    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def execute(self, actor: Actor, course_id: int, reason: str = "Cancelled by admin") -> BulkCancelResult:
        with self.uow.transaction():
            user = load_actor(self.uow, actor)
            require(user.role, user.id, Operation.BULK_CANCEL_COURSE_ENROLLMENTS)
            if self.uow.courses.get(course_id, for_update=True) is None:
                raise NotFoundError.course(course_id)
            affected = self.uow.enrollments.active_user_ids_for_course(course_id)
            cancelled = self.uow.enrollments.cancel_all_for_course(course_id)
        logger.info("course_enrollments_cancelled", course_id=course_id, cancelled=cancelled, actor_id=user.id)
        return BulkCancelResult(
            cancelled=cancelled,
            message=f"{cancelled} enrollments cancelled. Reason: {reason}",
            affected_users=affected,
        )


class EnrollmentQueries:
    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def _user_courses(self, user_id: int) -> UserCourses:
        rows = self.uow.enrollments.list(EnrollmentQuery(user_id=user_id, status=EnrollmentStatus.ACTIVE))
        result = UserCourses(active_courses=[], finished_courses=[])
        for e in rows:
            if e.course is not None and e.course.status is CourseStatus.ACTIVE:
                result.active_courses.append(e)
            else:
                result.finished_courses.append(e)
        return result

    def my_courses(self, actor: Actor) -> UserCourses:
        user = load_actor(self.uow, actor)
        require(user.role, user.id, Operation.VIEW_OWN_ENROLLMENTS)
        return self._user_courses(user.id)

    def for_user(self, actor: Actor, user_id: int) -> UserCourses:
        user = load_actor(self.uow, actor)
        require(user.role, user.id, Operation.VIEW_USER_ENROLLMENTS, user_id)
        if self.uow.users.get(user_id) is None:
            raise NotFoundError.user(user_id)
        return self._user_courses(user_id)

    def all(self, actor: Actor, page: int = 1, limit: int = 10) -> Page:
        user = load_actor(self.uow, actor)
        require(user.role, user.id, Operation.VIEW_ALL_ENROLLMENTS)
        query = EnrollmentQuery(page=page, limit=limit)
        return Page(items=self.uow.enrollments.list(query), total=self.uow.enrollments.count(),
                    page=page, limit=limit)

    def for_course(self, actor: Actor, course_id: int) -> list[Enrollment]:
        user = load_actor(self.uow, actor)
        require(user.role, user.id, Operation.VIEW_COURSE_ENROLLMENTS)
        if self.uow.courses.get(course_id) is None:
            raise NotFoundError.course(course_id)
        return self.uow.enrollments.list(EnrollmentQuery(course_id=course_id, status=EnrollmentStatus.ACTIVE))

    def course_history(self, actor: Actor, course_id: int) -> list[Enrollment]:
        user = load_actor(self.uow, actor)
        require(user.role, user.id, Operation.VIEW_COURSE_ENROLLMENT_HISTORY)
        if self.uow.courses.get(course_id) is None:
            raise NotFoundError.course(course_id)
        return self.uow.enrollments.list(EnrollmentQuery(course_id=course_id))
