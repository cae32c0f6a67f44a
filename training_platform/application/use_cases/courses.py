import structlog

from ...domain.entities import Course
from ...domain.enums import CourseStatus
from ...domain.exceptions import NotFoundError
from ...domain.permissions import Operation, require
from ..dto import Actor, CourseQuery, Page
from ..ports import IUnitOfWork
from .base import load_actor

logger = structlog.get_logger(__name__)


class CreateCourse:
    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def execute(self, actor: Actor, title: str, description: str,
                status: CourseStatus | str | None = None) -> Course:
        with self.uow.transaction():
            user = load_actor(self.uow, actor)
            require(user.role, user.id, Operation.CREATE_COURSE)
            course = Course(id=None, title=title, description=description,
                            status=status or CourseStatus.ACTIVE)
            created = self.uow.courses.create(course)
        logger.info("course_created", course_id=created.id, actor_id=user.id)
        return created


class GetCourse:
    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def execute(self, actor: Actor, course_id: int) -> Course:
        load_actor(self.uow, actor)
        course = self.uow.courses.get(course_id)
        if course is None:
            raise NotFoundError.course(course_id)
        return course


class ListCourses:
    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def execute(self, actor: Actor, query: CourseQuery) -> Page:
        user = load_actor(self.uow, actor)
        if query.enrolled_for_user_id is not None:
            require(user.role, user.id, Operation.VIEW_USER_ENROLLMENTS, query.enrolled_for_user_id)
        courses = self.uow.courses.list(query)
        total = self.uow.courses.count(query)
        return Page(items=courses, total=total, page=query.page, limit=query.limit)


class UpdateCourse:
    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def execute(self, actor: Actor, course_id: int, title: str | None = None,
                description: str | None = None, status: CourseStatus | str | None = None) -> Course:
        with self.uow.transaction():
            user = load_actor(self.uow, actor)
            require(user.role, user.id, Operation.UPDATE_COURSE)
            course = self.uow.courses.get(course_id, for_update=True)
            if course is None:
                raise NotFoundError.course(course_id)

            updated = course.with_details(title=title, description=description)
            if status is not None and CourseStatus.parse(status, "status") is not course.status:
                updated = updated.with_status(status)
            saved = self.uow.courses.update(updated)
        logger.info("course_updated", course_id=course_id, actor_id=user.id, status=saved.status.value)
        return saved
