from fastapi import APIRouter, Depends, Query, status

from ....application.dto import Actor, CourseQuery
from ....application.use_cases.courses import CreateCourse, GetCourse, ListCourses, UpdateCourse
from ....application.use_cases.deletion import DeleteCourse
from ....config import settings
from ....domain.enums import CourseStatus
from ....infrastructure.metrics import cascade_deletions_total, cascade_enrollments_affected_total
from ....infrastructure.repositories import SqlAlchemyUnitOfWork
from ..authz import get_actor
from ..deps import get_uow
from ..schemas import CourseCreate, CourseUpdate

router = APIRouter(prefix="/api/courses", tags=["courses"])

@router.get("")
def list_courses(actor: Actor = Depends(get_actor),
                 uow: SqlAlchemyUnitOfWork = Depends(get_uow),
                 course_status: CourseStatus | None = Query(None, alias="status"),
                 enrolled_for_user_id: int | None = Query(None, alias="enrolledForUserId", ge=1),
                 page: int = Query(1, ge=1),
                 limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)):
    query = CourseQuery(status=course_status, page=page, limit=limit, enrolled_for_user_id=enrolled_for_user_id)
    return ListCourses(uow).execute(actor, query).to_dict("courses")

@router.get("/{course_id}")
def get_course(course_id: int, actor: Actor = Depends(get_actor), uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    return GetCourse(uow).execute(actor, course_id).to_dict()

@router.post("", status_code=status.HTTP_201_CREATED)
def create_course(payload: CourseCreate, actor: Actor = Depends(get_actor),
                  uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    course = CreateCourse(uow).execute(actor, payload.title, payload.description, payload.status)
    return course.to_dict()

@router.put("/{course_id}")
def update_course(course_id: int, payload: CourseUpdate, actor: Actor = Depends(get_actor),
                  uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    course = UpdateCourse(uow).execute(actor, course_id, payload.title, payload.description, payload.status)
    return course.to_dict()

@router.delete("/{course_id}")
def delete_course(course_id: int, force: bool = False, actor: Actor = Depends(get_actor),
                  uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    result = DeleteCourse(uow).execute(actor, course_id, force=force)
    cascade_deletions_total.labels(resource="course", force=str(force).lower()).inc()
    cascade_enrollments_affected_total.labels(resource="course").inc(result.enrollments_cancelled)
    return result.to_dict()
