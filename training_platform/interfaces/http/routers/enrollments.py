from fastapi import APIRouter, Body, Depends, Query, status

from ....application.dto import Actor
from ....application.use_cases.enrollments import (
    BulkCancelCourseEnrollments,
    CancelEnrollment,
    CancelEnrollmentForUser,
    EnrollInCourse,
    EnrollmentQueries,
)
from ....config import settings
from ....infrastructure.metrics import enrollment_transitions_total
from ....infrastructure.repositories import SqlAlchemyUnitOfWork
from ..authz import get_actor
from ..deps import get_uow
from ..schemas import BulkCancelReq

router = APIRouter(prefix="/api/enrollments", tags=["enrollments"])

@router.post("/courses/{course_id}/enroll", status_code=status.HTTP_201_CREATED)
def enroll(course_id: int, actor: Actor = Depends(get_actor), uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    result = EnrollInCourse(uow).execute(actor, course_id)
    enrollment_transitions_total.labels(transition="created").inc()
    return result.to_dict()

@router.delete("/courses/{course_id}/enroll")
def cancel_own(course_id: int, actor: Actor = Depends(get_actor), uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    enrollment = CancelEnrollment(uow).execute(actor, course_id)
    enrollment_transitions_total.labels(transition="cancelled").inc()
    return enrollment.to_dict()

@router.get("/users/me/courses")
def my_courses(actor: Actor = Depends(get_actor), uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    return EnrollmentQueries(uow).my_courses(actor).to_dict()

@router.get("")
def all_enrollments(actor: Actor = Depends(get_actor),
                    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
                    page: int = Query(1, ge=1),
                    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)):
    return EnrollmentQueries(uow).all(actor, page, limit).to_dict("enrollments")

@router.get("/users/{user_id}/courses")
def user_courses(user_id: int, actor: Actor = Depends(get_actor), uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    return EnrollmentQueries(uow).for_user(actor, user_id).to_dict()

@router.get("/courses/{course_id}")
def course_enrollments(course_id: int, actor: Actor = Depends(get_actor),
                       uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    return [e.to_dict() for e in EnrollmentQueries(uow).for_course(actor, course_id)]

@router.get("/courses/{course_id}/history")
def course_history(course_id: int, actor: Actor = Depends(get_actor),
                   uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    return [e.to_dict() for e in EnrollmentQueries(uow).course_history(actor, course_id)]

@router.delete("/courses/{course_id}/users/{user_id}/enroll")
def cancel_for_user(course_id: int, user_id: int, actor: Actor = Depends(get_actor),
                    uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    enrollment = CancelEnrollmentForUser(uow).execute(actor, course_id, user_id)
    enrollment_transitions_total.labels(transition="cancelled").inc()
    return enrollment.to_dict()

@router.delete("/courses/{course_id}/cancel-all")
def cancel_all(course_id: int, payload: BulkCancelReq | None = Body(None),
               actor: Actor = Depends(get_actor), uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    reason = payload.reason if payload and payload.reason else "Cancelled by admin"
    result = BulkCancelCourseEnrollments(uow).execute(actor, course_id, reason)
    enrollment_transitions_total.labels(transition="cancelled").inc(result.cancelled)
    return result.to_dict()
