from fastapi import APIRouter, Depends, Query, status

from ....application.dto import Actor, RegisterUserInput
from ....application.use_cases.admin_stats import GetAdminStats
from ....application.use_cases.deletion import DeleteCourse, DeleteUser
from ....application.use_cases.enrollments import EnrollmentQueries
from ....application.use_cases.register_user import CreateUser
from ....application.use_cases.users import ChangeUserRole, ListUsers
from ....config import settings
from ....infrastructure.metrics import cascade_deletions_total, cascade_enrollments_affected_total
from ....infrastructure.repositories import SqlAlchemyUnitOfWork
from ....infrastructure.security import PasswordHasher
from ..authz import get_actor
from ..deps import get_hasher, get_uow
from ..schemas import RoleChange, UserCreate

router = APIRouter(prefix="/api/admin", tags=["admin"])

@router.get("/users")
def list_users(actor: Actor = Depends(get_actor),
               uow: SqlAlchemyUnitOfWork = Depends(get_uow),
               page: int = Query(1, ge=1),
               limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)):
    return ListUsers(uow).execute(actor, page, limit).to_dict("users")

@router.post("/users", status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, actor: Actor = Depends(get_actor),
                uow: SqlAlchemyUnitOfWork = Depends(get_uow),
                hasher: PasswordHasher = Depends(get_hasher)):
    data = RegisterUserInput(email=payload.email, password=payload.password, role=payload.role)
    return CreateUser(uow, hasher, settings.MIN_PASSWORD_LENGTH).execute(actor, data).to_dict()

@router.put("/users/{user_id}/role")
def change_role(user_id: int, payload: RoleChange, actor: Actor = Depends(get_actor),
                uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    return ChangeUserRole(uow).execute(actor, user_id, payload.role).to_dict()

@router.get("/stats")
def stats(actor: Actor = Depends(get_actor), uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    return GetAdminStats(uow).execute(actor).to_dict()

@router.get("/enrollments")
def enrollments(actor: Actor = Depends(get_actor),
                uow: SqlAlchemyUnitOfWork = Depends(get_uow),
                page: int = Query(1, ge=1),
                limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)):
    return EnrollmentQueries(uow).all(actor, page, limit).to_dict("enrollments")

@router.post("/users/{user_id}/force-delete")
def force_delete_user(user_id: int, actor: Actor = Depends(get_actor),
                      uow: SqlAlchemyUnitOfWork = Depends(get_uow),
                      hasher: PasswordHasher = Depends(get_hasher)):
    result = DeleteUser(uow, hasher).execute(actor, user_id, force=True)
    cascade_deletions_total.labels(resource="user", force="true").inc()
    cascade_enrollments_affected_total.labels(resource="user").inc(result.enrollments_cancelled)
    return result.to_dict()

@router.post("/courses/{course_id}/force-delete")
def force_delete_course(course_id: int, actor: Actor = Depends(get_actor),
                        uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    result = DeleteCourse(uow).execute(actor, course_id, force=True)
    cascade_deletions_total.labels(resource="course", force="true").inc()
    cascade_enrollments_affected_total.labels(resource="course").inc(result.enrollments_cancelled)
    return result.to_dict()
