from fastapi import APIRouter, Body, Depends

from ....application.dto import Actor
from ....application.use_cases.deletion import DeleteUser
from ....application.use_cases.users import (
    CanDeleteUser,
    ChangePassword,
    GetCurrentUser,
    GetUser,
    UpdateUser,
)
from ....config import settings
from ....infrastructure.metrics import cascade_deletions_total, cascade_enrollments_affected_total
from ....infrastructure.repositories import SqlAlchemyUnitOfWork
from ....infrastructure.security import PasswordHasher
from ..authz import get_actor
from ..deps import get_hasher, get_uow
from ..schemas import PasswordChange, UserDelete, UserUpdate

router = APIRouter(prefix="/api/users", tags=["users"])

@router.get("/me")
def me(actor: Actor = Depends(get_actor), uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    return GetCurrentUser(uow).execute(actor).to_dict()

@router.put("/me/password")
def change_password(payload: PasswordChange, actor: Actor = Depends(get_actor),
                    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
                    hasher: PasswordHasher = Depends(get_hasher)):
    uc = ChangePassword(uow, hasher, settings.MIN_PASSWORD_LENGTH)
    uc.execute(actor, payload.current_password, payload.new_password)
    return {"message": "Password changed successfully"}

@router.get("/{user_id}")
def get_user(user_id: int, actor: Actor = Depends(get_actor), uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    return GetUser(uow).execute(actor, user_id).to_dict()

@router.put("/{user_id}")
def update_user(user_id: int, payload: UserUpdate, actor: Actor = Depends(get_actor),
                uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    return UpdateUser(uow).execute(actor, user_id, email=payload.email).to_dict()

@router.delete("/{user_id}")
def delete_user(user_id: int, force: bool = False, payload: UserDelete | None = Body(None),
                actor: Actor = Depends(get_actor), uow: SqlAlchemyUnitOfWork = Depends(get_uow),
                hasher: PasswordHasher = Depends(get_hasher)):
    password = payload.password if payload else None
    result = DeleteUser(uow, hasher).execute(actor, user_id, force=force, password=password)
    cascade_deletions_total.labels(resource="user", force=str(force).lower()).inc()
    cascade_enrollments_affected_total.labels(resource="user").inc(result.enrollments_cancelled)
    return result.to_dict()

@router.get("/{user_id}/can-delete")
def can_delete(user_id: int, actor: Actor = Depends(get_actor), uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    return {"canDelete": CanDeleteUser(uow).execute(actor, user_id)}
