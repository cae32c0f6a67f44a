import structlog

from ...domain.entities import User
from ...domain.enums import UserRole
from ...domain.exceptions import ConflictError, NotFoundError, ValidationError
from ...domain.permissions import Operation, require
from ..dto import Actor, Page
from ..ports import IPasswordHasher, IUnitOfWork
from .base import load_actor
from .register_user import check_password_strength

logger = structlog.get_logger(__name__)


class GetCurrentUser:
    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def execute(self, actor: Actor) -> User:
        user = load_actor(self.uow, actor)
        require(user.role, user.id, Operation.VIEW_OWN_PROFILE)
        return user


class GetUser:
    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def execute(self, actor: Actor, user_id: int) -> User:
        requester = load_actor(self.uow, actor)
        require(requester.role, requester.id, Operation.VIEW_USER, user_id)
        user = self.uow.users.get(user_id)
        if user is None:
            raise NotFoundError.user(user_id)
        return user


class UpdateUser:
    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def execute(self, actor: Actor, user_id: int, email: str | None = None) -> User:
        with self.uow.transaction():
            requester = load_actor(self.uow, actor)
            require(requester.role, requester.id, Operation.UPDATE_USER, user_id)
            target = self.uow.users.get(user_id, for_update=True)
            if target is None:
                raise NotFoundError.user(user_id)
            if email is None or email == target.email:
                return target

            updated = target.with_email(email)
            if self.uow.users.email_exists(updated.email, exclude_user_id=user_id):
                raise ConflictError.duplicate_email(updated.email)
            saved = self.uow.users.update(updated)
        logger.info("user_updated", user_id=user_id, actor_id=requester.id)
        return saved


class ChangePassword:
    def __init__(self, uow: IUnitOfWork, hasher: IPasswordHasher, min_password_length: int = 6):
        self.uow = uow
        self.hasher = hasher
        self.min_password_length = min_password_length

    def execute(self, actor: Actor, current_password: str, new_password: str) -> User:
        with self.uow.transaction():
            user = load_actor(self.uow, actor)
            require(user.role, user.id, Operation.CHANGE_OWN_PASSWORD)
            check_password_strength(new_password, self.min_password_length, field="newPassword")
            if current_password == new_password:
                raise ValidationError.validation("newPassword", None,
                                                 "New password must be different from current password")
            stored = self.uow.users.get_password_hash(user.id)
            if not stored or not self.hasher.verify(current_password, stored):
                raise ValidationError.validation("currentPassword", None, "Invalid current password")
            self.uow.users.set_password_hash(user.id, self.hasher.hash(new_password))
        logger.info("password_changed", user_id=user.id)
        return user


class ChangeUserRole:
    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def execute(self, actor: Actor, user_id: int, new_role: UserRole | str) -> User:
        with self.uow.transaction():
            requester = load_actor(self.uow, actor)
            require(requester.role, requester.id, Operation.CHANGE_ROLE, user_id)
            target = self.uow.users.get(user_id, for_update=True)
            if target is None:
                raise NotFoundError.user(user_id)
            saved = self.uow.users.update(target.with_role(new_role))
        logger.info("user_role_changed", user_id=user_id, actor_id=requester.id,
                    old_role=target.role.value, new_role=saved.role.value)
        return saved


class ListUsers:
    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def execute(self, actor: Actor, page: int = 1, limit: int = 10) -> Page:
        requester = load_actor(self.uow, actor)
        require(requester.role, requester.id, Operation.LIST_USERS)
        users = self.uow.users.list(offset=(page - 1) * limit, limit=limit)
        return Page(items=users, total=self.uow.users.count(), page=page, limit=limit)


class CanDeleteUser:
    """Whether the user has no active enrollments blocking a plain delete."""

    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def execute(self, actor: Actor, user_id: int) -> bool:
        requester = load_actor(self.uow, actor)
        require(requester.role, requester.id, Operation.VIEW_USER, user_id)
        target = self.uow.users.get(user_id)
        if target is None:
            raise NotFoundError.user(user_id)
        return target.can_be_deleted()
