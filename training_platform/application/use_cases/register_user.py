import structlog

from ...domain.entities import User
from ...domain.enums import UserRole
from ...domain.exceptions import ConflictError, UnauthorizedError, ValidationError
from ...domain.permissions import Operation, require
from ..dto import Actor, RegisterUserInput
from ..ports import IPasswordHasher, IUnitOfWork
from .base import load_actor

logger = structlog.get_logger(__name__)


def check_password_strength(password: str, min_length: int, field: str = "password") -> None:
    if not isinstance(password, str) or len(password) < min_length:
        raise ValidationError.validation(field, None, f"Password must be at least {min_length} characters long")


class RegisterUser:
    def __init__(self, uow: IUnitOfWork, hasher: IPasswordHasher, min_password_length: int = 6):
        self.uow = uow
        self.hasher = hasher
        self.min_password_length = min_password_length

    def execute(self, data: RegisterUserInput) -> User:
        user = User(id=None, email=data.email, role=data.role or UserRole.PARTICIPANT)
        check_password_strength(data.password, self.min_password_length)
        with self.uow.transaction():
            if self.uow.users.get_by_email(user.email):
                raise ConflictError.duplicate_email(user.email)
            created = self.uow.users.create(user, self.hasher.hash(data.password))
        logger.info("user_registered", user_id=created.id, role=created.role.value)
        return created


class CreateUser:
    """Account creation by an administrator, role included."""

    def __init__(self, uow: IUnitOfWork, hasher: IPasswordHasher, min_password_length: int = 6):
        self.uow = uow
        self.register = RegisterUser(uow, hasher, min_password_length)

    def execute(self, actor: Actor, data: RegisterUserInput) -> User:
        requester = load_actor(self.uow, actor)
        require(requester.role, requester.id, Operation.CREATE_USER)
        return self.register.execute(data)


class AuthenticateUser:
    def __init__(self, uow: IUnitOfWork, hasher: IPasswordHasher):
        self.uow = uow
        self.hasher = hasher

    def execute(self, email: str, password: str) -> User:
        found = self.uow.users.get_credentials(email)
        if not found or not self.hasher.verify(password, found[1]):
            logger.info("login_failed", email=email)
            raise UnauthorizedError.invalid_credentials()
        return found[0]
