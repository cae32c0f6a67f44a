from fastapi import APIRouter, Depends, status, Request
from slowapi import Limiter

from ....application.dto import Actor, RegisterUserInput
from ....application.use_cases.register_user import AuthenticateUser, RegisterUser
from ....application.use_cases.users import GetCurrentUser
from ....config import settings
from ....infrastructure.repositories import SqlAlchemyUnitOfWork
from ....infrastructure.security import PasswordHasher, create_access_token
from ..authz import get_actor
from ..deps import get_hasher, get_uow
from ..schemas import RegisterReq, LoginReq, UserResp, TokenResp

router = APIRouter(prefix="/api/auth", tags=["auth"])

def get_limiter(request: Request) -> Limiter:
    return request.app.state.limiter

def _user_resp(user) -> UserResp:
    return UserResp(id=user.id, email=user.email, role=user.role, enrollmentCount=user.active_enrollment_count)

def _register_impl(request: Request, payload: RegisterReq, uow: SqlAlchemyUnitOfWork, hasher: PasswordHasher):
    # публичная регистрация всегда создаёт участника, роль назначает только админ
    uc = RegisterUser(uow, hasher, settings.MIN_PASSWORD_LENGTH)
    user = uc.execute(RegisterUserInput(email=payload.email, password=payload.password))
    return _user_resp(user)

@router.post("/register", response_model=UserResp, status_code=status.HTTP_201_CREATED)
def register(
    request: Request,
    payload: RegisterReq,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
    hasher: PasswordHasher = Depends(get_hasher),
    limiter: Limiter = Depends(get_limiter),
):
    limited_func = limiter.limit(f"{settings.RATE_LIMIT_PER_MINUTE}/minute")(_register_impl)
    return limited_func(request, payload, uow, hasher)

def _login_impl(request: Request, payload: LoginReq, uow: SqlAlchemyUnitOfWork, hasher: PasswordHasher):
    user = AuthenticateUser(uow, hasher).execute(payload.email, payload.password)
    token = create_access_token(user_id=user.id, email=user.email, role=user.role.value)
    return TokenResp(access_token=token, user=_user_resp(user))

@router.post("/login", response_model=TokenResp)
def login(
    request: Request,
    payload: LoginReq,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
    hasher: PasswordHasher = Depends(get_hasher),
    limiter: Limiter = Depends(get_limiter),
):
    # Более строгий лимит для логина (защита от брутфорса)
    limited_func = limiter.limit(settings.LOGIN_RATE_LIMIT)(_login_impl)
    return limited_func(request, payload, uow, hasher)

@router.get("/me", response_model=UserResp)
def me(actor: Actor = Depends(get_actor), uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    return _user_resp(GetCurrentUser(uow).execute(actor))
