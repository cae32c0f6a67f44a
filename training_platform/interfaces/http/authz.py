from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from ...application.dto import Actor
from ...domain.enums import UserRole
from ...domain.exceptions import UnauthorizedError, ValidationError
from ...infrastructure.security import decode_token

# auto_error=False: отсутствие заголовка отдаём как 401 из таксономии, а не 403 FastAPI
bearer = HTTPBearer(auto_error=False)

def get_claims(creds: HTTPAuthorizationCredentials | None = Depends(bearer)) -> dict:
    if creds is None:
        raise UnauthorizedError.missing_token()
    try:
        return decode_token(creds.credentials)
    except JWTError as e:
        raise UnauthorizedError.invalid_token(str(e)) from None

def get_actor(claims: dict = Depends(get_claims)) -> Actor:
    try:
        role = UserRole.parse(claims.get("role"), "role")
    except ValidationError:
        raise UnauthorizedError.invalid_token("unknown role") from None
    return Actor(user_id=int(claims["sub"]), role=role, email=claims.get("email"))
