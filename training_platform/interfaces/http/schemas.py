from pydantic import BaseModel, EmailStr, Field

from ...domain.enums import CourseStatus, UserRole

class RegisterReq(BaseModel):
    email: EmailStr
    password: str

class LoginReq(BaseModel):
    email: str
    password: str

class UserResp(BaseModel):
    id: int
    email: str
    role: UserRole
    enrollmentCount: int = 0

class TokenResp(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResp

class UserCreate(BaseModel):
    email: EmailStr
    password: str
    role: UserRole = UserRole.PARTICIPANT

class UserUpdate(BaseModel):
    email: str | None = None

class PasswordChange(BaseModel):
    current_password: str = Field(alias="currentPassword")
    new_password: str = Field(alias="newPassword")
    class Config: populate_by_name = True

class RoleChange(BaseModel):
    role: UserRole

class UserDelete(BaseModel):
    password: str | None = None

class CourseCreate(BaseModel):
    # длины проверяет домен: ответ 400 с деталями, а не 422
    title: str
    description: str
    status: CourseStatus | None = None

class CourseUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    status: CourseStatus | None = None

class BulkCancelReq(BaseModel):
    reason: str | None = None
