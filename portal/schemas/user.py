from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from portal.models.user import UserRole
from portal.schemas.common import ORMRead, reject_nulls


# Properties to receive via POST /auth/register
class RegisterRequest(BaseModel):
    display_name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=1)
    role: UserRole
    company_name: Optional[str] = None
    phone: Optional[str] = None


# Properties to receive via POST /users (staff accounts only)
class UserCreate(RegisterRequest):
    account_code: Optional[str] = Field(default=None, min_length=1)

    @field_validator("role")
    @classmethod
    def staff_roles_only(cls, value: UserRole) -> UserRole:
        if value == UserRole.ADMIN:
            raise ValueError("role must be client or developer")
        return value


# Properties to receive via API on update; only the keys sent are applied
class UserUpdate(BaseModel):
    display_name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    company_name: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=1)

    @field_validator("display_name", "email", "role", "is_active", "password")
    @classmethod
    def present_fields_not_null(cls, value, info):
        return reject_nulls(value, info)


class UserFilters(BaseModel):
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    search: Optional[str] = None


# Properties to return to client (password hash never leaves the service)
class UserRead(ORMRead):
    id: str
    account_code: str
    display_name: str
    email: str
    role: UserRole
    is_active: bool
    company_name: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    last_login: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
