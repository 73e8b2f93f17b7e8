from typing import Optional

from pydantic import BaseModel, Field

from portal.models.user import User, UserRole


class LoginRequest(BaseModel):
    id: str = Field(min_length=1)  # 16 character hex ID
    display_name: str = Field(min_length=1)
    password: str = Field(min_length=1)


class VerifyRequest(BaseModel):
    token: Optional[str] = None


class Actor(BaseModel):
    """The authenticated identity performing a request."""
    id: str
    account_code: str
    display_name: str
    email: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(
            id=user.id,
            account_code=user.account_code,
            display_name=user.display_name,
            email=user.email,
            role=user.role,
        )


class TokenPayload(BaseModel):
    """Claims embedded in a session credential."""
    sub: str
    account_code: str
    display_name: str
    email: str
    role: UserRole
    iat: int
    exp: int

    def to_actor(self) -> Actor:
        return Actor(
            id=self.sub,
            account_code=self.account_code,
            display_name=self.display_name,
            email=self.email,
            role=self.role,
        )
