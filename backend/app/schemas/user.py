from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from backend.app.db.models.core_types import UserRole


class UserBrief(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole

    class Config:
        from_attributes = True


class UserRead(UserBrief):
    organization_id: int
    created_at: datetime


class OrganizationRead(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class AuthUser(UserBrief):
    organization_id: int
    organization_name: str
    organization: OrganizationRead | None = None


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: AuthUser


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: str = Field(min_length=1, max_length=200)
    organization_name: str = Field(min_length=1, max_length=200)


class StaffCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: str = Field(min_length=1, max_length=200)
    role: UserRole = UserRole.staff


class LoginRequest(BaseModel):
    organization_name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)


class OAuthProviderStatus(BaseModel):
    enabled: bool


class OAuthStatus(BaseModel):
    google: OAuthProviderStatus
    facebook: OAuthProviderStatus
