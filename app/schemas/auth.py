from pydantic import BaseModel, EmailStr
from datetime import datetime

from app.models.user import UserRole


class UserLogin(BaseModel):
    """Back-office credentials"""
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class UserResponse(BaseModel):
    id: int
    email: str
    role: UserRole
    created_at: datetime

    class Config:
        from_attributes = True
