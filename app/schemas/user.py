from pydantic import BaseModel, EmailStr, Field
from typing import Optional

from app.models.user import UserRole
from app.schemas.base import CamelModel

class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: UserRole = UserRole.CLIENT
    avatar: Optional[str] = None

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class UserPublic(CamelModel):
    id: str
    name: str
    email: str
    avatar: Optional[str] = None
    role: UserRole

class Token(BaseModel):
    access_token: str
    token_type: str
    expires_in: int
