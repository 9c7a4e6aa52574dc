from sqlalchemy import Column, String, Boolean, Enum
from enum import Enum as PyEnum
from .base import BaseModel

class UserRole(str, PyEnum):
    ADMIN = "admin"
    CLIENT = "client"

class User(BaseModel):
    __tablename__ = "users"
    
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(Enum(UserRole, values_callable=lambda e: [m.value for m in e]), nullable=False, default=UserRole.CLIENT)
    avatar = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
