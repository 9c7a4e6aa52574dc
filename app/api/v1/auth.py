from datetime import timedelta
from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.exceptions import AuthenticationError, ValidationError
from app.repositories.user_repository import UserRepository
from app.schemas.base import success_response
from app.schemas.user import UserCreate, UserPublic, Token, UserLogin
from app.auth import authenticate_user, create_token_for_user, get_current_active_user, get_password_hash
from app.config import settings

router = APIRouter()

def _token_response(user) -> dict:
    expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    token = create_token_for_user(user, expires_delta=expires)
    return Token(
        access_token=token,
        token_type="bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    ).model_dump()

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_user(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    user_repo = UserRepository(db)
    
    if await user_repo.exists_by_email(user_data.email):
        raise ValidationError("User already exists")
    
    user = await user_repo.create(
        name=user_data.name,
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role,
        avatar=user_data.avatar,
    )
    return success_response(UserPublic.model_validate(user).to_wire(), "User registered successfully")

@router.post("/login", response_model=Token)
async def login_user(form_data: OAuth2PasswordRequestForm = Depends(), db: AsyncSession = Depends(get_db)):
    user = await authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise AuthenticationError("Invalid credentials")
    return _token_response(user)

@router.post("/login-json", response_model=Token)
async def login_user_json(user_data: UserLogin, db: AsyncSession = Depends(get_db)):
    user = await authenticate_user(db, user_data.email, user_data.password)
    if not user:
        raise AuthenticationError("Invalid credentials")
    return _token_response(user)

@router.get("/me")
async def get_current_user_info(current_user = Depends(get_current_active_user)):
    return success_response(UserPublic.model_validate(current_user).to_wire(), "Success")
