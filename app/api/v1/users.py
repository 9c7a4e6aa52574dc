from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.exceptions import NotFoundError
from app.repositories.user_repository import UserRepository
from app.schemas.base import success_response
from app.schemas.user import UserPublic
from app.auth import get_current_active_user
from app.models.user import User
from app.presence import presence

router = APIRouter()

@router.get("/{user_id}")
async def get_user_by_id(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Public profile of a user, with their current presence."""
    user = await UserRepository(db).get_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")

    data = UserPublic.model_validate(user).to_wire()
    data["online"] = presence.is_online(user.id)
    return success_response(data, "User retrieved successfully")
