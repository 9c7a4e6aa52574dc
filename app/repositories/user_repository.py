from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.models.user import User, UserRole

class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, name: str, email: str, hashed_password: str,
                     role: UserRole = UserRole.CLIENT, avatar: Optional[str] = None) -> User:
        db_user = User(
            name=name,
            email=email.lower(),
            hashed_password=hashed_password,
            role=role,
            avatar=avatar,
        )
        self.db.add(db_user)
        await self.db.commit()
        await self.db.refresh(db_user)
        return db_user

    async def get_by_id(self, user_id: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def list_by_role(self, role: UserRole) -> List[User]:
        result = await self.db.execute(
            select(User).where(User.role == role, User.is_active.is_(True)).order_by(User.name)
        )
        return list(result.scalars().all())

    async def exists_by_email(self, email: str) -> bool:
        return await self.get_by_email(email) is not None
