from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.models.user import User


class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def create_user(self, user: User) -> User:
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def get_or_create(self, user_id: str, location: str = None) -> User:
        """Пользователь создаётся при первом обращении (регистрация у внешнего провайдера)"""
        user = await self.get_by_id(user_id)
        if user is None:
            return await self.create_user(User(id=user_id, location=location))

        if location and user.location != location:
            user.location = location
            user.timezone = None  # пересчитается при следующем планировании
            await self.db.commit()
        return user

    async def save_timezone(self, user: User, timezone: str) -> None:
        user.timezone = timezone
        await self.db.commit()
