from typing import Dict, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.models.user import User


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.user_id == user_id))
        return result.scalar_one_or_none()

    async def exists(self, user_id: str) -> bool:
        result = await self.session.execute(select(User.user_id).where(User.user_id == user_id))
        return result.scalar_one_or_none() is not None

    async def get_many(self, user_ids: Iterable[str]) -> Dict[str, User]:
        """여러 사용자 일괄 조회 (user_id -> User)"""
        ids = {uid for uid in user_ids if uid}
        if not ids:
            return {}
        result = await self.session.execute(select(User).where(User.user_id.in_(ids)))
        return {user.user_id: user for user in result.scalars().all()}
