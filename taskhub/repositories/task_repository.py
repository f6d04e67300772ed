from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.models.task import Task
from taskhub.services.task_query import TaskQuery


class TaskRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, task_id: str) -> Optional[Task]:
        result = await self.session.execute(select(Task).where(Task.task_id == task_id))
        return result.scalar_one_or_none()

    async def count(self, query: TaskQuery) -> int:
        result = await self.session.execute(query.apply_filters(select(func.count(Task.task_id))))
        return result.scalar() or 0

    async def find(self, query: TaskQuery) -> List[Task]:
        result = await self.session.execute(query.apply(select(Task)))
        return list(result.scalars().all())

    async def add(self, task: Task) -> Task:
        self.session.add(task)
        await self.session.commit()
        await self.session.refresh(task)
        return task

    async def save(self, task: Task) -> Task:
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await self.session.refresh(task)
        return task

    async def delete(self, task: Task) -> None:
        await self.session.delete(task)
        await self.session.commit()
