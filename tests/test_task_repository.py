"""
SQL repository tests on an in-memory SQLite database (aiosqlite).

These run the real TaskQuery conditions/ordering and the repositories
against an actual engine instead of the in-memory fakes.
"""
import asyncio
from datetime import datetime

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from taskhub.core.database import Base
from taskhub.models.enums import TaskPriority, TaskStatus, UserRole
from taskhub.models.user import User
from taskhub.repositories import TaskRepository, UserRepository
from taskhub.schemas.task import TaskDocument
from taskhub.services.task_query import TaskQueryBuilder

from .conftest import ADMIN_ID, ASSIGNEE_ID, CREATOR_ID, make_document, make_task

builder = TaskQueryBuilder(default_limit=10, max_limit=100)


def run_with_session(scenario, tasks=()):
    """스키마 생성 + 시드 후 scenario(session_factory) 실행"""

    async def main():
        engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)
            async with session_factory() as session:
                session.add_all([
                    User(user_id=ADMIN_ID, name="Admin", email="admin@example.com", role=UserRole.ADMIN),
                    User(user_id=ASSIGNEE_ID, name="Alice", email="alice@example.com", role=UserRole.USER),
                    User(user_id=CREATOR_ID, name="Carol", email="carol@example.com", role=UserRole.USER),
                ])
                session.add_all(list(tasks))
                await session.commit()

            return await scenario(session_factory)
        finally:
            await engine.dispose()

    return asyncio.run(main())


def list_tasks(raw, tasks):
    async def scenario(session_factory):
        async with session_factory() as session:
            repo = TaskRepository(session)
            query = builder.build(raw)
            return await repo.count(query), [t.task_id for t in await repo.find(query)]

    return run_with_session(scenario, tasks)


class TestListQuery:
    def test_pending_priority_desc_second_page(self):
        priorities = [TaskPriority.LOW, TaskPriority.MEDIUM, TaskPriority.HIGH]
        tasks = [make_task(task_id=f"task-{i:02d}", priority=priorities[i % 3]) for i in range(12)]
        tasks.append(make_task(task_id="task-done", status=TaskStatus.COMPLETED, priority=TaskPriority.HIGH))

        total, ids = list_tasks(
            {"status": "pending", "sortBy": "priority", "sortDir": "desc", "page": "2", "limit": "5"}, tasks,
        )

        assert total == 12
        # high: 11,08,05,02 / medium: 10,07,04,01 / low: 09,06,03,00 (동순위는 task_id desc)
        assert ids == ["task-07", "task-04", "task-01", "task-09", "task-06"]

    def test_priority_ascending_uses_rank_not_alphabet(self):
        tasks = [
            make_task(task_id="a", priority=TaskPriority.HIGH),
            make_task(task_id="b", priority=TaskPriority.LOW),
            make_task(task_id="c", priority=TaskPriority.MEDIUM),
        ]
        _, ids = list_tasks({"sortBy": "priority"}, tasks)
        assert ids == ["b", "c", "a"]

    def test_status_sorted_by_lifecycle(self):
        tasks = [
            make_task(task_id="a", status=TaskStatus.COMPLETED),
            make_task(task_id="b", status=TaskStatus.PENDING),
            make_task(task_id="c", status=TaskStatus.IN_PROGRESS),
        ]
        _, ids = list_tasks({"sortBy": "status"}, tasks)
        assert ids == ["b", "c", "a"]

    def test_search_is_literal_and_case_insensitive(self):
        def seed():
            return [
                make_task(task_id="pct", title="50% off launch"),
                make_task(task_id="num", title="500 flyers"),
                make_task(task_id="desc", title="Misc", description="Plan the LAUNCH party"),
            ]

        assert list_tasks({"search": "50%"}, seed()) == (1, ["pct"])
        assert list_tasks({"search": "_"}, seed()) == (0, [])
        assert list_tasks({"search": "launch", "sortBy": "title"}, seed()) == (2, ["pct", "desc"])

    def test_date_only_end_bound_covers_whole_day(self):
        tasks = [
            make_task(task_id="morning", due_date=datetime(2030, 1, 31, 8, 0)),
            make_task(task_id="late", due_date=datetime(2030, 1, 31, 23, 30)),
            make_task(task_id="next", due_date=datetime(2030, 2, 1, 0, 0)),
        ]
        total, ids = list_tasks({"startDate": "2030-01-31", "endDate": "2030-01-31"}, tasks)
        assert total == 2
        assert ids == ["morning", "late"]

    def test_assignee_filter(self):
        tasks = [
            make_task(task_id="mine", assigned_to=ASSIGNEE_ID),
            make_task(task_id="theirs", assigned_to=CREATOR_ID),
        ]
        assert list_tasks({"assignedTo": ASSIGNEE_ID}, tasks) == (1, ["mine"])

    def test_page_past_end_is_empty(self):
        tasks = [make_task(task_id=f"t{i}") for i in range(3)]
        assert list_tasks({"page": "5", "limit": "2"}, tasks) == (3, [])


class TestTaskRepository:
    def test_documents_round_trip_through_json_column(self):
        doc = make_document()
        task = make_task(task_id="with-doc", documents=[doc])

        async def scenario(session_factory):
            async with session_factory() as session:
                loaded = await TaskRepository(session).get("with-doc")
            return loaded

        loaded = run_with_session(scenario, [task])
        assert [TaskDocument.model_validate(d) for d in loaded.documents] == [doc]
        assert loaded.priority == TaskPriority.MEDIUM

    def test_add_save_delete(self):
        async def scenario(session_factory):
            async with session_factory() as session:
                repo = TaskRepository(session)
                task = await repo.add(make_task(task_id="fresh"))
                task.status = TaskStatus.IN_PROGRESS
                task.note = "started"
                await repo.save(task)

            async with session_factory() as session:
                repo = TaskRepository(session)
                stored = await repo.get("fresh")
                snapshot = (stored.status, stored.note)
                await repo.delete(stored)
                gone = await repo.get("fresh")
            return snapshot, gone

        snapshot, gone = run_with_session(scenario)
        assert snapshot == (TaskStatus.IN_PROGRESS, "started")
        assert gone is None

    def test_missing_task_is_none(self):
        async def scenario(session_factory):
            async with session_factory() as session:
                return await TaskRepository(session).get("nope")

        assert run_with_session(scenario) is None


class TestUserRepository:
    def test_lookups(self):
        async def scenario(session_factory):
            async with session_factory() as session:
                repo = UserRepository(session)
                return (
                    await repo.exists(ASSIGNEE_ID),
                    await repo.exists("ghost"),
                    sorted(await repo.get_many([ASSIGNEE_ID, CREATOR_ID, "ghost", None])),
                    await repo.get_many([]),
                )

        exists, missing, many, empty = run_with_session(scenario)
        assert exists is True
        assert missing is False
        assert many == [ASSIGNEE_ID, CREATOR_ID]
        assert empty == {}
