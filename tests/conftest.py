# tests/conftest.py

from __future__ import annotations

import itertools
import uuid
from datetime import datetime

import pytest

from taskhub.models.enums import TaskPriority, TaskStatus, UserRole
from taskhub.models.task import Task
from taskhub.models.user import User
from taskhub.schemas.task import TaskDocument
from taskhub.services.access_policy import Principal
from taskhub.services.document_service import DocumentAttachmentManager
from taskhub.services.task_service import TaskService
from taskhub.services.upload_service import DocumentUploadService

from .fakes import FakeBlobStorage, FakeTaskRepository, FakeUserRepository

ADMIN_ID = "user-admin"
ASSIGNEE_ID = "user-alice"
CREATOR_ID = "user-carol"
OUTSIDER_ID = "user-mallory"

_doc_counter = itertools.count(1)


def make_document(name: str = None, url: str = "auto") -> TaskDocument:
    n = next(_doc_counter)
    key = f"task-documents/documents-{n}.pdf"
    return TaskDocument(
        document_id=str(uuid.uuid4()),
        filename=f"documents-{n}.pdf",
        original_name=name or f"doc-{n}.pdf",
        mimetype="application/pdf",
        url=f"https://blobs.test/{key}" if url == "auto" else url,
        storage_id=key,
        size=1024,
        upload_date=datetime(2030, 1, 1, 12, 0, 0),
    )


def make_task(
    task_id: str = None,
    title: str = "Write quarterly report",
    description: str = "Collect numbers from finance",
    status: TaskStatus = TaskStatus.PENDING,
    priority: TaskPriority = TaskPriority.MEDIUM,
    due_date: datetime = datetime(2030, 1, 15),
    assigned_to: str = ASSIGNEE_ID,
    created_by: str = CREATOR_ID,
    documents=(),
) -> Task:
    return Task(
        task_id=task_id or str(uuid.uuid4()),
        title=title,
        description=description,
        status=status,
        priority=priority,
        due_date=due_date,
        assigned_to=assigned_to,
        created_by=created_by,
        note=None,
        documents=[d.model_dump(mode="json") for d in documents],
        created_at=datetime(2030, 1, 1),
        updated_at=datetime(2030, 1, 1),
    )


@pytest.fixture()
def admin() -> Principal:
    return Principal(id=ADMIN_ID, role=UserRole.ADMIN)


@pytest.fixture()
def assignee() -> Principal:
    return Principal(id=ASSIGNEE_ID, role=UserRole.USER)


@pytest.fixture()
def creator() -> Principal:
    return Principal(id=CREATOR_ID, role=UserRole.USER)


@pytest.fixture()
def outsider() -> Principal:
    return Principal(id=OUTSIDER_ID, role=UserRole.USER)


@pytest.fixture()
def storage() -> FakeBlobStorage:
    return FakeBlobStorage()


@pytest.fixture()
def user_repo() -> FakeUserRepository:
    return FakeUserRepository([
        User(user_id=ADMIN_ID, name="Admin", email="admin@example.com", role=UserRole.ADMIN),
        User(user_id=ASSIGNEE_ID, name="Alice", email="alice@example.com", role=UserRole.USER),
        User(user_id=CREATOR_ID, name="Carol", email="carol@example.com", role=UserRole.USER),
        User(user_id=OUTSIDER_ID, name="Mallory", email="mallory@example.com", role=UserRole.USER),
    ])


@pytest.fixture()
def task_repo() -> FakeTaskRepository:
    return FakeTaskRepository()


@pytest.fixture()
def documents(storage) -> DocumentAttachmentManager:
    return DocumentAttachmentManager(storage)


@pytest.fixture()
def service(task_repo, user_repo, documents) -> TaskService:
    return TaskService(tasks=task_repo, users=user_repo, documents=documents)


@pytest.fixture()
def upload_service(storage, documents) -> DocumentUploadService:
    return DocumentUploadService(storage, documents)


@pytest.fixture()
def stored_task(task_repo) -> Task:
    task = make_task()
    task_repo.tasks[task.task_id] = task
    return task
