"""
작업 서비스 (오케스트레이터)
- 모든 작업은 변경 전에 권한 검사와 입력 검증을 먼저 수행한다.
- 첨부 문서 blob 삭제는 DB 저장이 성공한 뒤에만 실행한다.
- 업로드 단계에서 이미 저장된 파일은 요청이 실패하면 다시 삭제한다.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from taskhub.core.exceptions import BusinessException, ErrorCode
from taskhub.models.task import Task
from taskhub.schemas.task import TaskCreate, TaskDocument, TaskResponse, TaskUpdate, UserSummary
from taskhub.services.access_policy import AccessPolicy, Operation, Ownership, Principal, access_policy
from taskhub.services.document_service import AttachmentPlan, DocumentAttachmentManager
from taskhub.services.notification_service import NotificationService, notification_service
from taskhub.services.status_service import TaskStatusTransition
from taskhub.services.task_query import TaskQueryBuilder, describe

logger = logging.getLogger(__name__)


@dataclass
class TaskPage:
    items: List[TaskResponse]
    total: int
    page: int
    limit: int
    pages: int


def load_documents(task: Task) -> List[TaskDocument]:
    return [TaskDocument.model_validate(doc) for doc in (task.documents or [])]


def dump_documents(documents: Sequence[TaskDocument]) -> List[Dict[str, Any]]:
    return [doc.model_dump(mode="json") for doc in documents]


class TaskService:
    def __init__(
        self,
        tasks,
        users,
        documents: DocumentAttachmentManager,
        policy: AccessPolicy = None,
        transition: TaskStatusTransition = None,
        query_builder: TaskQueryBuilder = None,
        notifier: NotificationService = None,
    ):
        self.tasks = tasks
        self.users = users
        self.documents = documents
        self.policy = policy or access_policy
        self.transition = transition or TaskStatusTransition(self.policy)
        self.query_builder = query_builder or TaskQueryBuilder()
        self.notifier = notifier or notification_service

    def authorize(self, principal: Principal, operation: Operation, task: Optional[Task] = None) -> None:
        self.policy.enforce(principal, operation, Ownership.of(task) if task is not None else None)

    # =========================================================
    # 조회
    # =========================================================
    async def list_tasks(self, principal: Principal, raw_filters: Mapping[str, Any]) -> TaskPage:
        self.authorize(principal, Operation.LIST)

        query = self.query_builder.build(raw_filters)
        total = await self.tasks.count(query)
        tasks = await self.tasks.find(query)
        logger.info(
            f"Task list: filters={describe(query)} sort={query.sort_by} "
            f"{'desc' if query.sort_desc else 'asc'} page={query.page} -> {len(tasks)}/{total}"
        )

        return TaskPage(
            items=await self._project_many(tasks),
            total=total,
            page=query.page,
            limit=query.limit,
            pages=query.total_pages(total),
        )

    async def get_task(self, principal: Principal, task_id: str) -> TaskResponse:
        task = await self._load(task_id)
        self.authorize(principal, Operation.READ, task)
        return await self._project(task)

    async def get_document_url(self, principal: Principal, task_id: str, document_id: str) -> str:
        task = await self._load(task_id)
        self.authorize(principal, Operation.DOWNLOAD_DOCUMENT, task)

        document = next((doc for doc in load_documents(task) if doc.document_id == document_id), None)
        if document is None:
            raise BusinessException(ErrorCode.DOCUMENT_NOT_FOUND)
        if not document.url:
            raise BusinessException(ErrorCode.DOCUMENT_FILE_NOT_FOUND)
        return document.url

    # =========================================================
    # 생성 / 수정 / 삭제 (관리자 전용)
    # =========================================================
    async def create_task(
        self,
        principal: Principal,
        payload: TaskCreate,
        uploaded: Sequence[TaskDocument] = (),
    ) -> TaskResponse:
        try:
            self.authorize(principal, Operation.CREATE)
            await self._ensure_assignee(payload.assigned_to)
        except BusinessException:
            await self.documents.purge(uploaded)
            raise

        plan = self.documents.plan([], [], uploaded)
        task = Task(
            task_id=str(uuid.uuid4()),
            title=payload.title,
            description=payload.description,
            status=payload.status,
            priority=payload.priority,
            due_date=payload.due_date,
            assigned_to=payload.assigned_to,
            created_by=principal.id,
            documents=dump_documents(plan.documents),
        )
        try:
            task = await self.tasks.add(task)
        except SQLAlchemyError:
            await self.documents.purge(uploaded)
            raise
        await self._discard(task.task_id, plan)

        logger.info(f"Task created: {task.task_id} by {principal.id} (documents={len(plan.documents)})")
        return await self._project(task)

    async def update_task(
        self,
        principal: Principal,
        task_id: str,
        payload: TaskUpdate,
        remove_ids: Iterable[str] = (),
        uploaded: Sequence[TaskDocument] = (),
    ) -> TaskResponse:
        try:
            self.authorize(principal, Operation.UPDATE)
            task = await self._load(task_id)
            fields = payload.provided_fields()
            if fields.get("assigned_to") is not None:
                await self._ensure_assignee(fields["assigned_to"])
        except BusinessException:
            await self.documents.purge(uploaded)
            raise

        plan = self.documents.plan(load_documents(task), remove_ids, uploaded)

        for name, value in fields.items():
            # null은 "변경 없음"으로 취급 (필수 필드를 비울 수 없음)
            if value is not None:
                setattr(task, name, value)
        task.documents = dump_documents(plan.documents)

        try:
            task = await self._persist(task)
        except BusinessException:
            # 저장 실패: 기존 문서 blob은 그대로 두고 이번 요청 업로드만 롤백
            await self.documents.purge(uploaded)
            raise
        await self._discard(task_id, plan)
        logger.info(f"Task updated: {task_id} fields={sorted(fields)} documents={len(plan.documents)}")
        return await self._project(task)

    async def delete_task(self, principal: Principal, task_id: str) -> None:
        self.authorize(principal, Operation.DELETE)
        task = await self._load(task_id)

        outcomes = await self.documents.purge(load_documents(task))
        failed = [o for o in outcomes if not o.deleted]
        if failed:
            logger.warning(f"Task {task_id}: {len(failed)} blob deletion(s) failed during delete")

        await self.tasks.delete(task)
        logger.info(f"Task deleted: {task_id} by {principal.id}")

    # =========================================================
    # 상태 변경 (관리자 / 생성자 / 담당자)
    # =========================================================
    async def change_status(
        self,
        principal: Principal,
        task_id: str,
        status: Optional[str],
        note: Optional[str],
    ) -> TaskResponse:
        new_status, clean_note = self.transition.validate(status, note)
        task = await self._load(task_id)
        self.transition.apply(task, principal, new_status, clean_note)

        task = await self._persist(task)
        await self.notifier.task_status_changed(task, principal.id)
        logger.info(f"Task status changed: {task_id} -> {new_status.value} by {principal.id}")
        return await self._project(task)

    # =========================================================
    # 내부 헬퍼
    # =========================================================
    async def _load(self, task_id: str) -> Task:
        task = await self.tasks.get(task_id)
        if task is None:
            raise BusinessException(ErrorCode.TASK_NOT_FOUND)
        return task

    async def _ensure_assignee(self, user_id: str) -> None:
        if not await self.users.exists(user_id):
            raise BusinessException(ErrorCode.ASSIGNEE_NOT_FOUND)

    async def _discard(self, task_id: str, plan: AttachmentPlan) -> None:
        result = await self.documents.discard(plan)
        if result.failed_deletions:
            logger.warning(f"Task {task_id}: {len(result.failed_deletions)} blob deletion(s) failed, orphaned blobs remain")

    async def _persist(self, task: Task) -> Task:
        try:
            return await self.tasks.save(task)
        except SQLAlchemyError as e:
            logger.error(f"Task {task.task_id} update failed: {e}")
            raise BusinessException(ErrorCode.TASK_UPDATE_FAILED, f"Failed to update task: {e}")

    async def _project(self, task: Task) -> TaskResponse:
        return (await self._project_many([task]))[0]

    async def _project_many(self, tasks: Sequence[Task]) -> List[TaskResponse]:
        user_ids = {uid for task in tasks for uid in (task.assigned_to, task.created_by)}
        users = await self.users.get_many(user_ids)

        def summary(user_id: Optional[str]) -> Optional[UserSummary]:
            if user_id is None:
                return None
            user = users.get(user_id)
            if user is None:
                return UserSummary(id=user_id)
            return UserSummary(id=user.user_id, name=user.name, email=user.email)

        return [
            TaskResponse(
                task_id=task.task_id,
                title=task.title,
                description=task.description,
                status=task.status,
                priority=task.priority,
                due_date=task.due_date,
                assigned_to=summary(task.assigned_to),
                created_by=summary(task.created_by),
                note=task.note,
                documents=load_documents(task),
                created_at=task.created_at,
                updated_at=task.updated_at,
            )
            for task in tasks
        ]
