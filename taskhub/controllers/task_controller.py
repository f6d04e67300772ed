import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import RedirectResponse
from pydantic import ValidationError

from taskhub.core.deps import get_current_principal, get_task_service, get_upload_service
from taskhub.core.exceptions import BusinessException, ErrorCode, validation_messages
from taskhub.schemas.task import (
    MessageResponse, Pagination, StatusChangeRequest, TaskCreate, TaskEnvelope, TaskListResponse, TaskUpdate,
)
from taskhub.services.access_policy import Operation, Principal
from taskhub.services.task_service import TaskService
from taskhub.services.upload_service import DocumentUploadService

router = APIRouter()
logger = logging.getLogger(__name__)


def _provided(**values) -> dict:
    # multipart 폼에서 빠졌거나 빈 문자열인 필드는 "미입력"
    return {key: value for key, value in values.items() if value not in (None, "")}


def _parse(model, data: dict):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise BusinessException(ErrorCode.INVALID_INPUT, error=validation_messages(e.errors()))


def _parse_removed_files(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        raise BusinessException(ErrorCode.INVALID_INPUT, "removedFiles must be a JSON array of document ids")
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise BusinessException(ErrorCode.INVALID_INPUT, "removedFiles must be a JSON array of document ids")
    return [str(item) for item in value]


# =================================================================
# 1. 작업 목록 (관리자) - 필터 / 정렬 / 페이지네이션 / 검색
# =================================================================
@router.get("", response_model=TaskListResponse)
async def list_tasks(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    page = await service.list_tasks(principal, request.query_params)
    return TaskListResponse(
        success=True,
        count=len(page.items),
        total=page.total,
        pagination=Pagination(page=page.page, limit=page.limit, pages=page.pages),
        data=page.items,
    )


# =================================================================
# 2. 작업 상세 (관리자 / 생성자 / 담당자)
# =================================================================
@router.get("/{task_id}", response_model=TaskEnvelope)
async def get_task(
    task_id: str,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    task = await service.get_task(principal, task_id)
    return TaskEnvelope(success=True, data=task)


# =================================================================
# 3. 작업 생성 (관리자) - multipart, PDF 최대 3개
# =================================================================
@router.post("", response_model=TaskEnvelope, status_code=201)
async def create_task(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    status: Optional[str] = Form(None),
    priority: Optional[str] = Form(None),
    due_date: Optional[str] = Form(None, alias="dueDate"),
    assigned_to: Optional[str] = Form(None, alias="assignedTo"),
    documents: Optional[List[UploadFile]] = File(None),
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
    uploads: DocumentUploadService = Depends(get_upload_service),
):
    # 권한/입력 검증이 끝난 뒤에만 S3 업로드
    service.authorize(principal, Operation.CREATE)
    payload = _parse(TaskCreate, _provided(
        title=title, description=description, status=status, priority=priority,
        dueDate=due_date, assignedTo=assigned_to,
    ))
    files = uploads.validate(documents)

    stored = await uploads.store(files)
    task = await service.create_task(principal, payload, stored)
    return TaskEnvelope(success=True, data=task)


# =================================================================
# 4. 작업 수정 (관리자) - 부분 수정 + 문서 삭제/추가
# =================================================================
@router.put("/{task_id}", response_model=TaskEnvelope)
async def update_task(
    task_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    status: Optional[str] = Form(None),
    priority: Optional[str] = Form(None),
    due_date: Optional[str] = Form(None, alias="dueDate"),
    assigned_to: Optional[str] = Form(None, alias="assignedTo"),
    removed_files: Optional[str] = Form(None, alias="removedFiles"),
    documents: Optional[List[UploadFile]] = File(None),
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
    uploads: DocumentUploadService = Depends(get_upload_service),
):
    service.authorize(principal, Operation.UPDATE)
    payload = _parse(TaskUpdate, _provided(
        title=title, description=description, status=status, priority=priority,
        dueDate=due_date, assignedTo=assigned_to,
    ))
    remove_ids = _parse_removed_files(removed_files)
    files = uploads.validate(documents)

    stored = await uploads.store(files)
    task = await service.update_task(principal, task_id, payload, remove_ids, stored)
    return TaskEnvelope(success=True, data=task)


# =================================================================
# 5. 작업 삭제 (관리자) - 첨부 문서 blob도 함께 삭제
# =================================================================
@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: str,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    await service.delete_task(principal, task_id)
    return MessageResponse(success=True, message="Task removed")


# =================================================================
# 6. 문서 다운로드 - 저장소 URL로 302 리다이렉트
# =================================================================
@router.get("/{task_id}/documents/{document_id}")
async def download_document(
    task_id: str,
    document_id: str,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    url = await service.get_document_url(principal, task_id, document_id)
    return RedirectResponse(url=url, status_code=302)


# =================================================================
# 7. 상태 변경 (관리자 / 생성자 / 담당자) - status, note 필수
# =================================================================
@router.patch("/{task_id}/status", response_model=TaskEnvelope)
async def change_task_status(
    task_id: str,
    payload: Optional[StatusChangeRequest] = None,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    payload = payload or StatusChangeRequest()
    task = await service.change_status(principal, task_id, payload.status, payload.note)
    return TaskEnvelope(success=True, data=task)
