from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from taskhub.models.enums import TaskStatus, TaskPriority


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # DB 컬럼은 timezone 없는 DateTime (UTC 기준)
    if value is not None and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# --- Embedded Document ---
class TaskDocument(BaseModel):
    document_id: str
    filename: str
    original_name: Optional[str] = None
    mimetype: Optional[str] = None
    url: Optional[str] = None
    storage_id: Optional[str] = None  # S3 object key
    size: int = 0
    upload_date: datetime


class UserSummary(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None


# --- Request Schemas ---
class TaskCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime = Field(..., alias="dueDate")
    assigned_to: str = Field(..., alias="assignedTo", min_length=1)

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, value):
        return _naive_utc(value)


class TaskUpdate(BaseModel):
    """부분 수정 - 요청에 포함된 필드만 반영 (model_fields_set 기준)"""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = Field(None, alias="dueDate")
    assigned_to: Optional[str] = Field(None, alias="assignedTo", min_length=1)

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, value):
        return _naive_utc(value)

    def provided_fields(self) -> dict:
        return self.model_dump(exclude_unset=True)


class StatusChangeRequest(BaseModel):
    # 둘 다 필수지만 누락 시 전용 메시지를 주기 위해 서비스에서 검증
    status: Optional[str] = None
    note: Optional[str] = None


# --- Response Schemas ---
class TaskResponse(BaseModel):
    task_id: str
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime
    assigned_to: Optional[UserSummary] = None
    created_by: Optional[UserSummary] = None
    note: Optional[str] = None
    documents: List[TaskDocument] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Pagination(BaseModel):
    page: int
    limit: int
    pages: int


class TaskListResponse(BaseModel):
    success: bool = True
    count: int
    total: int
    pagination: Pagination
    data: List[TaskResponse]


class TaskEnvelope(BaseModel):
    success: bool = True
    data: TaskResponse


class MessageResponse(BaseModel):
    success: bool = True
    message: str
