"""
Task 모델 정의
관리자가 생성하고 사용자에게 할당하는 작업. 첨부 문서는 JSON 컬럼에 임베드된다.
"""
from sqlalchemy import Column, String, Text, DateTime, JSON, ForeignKey, Index, Enum as SQLEnum, func

from taskhub.core.database import Base
from taskhub.models.enums import TaskStatus, TaskPriority


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Task(Base):
    """작업 모델"""
    __tablename__ = "tasks"

    task_id = Column(String(36), primary_key=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(
        SQLEnum(TaskStatus, name="task_status", values_callable=_enum_values),
        nullable=False,
        default=TaskStatus.PENDING,
    )
    priority = Column(
        SQLEnum(TaskPriority, name="task_priority", values_callable=_enum_values),
        nullable=False,
        default=TaskPriority.MEDIUM,
    )
    due_date = Column(DateTime, nullable=False)
    assigned_to = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    created_by = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    note = Column(Text)
    # [{document_id, filename, original_name, mimetype, url, storage_id, size, upload_date}, ...] 최대 3개
    documents = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_tasks_filter", "status", "priority", "due_date", "assigned_to"),
    )

    def __repr__(self):
        return f"<Task(task_id={self.task_id}, title='{self.title}', status='{self.status}')>"
