from typing import Optional

from taskhub.core.exceptions import BusinessException, ErrorCode
from taskhub.models.enums import TaskStatus
from taskhub.services.access_policy import AccessPolicy, Operation, Ownership, Principal, access_policy


class TaskStatusTransition:
    """
    상태 변경 + 메모 기록
    - 상태와 메모 모두 필수
    - 상태 간 전이 제한 없음 (어떤 값에서든 어떤 값으로든 변경 가능)
    - 메모는 누적하지 않고 마지막 값으로 덮어씀
    """

    def __init__(self, policy: AccessPolicy = None):
        self.policy = policy or access_policy

    def validate(self, status: Optional[str], note: Optional[str]) -> tuple[TaskStatus, str]:
        status = (status or "").strip()
        note = (note or "").strip()
        if not status or not note:
            raise BusinessException(ErrorCode.STATUS_NOTE_REQUIRED)
        try:
            new_status = TaskStatus(status)
        except ValueError:
            allowed = ", ".join(s.value for s in TaskStatus)
            raise BusinessException(ErrorCode.INVALID_STATUS, f"Invalid status value: {status} (allowed: {allowed})")
        return new_status, note

    def apply(self, task, principal: Principal, status: TaskStatus, note: str):
        self.policy.enforce(principal, Operation.CHANGE_STATUS, Ownership.of(task))
        task.status = status
        task.note = note
        return task

    def transition(self, task, principal: Principal, status: Optional[str], note: Optional[str]):
        new_status, clean_note = self.validate(status, note)
        return self.apply(task, principal, new_status, clean_note)
