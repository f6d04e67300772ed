"""
작업 / 사용자 리소스 접근 정책
모든 권한 판단은 이 모듈에서 한다.
- evaluate(): 부수효과 없음, 예외를 던지지 않음
- enforce(): 거부 시 403 BusinessException
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from taskhub.core.exceptions import BusinessException, ErrorCode
from taskhub.models.enums import UserRole


class Operation(str, Enum):
    LIST = "list"
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    DOWNLOAD_DOCUMENT = "downloadDocument"
    CHANGE_STATUS = "changeStatus"
    READ_USER = "readUser"
    UPDATE_USER = "updateUser"


@dataclass(frozen=True)
class Principal:
    id: str
    role: UserRole = UserRole.USER
    name: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass(frozen=True)
class Ownership:
    creator_id: Optional[str] = None
    assignee_id: Optional[str] = None

    @classmethod
    def of(cls, task) -> "Ownership":
        return cls(creator_id=task.created_by, assignee_id=task.assigned_to)


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None


ALLOW = Decision(True)

ADMIN_ONLY = {Operation.LIST, Operation.CREATE, Operation.UPDATE, Operation.DELETE}
OWNER_OR_ADMIN = {Operation.READ, Operation.DOWNLOAD_DOCUMENT, Operation.CHANGE_STATUS}
SELF_OR_ADMIN = {Operation.READ_USER, Operation.UPDATE_USER}

DENY_REASONS = {
    Operation.LIST: "Not authorized as an admin",
    Operation.CREATE: "Not authorized as an admin",
    Operation.UPDATE: "Not authorized to update this task. Only administrators can edit tasks.",
    Operation.DELETE: "Not authorized as an admin",
    Operation.READ: "Not authorized to access this task",
    Operation.DOWNLOAD_DOCUMENT: "Not authorized to access this task",
    Operation.CHANGE_STATUS: "Not authorized to update this task status",
    Operation.READ_USER: "Not authorized to access this resource",
    Operation.UPDATE_USER: "Not authorized to access this resource",
}


class AccessPolicy:
    def evaluate(
        self,
        principal: Principal,
        operation: Operation,
        ownership: Optional[Ownership] = None,
        target_user_id: Optional[str] = None,
    ) -> Decision:
        if principal.is_admin:
            return ALLOW

        if operation in OWNER_OR_ADMIN and ownership is not None:
            if principal.id in (ownership.assignee_id, ownership.creator_id):
                return ALLOW
        elif operation in SELF_OR_ADMIN and target_user_id is not None:
            if principal.id == target_user_id:
                return ALLOW

        return Decision(False, DENY_REASONS.get(operation, ErrorCode.FORBIDDEN.default_message))

    def enforce(
        self,
        principal: Principal,
        operation: Operation,
        ownership: Optional[Ownership] = None,
        target_user_id: Optional[str] = None,
    ) -> None:
        decision = self.evaluate(principal, operation, ownership, target_user_id)
        if not decision.allowed:
            raise BusinessException(ErrorCode.FORBIDDEN, decision.reason)


access_policy = AccessPolicy()
