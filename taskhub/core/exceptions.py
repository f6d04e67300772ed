"""
공용 예외 정의
서비스 계층에서 BusinessException을 던지면 main.py의 핸들러가
{success: false, code, message, error?} 형태로 변환한다.
"""
from enum import Enum
from typing import Any, Optional


class ErrorCode(Enum):
    # (http_status, biz_code, default message)

    # 400 - 입력 검증
    INVALID_INPUT = (400, "TSK_400", "Validation error")
    STATUS_NOTE_REQUIRED = (400, "TSK_401", "Status and note are required")
    INVALID_STATUS = (400, "TSK_402", "Invalid status value")
    ASSIGNEE_NOT_FOUND = (400, "TSK_403", "Assigned user not found")
    DOCUMENT_LIMIT_EXCEEDED = (400, "DOC_400", "Maximum 3 documents allowed")
    DOCUMENT_TYPE_NOT_ALLOWED = (400, "DOC_401", "Only PDF documents are allowed!")
    DOCUMENT_TOO_LARGE = (400, "DOC_402", "File too large")
    DUPLICATE_KEY = (400, "CMN_409", "Duplicate key error")
    REFERENCE_NOT_FOUND = (400, "CMN_410", "Referenced record not found")
    INTEGRITY_ERROR = (400, "CMN_400", "Data integrity error")

    # 401 / 403 - 인증, 권한
    UNAUTHORIZED = (401, "AUTH_401", "Not authorized, no token")
    INVALID_TOKEN = (401, "AUTH_402", "Not authorized, token failed")
    FORBIDDEN = (403, "AUTH_403", "Not authorized to access this resource")

    # 404
    TASK_NOT_FOUND = (404, "TSK_404", "Task not found")
    DOCUMENT_NOT_FOUND = (404, "DOC_404", "Document not found")
    DOCUMENT_FILE_NOT_FOUND = (404, "DOC_405", "Document file not found")
    USER_NOT_FOUND = (404, "USR_404", "User not found")
    ROUTE_NOT_FOUND = (404, "CMN_404", "Not found")

    # 500
    TASK_UPDATE_FAILED = (500, "TSK_500", "Failed to update task")
    UPLOAD_FAILED = (500, "DOC_500", "Document upload failed")
    INTERNAL_SERVER_ERROR = (500, "CMN_500", "Internal server error")

    @property
    def http_status(self) -> int:
        return self.value[0]

    @property
    def biz_code(self) -> str:
        return self.value[1]

    @property
    def default_message(self) -> str:
        return self.value[2]


class BusinessException(Exception):
    def __init__(self, error_code: ErrorCode, message: Optional[str] = None, error: Any = None):
        self.error_code = error_code
        self.message = message or error_code.default_message
        self.error = error
        super().__init__(self.message)


class BlobStorageError(Exception):
    """S3 호출 실패 (정리 작업에서는 로그만 남기고 삼킨다)"""

    def __init__(self, storage_id: str, reason: str):
        self.storage_id = storage_id
        self.reason = reason
        super().__init__(f"{storage_id}: {reason}")


def validation_messages(errors) -> list:
    """pydantic errors() -> ["field: message", ...]"""
    messages = []
    for err in errors:
        loc = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path"))
        messages.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg"))
    return messages


# MySQL 에러 번호
MYSQL_DUPLICATE_ENTRY = 1062
MYSQL_FOREIGN_KEY_ERRORS = (1216, 1217, 1451, 1452)


def integrity_error_code(orig: Any) -> ErrorCode:
    """DB 드라이버 예외(IntegrityError.orig) -> ErrorCode"""
    args = getattr(orig, "args", ())
    errno = args[0] if args and isinstance(args[0], int) else None
    text = str(orig).lower()

    if errno == MYSQL_DUPLICATE_ENTRY or "duplicate" in text or "unique constraint" in text:
        return ErrorCode.DUPLICATE_KEY
    if errno in MYSQL_FOREIGN_KEY_ERRORS or "foreign key" in text:
        return ErrorCode.REFERENCE_NOT_FOUND
    return ErrorCode.INTEGRITY_ERROR
