from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.adapters.identity_adapter import identity_adapter
from taskhub.adapters.s3_adapter import S3Adapter
from taskhub.core.database import get_db
from taskhub.core.exceptions import BusinessException, ErrorCode
from taskhub.repositories import TaskRepository, UserRepository
from taskhub.services.access_policy import Principal
from taskhub.services.document_service import DocumentAttachmentManager
from taskhub.services.task_service import TaskService
from taskhub.services.upload_service import DocumentUploadService


async def get_current_principal(authorization: Optional[str] = Header(None)) -> Principal:
    """
    Authorization 헤더의 Bearer 토큰을 Auth Service로 검증해 Principal 반환
    - 헤더 없음: 401 (no token)
    - 검증 실패: 401 (token failed)
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise BusinessException(ErrorCode.UNAUTHORIZED)

    token = authorization[len("Bearer "):].strip()
    if not token:
        raise BusinessException(ErrorCode.UNAUTHORIZED)
    return await identity_adapter.verify_token(token)


@lru_cache
def get_blob_storage() -> S3Adapter:
    return S3Adapter()


def get_upload_service() -> DocumentUploadService:
    storage = get_blob_storage()
    return DocumentUploadService(storage, DocumentAttachmentManager(storage))


async def get_task_service(db: AsyncSession = Depends(get_db)) -> TaskService:
    return TaskService(
        tasks=TaskRepository(db),
        users=UserRepository(db),
        documents=DocumentAttachmentManager(get_blob_storage()),
    )


async def get_user_repository(db: AsyncSession = Depends(get_db)) -> UserRepository:
    return UserRepository(db)
