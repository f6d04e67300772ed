"""
문서 업로드 서비스 (AWS S3)
1) validate: 개수 / MIME 타입 / 크기 검사 - 오케스트레이터 호출 전에 끝까지 실행
2) store: 검증된 파일을 S3에 올리고 TaskDocument 목록 반환
"""
import logging
import os
import random
import time
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from fastapi import UploadFile

from taskhub.core.config import settings
from taskhub.core.exceptions import BlobStorageError, BusinessException, ErrorCode
from taskhub.schemas.task import TaskDocument
from taskhub.services.document_service import DocumentAttachmentManager

logger = logging.getLogger(__name__)


def _file_size(file: UploadFile) -> int:
    file.file.seek(0, 2)
    size = file.file.tell()
    file.file.seek(0)
    return size


class DocumentUploadService:
    def __init__(
        self,
        storage,
        documents: DocumentAttachmentManager = None,
        allowed_type: str = None,
        max_size: int = None,
        max_files: int = None,
    ):
        self.storage = storage
        self.documents = documents or DocumentAttachmentManager(storage)
        self.allowed_type = allowed_type or settings.ALLOWED_DOCUMENT_TYPE
        self.max_size = max_size or settings.MAX_DOCUMENT_SIZE
        self.max_files = max_files or settings.MAX_DOCUMENTS_PER_REQUEST
        self.prefix = settings.S3_DOCUMENT_PREFIX

    def validate(self, files: Optional[Sequence[UploadFile]]) -> List[UploadFile]:
        """
        업로드 파일 검증

        Args:
            files: multipart로 받은 파일 목록 (None 가능)

        Returns:
            List[UploadFile]: 검증을 통과한 파일 목록
        """
        # 파일명이 비어 있는 part는 파일이 선택되지 않은 것
        files = [f for f in (files or []) if f is not None and f.filename]

        if len(files) > self.max_files:
            raise BusinessException(ErrorCode.DOCUMENT_LIMIT_EXCEEDED, f"Maximum {self.max_files} documents allowed")

        for file in files:
            if file.content_type != self.allowed_type:
                raise BusinessException(ErrorCode.DOCUMENT_TYPE_NOT_ALLOWED)
            if _file_size(file) > self.max_size:
                limit_mb = self.max_size // (1024 * 1024)
                raise BusinessException(
                    ErrorCode.DOCUMENT_TOO_LARGE,
                    f"File too large: {file.filename} exceeds {limit_mb}MB"
                )
        return files

    def object_key(self, file: UploadFile) -> str:
        extension = os.path.splitext(file.filename or "")[1] or ".pdf"
        unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
        return f"{self.prefix}documents-{unique_suffix}{extension}"

    async def store(self, files: Sequence[UploadFile]) -> List[TaskDocument]:
        """검증된 파일을 순서대로 업로드. 중간 실패 시 이미 올린 파일은 삭제"""
        stored: List[TaskDocument] = []
        for file in files:
            key = self.object_key(file)
            size = _file_size(file)
            try:
                blob = await self.storage.upload(file.file, key, file.content_type)
            except BlobStorageError as e:
                logger.error(f"문서 업로드 실패: {file.filename} ({e.reason})")
                await self.documents.purge(stored)
                raise BusinessException(ErrorCode.UPLOAD_FAILED, error=e.reason)

            stored.append(TaskDocument(
                document_id=str(uuid.uuid4()),
                filename=os.path.basename(blob.storage_id),
                original_name=file.filename,
                mimetype=file.content_type,
                url=blob.url,
                storage_id=blob.storage_id,
                size=size,
                upload_date=datetime.now(timezone.utc).replace(tzinfo=None),
            ))
        if stored:
            logger.info(f"문서 {len(stored)}건 업로드 완료")
        return stored
