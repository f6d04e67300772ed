"""
작업 첨부 문서용 S3 어댑터
boto3 호출은 동기이므로 ThreadPoolExecutor에서 실행해 이벤트 루프를 막지 않는다.
"""
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import BinaryIO

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from taskhub.core.config import settings
from taskhub.core.exceptions import BlobStorageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredBlob:
    url: str
    storage_id: str


class S3Adapter:
    def __init__(self, bucket_name: str = None, client=None):
        self.bucket_name = bucket_name or settings.S3_BUCKET_DOCUMENTS
        self.region = settings.AWS_REGION
        self.executor = ThreadPoolExecutor(max_workers=5)

        # AWS S3 클라이언트 설정
        self.client = client or boto3.client(
            's3',
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
            region_name=self.region,
            config=Config(signature_version='s3v4')
        )
        logger.info(f"S3Adapter 초기화: bucket={self.bucket_name}, region={self.region}")

    def public_url(self, key: str) -> str:
        base = settings.S3_PUBLIC_BASE_URL.rstrip("/")
        if base:
            return f"{base}/{key}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{key}"

    def _upload_sync(self, fileobj: BinaryIO, key: str, content_type: str) -> StoredBlob:
        try:
            self.client.upload_fileobj(
                fileobj,
                self.bucket_name,
                key,
                ExtraArgs={'ContentType': content_type or 'application/octet-stream'}
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 업로드 실패: {key} ({e})")
            raise BlobStorageError(key, str(e)) from e
        logger.info(f"파일 업로드 성공: s3://{self.bucket_name}/{key}")
        return StoredBlob(url=self.public_url(key), storage_id=key)

    async def upload(self, fileobj: BinaryIO, key: str, content_type: str) -> StoredBlob:
        """파일 객체를 S3에 업로드하고 URL과 object key 반환 (Non-blocking)"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, self._upload_sync, fileobj, key, content_type)

    def _delete_sync(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise BlobStorageError(key, str(e)) from e
        logger.info(f"S3 객체 삭제 성공: {key}")

    async def delete(self, key: str) -> None:
        """object key로 S3 객체 삭제. 실패 시 BlobStorageError"""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(self.executor, self._delete_sync, key)
