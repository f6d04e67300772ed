"""
작업 첨부 문서 관리
- 작업당 최대 MAX_DOCUMENTS_PER_TASK 개
- plan(): 유지/제거/초과 목록만 계산 (저장소 변경 없음)
- discard(): 제거 대상 blob 삭제. 삭제는 best-effort이며 실패는 로그와 결과에만 남고
  작업 요청 자체를 실패시키지 않는다.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from taskhub.core.exceptions import BlobStorageError
from taskhub.schemas.task import TaskDocument

logger = logging.getLogger(__name__)

MAX_DOCUMENTS_PER_TASK = 3


@dataclass(frozen=True)
class DeletionOutcome:
    document_id: str
    storage_id: Optional[str]
    deleted: bool
    error: Optional[str] = None


@dataclass
class AttachmentPlan:
    documents: List[TaskDocument]
    removed: List[TaskDocument] = field(default_factory=list)
    evicted: List[TaskDocument] = field(default_factory=list)


@dataclass
class ReconcileResult:
    documents: List[TaskDocument]
    deletions: List[DeletionOutcome] = field(default_factory=list)

    @property
    def failed_deletions(self) -> List[DeletionOutcome]:
        return [d for d in self.deletions if not d.deleted]


class DocumentAttachmentManager:
    def __init__(self, storage, max_documents: int = MAX_DOCUMENTS_PER_TASK):
        self.storage = storage
        self.max_documents = max_documents

    def plan(
        self,
        existing: Sequence[TaskDocument],
        remove_ids: Iterable[str],
        new_uploads: Sequence[TaskDocument],
    ) -> AttachmentPlan:
        remove_ids = set(remove_ids or ())
        removed = [doc for doc in existing if doc.document_id in remove_ids]
        kept = [doc for doc in existing if doc.document_id not in remove_ids]

        documents = kept + list(new_uploads)
        # 초과분은 뒤쪽(가장 최근 추가분)부터 제거
        evicted = documents[self.max_documents:]
        return AttachmentPlan(documents=documents[:self.max_documents], removed=removed, evicted=evicted)

    async def discard(self, plan: AttachmentPlan) -> ReconcileResult:
        deletions = await self._delete_all(plan.removed, "removed")
        deletions += await self._delete_all(plan.evicted, "excess")
        return ReconcileResult(documents=plan.documents, deletions=deletions)

    async def reconcile(
        self,
        existing: Sequence[TaskDocument],
        remove_ids: Iterable[str],
        new_uploads: Sequence[TaskDocument],
    ) -> ReconcileResult:
        return await self.discard(self.plan(existing, remove_ids, new_uploads))

    async def purge(self, documents: Sequence[TaskDocument]) -> List[DeletionOutcome]:
        """모든 문서의 blob 삭제 (작업 삭제, 실패한 요청의 업로드 롤백)"""
        return await self._delete_all(documents, "purge")

    async def _delete_all(self, documents: Sequence[TaskDocument], reason: str) -> List[DeletionOutcome]:
        outcomes = []
        for doc in documents:
            outcomes.append(await self._delete_one(doc, reason))
        return outcomes

    async def _delete_one(self, doc: TaskDocument, reason: str) -> DeletionOutcome:
        if not doc.storage_id:
            return DeletionOutcome(doc.document_id, None, deleted=False, error="no storage id")
        try:
            await self.storage.delete(doc.storage_id)
        except BlobStorageError as e:
            logger.error(f"Error removing document blob ({reason}) {doc.storage_id}: {e.reason}")
            return DeletionOutcome(doc.document_id, doc.storage_id, deleted=False, error=e.reason)
        logger.info(f"Removed document blob ({reason}): {doc.storage_id}")
        return DeletionOutcome(doc.document_id, doc.storage_id, deleted=True)
