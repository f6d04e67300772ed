import logging

logger = logging.getLogger(__name__)


class NotificationService:
    """
    작업 알림 훅 (스텁)
    실제 발송 채널은 아직 없음 - 로그만 남긴다.
    """

    async def task_status_changed(self, task, actor_id: str) -> None:
        if task.created_by == actor_id:
            return
        logger.info(
            f"[notify] task {task.task_id} status -> {getattr(task.status, 'value', task.status)} "
            f"by {actor_id}, recipient={task.created_by}"
        )


notification_service = NotificationService()
