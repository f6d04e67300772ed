import logging

import httpx

from taskhub.core.config import settings
from taskhub.core.exceptions import BusinessException, ErrorCode
from taskhub.models.enums import UserRole
from taskhub.services.access_policy import Principal

logger = logging.getLogger(__name__)


class IdentityAdapter:
    """
    Auth Service 토큰 검증 호출
    POST {AUTH_SERVICE_URL}/auth/verify  {"token": "..."} -> {"user_id", "role", "name", "email"}
    """

    def __init__(self, base_url: str = None, timeout: float = None, transport: httpx.AsyncBaseTransport = None):
        self.base_url = (base_url or settings.AUTH_SERVICE_URL).rstrip("/")
        self.timeout = timeout or settings.AUTH_TIMEOUT_SECONDS
        self.transport = transport

    async def verify_token(self, token: str) -> Principal:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(f"{self.base_url}{settings.AUTH_VERIFY_PATH}", json={"token": token})
        except httpx.HTTPError as e:
            logger.error(f"Auth Service 호출 실패: {e}")
            raise BusinessException(ErrorCode.INVALID_TOKEN)

        if response.status_code != 200:
            logger.warning(f"토큰 검증 실패: status={response.status_code}")
            raise BusinessException(ErrorCode.INVALID_TOKEN)

        try:
            data = response.json()
        except ValueError:
            logger.warning("토큰 검증 응답이 JSON이 아님")
            raise BusinessException(ErrorCode.INVALID_TOKEN)

        # Auth Service는 ResponseEnvelope로 감싸서 줄 수도 있음
        if isinstance(data, dict) and isinstance(data.get("data"), dict):
            data = data["data"]
        if not isinstance(data, dict):
            logger.warning(f"토큰 검증 응답 형식 오류: {type(data).__name__}")
            raise BusinessException(ErrorCode.INVALID_TOKEN)

        user_id = data.get("user_id") or data.get("id")
        if not user_id:
            logger.warning("토큰 검증 응답에 user_id 없음")
            raise BusinessException(ErrorCode.INVALID_TOKEN)

        try:
            role = UserRole(str(data.get("role") or UserRole.USER.value).lower())
        except ValueError:
            role = UserRole.USER

        return Principal(id=str(user_id), role=role, name=data.get("name"), email=data.get("email"))


identity_adapter = IdentityAdapter()
