from fastapi import APIRouter, Depends

from taskhub.core.deps import get_current_principal, get_user_repository
from taskhub.core.exceptions import BusinessException, ErrorCode
from taskhub.repositories import UserRepository
from taskhub.schemas.user import UserEnvelope, UserResponse
from taskhub.services.access_policy import Operation, Principal, access_policy

router = APIRouter()


@router.get("/{user_id}", response_model=UserEnvelope)
async def get_user(
    user_id: str,
    principal: Principal = Depends(get_current_principal),
    users: UserRepository = Depends(get_user_repository),
):
    """사용자 조회 (관리자 또는 본인)"""
    access_policy.enforce(principal, Operation.READ_USER, target_user_id=user_id)

    user = await users.get(user_id)
    if user is None:
        raise BusinessException(ErrorCode.USER_NOT_FOUND)

    return UserEnvelope(
        success=True,
        data=UserResponse(id=user.user_id, name=user.name, email=user.email, role=user.role),
    )
