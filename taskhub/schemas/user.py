from pydantic import BaseModel

from taskhub.models.enums import UserRole


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole


class UserEnvelope(BaseModel):
    success: bool = True
    data: UserResponse
