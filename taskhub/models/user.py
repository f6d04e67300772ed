"""
User 모델 정의
계정 생성/수정은 Auth Service 담당. 이 서비스는 이름/이메일 조회만 한다.
"""
from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, func

from taskhub.core.database import Base
from taskhub.models.enums import UserRole


class User(Base):
    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    role = Column(
        SQLEnum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserRole.USER,
    )
    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<User(user_id={self.user_id}, email='{self.email}')>"
