"""通知请求模型

引擎只产出通知请求，投递（邮件/WhatsApp）由外部协作方负责。
"""

from typing import Any

from pydantic import BaseModel, Field

from .enums import NotificationKind
from .project import User


class Recipient(BaseModel):
    """通知接收人"""

    user_id: str
    name: str = ""
    email: str | None = None
    phone_no: str | None = None

    @classmethod
    def from_user(cls, user: User) -> "Recipient":
        return cls(
            user_id=user.user_id,
            name=user.name,
            email=user.email,
            phone_no=user.phone_no,
        )


class NotificationEvent(BaseModel):
    """通知请求 {kind, recipients, payload}"""

    kind: NotificationKind
    recipients: list[Recipient] = Field(default_factory=list)
    payload: dict[str, Any] = Field(default_factory=dict, description="结构化 payload")
