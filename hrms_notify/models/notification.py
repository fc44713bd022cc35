# hrms_notify/models/notification.py
import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Notification(BaseModel):
    id: str                 # RowKey
    recipient: str          # PartitionKey (account id)
    type: str
    title: str
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)
    read: bool = False
    read_at: Optional[datetime] = None
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user": self.recipient,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "data": self.data,
            "read": self.read,
            "readAt": self.read_at.isoformat() if self.read_at else None,
            "createdAt": self.created_at.isoformat(),
        }


class NotificationPage(BaseModel):
    notifications: List[Notification]
    page: int
    limit: int
    total: int
    unread_count: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def to_dict(self) -> dict:
        return {
            "notifications": [n.to_dict() for n in self.notifications],
            "pagination": {
                "page": self.page,
                "limit": self.limit,
                "total": self.total,
                "pages": self.pages,
            },
            "unreadCount": self.unread_count,
        }


class SendNotificationIn(BaseModel):
    """Body of the manual send endpoint. No userId means every active account."""

    type: str
    userId: Optional[str] = None
    title: str
    message: str
    data: Optional[Dict[str, Any]] = None
    url: Optional[str] = None
