"""
Notification schemas for request/response validation
"""

from pydantic import BaseModel
from typing import Any, Dict, Optional
from datetime import datetime
from ..models.notification import NotificationType


class NotificationResponse(BaseModel):
    id: int
    user_id: str
    type: NotificationType
    title: str
    message: str
    is_read: bool
    read_at: Optional[datetime] = None
    transaction_id: Optional[int] = None
    actor_id: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True
