"""
Notification outbox model

Rows are written in the same database transaction as the state change that
caused them. Delivery (push, email, websocket) is handled outside this
service by reading the outbox.
"""

from sqlalchemy import Column, Integer, ForeignKey, String, Text, Boolean, DateTime, Enum, JSON
from .base import BaseModel
import enum


class NotificationType(str, enum.Enum):
    TRANSACTION_PENDING = "transaction.pending"
    TRANSACTION_COMPLETED = "transaction.completed"
    TRANSACTION_DISPUTED = "transaction.disputed"
    RATING_RECEIVED = "rating.received"


class Notification(BaseModel):
    __tablename__ = "notifications"

    user_id = Column(String(64), nullable=False, index=True)  # recipient
    type = Column(Enum(NotificationType), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False, index=True)
    read_at = Column(DateTime(timezone=True), nullable=True)

    # Optional references
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=True, index=True)
    actor_id = Column(String(64), nullable=True)
    payload = Column(JSON, nullable=True)
