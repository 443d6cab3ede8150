"""
Notification emitter

The core only emits typed events addressed to a recipient; delivery and
retry belong to whatever consumes the outbox.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.logging import get_logger, verbose_level
from ..models.notification import Notification, NotificationType

logger = get_logger(__name__)

TITLES = {
    NotificationType.TRANSACTION_PENDING: "Confirm your exchange",
    NotificationType.TRANSACTION_COMPLETED: "Exchange completed",
    NotificationType.TRANSACTION_DISPUTED: "Exchange disputed",
    NotificationType.RATING_RECEIVED: "New Rating",
}


@dataclass
class NotificationEvent:
    type: NotificationType
    transaction_id: int
    recipient_id: str
    actor_id: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)


class NotificationEmitter:
    """Interface for anything that accepts lifecycle events."""

    def emit(self, db: Session, event: NotificationEvent) -> None:
        raise NotImplementedError


class OutboxNotificationEmitter(NotificationEmitter):
    """Writes events to the notifications table inside the caller's unit of work."""

    def emit(self, db: Session, event: NotificationEvent) -> None:
        notification = Notification(
            user_id=event.recipient_id,
            type=event.type,
            title=TITLES[event.type],
            message=describe(event),
            transaction_id=event.transaction_id,
            actor_id=event.actor_id,
            payload=event.payload,
            created_by="system",
        )
        db.add(notification)
        logger.log(
            verbose_level(),
            f"Queued {event.type.value} for user {event.recipient_id} on transaction {event.transaction_id}",
            extra={
                "event": "notification_queued",
                "notification_type": event.type.value,
                "transaction_id": event.transaction_id,
                "recipient_id": event.recipient_id,
            },
        )


def describe(event: NotificationEvent) -> str:
    if event.type is NotificationType.TRANSACTION_PENDING:
        return "The other party marked this exchange complete. Agree or report a problem."
    if event.type is NotificationType.TRANSACTION_COMPLETED:
        return "Both parties confirmed the exchange. You can now leave a rating."
    if event.type is NotificationType.TRANSACTION_DISPUTED:
        reason = event.payload.get("reason")
        return f"The other party reported a problem: {reason}" if reason else "The other party reported a problem."
    score = event.payload.get("score")
    return f"You received a {score}-star rating"


_default_emitter: NotificationEmitter = OutboxNotificationEmitter()


def get_emitter() -> NotificationEmitter:
    return _default_emitter
