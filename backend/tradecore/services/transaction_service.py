"""
Transaction completion state machine

    open -> pending_a | pending_b -> completed
    open | pending_a | pending_b -> disputed

``pending_x`` means the transaction is waiting on party x. Every command is
a single read-modify-write run through ``run_in_transaction``: the row is
read with FOR UPDATE and written with a version check, so two concurrent
commands on one transaction always serialize.
"""

from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import or_, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    NotParticipantError,
    TerminalStateError,
    ValidationError,
)
from ..core.logging import get_logger, verbose_level
from ..database import run_in_transaction
from ..enums.transaction import TransactionState, TimelineAction
from ..models.notification import NotificationType
from ..models.transaction import Transaction, TransactionEvent
from . import dispute_ledger
from .notifications import NotificationEmitter, NotificationEvent, get_emitter

logger = get_logger(__name__)

MAX_REASON_LENGTH = 1000


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def log_transition(transaction: Transaction, actor_id: str, from_state, to_state) -> None:
    """Log a state change; only surfaces at INFO in full verbosity."""
    from_value = from_state.value if from_state else None
    logger.log(
        verbose_level(),
        f"Transaction {transaction.id}: {from_value} -> {to_state.value} by user {actor_id}",
        extra={
            "event": "transaction_transition",
            "transaction_id": transaction.id,
            "actor_id": actor_id,
            "from_state": from_value,
            "to_state": to_state.value,
        },
    )


def _load(db: Session, transaction_id: int, for_update: bool = False) -> Transaction:
    query = db.query(Transaction).filter(Transaction.id == transaction_id)
    if for_update:
        query = query.with_for_update()
    transaction = query.first()
    if not transaction:
        raise NotFoundError("Transaction not found")
    return transaction


def _require_participant(transaction: Transaction, actor_id: str) -> None:
    if not transaction.is_participant(actor_id):
        raise NotParticipantError("You are not a party to this transaction")


def _reject_terminal(transaction: Transaction) -> None:
    if not transaction.state.is_terminal:
        return
    if transaction.state is TransactionState.COMPLETED:
        raise TerminalStateError("This transaction is already completed")
    raise TerminalStateError("This transaction is under dispute and awaiting review")


def _record_event(
    db: Session,
    transaction: Transaction,
    actor_id: str,
    action: TimelineAction,
    from_state: Optional[TransactionState],
    note: Optional[str] = None,
) -> None:
    db.add(TransactionEvent(
        transaction=transaction,
        actor_id=actor_id,
        action=action,
        from_state=from_state,
        to_state=transaction.state,
        note=note,
        created_by=actor_id,
    ))


def _apply_mark(
    db: Session,
    transaction: Transaction,
    actor_id: str,
    action: TimelineAction,
    emitter: NotificationEmitter,
) -> None:
    """Set the actor's mark and move to pending_<other> or completed."""
    now = utcnow()
    from_state = transaction.state
    other_id = transaction.other_party(actor_id)

    transaction.set_marked_at(actor_id, now)
    transaction.updated_by = actor_id

    if transaction.marked_at(other_id) is not None:
        transaction.state = TransactionState.COMPLETED
        transaction.completed_at = now
        _record_event(db, transaction, actor_id, action, from_state)
        _record_event(db, transaction, actor_id, TimelineAction.TRANSACTION_COMPLETED, from_state)
        notification_type = NotificationType.TRANSACTION_COMPLETED
    else:
        transaction.state = transaction.pending_state_for(other_id)
        _record_event(db, transaction, actor_id, action, from_state)
        notification_type = NotificationType.TRANSACTION_PENDING

    emitter.emit(db, NotificationEvent(
        type=notification_type,
        transaction_id=transaction.id,
        recipient_id=other_id,
        actor_id=actor_id,
        payload={"state": transaction.state.value, "thread_id": transaction.thread_id},
    ))
    log_transition(transaction, actor_id, from_state, transaction.state)


def open_transaction(
    db: Session,
    thread_id: str,
    listing_id: str,
    buyer_id: str,
    seller_id: str,
) -> Transaction:
    """
    Record a transaction when a seller accepts an offer in a thread.

    Called by the offer workflow; the buyer is party a and the seller party b
    for the lifetime of the record.
    """
    if buyer_id == seller_id:
        raise ValidationError("Buyer and seller must be different users")

    def work(session: Session) -> Transaction:
        existing = session.query(Transaction).filter(Transaction.thread_id == thread_id).first()
        if existing:
            raise ConflictError("This conversation already has a transaction")

        transaction = Transaction(
            thread_id=thread_id,
            listing_id=listing_id,
            buyer_id=buyer_id,
            seller_id=seller_id,
            party_a_id=buyer_id,
            party_b_id=seller_id,
            state=TransactionState.OPEN,
            created_by=seller_id,
        )
        session.add(transaction)
        _record_event(session, transaction, seller_id, TimelineAction.OFFER_ACCEPTED, None)
        try:
            session.flush()
        except IntegrityError as exc:
            raise ConflictError("This conversation already has a transaction") from exc
        log_transition(transaction, seller_id, None, transaction.state)
        return transaction

    return run_in_transaction(db, work, operation="open_transaction")


def mark_complete(
    db: Session,
    transaction_id: int,
    actor_id: str,
    emitter: Optional[NotificationEmitter] = None,
) -> Transaction:
    """
    Record that ``actor_id`` considers the exchange done.

    Repeating the call for an actor who already marked is a no-op that
    returns the current record, so retried requests are harmless.
    """
    emitter = emitter or get_emitter()

    def work(session: Session) -> Transaction:
        transaction = _load(session, transaction_id, for_update=True)
        _require_participant(transaction, actor_id)

        already_marked = transaction.marked_at(actor_id) is not None
        if already_marked and transaction.state is TransactionState.DISPUTED:
            raise TerminalStateError("You already marked this complete; the transaction is under dispute")
        if already_marked:
            logger.debug(
                f"Transaction {transaction.id}: repeated mark by user {actor_id} ignored",
                extra={"event": "mark_complete_noop", "transaction_id": transaction.id, "actor_id": actor_id},
            )
            return transaction

        _reject_terminal(transaction)
        _apply_mark(session, transaction, actor_id, TimelineAction.MARK_COMPLETE, emitter)
        return transaction

    return run_in_transaction(db, work, operation="mark_complete")


def agree(
    db: Session,
    transaction_id: int,
    actor_id: str,
    emitter: Optional[NotificationEmitter] = None,
) -> Transaction:
    """Confirm the other party's completion claim; always ends in completed."""
    emitter = emitter or get_emitter()

    def work(session: Session) -> Transaction:
        transaction = _load(session, transaction_id, for_update=True)
        _require_participant(transaction, actor_id)
        _reject_terminal(transaction)

        if transaction.state is not transaction.pending_state_for(actor_id):
            if transaction.marked_at(actor_id) is not None:
                raise InvalidStateError("You already marked this complete, waiting on the other party")
            raise InvalidStateError("The other party has not marked this exchange complete yet")

        _apply_mark(session, transaction, actor_id, TimelineAction.AGREE_COMPLETE, emitter)
        return transaction

    return run_in_transaction(db, work, operation="agree")


def disagree(
    db: Session,
    transaction_id: int,
    actor_id: str,
    reason: str,
    emitter: Optional[NotificationEmitter] = None,
) -> Transaction:
    """
    Flag a problem with the exchange and move it to disputed.

    Allowed from any non-terminal state, including open. The first dispute
    wins; later calls see a terminal record.
    """
    emitter = emitter or get_emitter()
    reason = (reason or "").strip()

    def work(session: Session) -> Transaction:
        transaction = _load(session, transaction_id, for_update=True)
        _require_participant(transaction, actor_id)
        _reject_terminal(transaction)

        if not reason:
            raise ValidationError("Please describe what went wrong")
        if len(reason) > MAX_REASON_LENGTH:
            raise ValidationError(f"Reason must be at most {MAX_REASON_LENGTH} characters")

        now = utcnow()
        from_state = transaction.state
        other_id = transaction.other_party(actor_id)

        transaction.state = TransactionState.DISPUTED
        transaction.updated_by = actor_id
        dispute_ledger.record_dispute(session, transaction, actor_id, reason, now)
        _record_event(session, transaction, actor_id, TimelineAction.DISAGREE_COMPLETE, from_state, note=reason)

        emitter.emit(session, NotificationEvent(
            type=NotificationType.TRANSACTION_DISPUTED,
            transaction_id=transaction.id,
            recipient_id=other_id,
            actor_id=actor_id,
            payload={"state": transaction.state.value, "thread_id": transaction.thread_id, "reason": reason},
        ))
        log_transition(transaction, actor_id, from_state, transaction.state)
        return transaction

    return run_in_transaction(db, work, operation="disagree")


def get_transaction(db: Session, transaction_id: int) -> Transaction:
    return _load(db, transaction_id)


def get_transaction_for_thread(db: Session, thread_id: str) -> Transaction:
    transaction = db.query(Transaction).filter(Transaction.thread_id == thread_id).first()
    if not transaction:
        raise NotFoundError("No transaction exists for this conversation")
    return transaction


def get_timeline(db: Session, transaction_id: int, actor_id: str) -> List[TransactionEvent]:
    transaction = _load(db, transaction_id)
    _require_participant(transaction, actor_id)
    return list(transaction.events)


def list_user_transactions(db: Session, user_id: str, skip: int = 0, limit: int = 50) -> List[Transaction]:
    """Transactions where the user is either party, newest first."""
    return (
        db.query(Transaction)
        .filter(or_(Transaction.buyer_id == user_id, Transaction.seller_id == user_id))
        .order_by(desc(Transaction.created_at), desc(Transaction.id))
        .offset(skip)
        .limit(limit)
        .all()
    )


def count_completed(db: Session, user_id: str) -> Tuple[int, int]:
    """Completed (sales, purchases) for a user across their whole history."""
    completed = db.query(Transaction).filter(Transaction.state == TransactionState.COMPLETED)
    sales = completed.filter(Transaction.seller_id == user_id).count()
    purchases = completed.filter(Transaction.buyer_id == user_id).count()
    return sales, purchases
