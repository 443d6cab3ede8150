"""
Rating aggregation engine

Rating events are the source of truth. Each user's RatingSummary is a cache
updated in the same database transaction as the event insert, and can be
rebuilt from the events at any time.
"""

from typing import List, Optional, Tuple

from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.exceptions import (
    ConcurrentUpdateError,
    DuplicateRatingError,
    InvalidStateError,
    NotFoundError,
    NotParticipantError,
    ValidationError,
)
from ..core.logging import get_logger, verbose_level
from ..database import run_in_transaction
from ..enums.transaction import TransactionState
from ..models.notification import NotificationType
from ..models.rating import RatingEvent, RatingSummary
from ..models.transaction import Transaction
from .notifications import NotificationEmitter, NotificationEvent, get_emitter

logger = get_logger(__name__)

MIN_SCORE = 1
MAX_SCORE = 5
MAX_COMMENT_LENGTH = 2000


def empty_summary(user_id: str) -> RatingSummary:
    return RatingSummary(
        user_id=user_id,
        overall_count=0,
        overall_total=0,
        seller_count=0,
        seller_total=0,
        buyer_count=0,
        buyer_total=0,
    )


def _locked_row(session: Session, user_id: str) -> Optional[RatingSummary]:
    return (
        session.query(RatingSummary)
        .filter(RatingSummary.user_id == user_id)
        .with_for_update()
        .first()
    )


def _lock_summary(session: Session, user_id: str) -> RatingSummary:
    """Load the user's summary row for update, creating it on first rating."""
    summary = _locked_row(session, user_id)
    if summary is not None:
        return summary

    summary = empty_summary(user_id)
    session.add(summary)
    try:
        session.flush()
    except IntegrityError as exc:
        # Another writer created the row first; start over and lock theirs
        raise ConcurrentUpdateError(f"rating summary for {user_id} created concurrently") from exc
    return summary


def _validate_score(score) -> None:
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValidationError("Rating must be a whole number between 1 and 5")
    if score < MIN_SCORE or score > MAX_SCORE:
        raise ValidationError("Rating must be between 1 and 5")


def submit_rating(
    db: Session,
    transaction_id: int,
    rater_id: str,
    score: int,
    comment: Optional[str] = None,
    emitter: Optional[NotificationEmitter] = None,
) -> RatingSummary:
    """
    Rate the other party of a completed transaction.

    A buyer's rating lands in the seller's "as seller" bucket and vice
    versa, plus the overall bucket. Returns the rated user's summary.
    """
    _validate_score(score)
    comment = (comment or "").strip() or None
    if comment and len(comment) > MAX_COMMENT_LENGTH:
        raise ValidationError(f"Comment must be at most {MAX_COMMENT_LENGTH} characters")
    emitter = emitter or get_emitter()

    def work(session: Session) -> RatingSummary:
        transaction = session.query(Transaction).filter(Transaction.id == transaction_id).first()
        if not transaction:
            raise NotFoundError("Transaction not found")
        if not transaction.is_participant(rater_id):
            raise NotParticipantError("Not authorized to rate for this transaction")
        if transaction.state is not TransactionState.COMPLETED:
            raise InvalidStateError("You can leave a rating once both parties have confirmed the exchange")

        existing = session.query(RatingEvent).filter(
            RatingEvent.transaction_id == transaction_id,
            RatingEvent.rater_id == rater_id,
        ).first()
        if existing:
            raise DuplicateRatingError("You have already rated this transaction")

        rater_role = transaction.role_of(rater_id)
        rated_user_id = transaction.other_party(rater_id)

        session.add(RatingEvent(
            transaction_id=transaction_id,
            rater_id=rater_id,
            rated_user_id=rated_user_id,
            score=score,
            role=rater_role,
            comment=comment,
            created_by=rater_id,
        ))
        try:
            session.flush()
        except IntegrityError as exc:
            raise DuplicateRatingError("You have already rated this transaction") from exc

        summary = _lock_summary(session, rated_user_id)
        summary.fold(score, rater_role.counterpart)

        emitter.emit(session, NotificationEvent(
            type=NotificationType.RATING_RECEIVED,
            transaction_id=transaction_id,
            recipient_id=rated_user_id,
            actor_id=rater_id,
            payload={"score": score, "role": rater_role.counterpart.value},
        ))
        logger.log(
            verbose_level(),
            f"User {rater_id} rated user {rated_user_id} {score}/5 on transaction {transaction_id}",
            extra={
                "event": "rating_submitted",
                "transaction_id": transaction_id,
                "rater_id": rater_id,
                "rated_user_id": rated_user_id,
                "score": score,
            },
        )
        return summary

    return run_in_transaction(db, work, operation="submit_rating")


def get_summary(db: Session, user_id: str) -> RatingSummary:
    """Cached summary; users with no ratings get an empty, unsaved one."""
    summary = db.query(RatingSummary).filter(RatingSummary.user_id == user_id).first()
    return summary if summary is not None else empty_summary(user_id)


def get_transaction_ratings(db: Session, transaction_id: int, viewer_id: str) -> Tuple[List[RatingEvent], bool]:
    transaction = db.query(Transaction).filter(Transaction.id == transaction_id).first()
    if not transaction:
        raise NotFoundError("Transaction not found")
    if not transaction.is_participant(viewer_id):
        raise NotParticipantError("Not authorized to view ratings for this transaction")

    ratings = (
        db.query(RatingEvent)
        .filter(RatingEvent.transaction_id == transaction_id)
        .order_by(RatingEvent.id)
        .all()
    )
    return ratings, any(rating.rater_id == viewer_id for rating in ratings)


def list_ratings_for_user(db: Session, user_id: str, skip: int = 0, limit: int = 50) -> List[RatingEvent]:
    return (
        db.query(RatingEvent)
        .filter(RatingEvent.rated_user_id == user_id)
        .order_by(desc(RatingEvent.created_at), desc(RatingEvent.id))
        .offset(skip)
        .limit(limit)
        .all()
    )


def replay_summary(db: Session, user_id: str) -> RatingSummary:
    """Recompute a summary from the event log without touching the cache."""
    summary = empty_summary(user_id)
    events = db.query(RatingEvent).filter(RatingEvent.rated_user_id == user_id).order_by(RatingEvent.id)
    for event in events:
        summary.fold(event.score, event.role.counterpart)
    return summary


def summary_matches_log(db: Session, user_id: str) -> bool:
    return get_summary(db, user_id).counters() == replay_summary(db, user_id).counters()


def rebuild_summary(db: Session, user_id: str) -> RatingSummary:
    """Overwrite the cached summary with a replay of the event log."""

    def work(session: Session) -> RatingSummary:
        replayed = replay_summary(session, user_id)
        if replayed.overall_count == 0 and _locked_row(session, user_id) is None:
            # Nothing to cache for a user nobody has rated
            return replayed
        summary = _lock_summary(session, user_id)
        if summary.counters() != replayed.counters():
            logger.warning(
                f"Rating summary for user {user_id} drifted from the event log; rebuilding",
                extra={"event": "rating_summary_drift", "user_id": user_id},
            )
        (
            summary.overall_count,
            summary.overall_total,
            summary.seller_count,
            summary.seller_total,
            summary.buyer_count,
            summary.buyer_total,
        ) = replayed.counters()
        return summary

    return run_in_transaction(db, work, operation="rebuild_summary")


def rebuild_all_summaries(db: Session) -> int:
    """Rebuild every user that has ratings or a cached summary. Returns the count."""
    rated = {row[0] for row in db.query(RatingEvent.rated_user_id).distinct()}
    cached = {row[0] for row in db.query(RatingSummary.user_id)}
    user_ids = sorted(rated | cached)
    for user_id in user_ids:
        rebuild_summary(db, user_id)
    logger.info(f"Rebuilt {len(user_ids)} rating summaries", extra={"event": "rating_summaries_rebuilt"})
    return len(user_ids)
