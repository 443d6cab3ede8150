"""
Dispute ledger: historical record of every disagreement, read by the admin
resolution workflow. Resolution itself happens elsewhere.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundError
from ..enums.transaction import DisputeStatus
from ..models.dispute import DisputeRecord
from ..models.transaction import Transaction


def record_dispute(
    db: Session,
    transaction: Transaction,
    raised_by: str,
    reason: str,
    raised_at: datetime,
) -> DisputeRecord:
    """Append a dispute for ``transaction``; runs inside the caller's unit of work."""
    record = DisputeRecord(
        transaction_id=transaction.id,
        thread_id=transaction.thread_id,
        listing_id=transaction.listing_id,
        raised_by=raised_by,
        reason=reason,
        raised_at=raised_at,
        status=DisputeStatus.OPEN,
        created_by=raised_by,
    )
    db.add(record)
    transaction.dispute = record
    return record


def list_disputes(
    db: Session,
    status: Optional[DisputeStatus] = None,
    skip: int = 0,
    limit: int = 50,
) -> List[DisputeRecord]:
    query = db.query(DisputeRecord)
    if status is not None:
        query = query.filter(DisputeRecord.status == status)
    return (
        query.order_by(desc(DisputeRecord.raised_at), desc(DisputeRecord.id))
        .offset(skip)
        .limit(limit)
        .all()
    )


def get_dispute(db: Session, transaction_id: int) -> DisputeRecord:
    record = db.query(DisputeRecord).filter(DisputeRecord.transaction_id == transaction_id).first()
    if not record:
        raise NotFoundError("No dispute has been raised on this transaction")
    return record
