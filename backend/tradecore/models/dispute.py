"""
Dispute ledger model
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from .base import BaseModel
from ..enums.transaction import DisputeStatus


class DisputeRecord(BaseModel):
    __tablename__ = "disputes"

    # At most one dispute per transaction
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=False, unique=True, index=True)
    thread_id = Column(String(64), nullable=False)
    listing_id = Column(String(64), nullable=False)

    raised_by = Column(String(64), nullable=False, index=True)
    reason = Column(Text, nullable=False)
    raised_at = Column(DateTime(timezone=True), nullable=False)

    # Written as open; the admin workflow owns anything after that
    status = Column(Enum(DisputeStatus), nullable=False, default=DisputeStatus.OPEN, index=True)

    transaction = relationship("Transaction", back_populates="dispute")
