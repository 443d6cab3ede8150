"""
Dispute ledger schemas
"""

from pydantic import BaseModel
from datetime import datetime
from ..enums.transaction import DisputeStatus


class DisputeResponse(BaseModel):
    id: int
    transaction_id: int
    thread_id: str
    listing_id: str
    raised_by: str
    reason: str
    raised_at: datetime
    status: DisputeStatus

    class Config:
        from_attributes = True
