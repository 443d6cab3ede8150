"""
Transaction schemas
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from ..enums.transaction import TransactionState, TimelineAction


class TransactionOpen(BaseModel):
    thread_id: str = Field(..., min_length=1, max_length=64)
    listing_id: str = Field(..., min_length=1, max_length=64)
    buyer_id: str = Field(..., min_length=1, max_length=64)
    seller_id: str = Field(..., min_length=1, max_length=64)


class DisagreeRequest(BaseModel):
    # Blank reasons are rejected by the state machine with a user-facing message
    reason: str = Field(..., max_length=1000)


class DisputeInfo(BaseModel):
    raised_by: str
    reason: str
    raised_at: datetime

    class Config:
        from_attributes = True


class TransactionResponse(BaseModel):
    id: int
    thread_id: str
    listing_id: str
    buyer_id: str
    seller_id: str
    party_a_id: str
    party_b_id: str
    state: TransactionState
    waiting_on: Optional[str] = None  # user id the transaction is waiting on, if pending
    a_marked_at: Optional[datetime] = None
    b_marked_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    dispute: Optional[DisputeInfo] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TransactionEventResponse(BaseModel):
    id: int
    actor_id: str
    action: TimelineAction
    from_state: Optional[TransactionState] = None
    to_state: TransactionState
    note: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TransactionHistoryEntry(BaseModel):
    id: int
    thread_id: str
    listing_id: str
    buyer_id: str
    seller_id: str
    state: TransactionState
    completed_at: Optional[datetime] = None
    buyer_rating_about_seller: Optional[int] = None
    seller_rating_about_buyer: Optional[int] = None


class UserTransactionHistoryResponse(BaseModel):
    transactions: List[TransactionHistoryEntry]
    completed_sales: int
    completed_purchases: int
