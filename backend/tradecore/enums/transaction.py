"""
Transaction and rating enums
"""

import enum


class TransactionState(str, enum.Enum):
    OPEN = "open"
    PENDING_A = "pending_a"  # waiting on party a
    PENDING_B = "pending_b"  # waiting on party b
    COMPLETED = "completed"
    DISPUTED = "disputed"

    @property
    def is_terminal(self) -> bool:
        return self in (TransactionState.COMPLETED, TransactionState.DISPUTED)


class TimelineAction(str, enum.Enum):
    OFFER_ACCEPTED = "offer_accepted"
    MARK_COMPLETE = "mark_complete"
    AGREE_COMPLETE = "agree_complete"
    DISAGREE_COMPLETE = "disagree_complete"
    TRANSACTION_COMPLETED = "transaction_completed"


class PartyRole(str, enum.Enum):
    BUYER = "buyer"
    SELLER = "seller"

    @property
    def counterpart(self) -> "PartyRole":
        return PartyRole.SELLER if self is PartyRole.BUYER else PartyRole.BUYER


class DisputeStatus(str, enum.Enum):
    OPEN = "open"
    RESOLVED = "resolved"
