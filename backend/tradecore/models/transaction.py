"""
Transaction model for recorded exchanges between two parties
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, Text
from sqlalchemy.orm import relationship
from .base import BaseModel
from ..enums.transaction import TransactionState, TimelineAction, PartyRole


class Transaction(BaseModel):
    __tablename__ = "transactions"

    # Owning thread and traded item (immutable after creation)
    thread_id = Column(String(64), nullable=False, unique=True, index=True)
    listing_id = Column(String(64), nullable=False, index=True)
    buyer_id = Column(String(64), nullable=False, index=True)
    seller_id = Column(String(64), nullable=False, index=True)

    # Stable participant ordering, assigned once (buyer = a, seller = b)
    party_a_id = Column(String(64), nullable=False)
    party_b_id = Column(String(64), nullable=False)

    state = Column(Enum(TransactionState), nullable=False, default=TransactionState.OPEN, index=True)
    a_marked_at = Column(DateTime(timezone=True), nullable=True)
    b_marked_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Compare-and-swap counter; UPDATEs match on the version they read
    version = Column(Integer, nullable=False, default=1)

    # Relationships
    dispute = relationship("DisputeRecord", back_populates="transaction", uselist=False)
    events = relationship(
        "TransactionEvent",
        back_populates="transaction",
        order_by="TransactionEvent.id",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.party_a_id, self.party_b_id)

    def party_label(self, user_id: str) -> str:
        """Return "a" or "b" for a participant."""
        return "a" if user_id == self.party_a_id else "b"

    def other_party(self, user_id: str) -> str:
        return self.party_b_id if user_id == self.party_a_id else self.party_a_id

    def marked_at(self, user_id: str):
        return self.a_marked_at if self.party_label(user_id) == "a" else self.b_marked_at

    def set_marked_at(self, user_id: str, when) -> None:
        if self.party_label(user_id) == "a":
            self.a_marked_at = when
        else:
            self.b_marked_at = when

    def role_of(self, user_id: str) -> PartyRole:
        return PartyRole.BUYER if user_id == self.buyer_id else PartyRole.SELLER

    def pending_state_for(self, user_id: str) -> TransactionState:
        """State meaning "waiting on this user"."""
        if self.party_label(user_id) == "a":
            return TransactionState.PENDING_A
        return TransactionState.PENDING_B


class TransactionEvent(BaseModel):
    """Append-only timeline entry for a transaction."""

    __tablename__ = "transaction_events"

    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=False, index=True)
    actor_id = Column(String(64), nullable=False)
    action = Column(Enum(TimelineAction), nullable=False)
    from_state = Column(Enum(TransactionState), nullable=True)
    to_state = Column(Enum(TransactionState), nullable=False)
    note = Column(Text, nullable=True)

    transaction = relationship("Transaction", back_populates="events")
