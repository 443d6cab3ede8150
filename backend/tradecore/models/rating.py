"""
Rating event log and per-user rating summary cache
"""

from typing import Optional

from sqlalchemy import Column, Integer, String, ForeignKey, Text, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base, BaseModel
from ..enums.transaction import PartyRole


class RatingEvent(BaseModel):
    __tablename__ = "rating_events"
    __table_args__ = (
        UniqueConstraint("transaction_id", "rater_id", name="uq_rating_events_transaction_rater"),
    )

    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=False, index=True)
    rater_id = Column(String(64), nullable=False, index=True)  # User giving the rating
    rated_user_id = Column(String(64), nullable=False, index=True)  # User being rated

    # 1-5 stars
    score = Column(Integer, nullable=False)

    # Rater's role in the transaction
    role = Column(Enum(PartyRole), nullable=False)

    comment = Column(Text, nullable=True)

    transaction = relationship("Transaction", backref="ratings")


class RatingSummary(Base):
    """
    Derived cache of a user's ratings.

    Buckets hold integer totals and counts; the averages are computed from
    them so that the cache compares exactly against a replay of the log.
    """

    __tablename__ = "rating_summaries"

    user_id = Column(String(64), primary_key=True)

    overall_count = Column(Integer, nullable=False, default=0)
    overall_total = Column(Integer, nullable=False, default=0)
    seller_count = Column(Integer, nullable=False, default=0)
    seller_total = Column(Integer, nullable=False, default=0)
    buyer_count = Column(Integer, nullable=False, default=0)
    buyer_total = Column(Integer, nullable=False, default=0)

    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    @staticmethod
    def _average(total: int, count: int) -> Optional[float]:
        if not count:
            return None
        return total / count

    @property
    def overall_average(self) -> Optional[float]:
        return self._average(self.overall_total, self.overall_count)

    @property
    def seller_average(self) -> Optional[float]:
        return self._average(self.seller_total, self.seller_count)

    @property
    def buyer_average(self) -> Optional[float]:
        return self._average(self.buyer_total, self.buyer_count)

    def fold(self, score: int, bucket: PartyRole) -> None:
        """Apply one score to the overall bucket and the given role bucket."""
        self.overall_total = (self.overall_total or 0) + score
        self.overall_count = (self.overall_count or 0) + 1
        if bucket is PartyRole.SELLER:
            self.seller_total = (self.seller_total or 0) + score
            self.seller_count = (self.seller_count or 0) + 1
        else:
            self.buyer_total = (self.buyer_total or 0) + score
            self.buyer_count = (self.buyer_count or 0) + 1

    def counters(self) -> tuple:
        return (
            self.overall_count or 0,
            self.overall_total or 0,
            self.seller_count or 0,
            self.seller_total or 0,
            self.buyer_count or 0,
            self.buyer_total or 0,
        )
