"""
Rating schemas
"""

from pydantic import BaseModel, Field, computed_field
from typing import Optional, List
from datetime import datetime
from ..enums.transaction import PartyRole


class RatingCreate(BaseModel):
    score: int = Field(..., ge=1, le=5, description="Rating must be between 1 and 5")
    comment: Optional[str] = Field(None, max_length=2000)


class RatingResponse(BaseModel):
    id: int
    transaction_id: int
    rater_id: str
    rated_user_id: str
    score: int
    role: PartyRole
    comment: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class TransactionRatingsResponse(BaseModel):
    ratings: List[RatingResponse]
    has_rated: bool


class RatingSummaryResponse(BaseModel):
    """Averages are null when the bucket has no ratings yet."""

    user_id: str
    overall_average: Optional[float] = None
    overall_count: int = 0
    seller_average: Optional[float] = None
    seller_count: int = 0
    buyer_average: Optional[float] = None
    buyer_count: int = 0

    @computed_field
    @property
    def is_new_member(self) -> bool:
        return self.overall_count == 0

    class Config:
        from_attributes = True
