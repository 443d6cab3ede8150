"""
Rating routes
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from ..database import get_db
from ..auth.dependencies import get_current_user_id, require_admin
from ..schemas.rating import (
    RatingCreate,
    RatingResponse,
    RatingSummaryResponse,
    TransactionRatingsResponse,
)
from ..services import rating_service

router = APIRouter()


@router.post("/transactions/{transaction_id}/ratings", response_model=RatingSummaryResponse)
def rate_user(
    transaction_id: int,
    rating_data: RatingCreate,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Rate the other party after a completed transaction"""
    return rating_service.submit_rating(
        db,
        transaction_id,
        current_user_id,
        rating_data.score,
        rating_data.comment,
    )


@router.get("/transactions/{transaction_id}/ratings", response_model=TransactionRatingsResponse)
def get_transaction_ratings(
    transaction_id: int,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get all ratings for a transaction"""
    ratings, has_rated = rating_service.get_transaction_ratings(db, transaction_id, current_user_id)
    return TransactionRatingsResponse(
        ratings=[RatingResponse.model_validate(rating) for rating in ratings],
        has_rated=has_rated,
    )


@router.get("/users/{user_id}/rating-summary", response_model=RatingSummaryResponse)
def get_user_rating_summary(
    user_id: str,
    db: Session = Depends(get_db)
):
    """Get aggregate rating info for a specific user"""
    return rating_service.get_summary(db, user_id)


@router.get("/users/{user_id}/ratings", response_model=List[RatingResponse])
def get_user_ratings(
    user_id: str,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db)
):
    return rating_service.list_ratings_for_user(db, user_id, skip=skip, limit=limit)


@router.post("/users/{user_id}/rating-summary/rebuild", response_model=RatingSummaryResponse)
def rebuild_user_rating_summary(
    user_id: str,
    admin_id: str = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Recompute a user's cached summary from the rating log"""
    return rating_service.rebuild_summary(db, user_id)
