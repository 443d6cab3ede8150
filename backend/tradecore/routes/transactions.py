"""
Transaction routes: completion handshake between buyer and seller
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List

from ..database import get_db
from ..auth.dependencies import get_current_user_id
from ..enums.transaction import TransactionState, PartyRole
from ..models.transaction import Transaction
from ..schemas.transaction import (
    TransactionOpen,
    TransactionResponse,
    DisagreeRequest,
    DisputeInfo,
    TransactionEventResponse,
    TransactionHistoryEntry,
    UserTransactionHistoryResponse,
)
from ..services import transaction_service

router = APIRouter()


def serialize_transaction(transaction: Transaction) -> TransactionResponse:
    waiting_on = None
    if transaction.state is TransactionState.PENDING_A:
        waiting_on = transaction.party_a_id
    elif transaction.state is TransactionState.PENDING_B:
        waiting_on = transaction.party_b_id

    dispute = None
    if transaction.state is TransactionState.DISPUTED and transaction.dispute is not None:
        dispute = DisputeInfo.model_validate(transaction.dispute)

    return TransactionResponse(
        id=transaction.id,
        thread_id=transaction.thread_id,
        listing_id=transaction.listing_id,
        buyer_id=transaction.buyer_id,
        seller_id=transaction.seller_id,
        party_a_id=transaction.party_a_id,
        party_b_id=transaction.party_b_id,
        state=transaction.state,
        waiting_on=waiting_on,
        a_marked_at=transaction.a_marked_at,
        b_marked_at=transaction.b_marked_at,
        completed_at=transaction.completed_at,
        dispute=dispute,
        created_at=transaction.created_at,
        updated_at=transaction.updated_at,
    )


def serialize_history_entry(transaction: Transaction) -> TransactionHistoryEntry:
    by_role = {rating.role: rating.score for rating in transaction.ratings}
    return TransactionHistoryEntry(
        id=transaction.id,
        thread_id=transaction.thread_id,
        listing_id=transaction.listing_id,
        buyer_id=transaction.buyer_id,
        seller_id=transaction.seller_id,
        state=transaction.state,
        completed_at=transaction.completed_at,
        buyer_rating_about_seller=by_role.get(PartyRole.BUYER),
        seller_rating_about_buyer=by_role.get(PartyRole.SELLER),
    )


@router.post("/transactions", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def open_transaction(
    payload: TransactionOpen,
    db: Session = Depends(get_db)
):
    """Record a transaction for a thread whose offer was just accepted"""
    transaction = transaction_service.open_transaction(
        db,
        thread_id=payload.thread_id,
        listing_id=payload.listing_id,
        buyer_id=payload.buyer_id,
        seller_id=payload.seller_id,
    )
    return serialize_transaction(transaction)


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: int,
    db: Session = Depends(get_db)
):
    return serialize_transaction(transaction_service.get_transaction(db, transaction_id))


@router.get("/threads/{thread_id}/transaction", response_model=TransactionResponse)
def get_thread_transaction(
    thread_id: str,
    db: Session = Depends(get_db)
):
    return serialize_transaction(transaction_service.get_transaction_for_thread(db, thread_id))


@router.post("/transactions/{transaction_id}/mark-complete", response_model=TransactionResponse)
def mark_complete(
    transaction_id: int,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Declare the exchange done from the caller's side (safe to retry)"""
    transaction = transaction_service.mark_complete(db, transaction_id, current_user_id)
    return serialize_transaction(transaction)


@router.post("/transactions/{transaction_id}/agree", response_model=TransactionResponse)
def agree(
    transaction_id: int,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Confirm the other party's completion claim"""
    transaction = transaction_service.agree(db, transaction_id, current_user_id)
    return serialize_transaction(transaction)


@router.post("/transactions/{transaction_id}/disagree", response_model=TransactionResponse)
def disagree(
    transaction_id: int,
    payload: DisagreeRequest,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Report a problem and send the transaction to dispute review"""
    transaction = transaction_service.disagree(db, transaction_id, current_user_id, payload.reason)
    return serialize_transaction(transaction)


@router.get("/transactions/{transaction_id}/timeline", response_model=List[TransactionEventResponse])
def get_timeline(
    transaction_id: int,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    return transaction_service.get_timeline(db, transaction_id, current_user_id)


@router.get("/users/{user_id}/transactions", response_model=UserTransactionHistoryResponse)
def get_user_transactions(
    user_id: str,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Transaction history for a user with each side's rating of the other"""
    transactions = transaction_service.list_user_transactions(db, user_id, skip=skip, limit=limit)
    completed_sales, completed_purchases = transaction_service.count_completed(db, user_id)
    return UserTransactionHistoryResponse(
        transactions=[serialize_history_entry(tx) for tx in transactions],
        completed_sales=completed_sales,
        completed_purchases=completed_purchases,
    )
