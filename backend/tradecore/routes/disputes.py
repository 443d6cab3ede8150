"""
Dispute ledger read routes for the admin resolution workflow
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from ..database import get_db
from ..auth.dependencies import require_admin
from ..enums.transaction import DisputeStatus
from ..schemas.dispute import DisputeResponse
from ..services import dispute_ledger

router = APIRouter()


@router.get("/", response_model=List[DisputeResponse])
def list_disputes(
    status: Optional[DisputeStatus] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    admin_id: str = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """List disputed transactions and their reasons, newest first"""
    return dispute_ledger.list_disputes(db, status=status, skip=skip, limit=limit)


@router.get("/{transaction_id}", response_model=DisputeResponse)
def get_dispute(
    transaction_id: int,
    admin_id: str = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return dispute_ledger.get_dispute(db, transaction_id)
