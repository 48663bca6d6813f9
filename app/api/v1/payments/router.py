"""Payments router: manual payment entry and payment history."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_actor
from app.auth.schemas import Actor
from app.core.enums import PaymentMethod, PaymentStatus
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import PaymentCreate, PaymentListItem, PaymentRecordedResponse, PaymentResponse
from . import service

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


@router.post("", response_model=PaymentRecordedResponse, status_code=status.HTTP_201_CREATED)
async def record_payment(
    payload: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> PaymentRecordedResponse:
    """Record a completed payment and move the invoice to partial or paid."""
    try:
        return await service.record_payment(db, actor, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[PaymentListItem])
async def list_payments(
    status_filter: Optional[PaymentStatus] = Query(None, alias="status"),
    payment_method: Optional[PaymentMethod] = Query(None),
    invoice_id: Optional[UUID] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> List[PaymentListItem]:
    try:
        return await service.list_payments(
            db,
            actor,
            status_filter=status_filter,
            method=payment_method,
            invoice_id=invoice_id,
            limit=limit,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> PaymentResponse:
    try:
        return await service.get_payment(db, actor, payment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
