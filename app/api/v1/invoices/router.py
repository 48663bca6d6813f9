"""Invoices router: raise, inspect and cancel fee invoices."""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_actor
from app.auth.schemas import Actor
from app.core.enums import InvoiceStatus
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import InvoiceCreate, InvoiceDetail, InvoiceListItem, InvoiceResponse
from . import service

router = APIRouter(prefix="/api/v1/invoices", tags=["invoices"])


@router.post("", response_model=InvoiceDetail, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    payload: InvoiceCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> InvoiceDetail:
    """Create a pending invoice from line items. Admin or accountant only."""
    try:
        return await service.create_invoice(db, actor, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[InvoiceListItem])
async def list_invoices(
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status", description="Display status, overdue included"),
    student_id: Optional[UUID] = Query(None),
    search: Optional[str] = Query(None, description="Invoice number or student name"),
    as_of: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> List[InvoiceListItem]:
    try:
        return await service.list_invoices(
            db,
            actor,
            display_status=status_filter,
            student_id=student_id,
            search=search,
            as_of=as_of,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/open", response_model=List[InvoiceListItem])
async def list_open_invoices(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> List[InvoiceListItem]:
    """Invoices a payment can still be recorded against."""
    try:
        return await service.list_open_invoices(db, actor)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{invoice_id}", response_model=InvoiceDetail)
async def get_invoice(
    invoice_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> InvoiceDetail:
    try:
        return await service.get_invoice(db, actor, invoice_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{invoice_id}/cancel", response_model=InvoiceResponse)
async def cancel_invoice(
    invoice_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> InvoiceResponse:
    try:
        return await service.cancel_invoice(db, actor, invoice_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(
    invoice_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> None:
    try:
        await service.delete_invoice(db, actor, invoice_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
