"""Discounts router: master maintenance (not applied to invoices)."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_actor
from app.auth.schemas import Actor
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import DiscountCreate, DiscountResponse
from . import service

router = APIRouter(prefix="/api/v1/discounts", tags=["discounts"])


@router.post("", response_model=DiscountResponse, status_code=status.HTTP_201_CREATED)
async def create_discount(
    payload: DiscountCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> DiscountResponse:
    try:
        return await service.create_discount(db, actor, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[DiscountResponse])
async def list_discounts(
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> List[DiscountResponse]:
    try:
        return await service.list_discounts(db, actor, active_only=active_only)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{discount_id}/active", response_model=DiscountResponse)
async def set_discount_active(
    discount_id: UUID,
    is_active: bool = Query(...),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> DiscountResponse:
    try:
        return await service.set_discount_active(db, actor, discount_id, is_active)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{discount_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_discount(
    discount_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> None:
    try:
        await service.delete_discount(db, actor, discount_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
