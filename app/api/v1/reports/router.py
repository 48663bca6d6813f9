"""Reports router: dashboard counters and collection / pending-fee row sets."""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_actor
from app.auth.schemas import Actor
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    ClassWiseCollectionReport,
    DailyCollectionReport,
    DashboardCounters,
    MonthlyCollectionReport,
    PaymentModeReport,
    PendingFeesReport,
    StudentLedger,
)
from . import service

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


@router.get("/dashboard", response_model=DashboardCounters)
async def dashboard(
    as_of: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> DashboardCounters:
    try:
        return await service.get_dashboard_counters(db, actor, as_of=as_of)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/daily-collection", response_model=DailyCollectionReport)
async def daily_collection(
    day: Optional[date] = Query(None, alias="date", description="Defaults to today in the report timezone"),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> DailyCollectionReport:
    try:
        return await service.get_daily_collection(db, actor, day)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/monthly-collection", response_model=MonthlyCollectionReport)
async def monthly_collection(
    year: int = Query(..., ge=2000, le=9999),
    month: int = Query(..., ge=1, le=12),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> MonthlyCollectionReport:
    try:
        return await service.get_monthly_collection(db, actor, year, month)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/pending-fees", response_model=PendingFeesReport)
async def pending_fees(
    class_name: Optional[str] = Query(None),
    as_of: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> PendingFeesReport:
    try:
        return await service.get_pending_fees(db, actor, as_of=as_of, class_name=class_name)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/class-wise-collection", response_model=ClassWiseCollectionReport)
async def class_wise_collection(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ClassWiseCollectionReport:
    try:
        return await service.get_class_wise_collection(db, actor)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/payment-modes", response_model=PaymentModeReport)
async def payment_modes(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> PaymentModeReport:
    try:
        return await service.get_payment_mode_breakdown(db, actor)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/students/{student_id}/ledger", response_model=StudentLedger)
async def student_ledger(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> StudentLedger:
    try:
        return await service.get_student_ledger(db, actor, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
