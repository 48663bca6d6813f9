"""Fee structure templates: reference data for building invoices by hand."""

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.auth.rbac import BILLING_ROLES, ensure_role
from app.auth.schemas import Actor
from app.core.exceptions import NotFoundError
from app.core.logging import get_logger
from app.core.models import FeeComponent, FeeStructure

from .schemas import FeeComponentResponse, FeeStructureCreate, FeeStructureResponse

logger = get_logger("fee_structures")


def _fs_to_response(fs: FeeStructure) -> FeeStructureResponse:
    components = [FeeComponentResponse.model_validate(c) for c in fs.components]
    return FeeStructureResponse(
        id=fs.id,
        name=fs.name,
        classes=list(fs.classes or []),
        components=components,
        total_amount=sum((c.amount for c in components), Decimal("0")),
        created_at=fs.created_at,
        updated_at=fs.updated_at,
    )


async def _load(db: AsyncSession, fee_structure_id: UUID) -> Optional[FeeStructure]:
    stmt = (
        select(FeeStructure)
        .where(FeeStructure.id == fee_structure_id)
        .options(selectinload(FeeStructure.components))
        .execution_options(populate_existing=True)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def create_fee_structure(
    db: AsyncSession,
    actor: Actor,
    payload: FeeStructureCreate,
) -> FeeStructureResponse:
    ensure_role(actor, BILLING_ROLES)
    classes = [c.strip() for c in payload.classes if c and c.strip()]
    fs = FeeStructure(name=payload.name.strip(), classes=classes)
    fs.components = [
        FeeComponent(name=c.name.strip(), amount=c.amount, frequency=c.frequency.value, position=pos)
        for pos, c in enumerate(payload.components)
    ]
    db.add(fs)
    await db.commit()
    logger.info("fee_structure_created", extra={"fee_structure_id": fs.id, "actor_id": actor.id})
    return _fs_to_response(await _load(db, fs.id))


async def list_fee_structures(
    db: AsyncSession,
    actor: Actor,
    class_name: Optional[str] = None,
) -> List[FeeStructureResponse]:
    ensure_role(actor, BILLING_ROLES)
    stmt = (
        select(FeeStructure)
        .options(selectinload(FeeStructure.components))
        .order_by(FeeStructure.created_at.desc())
    )
    rows = (await db.execute(stmt)).scalars().all()
    # classes is a JSON list; filter in Python to stay backend-neutral
    if class_name:
        rows = [fs for fs in rows if class_name in (fs.classes or [])]
    return [_fs_to_response(fs) for fs in rows]


async def get_fee_structure(db: AsyncSession, actor: Actor, fee_structure_id: UUID) -> FeeStructureResponse:
    ensure_role(actor, BILLING_ROLES)
    fs = await _load(db, fee_structure_id)
    if not fs:
        raise NotFoundError("Fee structure not found")
    return _fs_to_response(fs)


async def delete_fee_structure(db: AsyncSession, actor: Actor, fee_structure_id: UUID) -> None:
    ensure_role(actor, BILLING_ROLES)
    fs = await _load(db, fee_structure_id)
    if not fs:
        raise NotFoundError("Fee structure not found")
    await db.delete(fs)
    await db.commit()
    logger.info("fee_structure_deleted", extra={"fee_structure_id": fee_structure_id, "actor_id": actor.id})
