"""Discount master maintenance. Discounts are not applied to invoices."""

from typing import List, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import BILLING_ROLES, ensure_role
from app.auth.schemas import Actor
from app.core.exceptions import NotFoundError
from app.core.logging import get_logger
from app.core.models import Discount

from .schemas import DiscountCreate, DiscountResponse

logger = get_logger("discounts")


def apply_discounts(items: list, discounts: Sequence[Discount]) -> list:
    """
    Extension point for discount application at invoice creation.

    No rule for combining discounts with line items exists yet, so items are returned
    unchanged.
    """
    return list(items)


async def create_discount(db: AsyncSession, actor: Actor, payload: DiscountCreate) -> DiscountResponse:
    ensure_role(actor, BILLING_ROLES)
    obj = Discount(
        name=payload.name.strip(),
        discount_type=payload.discount_type.value,
        value=payload.value,
        applicability=(payload.applicability or "").strip() or None,
        is_active=True,
    )
    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    logger.info("discount_created", extra={"discount_id": obj.id, "actor_id": actor.id})
    return DiscountResponse.model_validate(obj)


async def list_discounts(
    db: AsyncSession,
    actor: Actor,
    active_only: bool = False,
) -> List[DiscountResponse]:
    ensure_role(actor, BILLING_ROLES)
    stmt = select(Discount).order_by(Discount.created_at.desc())
    if active_only:
        stmt = stmt.where(Discount.is_active.is_(True))
    rows = (await db.execute(stmt)).scalars().all()
    return [DiscountResponse.model_validate(d) for d in rows]


async def set_discount_active(
    db: AsyncSession,
    actor: Actor,
    discount_id: UUID,
    is_active: bool,
) -> DiscountResponse:
    ensure_role(actor, BILLING_ROLES)
    obj = await db.get(Discount, discount_id)
    if not obj:
        raise NotFoundError("Discount not found")
    obj.is_active = is_active
    await db.commit()
    await db.refresh(obj)
    return DiscountResponse.model_validate(obj)


async def delete_discount(db: AsyncSession, actor: Actor, discount_id: UUID) -> None:
    ensure_role(actor, BILLING_ROLES)
    obj = await db.get(Discount, discount_id)
    if not obj:
        raise NotFoundError("Discount not found")
    await db.delete(obj)
    await db.commit()
