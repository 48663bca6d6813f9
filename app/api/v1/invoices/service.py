"""Invoice engine: creation from line items, balance and read-time status derivation."""

from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.api.v1.discounts.service import apply_discounts
from app.api.v1.payments.schemas import PaymentResponse
from app.auth.rbac import BILLING_ROLES, READ_ROLES, ensure_role
from app.auth.schemas import Actor
from app.core.enums import OPEN_INVOICE_STATUSES, InvoiceStatus
from app.core.exceptions import IntegrityViolationError, NotFoundError, ValidationError
from app.core.logging import get_logger
from app.core.models import Invoice, InvoiceItem, Payment, Student
from app.core.sequences import SequenceAllocator, is_allocation_conflict
from app.core.timeutils import local_today

from .schemas import (
    InvoiceCreate,
    InvoiceDetail,
    InvoiceItemCreate,
    InvoiceItemResponse,
    InvoiceListItem,
    InvoiceResponse,
    InvoiceStudent,
)

logger = get_logger("invoices")

CENT = Decimal("0.01")


def _to_uuid(val):
    if val is None:
        return None
    return val if isinstance(val, UUID) else UUID(str(val))


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def validate_amount(value, label: str = "Amount") -> Decimal:
    """Positive money value with at most two decimal places."""
    amount = _to_decimal(value)
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"{label} must be greater than zero")
    if amount != amount.quantize(CENT):
        raise ValidationError(f"{label} cannot have more than two decimal places")
    return amount.quantize(CENT)


# --- Balance and status ---
def compute_balance(invoice: Invoice) -> Decimal:
    """amount - paid_amount. A negative result means stored data is corrupt."""
    balance = _to_decimal(invoice.amount) - _to_decimal(invoice.paid_amount)
    if balance < 0:
        logger.error(
            "invoice_overpaid",
            extra={"invoice_id": invoice.id, "amount": invoice.amount, "paid_amount": invoice.paid_amount},
        )
        raise IntegrityViolationError(
            f"Invoice {invoice.invoice_number} has paid amount above invoice amount",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return balance


def derive_display_status(invoice: Invoice, as_of: date) -> InvoiceStatus:
    """Stored status, refined to overdue when an open invoice is past its due date."""
    stored = InvoiceStatus(invoice.status)
    if stored.value in OPEN_INVOICE_STATUSES and invoice.due_date < as_of:
        return InvoiceStatus.overdue
    return stored


def overdue_clause(as_of: date):
    """SQL form of derive_display_status(...) == overdue."""
    return or_(
        Invoice.status == InvoiceStatus.overdue.value,
        and_(Invoice.status.in_(OPEN_INVOICE_STATUSES), Invoice.due_date < as_of),
    )


def display_status_clause(display_status: InvoiceStatus, as_of: date):
    """SQL filter selecting invoices whose display status equals the given one."""
    if display_status == InvoiceStatus.overdue:
        return overdue_clause(as_of)
    if display_status.value in OPEN_INVOICE_STATUSES:
        return and_(Invoice.status == display_status.value, Invoice.due_date >= as_of)
    return Invoice.status == display_status.value


def _invoice_fields(inv: Invoice, as_of: date) -> dict:
    return dict(
        id=_to_uuid(inv.id),
        invoice_number=inv.invoice_number,
        student_id=_to_uuid(inv.student_id),
        amount=_to_decimal(inv.amount),
        paid_amount=_to_decimal(inv.paid_amount),
        balance_due=compute_balance(inv),
        status=inv.status,
        display_status=derive_display_status(inv, as_of),
        due_date=inv.due_date,
        description=inv.description,
        created_by=_to_uuid(inv.created_by),
        created_at=inv.created_at,
        updated_at=inv.updated_at,
    )


def _invoice_to_response(inv: Invoice, as_of: date) -> InvoiceResponse:
    return InvoiceResponse(**_invoice_fields(inv, as_of))


def _payment_to_response(p: Payment) -> PaymentResponse:
    return PaymentResponse(
        id=_to_uuid(p.id),
        invoice_id=_to_uuid(p.invoice_id),
        transaction_id=p.transaction_id,
        amount=_to_decimal(p.amount),
        payment_method=p.payment_method,
        status=p.status,
        reference_number=p.reference_number,
        recorded_by=_to_uuid(p.recorded_by),
        created_at=p.created_at,
    )


def _validate_items(items: List[InvoiceItemCreate]) -> List[InvoiceItemCreate]:
    if not items:
        raise ValidationError("Please add at least one invoice item")
    cleaned = []
    for idx, item in enumerate(items, start=1):
        description = (item.description or "").strip()
        if not description:
            raise ValidationError(f"Item {idx} needs a description")
        amount = validate_amount(item.amount, f"Item {idx} amount")
        cleaned.append(InvoiceItemCreate(description=description, amount=amount))
    return cleaned


async def _load_invoice(db: AsyncSession, invoice_id: UUID, with_details: bool = False) -> Optional[Invoice]:
    stmt = select(Invoice).where(Invoice.id == invoice_id).execution_options(populate_existing=True)
    if with_details:
        stmt = stmt.options(
            selectinload(Invoice.student),
            selectinload(Invoice.items),
            selectinload(Invoice.payments),
        )
    return (await db.execute(stmt)).scalar_one_or_none()


# --- Create ---
async def create_invoice(
    db: AsyncSession,
    actor: Actor,
    payload: InvoiceCreate,
    today: Optional[date] = None,
) -> InvoiceDetail:
    """
    Validate items, snapshot their total as the invoice amount and persist the invoice
    as pending with a freshly allocated invoice number. Items are written once here and
    never edited afterwards.
    """
    ensure_role(actor, BILLING_ROLES)
    items = apply_discounts(_validate_items(payload.items), [])
    total = sum((i.amount for i in items), Decimal("0"))
    today = today or local_today()

    student = await db.get(Student, payload.student_id)
    if not student:
        raise NotFoundError("Student not found")
    if not student.is_active:
        raise ValidationError("Cannot invoice an inactive student")

    for attempt in range(2):
        try:
            invoice_number = await SequenceAllocator(db).next_invoice_number(today)
            invoice = Invoice(
                invoice_number=invoice_number,
                student_id=payload.student_id,
                amount=total,
                paid_amount=Decimal("0"),
                status=InvoiceStatus.pending.value,
                due_date=payload.due_date,
                description=(payload.description or "").strip() or None,
                created_by=actor.id,
            )
            invoice.items = [
                InvoiceItem(description=i.description, amount=i.amount, position=pos)
                for pos, i in enumerate(items)
            ]
            db.add(invoice)
            await db.flush()
            await db.commit()
            break
        except IntegrityError as e:
            await db.rollback()
            if attempt == 0 and is_allocation_conflict(e, "invoice_number"):
                logger.warning("invoice_number_conflict_retry", extra={"student_id": payload.student_id})
                continue
            raise IntegrityViolationError("Could not create invoice: conflicting data in store")

    logger.info(
        "invoice_created",
        extra={
            "invoice_id": invoice.id,
            "invoice_number": invoice.invoice_number,
            "student_id": payload.student_id,
            "amount": total,
            "actor_id": actor.id,
        },
    )
    return await get_invoice(db, actor, invoice.id, as_of=today)


# --- Read ---
async def get_invoice(
    db: AsyncSession,
    actor: Actor,
    invoice_id: UUID,
    as_of: Optional[date] = None,
) -> InvoiceDetail:
    ensure_role(actor, READ_ROLES)
    inv = await _load_invoice(db, invoice_id, with_details=True)
    if not inv:
        raise NotFoundError("Invoice not found")
    as_of = as_of or local_today()
    return InvoiceDetail(
        **_invoice_fields(inv, as_of),
        student=InvoiceStudent.model_validate(inv.student),
        items=[InvoiceItemResponse.model_validate(i) for i in inv.items],
        payments=[_payment_to_response(p) for p in inv.payments],
    )


async def list_invoices(
    db: AsyncSession,
    actor: Actor,
    display_status: Optional[InvoiceStatus] = None,
    student_id: Optional[UUID] = None,
    search: Optional[str] = None,
    as_of: Optional[date] = None,
) -> List[InvoiceListItem]:
    """Invoices newest first, filtered on the read-time status."""
    ensure_role(actor, READ_ROLES)
    as_of = as_of or local_today()
    stmt = select(Invoice, Student).join(Student, Invoice.student_id == Student.id)
    if display_status is not None:
        stmt = stmt.where(display_status_clause(display_status, as_of))
    if student_id is not None:
        stmt = stmt.where(Invoice.student_id == student_id)
    if search:
        term = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Invoice.invoice_number).like(term),
                func.lower(Student.first_name + " " + Student.last_name).like(term),
            )
        )
    stmt = stmt.order_by(Invoice.created_at.desc(), Invoice.invoice_number.desc()).execution_options(
        populate_existing=True
    )
    rows = (await db.execute(stmt)).all()
    return [
        InvoiceListItem(
            **_invoice_fields(inv, as_of),
            student_name=st.full_name,
            class_name=st.class_name,
            section=st.section,
        )
        for inv, st in rows
    ]


async def list_open_invoices(db: AsyncSession, actor: Actor, as_of: Optional[date] = None) -> List[InvoiceListItem]:
    """Invoices that can still take a payment (stored status pending, partial or overdue)."""
    ensure_role(actor, READ_ROLES)
    as_of = as_of or local_today()
    stmt = (
        select(Invoice, Student)
        .join(Student, Invoice.student_id == Student.id)
        .where(Invoice.status.in_(OPEN_INVOICE_STATUSES + (InvoiceStatus.overdue.value,)))
        .order_by(Invoice.created_at.desc())
        .execution_options(populate_existing=True)
    )
    rows = (await db.execute(stmt)).all()
    return [
        InvoiceListItem(
            **_invoice_fields(inv, as_of),
            student_name=st.full_name,
            class_name=st.class_name,
            section=st.section,
        )
        for inv, st in rows
    ]


# --- Cancel / delete ---
async def cancel_invoice(
    db: AsyncSession,
    actor: Actor,
    invoice_id: UUID,
    as_of: Optional[date] = None,
) -> InvoiceResponse:
    ensure_role(actor, BILLING_ROLES)
    inv = await _load_invoice(db, invoice_id)
    if not inv:
        raise NotFoundError("Invoice not found")
    if inv.status == InvoiceStatus.cancelled.value:
        raise ValidationError("Invoice is already cancelled")
    if _to_decimal(inv.paid_amount) > 0:
        raise ValidationError("Cannot cancel an invoice that has payments")
    inv.status = InvoiceStatus.cancelled.value
    await db.commit()
    await db.refresh(inv)
    logger.info("invoice_cancelled", extra={"invoice_id": inv.id, "actor_id": actor.id})
    return _invoice_to_response(inv, as_of or local_today())


async def delete_invoice(db: AsyncSession, actor: Actor, invoice_id: UUID) -> None:
    """Hard delete. Refused once any payment references the invoice."""
    ensure_role(actor, BILLING_ROLES)
    inv = await _load_invoice(db, invoice_id, with_details=True)
    if not inv:
        raise NotFoundError("Invoice not found")
    if inv.payments:
        raise ValidationError("Cannot delete an invoice that has payments")
    await db.delete(inv)
    await db.commit()
    logger.info("invoice_deleted", extra={"invoice_id": invoice_id, "actor_id": actor.id})
