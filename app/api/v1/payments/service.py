"""
Payment recorder: the only write path that increases an invoice's paid_amount.

The payment insert and the invoice update share one transaction. The invoice update only
applies if paid_amount and status still hold the values the balance check read, so two
payments that both passed the check against the same read cannot jointly overpay.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.invoices.service import CENT, compute_balance, validate_amount
from app.auth.rbac import BILLING_ROLES, READ_ROLES, ensure_role
from app.auth.schemas import Actor
from app.core.enums import InvoiceStatus, PaymentMethod, PaymentStatus
from app.core.exceptions import IntegrityViolationError, NotFoundError, ValidationError
from app.core.logging import get_logger
from app.core.models import Invoice, Payment, Student
from app.core.sequences import SequenceAllocator, is_allocation_conflict
from app.core.timeutils import local_today

from .schemas import PaymentCreate, PaymentListItem, PaymentRecordedResponse, PaymentResponse

logger = get_logger("payments")

BALANCE_EXCEEDED_MESSAGE = "amount exceeds balance due"

# Stored statuses that cannot take a payment regardless of balance
_CLOSED_FOR_PAYMENT = (InvoiceStatus.draft.value, InvoiceStatus.cancelled.value)


def _to_uuid(val):
    if val is None:
        return None
    return val if isinstance(val, UUID) else UUID(str(val))


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def _payment_fields(p: Payment) -> dict:
    return dict(
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


async def record_payment(
    db: AsyncSession,
    actor: Actor,
    payload: PaymentCreate,
    today: Optional[date] = None,
) -> PaymentRecordedResponse:
    ensure_role(actor, BILLING_ROLES)
    today = today or local_today()
    for attempt in range(2):
        try:
            return await _record_payment_once(db, actor, payload, today)
        except IntegrityError as e:
            await db.rollback()
            if attempt == 0 and is_allocation_conflict(e, "transaction_id"):
                logger.warning("transaction_id_conflict_retry", extra={"invoice_id": payload.invoice_id})
                continue
            raise IntegrityViolationError("Could not record payment: conflicting data in store")
        except Exception:
            await db.rollback()
            raise
    raise IntegrityViolationError("Could not allocate a unique transaction id")


async def _record_payment_once(
    db: AsyncSession,
    actor: Actor,
    payload: PaymentCreate,
    today: date,
) -> PaymentRecordedResponse:
    invoice = (
        await db.execute(
            select(Invoice).where(Invoice.id == payload.invoice_id).execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if not invoice:
        raise NotFoundError("Invoice not found")
    amount = validate_amount(payload.amount, "Payment amount")
    if invoice.status in _CLOSED_FOR_PAYMENT:
        raise ValidationError(f"Cannot record a payment against a {invoice.status} invoice")

    balance_due = compute_balance(invoice)
    if amount > balance_due:
        logger.info(
            "payment_rejected_over_balance",
            extra={"invoice_id": invoice.id, "amount": amount, "balance_due": balance_due},
        )
        raise ValidationError(f"{BALANCE_EXCEEDED_MESSAGE} ({balance_due})")

    transaction_id = await SequenceAllocator(db).next_transaction_id(today)
    payment = Payment(
        invoice_id=invoice.id,
        transaction_id=transaction_id,
        amount=amount,
        payment_method=PaymentMethod(payload.payment_method).value,
        status=PaymentStatus.completed.value,
        reference_number=(payload.reference_number or "").strip() or None,
        recorded_by=actor.id,
    )
    db.add(payment)
    await db.flush()

    # Money math stays in Decimal; SQLite would add these as floats
    new_paid = (_to_decimal(invoice.paid_amount) + amount).quantize(CENT)
    new_status = InvoiceStatus.paid if new_paid >= _to_decimal(invoice.amount) else InvoiceStatus.partial
    result = await db.execute(
        update(Invoice)
        .where(
            Invoice.id == invoice.id,
            Invoice.status == invoice.status,
            Invoice.paid_amount == invoice.paid_amount,
        )
        .values(
            paid_amount=new_paid,
            status=new_status.value,
            updated_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        # Another payment committed after our balance read
        await db.rollback()
        logger.info("payment_rejected_concurrent_update", extra={"invoice_id": payload.invoice_id, "amount": amount})
        raise ValidationError(BALANCE_EXCEEDED_MESSAGE)

    await db.commit()
    await db.refresh(invoice)
    await db.refresh(payment)
    logger.info(
        "payment_recorded",
        extra={
            "payment_id": payment.id,
            "transaction_id": transaction_id,
            "invoice_id": invoice.id,
            "amount": amount,
            "invoice_status": invoice.status,
            "actor_id": actor.id,
        },
    )
    return PaymentRecordedResponse(
        **_payment_fields(payment),
        invoice_number=invoice.invoice_number,
        invoice_amount=_to_decimal(invoice.amount),
        invoice_paid_amount=_to_decimal(invoice.paid_amount),
        invoice_status=invoice.status,
        balance_due=compute_balance(invoice),
    )


async def get_payment(db: AsyncSession, actor: Actor, payment_id: UUID) -> PaymentResponse:
    ensure_role(actor, READ_ROLES)
    p = await db.get(Payment, payment_id)
    if not p:
        raise NotFoundError("Payment not found")
    return PaymentResponse(**_payment_fields(p))


async def list_payments(
    db: AsyncSession,
    actor: Actor,
    status_filter: Optional[PaymentStatus] = None,
    method: Optional[PaymentMethod] = None,
    invoice_id: Optional[UUID] = None,
    limit: Optional[int] = None,
) -> List[PaymentListItem]:
    """Payments newest first with invoice number and student placement joined."""
    ensure_role(actor, READ_ROLES)
    stmt = (
        select(Payment, Invoice.invoice_number, Student)
        .join(Invoice, Payment.invoice_id == Invoice.id)
        .join(Student, Invoice.student_id == Student.id)
    )
    if status_filter is not None:
        stmt = stmt.where(Payment.status == status_filter.value)
    if method is not None:
        stmt = stmt.where(Payment.payment_method == method.value)
    if invoice_id is not None:
        stmt = stmt.where(Payment.invoice_id == invoice_id)
    stmt = stmt.order_by(Payment.created_at.desc(), Payment.transaction_id.desc())
    if limit:
        stmt = stmt.limit(limit)
    rows = (await db.execute(stmt)).all()
    return [
        PaymentListItem(
            **_payment_fields(p),
            invoice_number=inv_no,
            student_id=_to_uuid(st.id),
            student_name=st.full_name,
            class_name=st.class_name,
            section=st.section,
        )
        for p, inv_no, st in rows
    ]
