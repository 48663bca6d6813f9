"""
Read-only projections over the ledger for dashboards and printable reports.

Nothing here writes. Overdue is decided with the same predicate as invoice listings
(see invoices.service.overdue_clause), so dashboard counts and report rows agree.
"""

import calendar
from collections import OrderedDict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.invoices.service import (
    _invoice_to_response,
    _payment_to_response,
    compute_balance,
    derive_display_status,
    overdue_clause,
)
from app.api.v1.students.schemas import StudentResponse
from app.auth.rbac import READ_ROLES, ensure_role
from app.auth.schemas import Actor
from app.core.enums import OPEN_INVOICE_STATUSES, InvoiceStatus, PaymentStatus
from app.core.exceptions import NotFoundError, ValidationError
from app.core.models import Invoice, Payment, Student
from app.core.timeutils import day_bounds, local_today, range_bounds, to_local_date

from .schemas import (
    ClassCollection,
    ClassWiseCollectionReport,
    CollectionRow,
    DailyCollectionReport,
    DashboardCounters,
    DayTotal,
    MonthlyCollectionReport,
    PaymentModeReport,
    PaymentModeShare,
    PendingFeeRow,
    PendingFeesReport,
    StudentLedger,
)

CENT = Decimal("0.01")
ONE_PLACE = Decimal("0.1")

# Stored statuses listed in the pending fees report
PENDING_REPORT_STATUSES = OPEN_INVOICE_STATUSES + (InvoiceStatus.overdue.value,)


def _money(val) -> Decimal:
    if val is None:
        return Decimal("0.00")
    d = val if isinstance(val, Decimal) else Decimal(str(val))
    return d.quantize(CENT)


def percentage_of(part: Decimal, whole: Decimal) -> Decimal:
    """part / whole * 100 to one decimal place; 0 when whole is 0."""
    if not whole:
        return Decimal("0.0")
    return (part * 100 / whole).quantize(ONE_PLACE, rounding=ROUND_HALF_UP)


def _completed():
    return Payment.status == PaymentStatus.completed.value


async def _scalar(db: AsyncSession, stmt):
    return (await db.execute(stmt)).scalar()


async def _collected_between(db: AsyncSession, start, end) -> Decimal:
    total = await _scalar(
        db,
        select(func.coalesce(func.sum(Payment.amount), 0)).where(
            _completed(),
            Payment.created_at >= start,
            Payment.created_at < end,
        ),
    )
    return _money(total)


# --- Dashboard ---
async def get_dashboard_counters(
    db: AsyncSession,
    actor: Actor,
    as_of: Optional[date] = None,
) -> DashboardCounters:
    """
    Headline counts for the dashboard.

    pending_invoices counts open invoices not yet past due; overdue_invoices counts the rest
    of the open ones plus rows stored as overdue. outstanding_amount is the balance over both.
    """
    ensure_role(actor, READ_ROLES)
    as_of = as_of or local_today()

    total_students = await _scalar(db, select(func.count(Student.id)))
    active_students = await _scalar(db, select(func.count(Student.id)).where(Student.is_active.is_(True)))
    total_collected = await _scalar(db, select(func.coalesce(func.sum(Payment.amount), 0)).where(_completed()))
    start, end = day_bounds(as_of)
    today_collection = await _collected_between(db, start, end)

    pending_invoices = await _scalar(
        db,
        select(func.count(Invoice.id)).where(
            Invoice.status.in_(OPEN_INVOICE_STATUSES),
            Invoice.due_date >= as_of,
        ),
    )
    overdue_invoices = await _scalar(db, select(func.count(Invoice.id)).where(overdue_clause(as_of)))
    outstanding = await _scalar(
        db,
        select(func.coalesce(func.sum(Invoice.amount - Invoice.paid_amount), 0)).where(
            Invoice.status.in_(PENDING_REPORT_STATUSES)
        ),
    )

    return DashboardCounters(
        as_of=as_of,
        total_students=total_students or 0,
        active_students=active_students or 0,
        total_collected=_money(total_collected),
        today_collection=today_collection,
        pending_invoices=pending_invoices or 0,
        overdue_invoices=overdue_invoices or 0,
        outstanding_amount=_money(outstanding),
    )


# --- Collections ---
async def get_daily_collection(db: AsyncSession, actor: Actor, day: Optional[date] = None) -> DailyCollectionReport:
    """Completed payments whose created_at falls on the given day in the report timezone."""
    ensure_role(actor, READ_ROLES)
    day = day or local_today()
    start, end = day_bounds(day)
    stmt = (
        select(Payment, Invoice.invoice_number, Student)
        .join(Invoice, Payment.invoice_id == Invoice.id)
        .join(Student, Invoice.student_id == Student.id)
        .where(_completed(), Payment.created_at >= start, Payment.created_at < end)
        .order_by(Payment.created_at, Payment.transaction_id)
    )
    rows = (await db.execute(stmt)).all()
    payments = [
        CollectionRow(
            payment_id=p.id,
            transaction_id=p.transaction_id,
            invoice_number=inv_no,
            student_name=st.full_name,
            class_name=st.class_name,
            section=st.section,
            amount=_money(p.amount),
            payment_method=p.payment_method,
            reference_number=p.reference_number,
            created_at=p.created_at,
        )
        for p, inv_no, st in rows
    ]
    total = sum((r.amount for r in payments), Decimal("0.00"))
    return DailyCollectionReport(report_date=day, payments=payments, count=len(payments), total=_money(total))


async def get_monthly_collection(db: AsyncSession, actor: Actor, year: int, month: int) -> MonthlyCollectionReport:
    """Per-day completed totals for a calendar month; days without payments are omitted."""
    ensure_role(actor, READ_ROLES)
    if not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12")
    last = calendar.monthrange(year, month)[1]
    start, end = range_bounds(date(year, month, 1), date(year, month, last))
    rows = (
        await db.execute(
            select(Payment.created_at, Payment.amount)
            .where(_completed(), Payment.created_at >= start, Payment.created_at < end)
            .order_by(Payment.created_at)
        )
    ).all()

    # Local calendar day of a UTC timestamp is not expressible portably in SQL
    per_day = OrderedDict()
    for created_at, amount in rows:
        d = to_local_date(created_at)
        count, total = per_day.get(d, (0, Decimal("0.00")))
        per_day[d] = (count + 1, total + _money(amount))

    days = [DayTotal(day=d, count=c, total=_money(t)) for d, (c, t) in per_day.items()]
    return MonthlyCollectionReport(
        year=year,
        month=month,
        days=days,
        count=sum(d.count for d in days),
        total=_money(sum((d.total for d in days), Decimal("0.00"))),
    )


# --- Pending fees ---
async def get_pending_fees(
    db: AsyncSession,
    actor: Actor,
    as_of: Optional[date] = None,
    class_name: Optional[str] = None,
) -> PendingFeesReport:
    """Invoices with a stored status of pending, partial or overdue, earliest due first."""
    ensure_role(actor, READ_ROLES)
    as_of = as_of or local_today()
    stmt = (
        select(Invoice, Student)
        .join(Student, Invoice.student_id == Student.id)
        .where(Invoice.status.in_(PENDING_REPORT_STATUSES))
    )
    if class_name:
        stmt = stmt.where(Student.class_name == class_name)
    stmt = stmt.order_by(Invoice.due_date, Invoice.invoice_number).execution_options(populate_existing=True)
    rows = (await db.execute(stmt)).all()

    invoices = []
    for inv, st in rows:
        invoices.append(
            PendingFeeRow(
                invoice_id=inv.id,
                invoice_number=inv.invoice_number,
                student_id=st.id,
                student_name=st.full_name,
                admission_number=st.admission_number,
                class_name=st.class_name,
                section=st.section,
                parent_name=st.parent_name,
                parent_phone=st.parent_phone,
                amount=_money(inv.amount),
                paid_amount=_money(inv.paid_amount),
                balance_due=_money(compute_balance(inv)),
                due_date=inv.due_date,
                status=inv.status,
                display_status=derive_display_status(inv, as_of),
            )
        )
    total = sum((r.balance_due for r in invoices), Decimal("0.00"))
    return PendingFeesReport(as_of=as_of, invoices=invoices, total=_money(total))


# --- Breakdowns ---
async def get_class_wise_collection(db: AsyncSession, actor: Actor) -> ClassWiseCollectionReport:
    """Completed payments summed per class of the invoiced student, largest first."""
    ensure_role(actor, READ_ROLES)
    rows = (
        await db.execute(
            select(Student.class_name, func.sum(Payment.amount))
            .select_from(Payment)
            .join(Invoice, Payment.invoice_id == Invoice.id)
            .join(Student, Invoice.student_id == Student.id)
            .where(_completed())
            .group_by(Student.class_name)
        )
    ).all()
    totals = sorted(((cls, _money(t)) for cls, t in rows), key=lambda r: (-r[1], r[0]))
    grand = sum((t for _, t in totals), Decimal("0.00"))
    breakdown = [
        ClassCollection(class_name=cls, total=t, percentage=percentage_of(t, grand)) for cls, t in totals
    ]
    return ClassWiseCollectionReport(breakdown=breakdown, total=_money(grand))


async def get_payment_mode_breakdown(db: AsyncSession, actor: Actor) -> PaymentModeReport:
    ensure_role(actor, READ_ROLES)
    rows = (
        await db.execute(
            select(Payment.payment_method, func.count(Payment.id), func.sum(Payment.amount))
            .where(_completed())
            .group_by(Payment.payment_method)
        )
    ).all()
    totals = sorted(((m, c, _money(t)) for m, c, t in rows), key=lambda r: (-r[2], r[0]))
    grand = sum((t for _, _, t in totals), Decimal("0.00"))
    breakdown = [
        PaymentModeShare(payment_method=m, count=c, total=t, percentage=percentage_of(t, grand))
        for m, c, t in totals
    ]
    return PaymentModeReport(breakdown=breakdown, total=_money(grand))


# --- Student ledger ---
async def get_student_ledger(
    db: AsyncSession,
    actor: Actor,
    student_id: UUID,
    as_of: Optional[date] = None,
) -> StudentLedger:
    """
    Everything billed to and paid by one student.
    Cancelled invoices are listed but excluded from total_billed.
    """
    ensure_role(actor, READ_ROLES)
    student = await db.get(Student, student_id)
    if not student:
        raise NotFoundError("Student not found")
    as_of = as_of or local_today()

    invoices = (
        (
            await db.execute(
                select(Invoice)
                .where(Invoice.student_id == student_id)
                .order_by(Invoice.created_at, Invoice.invoice_number)
                .execution_options(populate_existing=True)
            )
        )
        .scalars()
        .all()
    )
    payments = (
        (
            await db.execute(
                select(Payment)
                .join(Invoice, Payment.invoice_id == Invoice.id)
                .where(Invoice.student_id == student_id)
                .order_by(Payment.created_at, Payment.transaction_id)
            )
        )
        .scalars()
        .all()
    )

    billed = sum(
        (_money(inv.amount) for inv in invoices if inv.status != InvoiceStatus.cancelled.value),
        Decimal("0.00"),
    )
    paid = sum(
        (_money(p.amount) for p in payments if p.status == PaymentStatus.completed.value),
        Decimal("0.00"),
    )
    return StudentLedger(
        student=StudentResponse.model_validate(student),
        invoices=[_invoice_to_response(inv, as_of) for inv in invoices],
        payments=[_payment_to_response(p) for p in payments],
        total_billed=_money(billed),
        total_paid=_money(paid),
        outstanding=_money(billed - paid),
    )
