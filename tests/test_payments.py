import asyncio
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.api.v1.invoices import service as invoices
from app.api.v1.invoices.schemas import InvoiceCreate, InvoiceItemCreate
from app.api.v1.payments import service as payments
from app.api.v1.payments.schemas import PaymentCreate
from app.core.enums import AppRole, InvoiceStatus, PaymentMethod, PaymentStatus
from app.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from app.core.models import Invoice, Payment, Student
from app.core.sequences import ensure_sequences
from app.db.session import Base


async def _invoice(db, actor, student, amount: str, due_date=date(2026, 3, 31)):
    payload = InvoiceCreate(
        student_id=student.id,
        due_date=due_date,
        items=[InvoiceItemCreate(description="Tuition", amount=Decimal(amount))],
    )
    return await invoices.create_invoice(db, actor, payload, today=date(2026, 1, 10))


def _pay(invoice_id, amount: str, method=PaymentMethod.upi) -> PaymentCreate:
    return PaymentCreate(invoice_id=invoice_id, amount=Decimal(amount), payment_method=method)


@pytest.mark.asyncio
async def test_partial_then_overpay_rejected_then_paid(db_session: AsyncSession, accountant, make_student) -> None:
    student = await make_student()
    inv = await _invoice(db_session, accountant, student, "15000")

    first = await payments.record_payment(db_session, accountant, _pay(inv.id, "6000"), today=date(2026, 1, 12))
    assert first.invoice_status == InvoiceStatus.partial
    assert first.balance_due == Decimal("9000")
    assert first.status == PaymentStatus.completed
    assert first.transaction_id == "TXN-20260112-000001"

    with pytest.raises(ValidationError) as exc:
        await payments.record_payment(db_session, accountant, _pay(inv.id, "9001"))
    assert "exceeds balance due" in exc.value.message

    # Rejected payment left nothing behind
    count = (await db_session.execute(select(func.count(Payment.id)))).scalar()
    assert count == 1

    second = await payments.record_payment(db_session, accountant, _pay(inv.id, "9000", PaymentMethod.cash))
    assert second.invoice_status == InvoiceStatus.paid
    assert second.invoice_paid_amount == Decimal("15000")
    assert second.balance_due == Decimal("0")


@pytest.mark.asyncio
async def test_first_payment_moves_to_partial(db_session: AsyncSession, admin, make_student) -> None:
    student = await make_student()
    inv = await _invoice(db_session, admin, student, "10000")

    result = await payments.record_payment(db_session, admin, _pay(inv.id, "4000"))

    assert result.invoice_status == InvoiceStatus.partial
    assert result.invoice_paid_amount == Decimal("4000")
    stored = (await db_session.execute(select(Invoice).where(Invoice.id == inv.id))).scalar_one()
    assert stored.status == "partial"
    assert Decimal(str(stored.paid_amount)) == Decimal("4000")


@pytest.mark.asyncio
async def test_exact_balance_marks_paid(db_session: AsyncSession, admin, make_student) -> None:
    student = await make_student()
    inv = await _invoice(db_session, admin, student, "2500.75")
    result = await payments.record_payment(db_session, admin, _pay(inv.id, "2500.75"))
    assert result.invoice_status == InvoiceStatus.paid

    with pytest.raises(ValidationError):
        await payments.record_payment(db_session, admin, _pay(inv.id, "0.01"))


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "total, first, second",
    [("1000.80", "1000.70", "0.10"), ("6000.10", "4999.90", "1000.20")],
)
async def test_settling_payment_is_exact_to_the_cent(
    db_session: AsyncSession, admin, make_student, total, first, second
) -> None:
    student = await make_student()
    inv = await _invoice(db_session, admin, student, total)
    await payments.record_payment(db_session, admin, _pay(inv.id, first))

    result = await payments.record_payment(db_session, admin, _pay(inv.id, second))
    assert result.invoice_status == InvoiceStatus.paid
    assert result.invoice_paid_amount == Decimal(total)
    assert result.balance_due == Decimal("0")

    stored = (
        await db_session.execute(
            select(Invoice).where(Invoice.id == inv.id).execution_options(populate_existing=True)
        )
    ).scalar_one()
    assert stored.status == "paid"
    assert Decimal(str(stored.paid_amount)) == Decimal(total)


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", ["0", "-10", "1.234"])
async def test_invalid_amount_rejected(db_session: AsyncSession, admin, make_student, amount) -> None:
    student = await make_student()
    inv = await _invoice(db_session, admin, student, "1000")
    with pytest.raises(ValidationError):
        await payments.record_payment(db_session, admin, _pay(inv.id, amount))


@pytest.mark.asyncio
async def test_unknown_invoice(db_session: AsyncSession, admin) -> None:
    with pytest.raises(NotFoundError):
        await payments.record_payment(db_session, admin, _pay(uuid4(), "100"))


@pytest.mark.asyncio
async def test_staff_cannot_record_payment(db_session: AsyncSession, admin, staff, make_student) -> None:
    student = await make_student()
    inv = await _invoice(db_session, admin, student, "1000")
    with pytest.raises(AuthorizationError):
        await payments.record_payment(db_session, staff, _pay(inv.id, "100"))

    listed = await payments.list_payments(db_session, staff)
    assert listed == []


@pytest.mark.asyncio
async def test_cancelled_invoice_takes_no_payment(db_session: AsyncSession, admin, make_student) -> None:
    student = await make_student()
    inv = await _invoice(db_session, admin, student, "1000")
    await invoices.cancel_invoice(db_session, admin, inv.id)
    with pytest.raises(ValidationError):
        await payments.record_payment(db_session, admin, _pay(inv.id, "100"))


@pytest.mark.asyncio
async def test_invoice_with_payment_cannot_be_cancelled(db_session: AsyncSession, admin, make_student) -> None:
    student = await make_student()
    inv = await _invoice(db_session, admin, student, "1000")
    await payments.record_payment(db_session, admin, _pay(inv.id, "100"))
    with pytest.raises(ValidationError):
        await invoices.cancel_invoice(db_session, admin, inv.id)
    with pytest.raises(ValidationError):
        await invoices.delete_invoice(db_session, admin, inv.id)


@pytest.mark.asyncio
async def test_list_payments_joins_student(db_session: AsyncSession, admin, make_student) -> None:
    student = await make_student(class_name="9", section="B")
    inv = await _invoice(db_session, admin, student, "1000")
    await payments.record_payment(db_session, admin, _pay(inv.id, "100", PaymentMethod.cheque))

    rows = await payments.list_payments(db_session, admin, method=PaymentMethod.cheque)
    assert len(rows) == 1
    assert rows[0].invoice_number == inv.invoice_number
    assert rows[0].class_name == "9"
    assert rows[0].section == "B"

    fetched = await payments.get_payment(db_session, admin, rows[0].id)
    assert fetched.transaction_id == rows[0].transaction_id


@pytest.mark.asyncio
async def test_concurrent_payments_cannot_overpay(tmp_path, admin) -> None:
    """Two 8000 payments race against a 10000 invoice: exactly one lands."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as db:
        await ensure_sequences(db)
        student = Student(
            admission_number="RACE-1",
            first_name="Race",
            last_name="Condition",
            class_name="8",
            section="A",
            parent_name="Parent",
            parent_phone="000",
        )
        db.add(student)
        await db.commit()
        inv = await _invoice(db, admin, student, "10000")

    async def attempt():
        async with factory() as db:
            return await payments.record_payment(db, admin, _pay(inv.id, "8000"))

    results = await asyncio.gather(attempt(), attempt(), return_exceptions=True)

    succeeded = [r for r in results if not isinstance(r, BaseException)]
    failed = [r for r in results if isinstance(r, BaseException)]
    assert len(succeeded) == 1
    assert len(failed) == 1
    assert isinstance(failed[0], ValidationError)

    async with factory() as db:
        stored = (await db.execute(select(Invoice).where(Invoice.id == inv.id))).scalar_one()
        assert Decimal(str(stored.paid_amount)) == Decimal("8000")
        assert stored.status == "partial"
        count = (await db.execute(select(func.count(Payment.id)))).scalar()
        assert count == 1

    await engine.dispose()


@pytest.mark.asyncio
async def test_payment_api(client: AsyncClient, auth_headers, db_session: AsyncSession, admin, make_student) -> None:
    student = await make_student()
    inv = await _invoice(db_session, admin, student, "5000")
    headers = await auth_headers(AppRole.accountant)

    response = await client.post(
        "/api/v1/payments",
        json={"invoice_id": str(inv.id), "amount": "5000", "payment_method": "netbanking"},
        headers=headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["invoice_status"] == "paid"
    assert data["transaction_id"].startswith("TXN-")

    response = await client.post(
        "/api/v1/payments",
        json={"invoice_id": str(inv.id), "amount": "1"},
        headers=headers,
    )
    assert response.status_code == 400
    assert "exceeds balance due" in response.json()["detail"]

    response = await client.get("/api/v1/payments", headers=headers)
    assert response.status_code == 200
    assert len(response.json()) == 1
