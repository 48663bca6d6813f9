from datetime import date, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.invoices import service as invoices
from app.api.v1.invoices.schemas import InvoiceCreate, InvoiceItemCreate
from app.core.enums import AppRole, InvoiceStatus
from app.core.exceptions import AuthorizationError, IntegrityViolationError, NotFoundError, ValidationError
from app.core.models import Invoice, InvoiceItem


def _payload(student_id, *amounts, due_date=date(2026, 2, 10)) -> InvoiceCreate:
    return InvoiceCreate(
        student_id=student_id,
        due_date=due_date,
        description="Term 2 fees",
        items=[InvoiceItemCreate(description=f"Item {i}", amount=Decimal(a)) for i, a in enumerate(amounts, 1)],
    )


@pytest.mark.asyncio
async def test_create_invoice_sums_items(db_session: AsyncSession, accountant, make_student) -> None:
    student = await make_student()
    inv = await invoices.create_invoice(
        db_session, accountant, _payload(student.id, "5000", "1500.50"), today=date(2026, 1, 5)
    )

    assert inv.amount == Decimal("6500.50")
    assert inv.paid_amount == Decimal("0")
    assert inv.balance_due == Decimal("6500.50")
    assert inv.status == InvoiceStatus.pending
    assert inv.display_status == InvoiceStatus.pending
    assert inv.invoice_number == "INV-2026-00001"
    assert inv.student.admission_number == student.admission_number
    assert [i.description for i in inv.items] == ["Item 1", "Item 2"]
    assert inv.payments == []
    assert inv.created_by == accountant.id


@pytest.mark.asyncio
async def test_invoice_numbers_increase(db_session: AsyncSession, admin, make_student) -> None:
    student = await make_student()
    first = await invoices.create_invoice(db_session, admin, _payload(student.id, "100"), today=date(2026, 3, 1))
    second = await invoices.create_invoice(db_session, admin, _payload(student.id, "200"), today=date(2026, 3, 1))
    assert first.invoice_number == "INV-2026-00001"
    assert second.invoice_number == "INV-2026-00002"


@pytest.mark.asyncio
async def test_create_invoice_rejects_empty_items(db_session: AsyncSession, admin, make_student) -> None:
    student = await make_student()
    with pytest.raises(ValidationError):
        await invoices.create_invoice(db_session, admin, _payload(student.id))

    assert (await db_session.execute(select(Invoice))).scalars().all() == []


@pytest.mark.asyncio
async def test_create_invoice_rejects_negative_item(db_session: AsyncSession, admin, make_student) -> None:
    student = await make_student()
    with pytest.raises(ValidationError):
        await invoices.create_invoice(db_session, admin, _payload(student.id, "1000", "-500"))

    assert (await db_session.execute(select(Invoice))).scalars().all() == []
    assert (await db_session.execute(select(InvoiceItem))).scalars().all() == []


@pytest.mark.asyncio
async def test_create_invoice_rejects_sub_cent_amount(db_session: AsyncSession, admin, make_student) -> None:
    student = await make_student()
    with pytest.raises(ValidationError):
        await invoices.create_invoice(db_session, admin, _payload(student.id, "10.005"))


@pytest.mark.asyncio
async def test_create_invoice_requires_billing_role(db_session: AsyncSession, staff, make_student) -> None:
    student = await make_student()
    with pytest.raises(AuthorizationError):
        await invoices.create_invoice(db_session, staff, _payload(student.id, "1000"))


@pytest.mark.asyncio
async def test_create_invoice_unknown_or_inactive_student(db_session: AsyncSession, admin, make_student) -> None:
    from uuid import uuid4

    with pytest.raises(NotFoundError):
        await invoices.create_invoice(db_session, admin, _payload(uuid4(), "1000"))

    inactive = await make_student(is_active=False)
    with pytest.raises(ValidationError):
        await invoices.create_invoice(db_session, admin, _payload(inactive.id, "1000"))


def test_derive_display_status() -> None:
    due = date(2026, 1, 31)
    inv = Invoice(status="pending", due_date=due, amount=Decimal("100"), paid_amount=Decimal("0"))
    assert invoices.derive_display_status(inv, due) == InvoiceStatus.pending
    assert invoices.derive_display_status(inv, due + timedelta(days=1)) == InvoiceStatus.overdue

    inv.status = "partial"
    assert invoices.derive_display_status(inv, due + timedelta(days=1)) == InvoiceStatus.overdue

    inv.status = "paid"
    assert invoices.derive_display_status(inv, due + timedelta(days=30)) == InvoiceStatus.paid

    inv.status = "cancelled"
    assert invoices.derive_display_status(inv, due + timedelta(days=30)) == InvoiceStatus.cancelled


def test_compute_balance_never_clamps() -> None:
    inv = Invoice(invoice_number="INV-X", amount=Decimal("100.00"), paid_amount=Decimal("40.00"))
    assert invoices.compute_balance(inv) == Decimal("60.00")

    inv.paid_amount = Decimal("100.01")
    with pytest.raises(IntegrityViolationError) as exc:
        invoices.compute_balance(inv)
    assert exc.value.status_code == 500


@pytest.mark.asyncio
async def test_list_invoices_filters_on_display_status(db_session: AsyncSession, admin, make_student) -> None:
    student = await make_student()
    today = date(2026, 2, 1)
    late = await invoices.create_invoice(
        db_session, admin, _payload(student.id, "100", due_date=date(2026, 1, 15)), today=today
    )
    current = await invoices.create_invoice(
        db_session, admin, _payload(student.id, "200", due_date=date(2026, 2, 28)), today=today
    )

    overdue = await invoices.list_invoices(db_session, admin, display_status=InvoiceStatus.overdue, as_of=today)
    pending = await invoices.list_invoices(db_session, admin, display_status=InvoiceStatus.pending, as_of=today)

    assert [i.id for i in overdue] == [late.id]
    assert [i.id for i in pending] == [current.id]
    # Stored status is untouched by the read
    assert overdue[0].status == InvoiceStatus.pending


@pytest.mark.asyncio
async def test_cancel_and_delete_invoice(db_session: AsyncSession, admin, make_student) -> None:
    student = await make_student()
    inv = await invoices.create_invoice(db_session, admin, _payload(student.id, "300"))

    cancelled = await invoices.cancel_invoice(db_session, admin, inv.id)
    assert cancelled.status == InvoiceStatus.cancelled
    with pytest.raises(ValidationError):
        await invoices.cancel_invoice(db_session, admin, inv.id)

    await invoices.delete_invoice(db_session, admin, inv.id)
    with pytest.raises(NotFoundError):
        await invoices.get_invoice(db_session, admin, inv.id)


@pytest.mark.asyncio
async def test_invoice_api_round(client: AsyncClient, auth_headers, make_student) -> None:
    student = await make_student()
    headers = await auth_headers(AppRole.accountant)
    body = {
        "student_id": str(student.id),
        "due_date": "2026-04-30",
        "items": [{"description": "Tuition", "amount": "4000"}, {"description": "Lab", "amount": "500"}],
    }

    response = await client.post("/api/v1/invoices", json=body, headers=headers)
    assert response.status_code == 201
    data = response.json()
    assert Decimal(data["amount"]) == Decimal("4500")
    assert data["status"] == "pending"
    assert data["student"]["class_name"] == "10"

    response = await client.get(f"/api/v1/invoices/{data['id']}", headers=headers)
    assert response.status_code == 200
    assert len(response.json()["items"]) == 2

    bad = dict(body, items=[])
    response = await client.post("/api/v1/invoices", json=bad, headers=headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_invoice_api_staff_forbidden(client: AsyncClient, auth_headers, make_student) -> None:
    student = await make_student()
    headers = await auth_headers(AppRole.staff)
    body = {
        "student_id": str(student.id),
        "due_date": "2026-04-30",
        "items": [{"description": "Tuition", "amount": "4000"}],
    }
    response = await client.post("/api/v1/invoices", json=body, headers=headers)
    assert response.status_code == 403

    response = await client.get("/api/v1/invoices", headers=headers)
    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_invoice_api_requires_token(client: AsyncClient) -> None:
    response = await client.get("/api/v1/invoices")
    assert response.status_code == 401
