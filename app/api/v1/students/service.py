from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import READ_ROLES, ensure_role
from app.auth.schemas import Actor
from app.core.exceptions import IntegrityViolationError, NotFoundError, ValidationError
from app.core.logging import get_logger
from app.core.models import Invoice, Student

from .schemas import StudentCreate, StudentResponse, StudentUpdate

logger = get_logger("students")

DUPLICATE_ADMISSION_MESSAGE = "A student with this admission number already exists"


async def _get_or_404(db: AsyncSession, student_id: UUID) -> Student:
    student = await db.get(Student, student_id)
    if not student:
        raise NotFoundError("Student not found")
    return student


async def create_student(db: AsyncSession, actor: Actor, payload: StudentCreate) -> StudentResponse:
    ensure_role(actor, READ_ROLES)
    data = payload.model_dump()
    data["admission_number"] = data["admission_number"].strip()
    student = Student(**data, is_active=True)
    db.add(student)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise IntegrityViolationError(DUPLICATE_ADMISSION_MESSAGE)
    await db.refresh(student)
    logger.info("student_created", extra={"student_id": student.id, "actor_id": actor.id})
    return StudentResponse.model_validate(student)


async def list_students(
    db: AsyncSession,
    actor: Actor,
    search: Optional[str] = None,
    class_name: Optional[str] = None,
    active_only: bool = False,
) -> List[StudentResponse]:
    """Students ordered by first name; search matches name or admission number."""
    ensure_role(actor, READ_ROLES)
    stmt = select(Student)
    if search:
        term = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Student.first_name + " " + Student.last_name).like(term),
                func.lower(Student.admission_number).like(term),
            )
        )
    if class_name:
        stmt = stmt.where(Student.class_name == class_name)
    if active_only:
        stmt = stmt.where(Student.is_active.is_(True))
    stmt = stmt.order_by(Student.first_name, Student.last_name)
    rows = (await db.execute(stmt)).scalars().all()
    return [StudentResponse.model_validate(s) for s in rows]


async def get_student(db: AsyncSession, actor: Actor, student_id: UUID) -> StudentResponse:
    ensure_role(actor, READ_ROLES)
    return StudentResponse.model_validate(await _get_or_404(db, student_id))


async def update_student(
    db: AsyncSession,
    actor: Actor,
    student_id: UUID,
    payload: StudentUpdate,
) -> StudentResponse:
    ensure_role(actor, READ_ROLES)
    student = await _get_or_404(db, student_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field not in ("date_of_birth", "admission_date", "parent_email", "address"):
            continue
        setattr(student, field, value)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise IntegrityViolationError(DUPLICATE_ADMISSION_MESSAGE)
    await db.refresh(student)
    return StudentResponse.model_validate(student)


async def deactivate_student(db: AsyncSession, actor: Actor, student_id: UUID) -> StudentResponse:
    return await update_student(db, actor, student_id, StudentUpdate(is_active=False))


async def delete_student(db: AsyncSession, actor: Actor, student_id: UUID) -> None:
    """Hard delete; refused while invoices reference the student."""
    ensure_role(actor, READ_ROLES)
    student = await _get_or_404(db, student_id)
    invoice_count = (
        await db.execute(select(func.count(Invoice.id)).where(Invoice.student_id == student_id))
    ).scalar_one()
    if invoice_count:
        raise ValidationError("Student has invoices; deactivate instead of deleting")
    await db.delete(student)
    await db.commit()
    logger.info("student_deleted", extra={"student_id": student_id, "actor_id": actor.id})
