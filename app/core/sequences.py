"""
Sequence allocation for invoice numbers and payment transaction ids.

Each allocation increments a named counter row with a single UPDATE inside the caller's
transaction. The UPDATE holds the row lock until commit, so concurrent allocators are
serialized per sequence and a rolled-back transaction does not consume its value.
"""

from datetime import date
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.logging import get_logger
from app.core.models import SequenceCounter

logger = get_logger("sequences")

INVOICE_NUMBER = "invoice_number"
TRANSACTION_ID = "transaction_id"

KNOWN_SEQUENCES = (INVOICE_NUMBER, TRANSACTION_ID)


class SequenceAllocator:
    """
    Allocates strictly increasing values per sequence name.

    Does not commit: the caller owns the transaction boundary. A counter missing on
    first use is inserted; a concurrent first insert surfaces as IntegrityError on
    flush and is handled by the caller's retry.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def next_value(self, sequence_name: str) -> int:
        result = await self._db.execute(
            update(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .values(current_value=SequenceCounter.current_value + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self._db.add(SequenceCounter(name=sequence_name, current_value=1))
            await self._db.flush()
            value = 1
        else:
            value = (
                await self._db.execute(
                    select(SequenceCounter.current_value).where(SequenceCounter.name == sequence_name)
                )
            ).scalar_one()
        logger.debug("sequence_allocated", extra={"sequence_name": sequence_name, "value": value})
        return value

    async def next_invoice_number(self, today: Optional[date] = None) -> str:
        today = today or date.today()
        value = await self.next_value(INVOICE_NUMBER)
        return f"{settings.invoice_number_prefix}-{today.year}-{value:05d}"

    async def next_transaction_id(self, today: Optional[date] = None) -> str:
        today = today or date.today()
        value = await self.next_value(TRANSACTION_ID)
        return f"{settings.transaction_id_prefix}-{today:%Y%m%d}-{value:06d}"


async def ensure_sequences(db: AsyncSession, names: Iterable[str] = KNOWN_SEQUENCES) -> None:
    """Create missing counter rows so allocation never races on first insert."""
    existing = set((await db.execute(select(SequenceCounter.name))).scalars().all())
    for name in names:
        if name not in existing:
            db.add(SequenceCounter(name=name, current_value=0))
    await db.commit()


def is_allocation_conflict(exc: Exception, *columns: str) -> bool:
    """True when a unique violation came from an allocated number or a counter row."""
    text = str(getattr(exc, "orig", exc)).lower()
    return "sequence_counters" in text or any(col in text for col in columns)
