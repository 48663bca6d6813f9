"""Named counters backing invoice numbers and payment transaction ids."""

from sqlalchemy import BigInteger, Column, String

from app.db.session import Base


class SequenceCounter(Base):
    """Each row is a named sequence with its current value. Locked per allocation."""

    __tablename__ = "sequence_counters"

    name = Column(String(50), primary_key=True)
    current_value = Column(BigInteger, nullable=False, default=0)
