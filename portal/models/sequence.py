from sqlmodel import SQLModel, Field


class SequenceCounter(SQLModel, table=True):
    """
    Last value handed out for a (type, year) pair, e.g. ("ticket", 2025) -> 42.

    Only ``portal.services.sequence`` writes to this table, always through a
    single atomic upsert.
    """
    __tablename__ = "sequence_counters"

    type: str = Field(primary_key=True, max_length=32)
    year: int = Field(primary_key=True)
    counter: int = Field(default=0, nullable=False)
