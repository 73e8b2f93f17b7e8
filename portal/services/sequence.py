"""
Sequence Allocator Module

Issues collision-free, monotonically increasing numbers per (type, year) and
formats them into ticket numbers (NX-2025-001) and project codes
(NX-WEB-2025-001).

The increment is a single upsert executed inside the caller's transaction and
followed by a read of the same row before committing. The upsert takes the row
(or, on SQLite, the database) write lock, so no other allocation for the same
key can interleave between the increment and the read.
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlmodel import Session

from portal.core.config import settings
from portal.core.errors import InternalError
from portal.core.ids import utcnow
from portal.models.project import DEFAULT_PROJECT_CODE_PREFIX, PROJECT_CODE_PREFIXES, ProjectType
from portal.models.sequence import SequenceCounter

logger = logging.getLogger(__name__)

TICKET_SEQUENCE = "ticket"
PROJECT_SEQUENCE = "project"


def _upsert_statement(dialect: str, kind: str, year: int):
    table = SequenceCounter.__table__
    if dialect == "mysql":
        stmt = mysql.insert(table).values(type=kind, year=year, counter=1)
        return stmt.on_duplicate_key_update(counter=table.c.counter + 1)
    if dialect in ("sqlite", "postgresql"):
        insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
        stmt = insert(table).values(type=kind, year=year, counter=1)
        return stmt.on_conflict_do_update(
            index_elements=[table.c.type, table.c.year],
            set_={"counter": table.c.counter + 1},
        )
    raise InternalError(f"Sequence allocation is not supported on {dialect}")


def next_code(db: Session, kind: str, year: Optional[int] = None) -> int:
    """
    Atomically allocate the next number for (kind, year).

    The first allocation for a key returns 1; every later one returns the
    previous value plus one. The counter row is committed before returning.
    """
    year = year or utcnow().year
    table = SequenceCounter.__table__
    connection = db.connection()
    connection.execute(_upsert_statement(connection.dialect.name, kind, year))
    counter = connection.execute(
        select(table.c.counter).where(table.c.type == kind, table.c.year == year)
    ).scalar_one()
    db.commit()
    logger.info("Allocated %s sequence %s for %s", kind, counter, year)
    return counter


def format_ticket_number(year: int, counter: int) -> str:
    return f"{settings.CODE_PREFIX}-{year}-{counter:03d}"


def format_project_code(project_type: str, year: int, counter: int) -> str:
    try:
        type_prefix = PROJECT_CODE_PREFIXES[ProjectType(project_type)]
    except ValueError:
        type_prefix = DEFAULT_PROJECT_CODE_PREFIX
    return f"{settings.CODE_PREFIX}-{type_prefix}-{year}-{counter:03d}"


def next_ticket_number(db: Session, year: Optional[int] = None) -> str:
    year = year or utcnow().year
    return format_ticket_number(year, next_code(db, TICKET_SEQUENCE, year))


def next_project_code(db: Session, project_type: str, year: Optional[int] = None) -> str:
    """Project counters are shared across types; only the code prefix differs."""
    year = year or utcnow().year
    return format_project_code(project_type, year, next_code(db, PROJECT_SEQUENCE, year))
