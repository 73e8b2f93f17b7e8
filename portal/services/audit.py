"""
Audit Sink Module

Append-only writer for AuditRecord rows. Nothing in the portal reads these rows
to make decisions.
"""
import logging
from typing import Any, Dict, Iterable, Optional

from sqlmodel import Session, SQLModel

from portal.models.audit import AuditAction, AuditRecord

logger = logging.getLogger(__name__)

# Never written into audit snapshots
SENSITIVE_FIELDS = frozenset({"password", "password_hash"})


def snapshot(record: SQLModel, exclude: Iterable[str] = SENSITIVE_FIELDS) -> Dict[str, Any]:
    """JSON-safe copy of a record's columns."""
    return record.model_dump(mode="json", exclude=set(exclude))


def redact(values: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if values is None:
        return None
    return {key: value for key, value in values.items() if key not in SENSITIVE_FIELDS}


def record(
    db: Session,
    *,
    entity_type: str,
    entity_id: str,
    action: AuditAction,
    actor_id: str,
    old_values: Optional[Dict[str, Any]] = None,
    new_values: Optional[Dict[str, Any]] = None,
) -> AuditRecord:
    """
    Write one audit record and commit it.

    Runs after the entity change has been committed: a failure here surfaces to
    the caller but does not undo the entity change.
    """
    entry = AuditRecord(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action.value,
        user_id=actor_id,
        old_values=redact(old_values),
        new_values=redact(new_values),
    )
    db.add(entry)
    db.commit()
    logger.info("Audit %s %s/%s by %s", action.value, entity_type, entity_id, actor_id)
    return entry
