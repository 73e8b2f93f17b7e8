from typing import Any, Dict, Optional, Sequence

from pydantic import BaseModel, ConfigDict


class Envelope(BaseModel):
    """Uniform response body of every endpoint."""
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


def envelope(data: Optional[Dict[str, Any]] = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def error_envelope(message: str) -> Dict[str, Any]:
    return Envelope(success=False, error=message).model_dump(exclude_none=True)


def dump(schema: type, records: Sequence[Any]) -> list:
    """Serialize ORM records through a read schema."""
    return [schema.model_validate(record).model_dump(mode="json") for record in records]


def reject_nulls(value: Any, info) -> Any:
    """Field validator for patch schemas: a present key may not be null for NOT NULL columns."""
    if value is None:
        raise ValueError(f"{info.field_name} cannot be null")
    return value


class ORMRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_row(cls, row: Any) -> "ORMRead":
        """
        Build from a ``(record, *labelled columns)`` result row.

        The record supplies the table columns; every labelled column (the joined
        display names) is copied by its label.
        """
        values = cls.model_validate(row[0]).model_dump()
        values.update(row._mapping)
        return cls.model_validate(values)
