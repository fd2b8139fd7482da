"""
Shared helpers for the Beanie repositories.

Conditional writes match on the revision id that was read. Beanie renews the
revision on every insert and every write made here, so two writers that read
the same revision cannot both succeed.
"""

from decimal import Decimal
from typing import Any
from uuid import UUID

from bson import Decimal128
from pydantic import BaseModel

# Never rewritten by an update; the revision is renewed separately
IMMUTABLE_FIELDS = {"id", "revision_id", "created_at"}


def revision_of(obj: BaseModel) -> UUID | None:
    """Revision a document was read at; plain models carry none."""
    return getattr(obj, "revision_id", None)


def update_fields(obj: BaseModel) -> dict[str, Any]:
    return obj.model_dump(exclude=IMMUTABLE_FIELDS)


def to_decimal(value: Any) -> Decimal:
    """Aggregation results come back as Decimal128 (or a number for empty input)."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal128):
        return value.to_decimal()
    return Decimal(str(value))
