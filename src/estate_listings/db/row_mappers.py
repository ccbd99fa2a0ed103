"""Row <-> model mapping for the properties table."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any, Final

import aiosqlite

from estate_listings.models import Property

# Columns stored as JSON-encoded lists
_JSON_LIST_COLUMNS: Final = ("image", "video")


def to_utc_iso(value: datetime) -> str:
    """ISO timestamp in UTC so stored values sort chronologically as text."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def _decode_paths(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    decoded = json.loads(raw)
    return tuple(str(p) for p in decoded) if isinstance(decoded, list) else ()


def row_to_property(row: aiosqlite.Row) -> Property:
    """Convert a database row to a Property.

    Args:
        row: Database row from the properties table.

    Returns:
        Property instance.
    """
    return Property(
        id=row["id"],
        name=row["name"],
        address=row["address"],
        location=row["location"] or "",
        price=row["price"],
        size=row["size"],
        bhk=row["bhk"],
        type=row["type"],
        description=row["description"] or "",
        image=_decode_paths(row["image"]),
        video=_decode_paths(row["video"]),
        is_recommended=bool(row["is_recommended"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def property_to_row(prop: Property) -> dict[str, Any]:
    """Column values for inserting a Property."""
    return {
        "id": prop.id,
        "name": prop.name,
        "address": prop.address,
        "location": prop.location,
        "price": prop.price,
        "size": prop.size,
        "bhk": prop.bhk,
        "type": prop.type.value if prop.type else None,
        "description": prop.description,
        "image": json.dumps(list(prop.image)),
        "video": json.dumps(list(prop.video)),
        "is_recommended": int(prop.is_recommended),
        "created_at": to_utc_iso(prop.created_at),
        "updated_at": to_utc_iso(prop.updated_at),
    }


def changes_to_columns(changes: dict[str, Any]) -> dict[str, Any]:
    """Encode a partial-update dict into column values."""
    columns: dict[str, Any] = {}
    for key, value in changes.items():
        if key in _JSON_LIST_COLUMNS:
            columns[key] = json.dumps(list(value))
        elif key == "type":
            columns[key] = value.value if value is not None else None
        elif key == "is_recommended":
            columns[key] = int(bool(value))
        elif isinstance(value, datetime):
            columns[key] = to_utc_iso(value)
        else:
            columns[key] = value
    return columns
