"""SQLite storage gateway for listings."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Final, Literal

import aiosqlite

from estate_listings.db.predicates import (
    CASEFOLD_FUNCTION,
    Predicate,
    casefold,
    compile_predicates,
)
from estate_listings.db.row_mappers import changes_to_columns, property_to_row, row_to_property
from estate_listings.logging import get_logger
from estate_listings.models import Property
from estate_listings.results import PropertyNotFoundError

logger = get_logger(__name__)

DistinctField = Literal["type", "bhk", "location"]

_UPDATABLE_COLUMNS: Final = frozenset(
    {
        "name",
        "address",
        "location",
        "price",
        "size",
        "bhk",
        "type",
        "description",
        "image",
        "video",
        "is_recommended",
        "updated_at",
    }
)

# Newest first; rowid breaks ties between rows created in the same instant
_ORDER_SQL: Final = "p.created_at DESC, p.rowid DESC"


class PropertyStorage:
    """SQLite-based storage for listings."""

    def __init__(self, db_path: str) -> None:
        """Initialize storage with database path.

        Args:
            db_path: Path to SQLite database file, or ":memory:" for in-memory.
        """
        self.db_path = db_path
        self._conn: aiosqlite.Connection | None = None
        self._conn_lock = asyncio.Lock()
        self._ensure_directory()

    def _ensure_directory(self) -> None:
        """Ensure the directory for the database exists."""
        if self.db_path != ":memory:":
            path = Path(self.db_path)
            path.parent.mkdir(parents=True, exist_ok=True)

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create the database connection.

        Concurrent first callers share one connection.
        """
        if self._conn is not None:
            return self._conn
        async with self._conn_lock:
            if self._conn is None:
                conn = await aiosqlite.connect(self.db_path)
                conn.row_factory = aiosqlite.Row
                await conn.execute("PRAGMA journal_mode=WAL")
                await conn.execute("PRAGMA busy_timeout=5000")
                await conn.execute("PRAGMA synchronous=NORMAL")
                await conn.create_function(CASEFOLD_FUNCTION, 1, casefold, deterministic=True)
                self._conn = conn
            return self._conn

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def initialize(self) -> None:
        """Initialize the database schema."""
        conn = await self._get_connection()
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS properties (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                address TEXT NOT NULL,
                location TEXT NOT NULL DEFAULT '',
                price REAL NOT NULL CHECK (price >= 0),
                size REAL NOT NULL CHECK (size >= 0),
                bhk INTEGER CHECK (bhk IS NULL OR bhk >= 0),
                type TEXT,
                description TEXT NOT NULL DEFAULT '',
                image TEXT NOT NULL DEFAULT '[]',
                video TEXT NOT NULL DEFAULT '[]',
                is_recommended INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_properties_created_at
            ON properties(created_at)
        """)
        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_properties_price
            ON properties(price)
        """)
        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_properties_recommended
            ON properties(is_recommended)
        """)

        await conn.commit()

        logger.info("database_initialized", db_path=self.db_path)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_many(
        self,
        predicates: Sequence[Predicate] = (),
        *,
        skip: int = 0,
        take: int | None = None,
    ) -> list[Property]:
        """Fetch matching listings, newest first.

        Args:
            predicates: Filter predicates (AND-ed).
            skip: Rows to skip.
            take: Maximum rows to return, or None for all.

        Returns:
            Ordered page of listings.
        """
        conn = await self._get_connection()
        where_sql, params = compile_predicates(predicates)
        cursor = await conn.execute(
            f"""
            SELECT p.* FROM properties p
            WHERE {where_sql}
            ORDER BY {_ORDER_SQL}
            LIMIT ? OFFSET ?
            """,
            [*params, -1 if take is None else take, skip],
        )
        rows = await cursor.fetchall()
        return [row_to_property(row) for row in rows]

    async def count(self, predicates: Sequence[Predicate] = ()) -> int:
        """Count listings matching the predicates."""
        conn = await self._get_connection()
        where_sql, params = compile_predicates(predicates)
        cursor = await conn.execute(
            f"SELECT COUNT(*) FROM properties p WHERE {where_sql}",
            params,
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def aggregate_bounds(self) -> dict[str, float | None]:
        """Min/max price and size over the whole collection.

        Returns:
            Dict with min_price, max_price, min_size, max_size (None when empty).
        """
        conn = await self._get_connection()
        cursor = await conn.execute("""
            SELECT MIN(price) AS min_price, MAX(price) AS max_price,
                   MIN(size) AS min_size, MAX(size) AS max_size
            FROM properties
        """)
        row = await cursor.fetchone()
        if row is None:
            return {"min_price": None, "max_price": None, "min_size": None, "max_size": None}
        return {key: row[key] for key in ("min_price", "max_price", "min_size", "max_size")}

    async def find_distinct(
        self,
        field: DistinctField,
        predicates: Sequence[Predicate] = (),
    ) -> list[Any]:
        """Distinct non-null (and non-empty) values of a column, ascending."""
        conn = await self._get_connection()
        where_sql, params = compile_predicates(predicates)
        cursor = await conn.execute(
            f"""
            SELECT DISTINCT p.{field} AS value FROM properties p
            WHERE {where_sql} AND p.{field} IS NOT NULL AND p.{field} != ''
            ORDER BY p.{field} ASC
            """,
            params,
        )
        rows = await cursor.fetchall()
        return [row["value"] for row in rows]

    async def find_unique(self, property_id: str) -> Property | None:
        """Look up a listing by id."""
        conn = await self._get_connection()
        cursor = await conn.execute(
            "SELECT p.* FROM properties p WHERE p.id = ?",
            (property_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return row_to_property(row)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert(self, prop: Property) -> Property:
        """Insert a new listing and return it as stored."""
        conn = await self._get_connection()
        values = property_to_row(prop)
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        await conn.execute(
            f"INSERT INTO properties ({columns}) VALUES ({placeholders})",
            list(values.values()),
        )
        await conn.commit()
        logger.debug("property_inserted", property_id=prop.id)
        return prop

    async def update(self, property_id: str, changes: dict[str, Any]) -> Property:
        """Apply a partial update and return the updated listing.

        Args:
            property_id: Listing id.
            changes: Field -> new value; only these columns are written.

        Raises:
            PropertyNotFoundError: If no listing has this id.
            ValueError: If ``changes`` is empty or names an unknown column.
        """
        if not changes:
            raise ValueError("No columns to update")
        unknown = set(changes) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update columns: {', '.join(sorted(unknown))}")

        conn = await self._get_connection()
        columns = changes_to_columns(changes)
        set_sql = ", ".join(f"{column} = ?" for column in columns)
        cursor = await conn.execute(
            f"UPDATE properties SET {set_sql} WHERE id = ?",
            [*columns.values(), property_id],
        )
        if cursor.rowcount == 0:
            await conn.rollback()
            raise PropertyNotFoundError(property_id)
        await conn.commit()

        updated = await self.find_unique(property_id)
        if updated is None:
            raise PropertyNotFoundError(property_id)
        logger.debug("property_updated", property_id=property_id, columns=sorted(columns))
        return updated

    async def delete(self, property_id: str) -> None:
        """Delete a listing by id.

        Raises:
            PropertyNotFoundError: If no listing has this id.
        """
        conn = await self._get_connection()
        cursor = await conn.execute("DELETE FROM properties WHERE id = ?", (property_id,))
        if cursor.rowcount == 0:
            await conn.rollback()
            raise PropertyNotFoundError(property_id)
        await conn.commit()
        logger.debug("property_deleted", property_id=property_id)
