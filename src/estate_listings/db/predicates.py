"""Search predicates and their translation to SQLite WHERE clauses.

Criteria are expressed as a flat list of small variants (all AND-ed), with
``AnyOf`` as the only way to express an OR-group. ``compile_predicates`` is
the single place that turns them into SQL, so every variant is handled
exhaustively and column names never come from user input.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, assert_never, get_args

Column = Literal[
    "name", "address", "location", "description", "price", "size", "bhk", "type", "is_recommended"
]

SEARCHABLE_COLUMNS: Final[frozenset[str]] = frozenset(get_args(Column))

# SQL function registered on every connection; SQLite's LOWER() only folds ASCII
CASEFOLD_FUNCTION: Final = "casefold"


def casefold(value: object) -> str | None:
    """Unicode case folding for text matching (NULL stays NULL)."""
    if value is None:
        return None
    return str(value).casefold()


@dataclass(frozen=True)
class Contains:
    """Case-insensitive substring match."""

    column: Column
    text: str


@dataclass(frozen=True)
class Equals:
    """Exact match. NULL never equals anything."""

    column: Column
    value: Any


@dataclass(frozen=True)
class Range:
    """Inclusive range; either bound may be omitted."""

    column: Column
    minimum: float | None = None
    maximum: float | None = None


@dataclass(frozen=True)
class AnyOf:
    """OR-group of predicates."""

    options: tuple[Predicate, ...]


Predicate = Contains | Equals | Range | AnyOf


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so user text matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _column(name: str) -> str:
    if name not in SEARCHABLE_COLUMNS:
        raise ValueError(f"Unknown column: {name}")
    return f"p.{name}"


def _compile_one(predicate: Predicate, params: list[Any]) -> str | None:
    match predicate:
        case Contains(column=column, text=text):
            params.append(f"%{escape_like(text.casefold())}%")
            return f"{CASEFOLD_FUNCTION}({_column(column)}) LIKE ? ESCAPE '\\'"
        case Equals(column=column, value=value):
            params.append(value)
            return f"{_column(column)} = ?"
        case Range(column=column, minimum=minimum, maximum=maximum):
            parts: list[str] = []
            if minimum is not None:
                parts.append(f"{_column(column)} >= ?")
                params.append(minimum)
            if maximum is not None:
                parts.append(f"{_column(column)} <= ?")
                params.append(maximum)
            return " AND ".join(parts) if parts else None
        case AnyOf(options=options):
            compiled = [sql for sql in (_compile_one(o, params) for o in options) if sql]
            if not compiled:
                return None
            return "(" + " OR ".join(f"({sql})" for sql in compiled) + ")"
        case _:
            assert_never(predicate)


def compile_predicates(predicates: Sequence[Predicate]) -> tuple[str, list[Any]]:
    """Build WHERE clause and params for a predicate list.

    Args:
        predicates: Predicates to AND together.

    Returns:
        Tuple of (where_sql, params). ``where_sql`` is ``"1=1"`` when empty.
    """
    params: list[Any] = []
    clauses = [sql for sql in (_compile_one(p, params) for p in predicates) if sql]
    where_sql = " AND ".join(clauses) if clauses else "1=1"
    return where_sql, params
