"""Pydantic models for listings, search criteria and search results."""

import math
from datetime import UTC, datetime
from enum import StrEnum
from typing import Final, Self
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

DEFAULT_PAGE_LIMIT: Final = 10
MAX_PAGE_LIMIT: Final = 100

# Largest value SQLite can bind as INTEGER
SQLITE_INTEGER_MAX: Final = 2**63 - 1
# Highest page whose row offset still fits in a SQLite INTEGER
MAX_PAGE: Final = SQLITE_INTEGER_MAX // MAX_PAGE_LIMIT


class PropertyType(StrEnum):
    """Listing categories."""

    APARTMENT = "APARTMENT"
    VILLA = "VILLA"
    PLOT = "PLOT"
    INDEPENDENTHOUSE = "INDEPENDENTHOUSE"

    @property
    def display_name(self) -> str:
        """Human-readable label, e.g. "Independent House"."""
        return _TYPE_DISPLAY_NAMES[self.value]


_TYPE_DISPLAY_NAMES: Final[dict[str, str]] = {
    "APARTMENT": "Apartment",
    "VILLA": "Villa",
    "PLOT": "Plot",
    "INDEPENDENTHOUSE": "Independent House",
}


class Role(StrEnum):
    """User roles known to the session boundary."""

    USER = "USER"
    ADMIN = "ADMIN"


def _coerce_property_type(v: object) -> object:
    if isinstance(v, str):
        cleaned = v.strip().upper().replace(" ", "").replace("_", "")
        return cleaned or None
    return v


class CamelModel(BaseModel):
    """Base for models exchanged with the UI (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Property(CamelModel):
    """A real-estate listing."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str
    address: str
    location: str = ""
    price: float = Field(ge=0)
    size: float = Field(ge=0, description="Area in square feet")
    bhk: int | None = Field(default=None, ge=0, le=SQLITE_INTEGER_MAX)
    type: PropertyType | None = None
    description: str = ""
    image: tuple[str, ...] = ()
    video: tuple[str, ...] = ()
    is_recommended: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: object) -> object:
        return _coerce_property_type(v)


class PropertyCreate(CamelModel):
    """Fields accepted when creating a listing (media arrive separately)."""

    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    location: str = ""
    price: float = Field(ge=0)
    size: float = Field(ge=0)
    bhk: int | None = Field(default=None, ge=0, le=SQLITE_INTEGER_MAX)
    type: PropertyType | None = None
    description: str = ""
    is_recommended: bool = False

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: object) -> object:
        return _coerce_property_type(v)


_MEDIA_RETENTION_FIELDS: Final = frozenset({"existing_images", "existing_videos"})
_NON_NULLABLE_FIELDS: Final = frozenset(
    {"name", "address", "location", "price", "size", "description", "is_recommended"}
)


class PropertyUpdate(CamelModel):
    """Partial update. Only fields the caller explicitly set are applied.

    ``existing_images`` / ``existing_videos`` carry the stored paths the caller
    wants to keep; newly uploaded paths are appended after them.
    """

    name: str | None = Field(default=None, min_length=1)
    address: str | None = Field(default=None, min_length=1)
    location: str | None = None
    price: float | None = Field(default=None, ge=0)
    size: float | None = Field(default=None, ge=0)
    bhk: int | None = Field(default=None, ge=0, le=SQLITE_INTEGER_MAX)
    type: PropertyType | None = None
    description: str | None = None
    is_recommended: bool | None = None
    existing_images: list[str] | None = None
    existing_videos: list[str] | None = None

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: object) -> object:
        return _coerce_property_type(v)

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> Self:
        """A column that can't be NULL can be left out, but not set to None."""
        nulled = sorted(
            f for f in self.model_fields_set & _NON_NULLABLE_FIELDS if getattr(self, f) is None
        )
        if nulled:
            raise ValueError(f"Fields cannot be null: {', '.join(nulled)}")
        return self

    def field_changes(self) -> dict[str, object]:
        """Scalar column changes the caller asked for, excluding media lists."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name not in _MEDIA_RETENTION_FIELDS
        }


def _parse_optional_number(value: object) -> float | None:
    """Parse a finite number, returning None for empty or non-numeric input."""
    if value is None or isinstance(value, bool):
        return None
    raw = value if isinstance(value, int | float) else str(value).strip().replace(",", "")
    if raw == "":
        return None
    try:
        parsed = float(raw)
    except (ValueError, OverflowError):
        return None
    return parsed if math.isfinite(parsed) else None


class FilterCriteria(BaseModel):
    """Validated search criteria.

    Invalid values are coerced to "unset" (or to the pagination defaults)
    instead of being rejected, so a hand-edited query string still searches.
    """

    model_config = ConfigDict(frozen=True)

    page: int = 1
    limit: int = DEFAULT_PAGE_LIMIT
    search: str | None = None
    type: PropertyType | None = None
    location: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    min_size: float | None = None
    max_size: float | None = None
    bhk: int | None = None

    @field_validator("page", mode="before")
    @classmethod
    def coerce_page(cls, v: object) -> int:
        parsed = _parse_optional_number(v)
        if parsed is None:
            return 1
        return max(1, min(MAX_PAGE, int(parsed)))

    @field_validator("limit", mode="before")
    @classmethod
    def coerce_limit(cls, v: object) -> int:
        parsed = _parse_optional_number(v)
        if parsed is None or parsed < 1:
            return DEFAULT_PAGE_LIMIT
        return min(MAX_PAGE_LIMIT, int(parsed))

    @field_validator("search", "location", mode="before")
    @classmethod
    def clean_text(cls, v: object) -> str | None:
        if v is None:
            return None
        s = str(v).strip()
        return s or None

    @field_validator("type", mode="before")
    @classmethod
    def validate_type(cls, v: object) -> PropertyType | None:
        cleaned = _coerce_property_type(v)
        if not cleaned:
            return None
        try:
            return PropertyType(cleaned)
        except ValueError:
            return None

    @field_validator("min_price", "max_price", "min_size", "max_size", mode="before")
    @classmethod
    def coerce_bound(cls, v: object) -> float | None:
        parsed = _parse_optional_number(v)
        if parsed is None or parsed < 0:
            return None
        return parsed

    @field_validator("bhk", mode="before")
    @classmethod
    def coerce_bhk(cls, v: object) -> int | None:
        parsed = _parse_optional_number(v)
        if parsed is None or parsed < 0 or parsed > SQLITE_INTEGER_MAX:
            return None
        return int(parsed)

    @property
    def skip(self) -> int:
        """Rows to skip for the requested page."""
        return (self.page - 1) * self.limit


class FilterStats(CamelModel):
    """Bounds and option lists over the whole collection, independent of filters."""

    min_price: float = 0
    max_price: float = 0
    min_size: float = 0
    max_size: float = 0
    types: list[str] = Field(default_factory=list)
    bhks: list[int] = Field(default_factory=list)


class Pagination(CamelModel):
    """Pagination block of a search response."""

    total: int = Field(ge=0)
    total_pages: int = Field(ge=0)
    current_page: int = Field(ge=1)
    limit: int = Field(ge=1)


class SearchResult(CamelModel):
    """One page of listings plus stats and pagination."""

    items: list[Property]
    stats: FilterStats
    pagination: Pagination


class PriceBucket(CamelModel):
    """A landing-page price range option."""

    label: str
    min_price: float
    max_price: float | None = None


class FilterOptions(CamelModel):
    """Choices offered by the landing-page search box."""

    locations: list[str] = Field(default_factory=list)
    types: list[str] = Field(default_factory=list)
    price_ranges: list[PriceBucket] = Field(default_factory=list)


class Session(BaseModel):
    """The caller's identity, resolved once per request."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str = ""
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
