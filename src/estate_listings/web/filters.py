"""Filter panel state and the FastAPI dependency that parses search query params."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Annotated, Final, Literal

from fastapi import Depends, Query, Request

from estate_listings.models import FilterCriteria, FilterStats, PropertyType
from estate_listings.utils.currency import format_inr, group_indian, parse_price_range

ChipKey = Literal["price", "size", "bhk", "type", "location", "search"]
CHIP_KEYS: Final[tuple[ChipKey, ...]] = ("price", "size", "bhk", "type", "location", "search")


@dataclass(frozen=True)
class NumericRange:
    """Inclusive range. ``0/0`` is the "unset" sentinel."""

    min: float = 0
    max: float = 0

    @property
    def is_unset(self) -> bool:
        return self.min == 0 and self.max == 0


UNSET_RANGE: Final = NumericRange()


def _validated_range(minimum: float, maximum: float) -> NumericRange:
    if minimum < 0 or maximum < 0:
        raise ValueError("Range bounds must be non-negative")
    if minimum > maximum:
        raise ValueError(f"Range minimum {minimum} exceeds maximum {maximum}")
    return NumericRange(minimum, maximum)


def _parse_type(value: str | None) -> PropertyType | None:
    return FilterCriteria(type=value).type


@dataclass
class FilterPanelState:
    """The user's current filter selections.

    Type, location and price range can also arrive from the landing page via
    the query string (``url_*``). The URL seeds the panel's type the first
    time the panel opens; after that the panel's own selection wins.
    """

    price_range: NumericRange = UNSET_RANGE
    size_range: NumericRange = UNSET_RANGE
    bhk: int | None = None
    type: PropertyType | None = None
    search: str = ""
    url_type: PropertyType | None = None
    url_location: str | None = None
    url_price_range: tuple[float, float | None] | None = None
    opened: bool = False
    bounds: FilterStats | None = field(default=None, repr=False)

    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> FilterPanelState:
        """Initial state from landing-page navigation (``?location=&type=&priceRange=``)."""
        location = (params.get("location") or "").strip() or None
        return cls(
            search=(params.get("search") or "").strip(),
            url_type=_parse_type(params.get("type")),
            url_location=location,
            url_price_range=parse_price_range(params.get("priceRange")),
        )

    # --- panel lifecycle ---

    def open(self, stats: FilterStats) -> None:
        """Open the panel, seeding unset ranges from the dataset's observed bounds."""
        self.bounds = stats
        if self.price_range.is_unset and self.url_price_range is not None:
            low, high = self.url_price_range
            if high is None:
                high = max(low, stats.max_price)
            self.price_range = NumericRange(low, high)
            self.url_price_range = None
        elif self.price_range.is_unset:
            self.price_range = NumericRange(stats.min_price, stats.max_price)
        if self.size_range.is_unset:
            self.size_range = NumericRange(stats.min_size, stats.max_size)
        if not self.opened:
            self.type = self.type or self.url_type
            self.opened = True

    def reset(self, stats: FilterStats) -> FilterCriteria:
        """Back to full-coverage ranges with no bhk or type selection."""
        self.bounds = stats
        self.price_range = NumericRange(stats.min_price, stats.max_price)
        self.size_range = NumericRange(stats.min_size, stats.max_size)
        self.bhk = None
        self.type = None
        self.url_type = None
        self.url_price_range = None
        return self.to_criteria()

    # --- setters ---

    def set_price_range(self, minimum: float, maximum: float) -> None:
        self.price_range = _validated_range(minimum, maximum)

    def set_size_range(self, minimum: float, maximum: float) -> None:
        self.size_range = _validated_range(minimum, maximum)

    def set_bhk(self, bhk: int | None) -> None:
        if bhk is not None and bhk < 0:
            raise ValueError("bhk must be non-negative")
        self.bhk = bhk

    def set_type(self, value: PropertyType | str | None) -> None:
        """Select a type from the panel (``None`` or ``"all"`` clears it)."""
        self.opened = True
        if value is None or (isinstance(value, str) and value.strip().lower() == "all"):
            self.type = None
        else:
            self.type = value if isinstance(value, PropertyType) else _parse_type(value)

    def set_search(self, text: str) -> None:
        self.search = text

    # --- derived state ---

    @property
    def effective_type(self) -> PropertyType | None:
        """The panel's type once opened, otherwise the one from the URL."""
        return self.type if self.opened else self.url_type

    def _range_active(self, value: NumericRange, full: tuple[float, float] | None) -> bool:
        if value.is_unset:
            return False
        return full is None or (value.min, value.max) != full

    def _price_bounds(self) -> tuple[float, float | None] | None:
        """Price filter in effect: the panel's range, else the URL's bucket."""
        full = (self.bounds.min_price, self.bounds.max_price) if self.bounds else None
        if self._range_active(self.price_range, full):
            return (self.price_range.min, self.price_range.max)
        if self.price_range.is_unset and self.url_price_range is not None:
            return self.url_price_range
        return None

    def _size_bounds(self) -> tuple[float, float] | None:
        full = (self.bounds.min_size, self.bounds.max_size) if self.bounds else None
        if self._range_active(self.size_range, full):
            return (self.size_range.min, self.size_range.max)
        return None

    @property
    def is_active(self) -> bool:
        """Whether any selection deviates from the unfiltered default."""
        return bool(self.active_filter_chips())

    def active_filter_chips(self) -> list[dict[str, str]]:
        """Build filter chip descriptors, one per active filter."""
        chips: list[dict[str, str]] = []
        price = self._price_bounds()
        if price is not None:
            low, high = price
            label = (
                f"{format_inr(low)}+"
                if high is None
                else f"{format_inr(low)} - {format_inr(high)}"
            )
            chips.append({"key": "price", "label": label})
        size = self._size_bounds()
        if size is not None:
            chips.append(
                {
                    "key": "size",
                    "label": f"{group_indian(size[0])} - {group_indian(size[1])} sq ft",
                }
            )
        if self.bhk is not None:
            chips.append({"key": "bhk", "label": f"{self.bhk} BHK"})
        effective_type = self.effective_type
        if effective_type is not None:
            chips.append({"key": "type", "label": effective_type.display_name})
        if self.url_location:
            chips.append({"key": "location", "label": self.url_location})
        if self.search.strip():
            chips.append({"key": "search", "label": f'"{self.search.strip()}"'})
        return chips

    def remove_filter(self, key: ChipKey) -> FilterCriteria:
        """Clear exactly one filter and return the criteria for a fresh page-1 query."""
        match key:
            case "price":
                self.price_range = UNSET_RANGE
                self.url_price_range = None
            case "size":
                self.size_range = UNSET_RANGE
            case "bhk":
                self.bhk = None
            case "type":
                self.type = None
                self.url_type = None
            case "location":
                self.url_location = None
            case "search":
                self.search = ""
            case _:
                raise ValueError(f"Unknown filter: {key}")
        return self.to_criteria(page=1)

    def to_criteria(self, *, page: int = 1, limit: int | None = None) -> FilterCriteria:
        """Criteria for the current selections. Unset ranges are left out."""
        values: dict[str, object] = {"page": page, "search": self.search}
        if limit is not None:
            values["limit"] = limit
        price = self._price_bounds()
        if price is not None:
            values["min_price"], values["max_price"] = price
        size = self._size_bounds()
        if size is not None:
            values["min_size"], values["max_size"] = size
        if self.bhk is not None:
            values["bhk"] = self.bhk
        effective_type = self.effective_type
        if effective_type is not None:
            values["type"] = effective_type.value
        if self.url_location:
            values["location"] = self.url_location
        return FilterCriteria.model_validate(values)


# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------


def parse_criteria(
    request: Request,
    page: str | None = None,
    limit: str | None = None,
    search: str | None = None,
    type: str | None = None,
    location: str | None = None,
    bhk: str | None = None,
    min_price: Annotated[str | None, Query(alias="minPrice")] = None,
    max_price: Annotated[str | None, Query(alias="maxPrice")] = None,
    min_size: Annotated[str | None, Query(alias="minSize")] = None,
    max_size: Annotated[str | None, Query(alias="maxSize")] = None,
    price_range: Annotated[str | None, Query(alias="priceRange")] = None,
) -> FilterCriteria:
    """FastAPI dependency that parses query params into FilterCriteria.

    ``priceRange`` (a landing-page bucket label) only applies when neither
    ``minPrice`` nor ``maxPrice`` is given.
    """
    settings = request.app.state.settings
    criteria = FilterCriteria.model_validate(
        {
            "page": page,
            "limit": limit,
            "search": search,
            "type": type,
            "location": location,
            "bhk": bhk,
            "min_price": min_price,
            "max_price": max_price,
            "min_size": min_size,
            "max_size": max_size,
        }
    )

    updates: dict[str, object] = {}
    if criteria.min_price is None and criteria.max_price is None:
        bucket = parse_price_range(price_range)
        if bucket is not None:
            updates["min_price"], updates["max_price"] = bucket
    requested_limit = criteria.limit if limit not in (None, "") else None
    clamped = settings.clamp_limit(requested_limit)
    if clamped != criteria.limit:
        updates["limit"] = clamped
    return criteria.model_copy(update=updates) if updates else criteria


CriteriaDep = Annotated[FilterCriteria, Depends(parse_criteria)]
