"""Shared pytest fixtures."""

import os
import sys
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from hypothesis import HealthCheck, settings

from estate_listings.config import Settings
from estate_listings.db import PropertyStorage
from estate_listings.listings import ListingService
from estate_listings.models import Property, PropertyType
from estate_listings.utils.media_store import MediaStore


def pytest_configure(config: pytest.Config) -> None:
    """Force line-buffered stdout when piped."""
    if hasattr(sys.stdout, "reconfigure") and not sys.stdout.isatty():
        sys.stdout.reconfigure(line_buffering=True)
    if hasattr(sys.stderr, "reconfigure") and not sys.stderr.isatty():
        sys.stderr.reconfigure(line_buffering=True)


# Hypothesis settings profiles for different environments
settings.register_profile("fast", max_examples=25)
settings.register_profile(
    "ci",
    max_examples=200,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "fast"))


@pytest.fixture(autouse=True)
def _isolate_settings_from_dotenv(monkeypatch: pytest.MonkeyPatch) -> None:
    """Prevent a local .env file from leaking into test Settings instances."""
    monkeypatch.setattr(
        Settings,
        "model_config",
        {**Settings.model_config, "env_file": None},
    )


BASE_TIME = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def make_property() -> Callable[..., Property]:
    """Factory for listings; ``minutes`` offsets created_at so ordering is deterministic."""

    def _make(minutes: int = 0, **overrides: Any) -> Property:
        created = BASE_TIME + timedelta(minutes=minutes)
        values: dict[str, Any] = {
            "name": "Sunrise Residency",
            "address": "12 MG Road",
            "location": "Bangalore",
            "price": 4_500_000,
            "size": 1100,
            "bhk": 2,
            "type": PropertyType.APARTMENT,
            "description": "Bright corner flat near the metro.",
            "created_at": created,
            "updated_at": created,
        }
        values.update(overrides)
        return Property(**values)

    return _make


@pytest.fixture
def sample_listings(make_property: Callable[..., Property]) -> list[Property]:
    """A small mixed collection, oldest first."""
    return [
        make_property(
            0,
            name="Lakeview Villa",
            address="4 Lake Road",
            location="Pune",
            price=12_000_000,
            size=3200,
            bhk=4,
            type=PropertyType.VILLA,
            description="Private garden and pool.",
        ),
        make_property(
            1,
            name="Metro Heights",
            address="88 Ring Road",
            location="Delhi",
            price=150,
            size=450,
            bhk=1,
            type=PropertyType.APARTMENT,
            description="Compact studio-style flat.",
        ),
        make_property(
            2,
            name="Green Acres Plot",
            address="Survey 17, Outer Ring",
            location="Bangalore",
            price=2_500_000,
            size=2400,
            bhk=None,
            type=PropertyType.PLOT,
            description="Corner plot with clear title.",
        ),
        make_property(
            3,
            name="Palm Grove House",
            address="21 Palm Avenue",
            location="Chennai",
            price=200,
            size=1800,
            bhk=3,
            type=PropertyType.INDEPENDENTHOUSE,
            description="Independent house close to the beach.",
            is_recommended=True,
        ),
        make_property(
            4,
            name="Skyline Towers",
            address="3 Residency Road",
            location="Bangalore",
            price=100,
            size=1200,
            bhk=3,
            type=PropertyType.APARTMENT,
            description="High floor with city views.",
        ),
    ]


@pytest_asyncio.fixture
async def storage() -> AsyncGenerator[PropertyStorage, None]:
    """Create an in-memory storage instance."""
    s = PropertyStorage(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest_asyncio.fixture
async def seeded_storage(
    storage: PropertyStorage, sample_listings: list[Property]
) -> PropertyStorage:
    for prop in sample_listings:
        await storage.insert(prop)
    return storage


@pytest.fixture
def media_store(tmp_path: Path) -> MediaStore:
    return MediaStore(tmp_path / "media")


@pytest.fixture
def listings(storage: PropertyStorage, media_store: MediaStore) -> ListingService:
    return ListingService(storage, media_store)
