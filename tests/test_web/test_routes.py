"""Tests for the JSON API routes."""

import re
from collections.abc import Callable
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import SecretStr

from estate_listings.config import Settings
from estate_listings.db.storage import PropertyStorage
from estate_listings.listings import ListingService
from estate_listings.models import Property, Role, Session
from estate_listings.utils.media_store import MediaStore
from estate_listings.web.auth import admin_token_resolver
from estate_listings.web.routes import router

ADMIN = {"Authorization": "Bearer secret"}


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_path=":memory:",
        media_dir=str(tmp_path / "media"),
        admin_token=SecretStr("secret"),
    )


@pytest.fixture
def app(
    storage: PropertyStorage,
    media_store: MediaStore,
    listings: ListingService,
    settings: Settings,
) -> FastAPI:
    app = FastAPI()
    app.state.storage = storage
    app.state.media = media_store
    app.state.settings = settings
    app.state.listings = listings
    app.state.session_resolver = admin_token_resolver(settings)
    app.include_router(router)
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


async def _seed(storage: PropertyStorage, props: list[Property]) -> None:
    for prop in props:
        await storage.insert(prop)


class TestHealthCheck:
    def test_health(self, client: TestClient) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestSearchProperties:
    def test_empty(self, client: TestClient) -> None:
        resp = client.get("/api/properties")
        assert resp.status_code == 200
        body = resp.json()
        assert body["items"] == []
        assert body["pagination"] == {"total": 0, "totalPages": 0, "currentPage": 1, "limit": 10}
        assert body["stats"]["minPrice"] == 0

    @pytest.mark.asyncio
    async def test_camel_case_filters(
        self, client: TestClient, storage: PropertyStorage, sample_listings: list[Property]
    ) -> None:
        await _seed(storage, sample_listings)

        resp = client.get("/api/properties", params={"minPrice": "100", "maxPrice": "200"})

        body = resp.json()
        assert [p["name"] for p in body["items"]] == [
            "Skyline Towers",
            "Palm Grove House",
            "Metro Heights",
        ]
        assert body["stats"]["maxPrice"] == 12_000_000
        assert body["stats"]["bhks"] == [1, 3, 4]

    @pytest.mark.asyncio
    async def test_item_shape(
        self, client: TestClient, storage: PropertyStorage, sample_listings: list[Property]
    ) -> None:
        await _seed(storage, sample_listings)

        item = client.get("/api/properties", params={"bhk": "4"}).json()["items"][0]

        assert item["name"] == "Lakeview Villa"
        assert item["type"] == "VILLA"
        assert item["isRecommended"] is False
        assert item["image"] == []
        assert "createdAt" in item

    @pytest.mark.asyncio
    async def test_price_range_bucket(
        self, client: TestClient, storage: PropertyStorage, sample_listings: list[Property]
    ) -> None:
        await _seed(storage, sample_listings)

        resp = client.get("/api/properties", params={"priceRange": "₹50,00,000+"})

        assert [p["name"] for p in resp.json()["items"]] == ["Lakeview Villa"]

    @pytest.mark.asyncio
    async def test_explicit_bounds_override_bucket(
        self, client: TestClient, storage: PropertyStorage, sample_listings: list[Property]
    ) -> None:
        await _seed(storage, sample_listings)

        resp = client.get(
            "/api/properties", params={"priceRange": "₹50,00,000+", "maxPrice": "150"}
        )

        assert [p["name"] for p in resp.json()["items"]] == ["Skyline Towers", "Metro Heights"]

    @pytest.mark.asyncio
    async def test_garbage_params_ignored(
        self, client: TestClient, storage: PropertyStorage, sample_listings: list[Property]
    ) -> None:
        await _seed(storage, sample_listings)

        resp = client.get(
            "/api/properties",
            params={"page": "abc", "limit": "", "bhk": "many", "type": "castle", "minSize": ""},
        )

        assert resp.status_code == 200
        assert resp.json()["pagination"]["total"] == 5

    @pytest.mark.asyncio
    async def test_limit_and_page(
        self, client: TestClient, storage: PropertyStorage, sample_listings: list[Property]
    ) -> None:
        await _seed(storage, sample_listings)

        body = client.get("/api/properties", params={"page": "3", "limit": "2"}).json()

        assert [p["name"] for p in body["items"]] == ["Lakeview Villa"]
        assert body["pagination"] == {"total": 5, "totalPages": 3, "currentPage": 3, "limit": 2}

    @pytest.mark.parametrize("field", ["page", "bhk"])
    def test_huge_numbers_still_answer(self, client: TestClient, field: str) -> None:
        resp = client.get("/api/properties", params={field: "99999999999999999999"})
        assert resp.status_code == 200
        assert "items" in resp.json()

    def test_limit_capped(self, client: TestClient) -> None:
        body = client.get("/api/properties", params={"limit": "5000"}).json()
        assert body["pagination"]["limit"] == 100


class TestRecommendedAndOptions:
    @pytest.mark.asyncio
    async def test_recommended(
        self, client: TestClient, storage: PropertyStorage, sample_listings: list[Property]
    ) -> None:
        await _seed(storage, sample_listings)

        resp = client.get("/api/properties/recommended")

        assert resp.status_code == 200
        assert [p["name"] for p in resp.json()] == ["Palm Grove House"]

    @pytest.mark.asyncio
    async def test_filter_options(
        self, client: TestClient, storage: PropertyStorage, sample_listings: list[Property]
    ) -> None:
        await _seed(storage, sample_listings)

        body = client.get("/api/filter-options").json()

        assert body["locations"] == ["Bangalore", "Chennai", "Delhi", "Pune"]
        assert body["priceRanges"][0] == {"label": "₹0 - ₹200", "minPrice": 0, "maxPrice": 200}
        assert body["priceRanges"][3]["maxPrice"] is None


class TestPropertyDetail:
    @pytest.mark.asyncio
    async def test_found(
        self,
        client: TestClient,
        storage: PropertyStorage,
        make_property: Callable[..., Property],
    ) -> None:
        prop = make_property()
        await storage.insert(prop)

        resp = client.get(f"/api/properties/{prop.id}")

        assert resp.status_code == 200
        assert resp.json()["id"] == prop.id

    def test_not_found(self, client: TestClient) -> None:
        resp = client.get("/api/properties/missing")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Property not found"}


class TestAdminAccess:
    def test_create_requires_token(self, client: TestClient) -> None:
        resp = client.post("/api/properties", data={"name": "A"})
        assert resp.status_code == 401
        assert resp.headers["WWW-Authenticate"] == "Bearer"

    def test_wrong_token(self, client: TestClient) -> None:
        resp = client.delete("/api/properties/x", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_non_admin_session_forbidden(self, app: FastAPI) -> None:
        app.state.session_resolver = lambda request: Session(user_id="u1", role=Role.USER)
        resp = TestClient(app).delete("/api/properties/x")
        assert resp.status_code == 403


class TestCreateProperty:
    def test_create_with_image(self, client: TestClient) -> None:
        resp = client.post(
            "/api/properties",
            headers=ADMIN,
            data={
                "name": "A",
                "address": "B",
                "price": "500000",
                "size": "1200",
                "bhk": "2",
                "type": "APARTMENT",
                "isRecommended": "false",
            },
            files=[("images", ("a.png", b"png-bytes", "image/png"))],
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["bhk"] == 2
        assert body["isRecommended"] is False
        assert len(body["image"]) == 1
        assert re.match(r"^/properties/\d+-[a-z0-9]{6}-a\.png$", body["image"][0])

        media = client.get(body["image"][0])
        assert media.status_code == 200
        assert media.content == b"png-bytes"
        assert media.headers["content-type"] == "image/png"
        assert "immutable" in media.headers["cache-control"]

    def test_blank_bhk_is_null(self, client: TestClient) -> None:
        resp = client.post(
            "/api/properties",
            headers=ADMIN,
            data={
                "name": "Plot",
                "address": "B",
                "price": "1",
                "size": "1",
                "bhk": "",
                "type": "PLOT",
            },
        )
        assert resp.status_code == 201
        assert resp.json()["bhk"] is None

    def test_invalid_form(self, client: TestClient) -> None:
        resp = client.post(
            "/api/properties",
            headers=ADMIN,
            data={"name": "A", "address": "B", "price": "-5", "size": "1"},
        )
        assert resp.status_code == 422
        body = resp.json()
        assert body["error"] == "Invalid property data"
        assert any(d.startswith("price") for d in body["details"])


class TestUpdateProperty:
    @pytest.mark.asyncio
    async def test_partial_update(
        self,
        client: TestClient,
        storage: PropertyStorage,
        make_property: Callable[..., Property],
    ) -> None:
        prop = make_property(image=("/a.png", "/b.png"))
        await storage.insert(prop)

        resp = client.patch(
            f"/api/properties/{prop.id}",
            headers=ADMIN,
            data={"price": "0", "existingImages": "/a.png"},
            files=[("images", ("a.png", b"x", "image/png"))],
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["price"] == 0
        assert body["name"] == prop.name
        assert body["image"][0] == "/a.png"
        assert len(body["image"]) == 2

    @pytest.mark.asyncio
    async def test_no_changes(
        self,
        client: TestClient,
        storage: PropertyStorage,
        make_property: Callable[..., Property],
    ) -> None:
        prop = make_property()
        await storage.insert(prop)

        resp = client.patch(f"/api/properties/{prop.id}", headers=ADMIN, data={})

        assert resp.status_code == 400
        assert resp.json() == {"error": "No changes to update"}

    def test_missing(self, client: TestClient) -> None:
        resp = client.patch("/api/properties/missing", headers=ADMIN, data={"name": "X"})
        assert resp.status_code == 404


class TestDeleteProperty:
    @pytest.mark.asyncio
    async def test_delete(
        self,
        client: TestClient,
        storage: PropertyStorage,
        make_property: Callable[..., Property],
    ) -> None:
        prop = make_property()
        await storage.insert(prop)

        resp = client.delete(f"/api/properties/{prop.id}", headers=ADMIN)

        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert client.get(f"/api/properties/{prop.id}").status_code == 404

    def test_delete_missing(self, client: TestClient) -> None:
        resp = client.delete("/api/properties/missing", headers=ADMIN)
        assert resp.status_code == 404
        assert resp.json() == {"error": "Property not found"}


class TestServeMedia:
    def test_missing_file(self, client: TestClient) -> None:
        resp = client.get("/properties/nothing.png")
        assert resp.status_code == 404
        assert resp.json() == {"error": "not found"}

    def test_traversal_rejected(self, client: TestClient) -> None:
        assert client.get("/properties/..%2Fsecret").status_code == 404
