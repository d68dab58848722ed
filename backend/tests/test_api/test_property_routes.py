"""
Tests for the property and cache API routes.
"""
import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def seeded_store(property_store, listing_factory):
    """Store with 30 public listings in Giza and a few others."""
    property_store.rows.extend(listing_factory(i, city="Giza", bedrooms=3) for i in range(30))
    property_store.rows.append(listing_factory(40, city="Cairo"))
    property_store.rows.append(listing_factory(41, city="Giza", status="sold"))
    return property_store


def test_search_returns_page_shape(client: TestClient, seeded_store) -> None:
    """Test the search response envelope."""
    response = client.get("/api/properties", params={"city": "Giza", "min_bedrooms": 3, "limit": 10, "page": 2})

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 30
    assert data["page"] == 2
    assert data["limit"] == 10
    assert data["totalPages"] == 3
    assert len(data["items"]) == 10
    assert data["performance"]["cacheHit"] is False
    assert data["performance"]["resultCount"] == 10


def test_search_second_request_is_cache_hit(client: TestClient, seeded_store) -> None:
    """Test that repeated searches are served from cache."""
    first = client.get("/api/properties", params={"city": "Giza"}).json()
    second = client.get("/api/properties", params={"city": "Giza"}).json()

    assert second["performance"]["cacheHit"] is True
    assert second["items"] == first["items"]


def test_search_defaults_and_clamps_limit(client: TestClient, seeded_store) -> None:
    """Missing limits use the default page size and large ones are clamped."""
    assert client.get("/api/properties").json()["limit"] == 20
    assert client.get("/api/properties", params={"limit": 1000}).json()["limit"] == 50
    assert client.get("/api/properties", params={"limit": 0}).json()["limit"] == 20


def test_search_rejects_page_below_one(client: TestClient) -> None:
    """Test the error for a zero page."""
    response = client.get("/api/properties", params={"page": 0})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid pagination"


def test_search_rejects_non_numeric_page(client: TestClient) -> None:
    """Test request validation for a malformed page."""
    assert client.get("/api/properties", params={"page": "abc"}).status_code == 422


def test_search_virtual_tour_filter(client: TestClient, property_store, listing_factory) -> None:
    """Test the has_virtual_tour query parameter."""
    property_store.rows.append(listing_factory(1, virtual_tour_url="https://tours.example.com/1"))
    property_store.rows.append(listing_factory(2))

    data = client.get("/api/properties", params={"has_virtual_tour": "true"}).json()

    assert [item["id"] for item in data["items"]] == ["prop-001"]


def test_search_datastore_failure(client: TestClient, property_store) -> None:
    """Datastore failures give a 500 with an error and details."""
    property_store.fail = True

    response = client.get("/api/properties")

    assert response.status_code == 500
    data = response.json()
    assert data["error"] == "Failed to fetch properties"
    assert "connection refused" in data["details"]


def test_get_property_and_not_found(client: TestClient, seeded_store) -> None:
    """Test the detail endpoint."""
    response = client.get("/api/properties/prop-003")
    assert response.status_code == 200
    assert response.json()["id"] == "prop-003"

    missing = client.get("/api/properties/does-not-exist")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Property not found", "details": "does-not-exist"}


def test_similar_featured_and_stats(client: TestClient, seeded_store) -> None:
    """Test the similar, featured and statistics endpoints."""
    similar = client.get("/api/properties/prop-010/similar").json()
    assert "prop-010" not in [item["id"] for item in similar["items"]]
    assert all(item["city"] == "Giza" for item in similar["items"])
    assert len(similar["items"]) <= 8

    featured = client.get("/api/properties/featured", params={"limit": 3}).json()
    assert [item["id"] for item in featured["items"]] == ["prop-040", "prop-029", "prop-028"]

    stats = client.get("/api/properties/stats").json()
    assert stats["total_properties"] == 32
    assert stats["active_properties"] == 31


def test_create_property_invalidates_search(client: TestClient, seeded_store) -> None:
    """A created listing shows up in the next search."""
    before = client.get("/api/properties", params={"city": "Giza"}).json()

    response = client.post("/api/properties", json={"title": "New villa", "city": "Giza", "status": "available"})
    assert response.status_code == 201
    created_id = response.json()["id"]

    after = client.get("/api/properties", params={"city": "Giza"}).json()
    assert after["performance"]["cacheHit"] is False
    assert after["total"] == before["total"] + 1
    assert after["items"][0]["id"] == created_id


def test_create_rejects_negative_price(client: TestClient) -> None:
    """Test body validation on create."""
    assert client.post("/api/properties", json={"price": -1}).status_code == 422


def test_update_property(client: TestClient, seeded_store) -> None:
    """Test updating a listing and the empty-body and unknown-id errors."""
    response = client.put("/api/properties/prop-001", json={"price": 2_750_000})
    assert response.status_code == 200
    assert response.json()["price"] == 2_750_000

    assert client.put("/api/properties/prop-001", json={}).status_code == 400
    assert client.put("/api/properties/nope", json={"price": 1}).status_code == 404


def test_delete_property(client: TestClient, seeded_store) -> None:
    """Test deleting a listing."""
    response = client.delete("/api/properties/prop-001")
    assert response.status_code == 200
    assert response.json() == {"message": "Property deleted successfully", "id": "prop-001"}

    assert client.get("/api/properties/prop-001").status_code == 404
    assert client.delete("/api/properties/prop-001").status_code == 404


def test_clear_cache(client: TestClient, seeded_store) -> None:
    """Test the administrative cache clear."""
    client.get("/api/properties")
    client.get("/api/properties/prop-001")

    response = client.post("/api/cache/clear", json={"type": "property", "propertyId": "prop-001"})
    assert response.status_code == 200
    assert response.json()["keysDeleted"] == 1

    response = client.post("/api/cache/clear", json={})
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "All property caches cleared", "keysDeleted": 1}

    assert client.get("/api/properties").json()["performance"]["cacheHit"] is False


def test_clear_property_with_wildcard_id(client: TestClient, seeded_store) -> None:
    """A wildcard property id only targets a key with that literal id."""
    client.get("/api/properties/prop-001")
    client.get("/api/properties/prop-002")

    response = client.post("/api/cache/clear", json={"type": "property", "propertyId": "*"})

    assert response.status_code == 200
    assert response.json()["keysDeleted"] == 0


def test_clear_property_requires_id(client: TestClient) -> None:
    """Test the missing propertyId error."""
    response = client.post("/api/cache/clear", json={"type": "property"})
    assert response.status_code == 400


def test_cache_health(client: TestClient) -> None:
    """Test the cache health probe."""
    response = client.get("/api/cache/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["backend"] == "memory"


def test_property_routes_are_documented(client: TestClient) -> None:
    """Every property endpoint carries a description in the OpenAPI schema."""
    schema = client.get("/api/openapi.json").json()

    operations = [
        (path, method, operation)
        for path, methods in schema["paths"].items()
        if path.startswith("/api/properties")
        for method, operation in methods.items()
    ]

    assert len(operations) == 8
    for path, method, operation in operations:
        assert operation.get("description"), f"{method.upper()} {path} has no description"
