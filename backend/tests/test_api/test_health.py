def test_health_endpoint(client):
    """Test the health check endpoint."""
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["environment"] == "test"
    assert data["cache"] == {"backend": "memory", "status": "healthy"}


def test_health_with_cache_down(app, client, broken_cache_store):
    """The service reports healthy with the cache down and says so."""
    from listings.api.dependencies import get_cache_store

    app.dependency_overrides[get_cache_store] = lambda: broken_cache_store
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["cache"]["status"] == "unhealthy"


def test_root_endpoint(client):
    """Test the root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["health_check"] == "/api/health"
