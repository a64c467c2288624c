"""
Tests for the main module.
"""

from main import validate_cors_origins


def test_read_root(client):
    """Test the root endpoint returns the expected response."""
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Welcome to the material estimation API"}


def test_correlation_id_is_echoed(client):
    response = client.get("/", headers={"X-Correlation-ID": "abc-123"})
    assert response.headers["X-Correlation-ID"] == "abc-123"


def test_correlation_id_is_generated_when_missing(client):
    response = client.get("/")
    assert response.headers.get("X-Correlation-ID")


def test_docs_are_served_under_api_prefix(client):
    response = client.get("/api/v1/docs")
    assert response.status_code == 200
    assert "swagger" in response.text.lower()


def test_validate_cors_origins_drops_invalid_entries():
    origins = validate_cors_origins("http://localhost:3000, not-a-url, https://x.dev")
    assert origins == ["http://localhost:3000", "https://x.dev"]


def test_validate_cors_origins_accepts_list():
    assert validate_cors_origins(["https://a.dev", "ftp://b.dev", " "]) == [
        "https://a.dev"
    ]
