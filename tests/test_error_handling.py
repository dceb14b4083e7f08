"""
Tests for the error envelope and health checks.
"""
from fastapi.testclient import TestClient

from main import app, _describe_validation_error


class TestErrorEnvelope:
    """Every error leaves the API as {"error": message}."""

    def test_unknown_route(self, client):
        response = client.get("/api/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}

    def test_malformed_json(self, client):
        response = client.post(
            "/api/auth/login",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "JSON decode error"}

    def test_validation_message_names_field(self, client, admin_headers):
        response = client.post(
            "/api/auth/register",
            json={"email": "bad", "password": "abcdef"},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"].startswith("email: value is not a valid email address")

    def test_unhandled_exception_is_hidden(self, db_session):
        from database import get_db

        def broken_db():
            raise RuntimeError("database exploded")
            yield  # pragma: no cover

        app.dependency_overrides[get_db] = broken_db
        try:
            with TestClient(app, raise_server_exceptions=False) as test_client:
                response = test_client.post("/api/auth/login", json={"email": "a@example.com", "password": "x"})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}


class TestHealth:
    """Tests for the unauthenticated health checks."""

    def test_root(self, client):
        body = client.get("/").json()
        assert body["status"] == "healthy"

    def test_api_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["database"] == "connected"


class TestDescribeValidationError:
    def test_strips_value_error_prefix(self):
        class FakeError:
            def errors(self):
                return [{"loc": ("body", "newPassword"), "msg": "Value error, Password must be at least 6 characters"}]

        assert _describe_validation_error(FakeError()) == "newPassword: Password must be at least 6 characters"

    def test_offset_location_is_not_a_field(self):
        class FakeError:
            def errors(self):
                return [{"loc": ("body", 1), "msg": "JSON decode error"}]

        assert _describe_validation_error(FakeError()) == "JSON decode error"

    def test_nested_list_index_skipped(self):
        class FakeError:
            def errors(self):
                return [{"loc": ("body", "items", 0, "sku"), "msg": "Field required"}]

        assert _describe_validation_error(FakeError()) == "items.sku: Field required"

    def test_empty(self):
        class FakeError:
            def errors(self):
                return []

        assert _describe_validation_error(FakeError()) == "Invalid request"
