"""Tests for the web chat API."""

import re
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from dispatch_advisor.conversation.context import SessionStore
from dispatch_advisor.conversation.engine import ConversationEngine
from dispatch_advisor.infrastructure.dispatch_client import MockDispatchClient
from dispatch_advisor.web.dependencies import get_conversation_engine, get_session_store
from dispatch_advisor.web.main import app
from dispatch_advisor.web.middleware import resolve_request_id


@pytest.fixture
def session_store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def client(session_store: SessionStore) -> Iterator[TestClient]:
    """Test client with a fresh session store and a mock-backed engine."""
    engine = ConversationEngine(booking_client=MockDispatchClient(latency=0))
    app.dependency_overrides[get_session_store] = lambda: session_store
    app.dependency_overrides[get_conversation_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["service"] == "dispatch-advisor"
        assert body["ai_available"] is False
        assert "mock_dispatch" in body


class TestSessions:
    """Tests for session endpoints."""

    def test_create_session(self, client: TestClient, session_store: SessionStore) -> None:
        response = client.post("/api/session")

        assert response.status_code == 201
        session_id = response.json()["session_id"]
        assert session_store.get(session_id) is not None

    def test_stats(self, client: TestClient) -> None:
        client.post("/api/chat", json={"message": "I'm a gold tier customer"})
        client.post("/api/chat", json={"message": "hello"})

        response = client.get("/api/sessions/stats")

        assert response.status_code == 200
        body = response.json()
        assert body["total_sessions"] == 2
        assert body["tier_distribution"] == {"gold": 1, "bronze": 1}

    def test_export_and_import(self, client: TestClient, session_store: SessionStore) -> None:
        chat = client.post("/api/chat", json={"message": "I need 3 deliveries"}).json()
        session_id = chat["session_id"]

        exported = client.get(f"/api/sessions/{session_id}/export")
        assert exported.status_code == 200

        session_store.delete(session_id)
        imported = client.post(
            "/api/sessions/import",
            content=exported.content,
            headers={"Content-Type": "application/json"},
        )

        assert imported.status_code == 200
        assert imported.json()["session_id"] == session_id
        restored = session_store.get(session_id)
        assert restored.customer_profile.current_delivery_count == 3

    def test_export_unknown_session(self, client: TestClient) -> None:
        response = client.get("/api/sessions/session_missing/export")

        assert response.status_code == 404
        assert response.json()["error_code"] == "SESSION_NOT_FOUND"

    def test_import_invalid_data(self, client: TestClient) -> None:
        response = client.post(
            "/api/sessions/import",
            content=b'{"customer_profile": {"tier": "platinum"}}',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "INVALID_SESSION_DATA"
        assert len(body["details"]) == 1


class TestChat:
    """Tests for the chat endpoint."""

    def test_new_session(self, client: TestClient) -> None:
        response = client.post("/api/chat", json={"message": "I need 3 deliveries"})

        assert response.status_code == 200
        body = response.json()
        assert body["session_id"].startswith("session_")
        assert body["context"]["customer_profile"]["current_delivery_count"] == 3
        assert body["pricing_info"]["best_option"]["model"] == "multi_delivery"
        assert body["order_info"] is None

    def test_continues_session(self, client: TestClient) -> None:
        session_id = client.post("/api/session").json()["session_id"]

        client.post(
            "/api/chat",
            json={"session_id": session_id, "message": "I'm a gold tier customer"},
        )
        response = client.post(
            "/api/chat", json={"session_id": session_id, "message": "compare pricing"}
        )

        body = response.json()
        assert body["session_id"] == session_id
        assert len(body["context"]["history"]) == 4
        loyalty = next(
            rec for rec in body["recommendations"] if rec["model"] == "loyalty_discount"
        )
        assert loyalty["eligible"] is True

    def test_unknown_session(self, client: TestClient) -> None:
        response = client.post(
            "/api/chat", json={"session_id": "session_missing", "message": "hello"}
        )

        assert response.status_code == 404
        body = response.json()
        assert body["error_code"] == "SESSION_NOT_FOUND"
        assert "session_missing" in body["message"]

    def test_empty_message_rejected(self, client: TestClient) -> None:
        response = client.post("/api/chat", json={"message": ""})
        assert response.status_code == 422

    def test_order_info(self, client: TestClient) -> None:
        first = client.post("/api/chat", json={"message": "create order"}).json()
        assert first["order_info"]["step"] == "pickup"
        assert first["order_info"]["in_progress"] is True

        response = client.post(
            "/api/chat",
            json={
                "session_id": first["session_id"],
                "message": "Acme Bakery, Jane Doe, 123 Main St, San Francisco, CA 94105, 415-555-0100",
            },
        )

        order_info = response.json()["order_info"]
        assert order_info["step"] == "deliveries"
        assert order_info["pickup_info"]["business_name"] == "Acme Bakery"
        assert order_info["pickup_info"]["address"] == "123 Main St, San Francisco, CA 94105"


class TestRequestId:
    """Tests for request ID correlation."""

    def test_generated(self, client: TestClient) -> None:
        response = client.get("/api/health")
        assert re.fullmatch(r"[0-9a-f]{32}", response.headers["X-Request-ID"])

    def test_malformed_header_replaced(self, client: TestClient) -> None:
        """Client IDs with spaces or control characters are not echoed back."""
        response = client.get("/api/health", headers={"X-Request-ID": "bad id; drop table"})

        request_id = response.headers["X-Request-ID"]
        assert request_id != "bad id; drop table"
        assert re.fullmatch(r"[0-9a-f]{32}", request_id)

    @pytest.mark.parametrize(
        ("incoming", "kept"),
        [
            ("req-123", True),
            ("trace.abc_01", True),
            ("x" * 64, True),
            ("x" * 65, False),
            ("", False),
            (None, False),
        ],
    )
    def test_resolve_request_id(self, incoming: str | None, kept: bool) -> None:
        assert (resolve_request_id(incoming) == incoming) is kept

    def test_propagated_to_errors(self, client: TestClient) -> None:
        response = client.post(
            "/api/chat",
            json={"session_id": "session_missing", "message": "hello"},
            headers={"X-Request-ID": "req-123"},
        )

        assert response.headers["X-Request-ID"] == "req-123"
        assert response.json()["request_id"] == "req-123"
