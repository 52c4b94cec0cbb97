"""Integration tests for the HTTP API.

Drives the full flow through FastAPI's TestClient against a seeded SQLite
database and a controllable clock.
"""

import pytest
from fastapi.testclient import TestClient

from remittance_broker.api import create_app
from remittance_broker.core.errors import StorageError

pytestmark = pytest.mark.integration

VERIFY_BODY = {"lastFourDigits": "4321", "expiryDate": "31/03/2027"}


@pytest.fixture
def client(container):
    """Provide a test client over the seeded container."""
    app = create_app(container=container, start_sweeper=False)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def verified_client(client):
    response = client.post("/api/v1/verification", json=VERIFY_BODY)
    assert response.json()["ok"] is True
    return client


def place(client, **body):
    body = {"beneficiaryId": 2, "sendAmount": "1000", **body}
    response = client.post("/api/v1/transfers", json=body)
    assert response.status_code == 200
    return response.json()


class TestEndToEnd:
    """Verify, discover, execute, settle and refresh over HTTP."""

    def test_full_flow(self, verified_client, clock):
        client = verified_client

        discovery = client.post("/api/v1/transfers", json={}).json()
        assert discovery["ok"] is True
        assert discovery["data"]["exchangeRate"]["toAmount"]["currency"] == "CNY"

        executed = place(client)
        assert executed["ok"] is True
        order_no = executed["data"]["orderNo"]
        assert executed["data"]["transactionDetails"]["totalAmount"] == "1010.00"

        status = client.get(f"/api/v1/orders/{order_no}").json()
        assert status["data"]["status"] == "PENDING"

        callback = client.post(
            "/callback/remittance",
            json={
                "notifyEvent": "remittance_pay_status",
                "data": {"orderNo": order_no, "status": "FAILED", "failReason": "Beneficiary account closed"},
            },
        )
        assert callback.json() == {"ok": True, "data": {"orderNo": order_no, "acknowledged": True}}

        status = client.get(f"/api/v1/orders/{order_no}").json()
        assert status["data"]["status"] == "COMPLETED"
        assert status["data"]["needsRefresh"] is True

        refreshed = client.post(f"/api/v1/orders/{order_no}/refresh").json()
        assert refreshed["data"]["status"] == "FAILED"
        assert refreshed["data"]["failReason"] == "Beneficiary account closed"

        again = client.post(f"/api/v1/orders/{order_no}/refresh").json()
        assert again["ok"] is False
        assert again["errorKind"] == "NotRefreshable"

    def test_discovery_without_body(self, verified_client):
        response = verified_client.post("/api/v1/transfers")
        assert response.json()["ok"] is True
        assert "beneficiaries" in response.json()["data"]

    def test_delay_flow(self, verified_client, container, clock):
        order_no = place(verified_client)["data"]["orderNo"]
        clock.advance(minutes=20)
        verified_client.post("/api/v1/verification", json=VERIFY_BODY)

        timeframe = verified_client.get(f"/api/v1/orders/{order_no}/timeframe").json()
        assert timeframe["data"]["isDelayed"] is True

        delayed = verified_client.get("/api/v1/orders/delayed").json()
        assert delayed["data"]["count"] == 1

        inquiry = verified_client.post(
            f"/api/v1/orders/{order_no}/delay-inquiry", json={"satisfaction": "escalate"}
        ).json()
        assert inquiry["data"]["variant"] == "escalate"
        assert inquiry["data"]["escalationLevel"] == 1

    def test_manual_escalation(self, verified_client):
        order_no = place(verified_client)["data"]["orderNo"]
        result = verified_client.post(
            f"/api/v1/orders/{order_no}/escalations",
            json={"reason": "technical_issue", "summary": "Payment link did not open", "level": 3},
        ).json()
        assert result["data"]["estimatedResponseTime"] == "Within 1 hour"

    def test_list_orders(self, verified_client):
        place(verified_client)
        place(verified_client, beneficiaryId=1)
        listing = verified_client.get("/api/v1/orders", params={"currency": "sar"}).json()
        assert listing["data"]["count"] == 1


class TestVerificationEndpoints:
    def test_business_failures_are_200(self, client):
        response = client.post("/api/v1/verification", json={"lastFourDigits": "0000", "expiryDate": "01/01/2030"})
        assert response.status_code == 200
        assert response.json()["errorKind"] == "NoMatch"
        assert response.json()["message"] == "Identity verification failed"

    def test_status_and_clear(self, verified_client):
        assert verified_client.get("/api/v1/verification").json()["data"]["reason"] == "VERIFIED"
        assert verified_client.delete("/api/v1/verification").json()["data"]["cleared"] == 1
        assert verified_client.get("/api/v1/verification").json()["data"]["reason"] == "VERIFICATION_INACTIVE"

    def test_user_header_scopes_sessions(self, verified_client):
        other = verified_client.get("/api/v1/verification", headers={"X-User-Id": "agent2"}).json()
        assert other["data"]["reason"] == "NO_VERIFICATION"

    def test_transfer_requires_verification(self, client):
        response = client.post("/api/v1/transfers", json={"beneficiaryId": 2, "sendAmount": "100"})
        assert response.json()["errorKind"] == "VerificationRequired"

    def test_huge_amount_is_a_business_failure(self, verified_client):
        response = verified_client.post("/api/v1/transfers", json={"beneficiaryId": 2, "sendAmount": 1e30})
        assert response.status_code == 200
        assert response.json()["ok"] is False
        assert response.json()["errorKind"] == "AmountExceedsLimit"


class TestRequestValidation:
    @pytest.mark.parametrize(
        "body",
        [
            {"lastFourDigits": "12", "expiryDate": "31/03/2027"},
            {"lastFourDigits": "4321", "expiryDate": "2027-03-31"},
            {"lastFourDigits": "4321"},
        ],
    )
    def test_bad_verification_body(self, client, body):
        assert client.post("/api/v1/verification", json=body).status_code == 422

    def test_bad_transfer_mode(self, verified_client):
        response = verified_client.post(
            "/api/v1/transfers", json={"beneficiaryId": 2, "sendAmount": "100", "transferMode": "CARRIER_PIGEON"}
        )
        assert response.status_code == 422

    def test_short_escalation_summary(self, verified_client):
        response = verified_client.post(
            "/api/v1/orders/RM1/escalations", json={"reason": "other", "summary": "short"}
        )
        assert response.status_code == 422

    def test_bad_list_count(self, verified_client):
        assert verified_client.get("/api/v1/orders", params={"count": 0}).status_code == 422


class TestOperationalEndpoints:
    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["dependencies"]["database"] == "ok"

    def test_metrics(self, verified_client):
        response = verified_client.get("/metrics")
        assert response.status_code == 200
        assert "remittance_verification_total" in response.text

    def test_storage_failure_is_503(self, verified_client, container, monkeypatch):
        def broken(*args, **kwargs):
            raise StorageError("database is locked")

        monkeypatch.setattr(container.transfers, "transfer", broken)
        response = verified_client.post("/api/v1/transfers", json={})

        assert response.status_code == 503
        body = response.json()
        assert body["ok"] is False
        assert body["errorKind"] == "SystemError"
        assert body["message"] == "Service temporarily unavailable"
