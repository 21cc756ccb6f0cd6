"""HTTP surface tests via FastAPI's TestClient."""

import pytest
from fastapi.testclient import TestClient

import idempotency
from main import app

KEY = "s3cret"
AUTH = {"X-ODEAL-REQUEST-KEY": KEY}


@pytest.fixture
def client(clean_env):
    clean_env.setenv("ODEAL_REQUEST_KEY", KEY)
    idempotency.store.clear()
    with TestClient(app) as c:
        yield c
    idempotency.store.clear()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["ts"].endswith("Z")


class TestAuth:
    def test_missing_key(self, client):
        assert client.get("/app2app/baskets/ROP_1").status_code == 401

    def test_wrong_key(self, client):
        r = client.get("/app2app/baskets/ROP_1", headers={"X-ODEAL-REQUEST-KEY": "nope"})
        assert r.status_code == 401

    def test_unset_key_rejects_everything(self, client, clean_env):
        clean_env.delenv("ODEAL_REQUEST_KEY")
        assert client.get("/app2app/baskets/ROP_1", headers=AUTH).status_code == 401

    def test_webhook_requires_key(self, client):
        r = client.post("/webhooks/odeal/payment-succeeded", json={"basketReferenceCode": "ROP_1"})
        assert r.status_code == 401


class TestBasketRoute:
    def test_fallback_basket(self, client):
        r = client.get("/app2app/baskets/ROP_1234567", headers=AUTH)
        assert r.status_code == 200
        body = r.json()
        assert body["referenceCode"] == "ROP_1234567"
        assert body["basketPrice"] == {"grossPrice": 100.0}
        assert body["paymentOptions"] == [{"type": "CREDITCARD", "amount": 100.0}]
        assert body["products"][0]["referenceCode"] == "ITEM-TEST"
        assert body["employeeInfo"] == {}

    def test_employee_from_env(self, client, clean_env):
        clean_env.setenv("ODEAL_EMPLOYEE_REF", "musteri")
        body = client.get("/app2app/baskets/ROP_1", headers=AUTH).json()
        assert body["employeeInfo"]["employeeReferenceCode"] == "musteri"
        assert body["employeeInfo"]["mailAddress"] is None

    @pytest.mark.parametrize("segment", ["payment", "directcharge"])
    @pytest.mark.parametrize("param", ["customInfo", "reference", "ref"])
    def test_reference_from_query(self, client, segment, param):
        r = client.get(f"/app2app/baskets/{segment}", params={param: "ROP_42"}, headers=AUTH)
        assert r.json()["referenceCode"] == "ROP_42"

    def test_segment_without_query(self, client):
        r = client.get("/app2app/baskets/payment", headers=AUTH)
        assert r.json()["referenceCode"] == "payment"


class TestWebhookRoute:
    def test_accept_then_duplicate(self, client):
        payload = {"basketReferenceCode": "ROP_42", "transactionId": "T1"}
        first = client.post("/webhooks/odeal/payment-succeeded", json=payload, headers=AUTH)
        second = client.post("/webhooks/odeal/payment-succeeded", json=payload, headers=AUTH)
        assert first.status_code == 200
        assert first.json() == {"ok": True}
        assert second.json() == {"ok": True, "duplicate": True}

    def test_non_json_content_type(self, client):
        r = client.post(
            "/webhooks/odeal/payment-failed",
            content="basketReferenceCode=ROP_1",
            headers={**AUTH, "Content-Type": "application/x-www-form-urlencoded"},
        )
        assert r.status_code == 415

    def test_invalid_json(self, client):
        r = client.post(
            "/webhooks/odeal/payment-failed",
            content="{not json",
            headers={**AUTH, "Content-Type": "application/json"},
        )
        assert r.status_code == 400

    def test_json_with_charset(self, client):
        r = client.post(
            "/webhooks/odeal/payment-cancelled",
            content='{"referenceCode": "ROP_9"}',
            headers={**AUTH, "Content-Type": "application/json; charset=utf-8"},
        )
        assert r.status_code == 200

    def test_unknown_event(self, client):
        r = client.post("/webhooks/odeal/payment-refunded", json={}, headers=AUTH)
        assert r.status_code == 422


class TestA2AResult:
    def test_success(self, client):
        r = client.get("/odeal/a2a-result", params={"basketReferenceCode": "ROP_42", "result": "true"})
        assert r.status_code == 200
        body = r.json()
        assert body["basketReferenceCode"] == "ROP_42"
        assert body["checkId"] == 42
        assert body["paymentSuccessful"] is True
        assert body["reason"] is None
        assert body["deepLink"] == "rop://payment-result?basketReferenceCode=ROP_42&result=true&reason=&checkId=42"

    def test_failure_with_reason(self, client):
        params = {"basketReferenceCode": "de1a7feb-94ed-4f6a-ba27-eccaefeb894f", "result": "false", "reason": "declined"}
        body = client.get("/odeal/a2a-result", params=params).json()
        assert body["paymentSuccessful"] is False
        assert body["checkId"] is None
        assert body["reason"] == "declined"
        assert "result=false" in body["deepLink"]
        assert body["deepLink"].endswith("checkId=")

    def test_reference_required(self, client):
        assert client.get("/odeal/a2a-result", params={"result": "true"}).status_code == 400
