"""Tests for rop_client - ROP App2App HTTP calls."""

import json

import httpx
import pytest

from rop_client import RopClient, RopClientError

BASE = "https://rop.example.com/V6/App2App"


@pytest.fixture
def client() -> RopClient:
    return RopClient(BASE, timeout_s=1, device_id="DEV-1", restaurant_id=77)


class TestConstruction:
    def test_production_requires_https(self):
        with pytest.raises(RopClientError):
            RopClient("http://rop.example.com", production=True)

    def test_http_allowed_outside_production(self):
        assert RopClient("http://rop.example.com/").base_url == "http://rop.example.com"

    def test_from_env(self, clean_env):
        clean_env.setenv("ROP_BASE_URL", BASE + "/")
        clean_env.setenv("ROP_HTTP_TIMEOUT_MS", "2500")
        clean_env.setenv("ROP_DEVICE_ID", "DEV-9")
        clean_env.setenv("ROP_RESTAURANT_ID", "12")
        client = RopClient.from_env()
        assert client.base_url == BASE
        assert client.timeout_s == 2.5
        assert client.device_id == "DEV-9"
        assert client.restaurant_id == 12

    def test_from_env_production_http(self, clean_env):
        clean_env.setenv("APP_ENV", "production")
        with pytest.raises(RopClientError):
            RopClient.from_env()


class TestGetCheckDetail:
    @pytest.mark.asyncio
    async def test_query_and_body(self, respx_mock, client):
        route = respx_mock.get(f"{BASE}/CheckDetail").mock(
            return_value=httpx.Response(200, json={"Details": [{"Name": "A"}]})
        )

        data = await client.get_check_detail(3215799)

        assert data == {"Details": [{"Name": "A"}]}
        params = route.calls.last.request.url.params
        assert params["DeviceId"] == "DEV-1"
        assert params["RestaurantId"] == "77"
        assert params["CheckId"] == "3215799"
        assert params["CheckNo"] == "0"
        assert params["TableNo"] == ""

    @pytest.mark.asyncio
    async def test_per_call_credentials(self, respx_mock, client):
        route = respx_mock.get(f"{BASE}/CheckDetail").mock(return_value=httpx.Response(200, json={}))
        await client.get_check_detail(1, device_id="POS01", restaurant_id=12)
        params = route.calls.last.request.url.params
        assert params["DeviceId"] == "POS01"
        assert params["RestaurantId"] == "12"

    @pytest.mark.asyncio
    async def test_missing_credentials(self, respx_mock):
        route = respx_mock.get(f"{BASE}/CheckDetail")
        with pytest.raises(RopClientError):
            await RopClient(BASE).get_check_detail(1)
        assert not route.called

    @pytest.mark.asyncio
    async def test_non_2xx_raises(self, respx_mock, client):
        respx_mock.get(f"{BASE}/CheckDetail").mock(return_value=httpx.Response(500, json={"error": "x"}))
        with pytest.raises(httpx.HTTPStatusError):
            await client.get_check_detail(1)

    @pytest.mark.asyncio
    async def test_redirect_not_followed(self, respx_mock, client):
        respx_mock.get(f"{BASE}/CheckDetail").mock(
            return_value=httpx.Response(302, headers={"Location": "https://elsewhere.example.com"})
        )
        with pytest.raises(httpx.HTTPStatusError):
            await client.get_check_detail(1)

    @pytest.mark.asyncio
    async def test_malformed_body(self, respx_mock, client):
        respx_mock.get(f"{BASE}/CheckDetail").mock(return_value=httpx.Response(200, text="<html>"))
        with pytest.raises(ValueError):
            await client.get_check_detail(1)


class TestPostPaymentStatus:
    @pytest.mark.asyncio
    async def test_body(self, respx_mock, client):
        route = respx_mock.post(f"{BASE}/PaymentStatus").mock(
            return_value=httpx.Response(200, json={"Success": True})
        )

        data = await client.post_payment_status(42, -1)

        assert data == {"Success": True}
        body = json.loads(route.calls.last.request.content)
        assert body == {
            "DeviceId": "DEV-1",
            "RestaurantId": 77,
            "CheckId": 42,
            "Status": -1,
            "PaymentType": 1,
            "Options": {"TipAmount": 0},
            "Payments": [],
        }

    @pytest.mark.asyncio
    async def test_optional_sections(self, respx_mock, client):
        route = respx_mock.post(f"{BASE}/PaymentStatus").mock(return_value=httpx.Response(204))
        data = await client.post_payment_status(
            42, 1, payments=[{"Amount": 10}], customer={"Name": "A"}, invoice={"No": "1"}
        )
        assert data is None
        body = json.loads(route.calls.last.request.content)
        assert body["Payments"] == [{"Amount": 10}]
        assert body["Customer"] == {"Name": "A"}
        assert body["Invoice"] == {"No": "1"}

    @pytest.mark.asyncio
    async def test_missing_check_id_is_not_sent(self, respx_mock, client):
        route = respx_mock.post(f"{BASE}/PaymentStatus")
        with pytest.raises(TypeError):
            await client.post_payment_status(None, 1)
        assert not route.called

    @pytest.mark.asyncio
    async def test_non_2xx_raises(self, respx_mock, client):
        respx_mock.post(f"{BASE}/PaymentStatus").mock(return_value=httpx.Response(503))
        with pytest.raises(httpx.HTTPStatusError):
            await client.post_payment_status(42, 1)
