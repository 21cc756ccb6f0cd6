"""Shared fixtures: isolated environment, fake clock, fake ROP client."""

from unittest.mock import AsyncMock

import pytest

from idempotency import IdempotencyStore
from rop_client import RopClient

ENV_VARS = (
    "BASKET_PROVIDER",
    "BASKET_DEFAULT_TOTAL",
    "BASKET_FALLBACK_SKU",
    "ODEAL_EMPLOYEE_REF",
    "ODEAL_EMPLOYEE_CODE",
    "ODEAL_EMPLOYEE_NAME",
    "ODEAL_EMPLOYEE_SURNAME",
    "ODEAL_EMPLOYEE_IDENTITY_NUMBER",
    "ODEAL_EMPLOYEE_GSM_NUMBER",
    "ODEAL_EMPLOYEE_MAIL_ADDRESS",
    "ODEAL_REQUIRE_EMPLOYEE",
    "IDEMPOTENCY_TTL_MS",
    "IDEMPOTENCY_MAX_KEYS",
    "ROUTE_ROP_AUTOSYNC",
    "ROP_BASE_URL",
    "ROP_HTTP_TIMEOUT_MS",
    "ROP_DEVICE_ID",
    "ROP_RESTAURANT_ID",
    "APP_ENV",
    "ODEAL_REQUEST_KEY",
)


class FakeClock:
    """Advanceable epoch-milliseconds clock."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> IdempotencyStore:
    return IdempotencyStore(clock=clock)


@pytest.fixture
def rop_client() -> AsyncMock:
    return AsyncMock(spec=RopClient)
