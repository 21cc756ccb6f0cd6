# config.py
# Everything is read from the environment on each call so that operators (and tests)
# can change values without restarting the process.
import os
from decimal import Decimal, InvalidOperation
from typing import Optional

DEFAULT_TOTAL = "100.00"
DEFAULT_FALLBACK_SKU = "ITEM-TEST"
DEFAULT_IDEMPOTENCY_TTL_MS = 10 * 60 * 1000
DEFAULT_IDEMPOTENCY_MAX_KEYS = 10000
DEFAULT_ROP_BASE_URL = "http://test.ropapi.com/V6/App2App"
DEFAULT_ROP_TIMEOUT_MS = 5000

# employee field -> env var
EMPLOYEE_ENV = {
    "name": "ODEAL_EMPLOYEE_NAME",
    "surname": "ODEAL_EMPLOYEE_SURNAME",
    "identity_number": "ODEAL_EMPLOYEE_IDENTITY_NUMBER",
    "gsm_number": "ODEAL_EMPLOYEE_GSM_NUMBER",
    "mail_address": "ODEAL_EMPLOYEE_MAIL_ADDRESS",
}


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() == "true"


def env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, ""))
    except ValueError:
        return default


def env_str(name: str) -> Optional[str]:
    """Stripped value of ``name``; blank counts as unset."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def basket_provider() -> str:
    return (os.getenv("BASKET_PROVIDER") or "mock").strip().lower()


def default_total() -> Decimal:
    try:
        total = Decimal(os.getenv("BASKET_DEFAULT_TOTAL") or DEFAULT_TOTAL)
        total.quantize(Decimal("0.01"))
    except InvalidOperation:
        return Decimal(DEFAULT_TOTAL)
    return total if total.is_finite() and total >= 0 else Decimal(DEFAULT_TOTAL)


def fallback_sku() -> str:
    return env_str("BASKET_FALLBACK_SKU") or DEFAULT_FALLBACK_SKU


def employee_reference() -> Optional[str]:
    return env_str("ODEAL_EMPLOYEE_REF") or env_str("ODEAL_EMPLOYEE_CODE")


def employee_fields() -> dict:
    return {field: env_str(var) for field, var in EMPLOYEE_ENV.items()}


def require_employee() -> bool:
    return env_flag("ODEAL_REQUIRE_EMPLOYEE", default=True)


def idempotency_ttl_ms() -> int:
    return env_int("IDEMPOTENCY_TTL_MS", DEFAULT_IDEMPOTENCY_TTL_MS)


def idempotency_max_keys() -> int:
    return env_int("IDEMPOTENCY_MAX_KEYS", DEFAULT_IDEMPOTENCY_MAX_KEYS)


def rop_autosync() -> bool:
    return env_flag("ROUTE_ROP_AUTOSYNC")


def rop_base_url() -> str:
    return (os.getenv("ROP_BASE_URL") or DEFAULT_ROP_BASE_URL).rstrip("/")


def rop_timeout_s() -> float:
    return env_int("ROP_HTTP_TIMEOUT_MS", DEFAULT_ROP_TIMEOUT_MS) / 1000


def rop_device_id() -> Optional[str]:
    return env_str("ROP_DEVICE_ID")


def rop_restaurant_id() -> Optional[int]:
    raw = env_str("ROP_RESTAURANT_ID")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def is_production() -> bool:
    return (os.getenv("APP_ENV") or "").strip().lower() == "production"


def request_key() -> Optional[str]:
    return os.getenv("ODEAL_REQUEST_KEY") or None


def log_level() -> str:
    return (os.getenv("ODEAL_LOG_LEVEL") or "INFO").upper()


def cors_allow_origins() -> list:
    return os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")
