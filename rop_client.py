# rop_client.py
import logging
import time
from typing import Any, Dict, List, Optional

import httpx

import config

logger = logging.getLogger(__name__)


class RopClientError(RuntimeError):
    """Configuration problem of the ROP client (credentials, TLS policy)."""


class RopClient:
    """Thin async client for the ROP App2App API (CheckDetail / PaymentStatus)."""

    def __init__(
        self,
        base_url: str = config.DEFAULT_ROP_BASE_URL,
        *,
        timeout_s: float = config.DEFAULT_ROP_TIMEOUT_MS / 1000,
        device_id: Optional[str] = None,
        restaurant_id: Optional[int] = None,
        production: bool = False,
    ) -> None:
        is_https = base_url.lower().startswith("https://")
        if production and not is_https:
            raise RopClientError("ROP_BASE_URL must be HTTPS in production")
        if not is_https:
            logger.warning("ROP_BASE_URL is not HTTPS; use TLS in production (url=%s)", base_url)
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.device_id = device_id
        self.restaurant_id = restaurant_id

    @classmethod
    def from_env(cls) -> "RopClient":
        return cls(
            config.rop_base_url(),
            timeout_s=config.rop_timeout_s(),
            device_id=config.rop_device_id(),
            restaurant_id=config.rop_restaurant_id(),
            production=config.is_production(),
        )

    def _credentials(self, device_id: Optional[str], restaurant_id: Optional[int]) -> Dict[str, Any]:
        device_id = device_id or self.device_id
        restaurant_id = restaurant_id if restaurant_id is not None else self.restaurant_id
        if not device_id or restaurant_id is None:
            raise RopClientError("Missing ROP credentials (device_id, restaurant_id)")
        return {"DeviceId": str(device_id), "RestaurantId": int(restaurant_id)}

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_s, follow_redirects=False)

    async def get_check_detail(
        self,
        check_id: int,
        *,
        device_id: Optional[str] = None,
        restaurant_id: Optional[int] = None,
        check_no: int = 0,
        table_no: str = "",
    ) -> Any:
        params = {
            **self._credentials(device_id, restaurant_id),
            "CheckId": check_id,
            "CheckNo": check_no,
            "TableNo": table_no,
        }
        url = f"{self.base_url}/CheckDetail"
        t0 = time.monotonic()
        logger.info("ROP CheckDetail -> GET %s checkId=%s deviceId=%s", url, params["CheckId"], params["DeviceId"])
        async with self._http() as client:
            r = await client.get(url, params=params)
            r.raise_for_status()
            data = r.json()
        logger.info("ROP CheckDetail <- OK checkId=%s ms=%d", params["CheckId"], (time.monotonic() - t0) * 1000)
        return data

    async def post_payment_status(
        self,
        check_id: int,
        status: int,
        *,
        device_id: Optional[str] = None,
        restaurant_id: Optional[int] = None,
        payment_type: int = 1,
        options: Optional[Dict[str, Any]] = None,
        payments: Optional[List[Dict[str, Any]]] = None,
        customer: Optional[Dict[str, Any]] = None,
        invoice: Optional[Dict[str, Any]] = None,
    ) -> Any:
        body: Dict[str, Any] = {
            **self._credentials(device_id, restaurant_id),
            "CheckId": int(check_id),
            "Status": int(status),
            "PaymentType": int(payment_type),
            "Options": options or {"TipAmount": 0},
            "Payments": payments or [],
        }
        if customer:
            body["Customer"] = customer
        if invoice:
            body["Invoice"] = invoice

        url = f"{self.base_url}/PaymentStatus"
        t0 = time.monotonic()
        logger.info(
            "ROP PaymentStatus -> POST %s checkId=%s status=%s payments=%d",
            url, body["CheckId"], body["Status"], len(body["Payments"]),
        )
        async with self._http() as client:
            r = await client.post(url, json=body)
            r.raise_for_status()
            data = r.json() if r.content else None
        logger.info(
            "ROP PaymentStatus <- OK checkId=%s status=%s ms=%d",
            body["CheckId"], body["Status"], (time.monotonic() - t0) * 1000,
        )
        return data
