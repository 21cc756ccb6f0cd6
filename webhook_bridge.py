# webhook_bridge.py
import enum
import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional

import config
from idempotency import IdempotencyStore, make_event_key
from idempotency import store as default_store
from reference_parser import inner_reference, parse_composite_reference, resolved_check_id
from rop_client import RopClient

logger = logging.getLogger(__name__)


class WebhookEvent(str, enum.Enum):
    SUCCEEDED = "payment-succeeded"
    FAILED = "payment-failed"
    CANCELLED = "payment-cancelled"


# Ödeal outcome -> ROP PaymentStatus.Status
ROP_STATUS: Dict[WebhookEvent, int] = {
    WebhookEvent.SUCCEEDED: 1,
    WebhookEvent.CANCELLED: 0,
    WebhookEvent.FAILED: -1,
}


def payload_reference(payload: Any) -> str:
    if not isinstance(payload, Mapping):
        return ""
    return payload.get("basketReferenceCode") or payload.get("referenceCode") or ""


async def bridge_to_rop(event_type: WebhookEvent, payload: Any, client: Optional[RopClient] = None) -> bool:
    """Report the outcome to ROP. Returns True when a report went out.

    Unresolvable references are skipped and POS errors are only logged.
    """
    event_type = WebhookEvent(event_type)
    ref = payload_reference(payload)
    credentials: Dict[str, Any] = {}
    composite = parse_composite_reference(inner_reference(ref))
    if composite is not None:
        check_id: Optional[int] = composite.check_id
        credentials = {"device_id": composite.device_id, "restaurant_id": composite.restaurant_id}
    else:
        check_id = resolved_check_id(ref)
    if check_id is None:
        logger.debug("webhook bridge: no check id for ref=%r, skipping", ref)
        return False

    status = ROP_STATUS[event_type]
    try:
        client = client or RopClient.from_env()
        await client.post_payment_status(check_id, status, **credentials)
    except Exception as e:
        logger.warning("webhook bridge: ROP PaymentStatus failed checkId=%s status=%s error=%s", check_id, status, e)
        return False
    return True


async def handle_webhook(
    event_type: WebhookEvent,
    payload: Any,
    *,
    store: Optional[IdempotencyStore] = None,
    client: Optional[RopClient] = None,
) -> Dict[str, bool]:
    store = store if store is not None else default_store
    event_type = WebhookEvent(event_type)
    key = make_event_key(event_type, payload)
    if store.is_duplicate(key):
        logger.info("webhook %s: duplicate key=%s", event_type.value, key)
        return {"ok": True, "duplicate": True}
    # remembered before the first await
    store.remember(key)

    if config.rop_autosync():
        await bridge_to_rop(event_type, payload, client)
    logger.info("webhook %s: accepted key=%s", event_type.value, key)
    return {"ok": True}
