# main.py
import hmac
import logging
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlencode

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

import config  # noqa: E402
from basket_provider import resolve_basket  # noqa: E402
from models import A2AResultOut, Basket, HealthOut, WebhookAck  # noqa: E402
from reference_parser import resolved_check_id  # noqa: E402
from webhook_bridge import WebhookEvent, handle_webhook  # noqa: E402

logging.basicConfig(
    level=config.log_level(),
    format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("odeal_adapter")

# path segments Ödeal uses when the real reference travels in the query string
DELEGATING_SEGMENTS = ("payment", "directcharge")
DELEGATED_REF_PARAMS = ("customInfo", "reference", "ref")

app = FastAPI(title="Ödeal ↔ ROP basket adapter")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_allow_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-ODEAL-REQUEST-KEY"],
)

if not config.request_key():
    logger.warning("ODEAL_REQUEST_KEY is not set; requests will be unauthorized")


def now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


# ------------------------ auth ------------------------
def verify_odeal(x_odeal_request_key: Optional[str] = Header(None)) -> None:
    expected = config.request_key()
    if not expected or not x_odeal_request_key or not hmac.compare_digest(
        x_odeal_request_key.encode(), expected.encode()
    ):
        raise HTTPException(status_code=401, detail="Unauthorized")


def require_json(request: Request) -> None:
    content_type = request.headers.get("content-type", "")
    if content_type.split(";", 1)[0].strip().lower() != "application/json":
        raise HTTPException(status_code=415, detail="Unsupported Media Type")


# ------------------------ health ------------------------
@app.get("/health", response_model=HealthOut)
def health():
    return HealthOut(ts=now_iso())


# ------------------------ baskets ------------------------
def reference_from_request(reference_code: str, request: Request) -> str:
    if reference_code in DELEGATING_SEGMENTS:
        for param in DELEGATED_REF_PARAMS:
            value = request.query_params.get(param, "").strip()
            if value:
                return value
    return reference_code


@app.get(
    "/app2app/baskets/{reference_code}",
    response_model=Basket,
    dependencies=[Depends(verify_odeal)],
)
async def get_basket(reference_code: str, request: Request):
    ref = reference_from_request(reference_code, request)
    basket = await resolve_basket(ref)
    logger.info("basket refRaw=%s -> ref=%s ok", reference_code, ref)
    return basket


# ------------------------ webhooks ------------------------
@app.post(
    "/webhooks/odeal/{event}",
    response_model=WebhookAck,
    response_model_exclude_none=True,
    dependencies=[Depends(verify_odeal), Depends(require_json)],
)
async def odeal_webhook(event: WebhookEvent, request: Request):
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    return await handle_webhook(event, payload or {})


# ------------------------ app2app result callback ------------------------
@app.get("/odeal/a2a-result", response_model=A2AResultOut)
def a2a_result(
    basketReferenceCode: Optional[str] = None,
    result: Optional[str] = None,
    reason: Optional[str] = None,
):
    if not basketReferenceCode:
        raise HTTPException(
            status_code=400,
            detail="basketReferenceCode parameter is required in callback",
        )
    successful = (result or "").strip().lower() == "true"
    check_id = resolved_check_id(basketReferenceCode)
    logger.info(
        "a2a result ref=%s result=%s reason=%s checkId=%s",
        basketReferenceCode, successful, reason, check_id,
    )
    deep_link = "rop://payment-result?" + urlencode({
        "basketReferenceCode": basketReferenceCode,
        "result": "true" if successful else "false",
        "reason": reason or "",
        "checkId": "" if check_id is None else check_id,
    })
    return A2AResultOut(
        basket_reference_code=basketReferenceCode,
        check_id=check_id,
        payment_successful=successful,
        reason=reason or None,
        timestamp=now_iso(),
        deep_link=deep_link,
    )
