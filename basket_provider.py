# basket_provider.py
import enum
import logging
import time
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

import config
from models import (
    Basket, BasketPrice, EmployeeInfo, PaymentOption, Price, Product,
    as_number, round2,
)
from reference_parser import Unresolvable, inner_reference, parse_check_id, parse_composite_reference
from rop_client import RopClient

logger = logging.getLogger(__name__)

FALLBACK_PRODUCT_NAME = "Test Product"

# Upstream field aliases, tried left to right. The first non-empty value wins.
LINE_LIST_FIELDS = ("Details", "Lines", "items")
LINE_FIELDS: Dict[str, Tuple[str, ...]] = {
    "name": ("Name", "name", "ItemName"),
    "quantity": ("Quantity", "qty", "Qty"),
    "total": ("Total", "Gross", "LineTotal"),
    "unit_price": ("Price", "UnitPrice", "unitPrice"),
    "sku": ("Code", "Sku", "ItemCode"),
}


class FallbackReason(enum.Enum):
    PROVIDER_DISABLED = "provider_disabled"
    UUID_REFERENCE = "uuid_reference"
    UNPARSEABLE_REFERENCE = "unparseable_reference"
    UPSTREAM_ERROR = "upstream_error"
    NO_LINES = "no_lines"


class Resolution(NamedTuple):
    basket: Basket
    fallback_reason: Optional[FallbackReason] = None
    error: Optional[BaseException] = None


def pick(record: Mapping, names: Tuple[str, ...]) -> Any:
    for name in names:
        value = record.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        return value
    return None


def _decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        d = Decimal(str(value).strip())
    except ArithmeticError:
        return None
    return d if d.is_finite() else None


def configured_employee_info() -> Optional[EmployeeInfo]:
    ref = config.employee_reference()
    if not ref:
        return None
    return EmployeeInfo(employee_reference_code=ref, **config.employee_fields())


def _echo(reference_code: Any) -> str:
    if reference_code is None:
        return ""
    return reference_code if isinstance(reference_code, str) else str(reference_code)


def _basket(reference_code: Any, products: List[Product], total: Decimal) -> Basket:
    amount = as_number(round2(total))
    return Basket(
        reference_code=_echo(reference_code),
        basket_price=BasketPrice(gross_price=amount),
        products=products,
        employee_info=configured_employee_info(),
        payment_options=[PaymentOption(amount=amount)],
    )


def fallback_basket(reference_code: Any) -> Basket:
    """Deterministic single-line basket priced at BASKET_DEFAULT_TOTAL."""
    total = round2(config.default_total())
    product = Product(
        reference_code=config.fallback_sku(),
        name=FALLBACK_PRODUCT_NAME,
        quantity=1,
        price=Price(gross_price=as_number(total)),
    )
    return _basket(reference_code, [product], total)


def map_line(line: Any) -> Optional[Product]:
    """One upstream check line -> basket product, None for unusable lines."""
    if not isinstance(line, Mapping):
        return None
    raw_qty = pick(line, LINE_FIELDS["quantity"])
    qty = Decimal(1) if raw_qty is None else _decimal(raw_qty)
    if qty is None or qty <= 0:
        return None

    total = _decimal(pick(line, LINE_FIELDS["total"]))
    if total:
        unit_gross = total / qty
    else:
        unit_gross = _decimal(pick(line, LINE_FIELDS["unit_price"])) or Decimal(0)

    name = str(pick(line, LINE_FIELDS["name"]) or "Item")
    sku = pick(line, LINE_FIELDS["sku"]) or name
    return Product(
        reference_code=str(sku),
        name=name,
        quantity=as_number(qty),
        price=Price(gross_price=as_number(round2(unit_gross))),
    )


def map_products(rop: Any) -> List[Product]:
    if not isinstance(rop, Mapping):
        return []
    lines = None
    for field in LINE_LIST_FIELDS:
        if rop.get(field) is not None:
            lines = rop[field]
            break
    if not isinstance(lines, list):
        return []
    products = []
    for line in lines:
        product = map_line(line)
        if product is not None:
            products.append(product)
    return products


def products_total(products: List[Product]) -> Decimal:
    return round2(sum(
        (round2(p.price.gross_price) * _decimal(p.quantity) for p in products),
        Decimal(0),
    ))


def rop_lines_to_basket(reference_code: Any, rop: Any) -> Basket:
    products = map_products(rop)
    if not products:
        return fallback_basket(reference_code)
    return _basket(reference_code, products, products_total(products))


def _fallback(reference_code: Any, reason: FallbackReason, error: Optional[BaseException] = None) -> Resolution:
    logger.info("resolve_basket: fallback basket ref=%s reason=%s", reference_code, reason.value)
    return Resolution(fallback_basket(reference_code), reason, error)


async def resolve(reference_code: Any, client: Optional[RopClient] = None) -> Resolution:
    """Basket for ``reference_code`` plus the reason the fallback was used, if any."""
    provider = config.basket_provider()
    if provider != "rop":
        return _fallback(reference_code, FallbackReason.PROVIDER_DISABLED)

    credentials: Dict[str, Any] = {}
    composite = parse_composite_reference(inner_reference(reference_code))
    if composite is not None:
        check_id = composite.check_id
        credentials = {"device_id": composite.device_id, "restaurant_id": composite.restaurant_id}
    else:
        check_id = parse_check_id(reference_code)
        if check_id is Unresolvable.UUID:
            return _fallback(reference_code, FallbackReason.UUID_REFERENCE)
        if check_id is None:
            return _fallback(reference_code, FallbackReason.UNPARSEABLE_REFERENCE)

    try:
        client = client or RopClient.from_env()
        t0 = time.monotonic()
        rop = await client.get_check_detail(check_id, **credentials)
        logger.info("resolve_basket: ROP check fetched checkId=%s ms=%d", check_id, (time.monotonic() - t0) * 1000)
        products = map_products(rop)
    except Exception as e:
        logger.error("resolve_basket: ROP lookup failed ref=%s error=%s", reference_code, e)
        return _fallback(reference_code, FallbackReason.UPSTREAM_ERROR, e)

    if not products:
        return _fallback(reference_code, FallbackReason.NO_LINES)

    basket = _basket(reference_code, products, products_total(products))
    logger.info(
        "resolve_basket: basket from ROP ref=%s total=%s products=%d employee=%s",
        basket.reference_code, basket.basket_price.gross_price, len(products),
        basket.employee_info is not None,
    )
    return Resolution(basket)


async def resolve_basket(reference_code: Any, client: Optional[RopClient] = None) -> Basket:
    return (await resolve(reference_code, client)).basket
