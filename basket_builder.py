# basket_builder.py
"""Ödeal basket builder and validator.

Used when basket contents come from first-class inputs (mock data, future
basket-creation endpoints) rather than from a ROP check. Every basket it returns
is schema aligned:

- referenceCode (string)
- receiptInfo / customerInfo (object), customInfo (any|null)
- employeeInfo {} or { employeeReferenceCode, name, surname, identityNumber, gsmNumber, mailAddress }
- basketPrice { grossPrice }
- products [ { referenceCode, name, quantity, unitCode, price { grossPrice, vatRatio, sctRatio } } ]
- paymentOptions [ { type: 'CREDITCARD', amount } ]

Money is rounded half-up to 2 decimals once, while the basket is assembled.
"""
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Union

import config
from models import (
    Basket, BasketItem, BasketPrice, EmployeeInfo, PaymentOption, Price, Product,
    CENT, UNIT_CODE, as_number, round2,
)

DEFAULT_MOCK_TOTAL = Decimal("100")
MOCK_SKU = "ITEM-TEST"
MOCK_NAME = "Test Product"

# employeeInfo wire key -> error suffix / model field
EMPLOYEE_FIELDS = {
    "name": "name",
    "surname": "surname",
    "identityNumber": "identity_number",
    "gsmNumber": "gsm_number",
    "mailAddress": "mail_address",
}


class BasketValidationError(ValueError):
    """A basket broke exactly one invariant; ``kind`` names it."""

    def __init__(self, kind: str):
        super().__init__(kind)
        self.kind = kind


def _coerce_text(value: Any, kind: str) -> Optional[str]:
    """Scalar -> stripped string, blank -> None, anything else is rejected."""
    if value is None:
        return None
    if isinstance(value, (str, int, float, Decimal)):  # bool is an int
        text = str(value).strip()
        return text or None
    raise BasketValidationError(kind)


def normalize_employee_info(employee_ref: Any = None, employee_info: Any = None) -> Optional[EmployeeInfo]:
    """Merge the legacy ``employee_ref`` with a structured employeeInfo object.

    The object's own ``employeeReferenceCode`` wins over ``employee_ref``. Returns
    None when no reference code can be resolved (extra fields alone are dropped).
    """
    if isinstance(employee_info, EmployeeInfo):
        employee_info = employee_info.model_dump(by_alias=True)
    if employee_info is not None and not isinstance(employee_info, Mapping):
        raise BasketValidationError("employee_info_invalid")
    info = employee_info or {}

    ref = _coerce_text(info.get("employeeReferenceCode"), "employee_reference_invalid")
    if ref is None:
        ref = _coerce_text(employee_ref, "employee_reference_invalid")
    if ref is None:
        return None

    fields = {
        attr: _coerce_text(info.get(key), f"employee_{attr}_invalid")
        for key, attr in EMPLOYEE_FIELDS.items()
    }
    return EmployeeInfo(employee_reference_code=ref, **fields)


def _item_fields(item: Union[BasketItem, Mapping]) -> Dict[str, Any]:
    if isinstance(item, BasketItem):
        return item.model_dump(by_alias=True)
    return dict(item) if isinstance(item, Mapping) else {}


def _number(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return Decimal(0)
    if isinstance(value, bool):
        return None
    try:
        d = Decimal(str(value))
        if not d.is_finite():
            return None
        # raises when too large to quantize to cents
        d.quantize(CENT)
    except ArithmeticError:
        return None
    return d


def _product(item: Any) -> Optional[Product]:
    fields = _item_fields(item)
    name = fields.get("name")
    reference_code = fields.get("referenceCode")
    quantity = _number(fields.get("quantity"))
    unit_gross = _number(fields.get("unitGross"))
    if not name or not reference_code:
        return None
    if quantity is None or quantity <= 0 or unit_gross is None or unit_gross < 0:
        return None
    return Product(
        reference_code=str(reference_code),
        name=str(name),
        quantity=as_number(quantity),
        unit_code=str(fields.get("unitCode") or UNIT_CODE),
        price=Price(
            gross_price=as_number(round2(unit_gross)),
            vat_ratio=as_number(_number(fields.get("vatRatio")) or Decimal(0)),
            sct_ratio=as_number(_number(fields.get("sctRatio")) or Decimal(0)),
        ),
    )


def validate_basket(basket: Any, require_employee: Optional[bool] = None) -> None:
    """Raise BasketValidationError for the first broken invariant of ``basket``."""
    if isinstance(basket, Basket):
        basket = basket.to_wire()
    if not isinstance(basket, Mapping):
        raise BasketValidationError("basket_missing")
    if not str(basket.get("referenceCode") or "").strip():
        raise BasketValidationError("reference_code_missing")

    products = basket.get("products")
    if not isinstance(products, list) or not products:
        raise BasketValidationError("products_missing")
    for p in products:
        if not isinstance(p, Mapping) or not p.get("name") or not p.get("referenceCode"):
            raise BasketValidationError("product_fields_missing")
        quantity = p.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, (int, float)) or quantity <= 0:
            raise BasketValidationError("product_quantity_invalid")
        price = p.get("price")
        if not isinstance(price, Mapping) or not _is_amount(price.get("grossPrice")):
            raise BasketValidationError("product_price_invalid")

    basket_price = basket.get("basketPrice")
    if not isinstance(basket_price, Mapping) or not _is_amount(basket_price.get("grossPrice")):
        raise BasketValidationError("basket_price_missing")
    options = basket.get("paymentOptions")
    if not isinstance(options, list) or not options:
        raise BasketValidationError("payment_options_missing")

    if require_employee is None:
        require_employee = config.require_employee()
    if require_employee:
        employee = basket.get("employeeInfo")
        if not isinstance(employee, Mapping) or not employee.get("employeeReferenceCode"):
            raise BasketValidationError("employee_reference_missing")


def _is_amount(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def build_basket(
    reference_code: Any,
    items: Optional[Iterable[Any]] = None,
    *,
    employee_ref: Any = None,
    employee_info: Any = None,
    payment_amount: Any = None,
    customer_info: Optional[Dict[str, Any]] = None,
    receipt_info: Optional[Dict[str, Any]] = None,
    custom_info: Any = None,
    require_employee: Optional[bool] = None,
) -> Basket:
    if reference_code is None or not str(reference_code).strip():
        raise BasketValidationError("reference_code_missing")

    products = [p for p in (_product(it) for it in items or []) if p is not None]
    if not products:
        raise BasketValidationError("products_missing")

    total = round2(sum(
        (round2(p.price.gross_price) * Decimal(str(p.quantity)) for p in products),
        Decimal(0),
    ))
    amount = total if payment_amount is None else round2(payment_amount)

    basket = Basket(
        reference_code=str(reference_code),
        receipt_info=receipt_info or {},
        custom_info=custom_info,
        employee_info=normalize_employee_info(employee_ref, employee_info),
        customer_info=customer_info or {},
        basket_price=BasketPrice(gross_price=as_number(total)),
        products=products,
        payment_options=[PaymentOption(amount=as_number(amount))],
    )
    validate_basket(basket, require_employee=require_employee)
    return basket


def build_mock(
    reference_code: Any,
    total: Any = None,
    *,
    employee_ref: Any = None,
    employee_info: Any = None,
    require_employee: Optional[bool] = None,
) -> Basket:
    t = round2(DEFAULT_MOCK_TOTAL if total is None else total)
    return build_basket(
        reference_code,
        [{"referenceCode": MOCK_SKU, "name": MOCK_NAME, "quantity": 1, "unitGross": t}],
        employee_ref=employee_ref,
        employee_info=employee_info,
        payment_amount=t,
        require_employee=require_employee,
    )
