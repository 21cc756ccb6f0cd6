# models.py  (pydantic I/O models)
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

UNIT_CODE = "ADET"
PAYMENT_TYPE = "CREDITCARD"

CENT = Decimal("0.01")


def round2(value: Any) -> Decimal:
    """Half-up rounding to 2 decimals; anything non-numeric counts as 0."""
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value))
    except (ArithmeticError, ValueError, TypeError):
        return Decimal("0.00")
    if not d.is_finite():
        return Decimal("0.00")
    try:
        return d.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # too many digits for the decimal context
        return Decimal("0.00")


def as_number(value: Decimal) -> Union[int, float]:
    """Decimal -> JSON friendly number (ints stay ints)."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---- Basket (Ödeal app2app schema) ----
class Price(CamelModel):
    gross_price: float
    vat_ratio: float = 0
    sct_ratio: float = 0


class Product(CamelModel):
    reference_code: str
    name: str
    quantity: Union[int, float]
    unit_code: str = UNIT_CODE
    price: Price

    @field_validator("quantity")
    def quantity_positive(cls, v):
        if v <= 0:
            raise ValueError("quantity must be > 0")
        return v


class BasketPrice(CamelModel):
    gross_price: float


class PaymentOption(CamelModel):
    type: str = PAYMENT_TYPE
    amount: float


class EmployeeInfo(CamelModel):
    """Cashier/employee attached to a basket.

    Once present, every optional field is serialized, as a string or null.
    """

    employee_reference_code: str
    name: Optional[str] = None
    surname: Optional[str] = None
    identity_number: Optional[str] = None
    gsm_number: Optional[str] = None
    mail_address: Optional[str] = None


class Basket(CamelModel):
    reference_code: str
    basket_price: BasketPrice
    products: List[Product]
    customer_info: Dict[str, Any] = Field(default_factory=dict)
    # None means "no employee context" and goes over the wire as {}
    employee_info: Optional[EmployeeInfo] = None
    receipt_info: Dict[str, Any] = Field(default_factory=dict)
    custom_info: Optional[Any] = None
    payment_options: List[PaymentOption]

    @field_serializer("employee_info")
    def serialize_employee_info(self, value: Optional[EmployeeInfo]):
        if value is None:
            return {}
        return value.model_dump(by_alias=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# ---- Builder input ----
class BasketItem(CamelModel):
    reference_code: Optional[str] = None
    name: Optional[str] = None
    quantity: float = 0
    unit_gross: float = 0
    vat_ratio: float = 0
    sct_ratio: float = 0
    unit_code: str = UNIT_CODE


# ---- Webhook / callback outputs ----
class WebhookAck(BaseModel):
    ok: bool = True
    duplicate: Optional[bool] = None


class A2AResultOut(CamelModel):
    basket_reference_code: str
    check_id: Optional[int] = None
    payment_successful: bool
    reason: Optional[str] = None
    timestamp: str
    deep_link: str


class HealthOut(BaseModel):
    ok: bool = True
    ts: str
