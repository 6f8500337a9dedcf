"""
QFPay Demo - Request Builder

Turns caller input into the exact parameter set each gateway endpoint
signs and receives. Every operation is described by an OperationSpec
record listing its required fields, optional fields and defaults, so the
parameter set can be audited without following conditional code paths.
"""
from __future__ import annotations

import json
import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Tuple
from urllib.parse import urlencode

from qfpay_demo.exceptions import ValidationError
from qfpay_demo.services.signing import stringify

GATEWAY_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

CREDIT_CARD_PAY_TYPE = "802801"
DEFAULT_CURRENCY = "HKD"
DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10

_TRADE_NO_ALPHABET = string.ascii_uppercase + string.digits


def gateway_timestamp(now: Optional[datetime] = None) -> str:
    """Current UTC time as ``YYYY-MM-DD HH:MM:SS``"""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime(GATEWAY_DATETIME_FORMAT)


def generate_trade_number() -> str:
    """Merchant trade number: ``QF_<epoch ms>_<6 random chars>``.

    Collisions are unlikely but possible; idempotency is up to the caller.
    """
    suffix = "".join(random.choices(_TRADE_NO_ALPHABET, k=6))
    return f"QF_{int(time.time() * 1000)}_{suffix}"


def encode_form(params: Mapping[str, Any]) -> str:
    """URL-encode a parameter set for the request body"""
    return urlencode([(key, stringify(key, value)) for key, value in params.items()])


@dataclass(frozen=True)
class OperationSpec:
    """Gateway schema for one operation.

    ``defaults`` maps a field to a factory used when the caller leaves it
    out or blank. Required fields without a default raise ValidationError.
    Fields outside ``required`` and ``optional`` never reach the gateway.
    """
    name: str
    path: str
    required: Tuple[str, ...]
    optional: Tuple[str, ...] = ()
    defaults: Mapping[str, Callable[[], Any]] = field(default_factory=dict)

    @property
    def fields(self) -> Tuple[str, ...]:
        return self.required + self.optional

    def build(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Merge ``data`` with defaults into an ordered parameter set"""
        params: Dict[str, Any] = {}
        for key in self.fields:
            value = _clean(data.get(key))
            if value is None and key in self.defaults:
                value = self.defaults[key]()
            if value is None:
                if key in self.required:
                    raise ValidationError(key)
                continue
            params[key] = value
        return params


def _clean(value: Any) -> Any:
    """Strip strings; blank strings count as absent"""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _constant(value: Any) -> Callable[[], Any]:
    return lambda: value


def positive_int(value: Any, field_name: str) -> int:
    """Parse an integer that must be > 0 (int or string of digits)"""
    if isinstance(value, bool):
        raise ValidationError(field_name, f"{field_name} must be a positive integer")
    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str) and value.strip().isdecimal():
        number = int(value.strip())
    else:
        raise ValidationError(field_name, f"{field_name} must be a positive integer")
    if number <= 0:
        raise ValidationError(field_name, f"{field_name} must be a positive integer")
    return number


# ==================== Operation Schemas ====================

CUSTOMER = OperationSpec(
    name="customer",
    path="/customer/v1/create",
    required=("name", "phone", "email"),
    defaults={
        "name": _constant("Demo Customer"),
        "phone": _constant(""),
        "email": _constant("demo@example.com"),
    },
)

PAYMENT_INTENT = OperationSpec(
    name="payment_intent",
    path="/payment_element/v1/create_payment_intent",
    required=("txamt", "txcurrcd", "pay_type", "out_trade_no", "txdtm"),
    optional=("customer_id", "intent_expiry"),
    defaults={
        "txcurrcd": _constant(DEFAULT_CURRENCY),
        "pay_type": _constant(CREDIT_CARD_PAY_TYPE),
        "out_trade_no": generate_trade_number,
        "txdtm": gateway_timestamp,
    },
)

TOKEN_INTENT = OperationSpec(
    name="token_intent",
    path="/payment_element/v1/create_token_intent",
    required=("customer_id", "token_reason"),
    defaults={
        "customer_id": lambda: f"DEMO_CUSTOMER_{int(time.time() * 1000)}",
        "token_reason": _constant("QFPay Demo Token Creation"),
    },
)

PRODUCT = OperationSpec(
    name="product",
    path="/product/v1/create",
    required=("name", "txamt", "txcurrcd"),
    optional=("type", "description", "interval", "interval_count", "usage_type"),
)

SUBSCRIPTION_CREATE = OperationSpec(
    name="subscription",
    path="/subscription/v1/create",
    required=("customer_id", "token_id", "products"),
    optional=("total_billing_cycles", "start_time"),
    defaults={"start_time": gateway_timestamp},
)

# page/page_size are sent on the wire even when the caller omits them,
# so the signed parameter set is never empty
SUBSCRIPTION_QUERY = OperationSpec(
    name="subscription_query",
    path="/subscription/v1/query",
    required=("page", "page_size"),
    optional=("subscription_id", "customer_id", "state"),
    defaults={
        "page": _constant(str(DEFAULT_PAGE)),
        "page_size": _constant(str(DEFAULT_PAGE_SIZE)),
    },
)

OPERATIONS = {
    spec.name: spec
    for spec in (
        CUSTOMER,
        PAYMENT_INTENT,
        TOKEN_INTENT,
        PRODUCT,
        SUBSCRIPTION_CREATE,
        SUBSCRIPTION_QUERY,
    )
}


# Demo catalogue for trying out subscriptions; amounts in HKD cents
SAMPLE_PRODUCTS: Tuple[Dict[str, Any], ...] = (
    {
        "name": "Basic Monthly Plan",
        "type": "recurring",
        "txamt": 999,
        "txcurrcd": "HKD",
        "interval": "monthly",
        "interval_count": 1,
        "description": "Basic subscription plan with monthly billing",
    },
    {
        "name": "Premium Annual Plan",
        "type": "recurring",
        "txamt": 9999,
        "txcurrcd": "HKD",
        "interval": "yearly",
        "interval_count": 1,
        "description": "Premium subscription plan with annual billing",
    },
    {
        "name": "Weekly Newsletter",
        "type": "recurring",
        "txamt": 299,
        "txcurrcd": "HKD",
        "interval": "weekly",
        "interval_count": 1,
        "description": "Weekly newsletter subscription",
    },
)


def sample_products() -> list:
    """Fresh copies of the demo catalogue, ready for create_product"""
    return [dict(product) for product in SAMPLE_PRODUCTS]


# ==================== Per-operation Builders ====================

def customer_params(data: Mapping[str, Any]) -> Dict[str, str]:
    return _as_strings(CUSTOMER.build(data))


def payment_intent_params(
    amount: Any,
    currency: Optional[str] = DEFAULT_CURRENCY,
    customer_id: Optional[str] = None,
    expiry: Optional[str] = None,
) -> Dict[str, str]:
    """Parameters for a payment intent.

    ``amount`` is in minor currency units. ``expiry`` is passed through
    exactly as typed by the caller.
    """
    if _clean(amount) is None:
        raise ValidationError("amount")
    txamt = positive_int(amount, "amount")
    return _as_strings(PAYMENT_INTENT.build({
        "txamt": str(txamt),
        "txcurrcd": currency,
        "customer_id": customer_id,
        "intent_expiry": expiry,
    }))


def token_intent_params(customer_id: Optional[str] = None) -> Dict[str, str]:
    return _as_strings(TOKEN_INTENT.build({"customer_id": customer_id}))


def product_params(data: Mapping[str, Any]) -> Dict[str, str]:
    params = PRODUCT.build(data)
    params["txamt"] = positive_int(params["txamt"], "txamt")
    if "interval_count" in params:
        params["interval_count"] = positive_int(params["interval_count"], "interval_count")
    return _as_strings(params)


def serialize_products(products: Any) -> str:
    """Validate subscription products and render them as compact JSON.

    Order is the caller's; only product_id and quantity are kept.
    """
    if not isinstance(products, (list, tuple)) or not products:
        raise ValidationError("products", "Products must be a non-empty array")

    items = []
    for index, product in enumerate(products):
        if not isinstance(product, Mapping):
            raise ValidationError(f"products[{index}]", "Each product must be an object")
        product_id = product.get("product_id")
        if not isinstance(product_id, str) or not product_id.strip():
            raise ValidationError(
                f"products[{index}].product_id",
                "Each product must have product_id (string) and quantity (number)",
            )
        quantity = product.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, (int, float)):
            raise ValidationError(
                f"products[{index}].quantity",
                "Each product must have product_id (string) and quantity (number)",
            )
        if isinstance(quantity, float) and quantity.is_integer():
            quantity = int(quantity)
        items.append({"product_id": product_id.strip(), "quantity": quantity})

    return json.dumps(items, separators=(",", ":"), ensure_ascii=False)


def subscription_params(data: Mapping[str, Any]) -> Dict[str, str]:
    merged = dict(data)
    if "products" not in merged or merged["products"] is None:
        raise ValidationError("products")
    merged["products"] = serialize_products(merged["products"])
    params = SUBSCRIPTION_CREATE.build(merged)
    if "total_billing_cycles" in params:
        params["total_billing_cycles"] = positive_int(
            params["total_billing_cycles"], "total_billing_cycles"
        )
    return _as_strings(params)


def subscription_query_params(filters: Optional[Mapping[str, Any]] = None) -> Dict[str, str]:
    """Query parameters; page defaults are always sent so the set is never empty"""
    params = SUBSCRIPTION_QUERY.build(filters or {})
    params["page"] = positive_int(params["page"], "page")
    params["page_size"] = positive_int(params["page_size"], "page_size")
    return _as_strings(params)


def _as_strings(params: Mapping[str, Any]) -> Dict[str, str]:
    return {key: stringify(key, value) for key, value in params.items()}
