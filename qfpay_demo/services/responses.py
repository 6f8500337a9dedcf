"""
QFPay Demo - Response Mapper

Checks the HTTP status and the gateway response code, then projects the
raw gateway JSON into one dataclass per operation. The raw JSON is kept on
every result for diagnostics.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from qfpay_demo.exceptions import GatewayError, TransportError

SUCCESS_CODE = "0000"
NOT_AVAILABLE = "N/A"

# Documented field name first, live gateway alias second
RESPONSE_CODE_FIELDS = ("response_code", "respcd")
RESPONSE_MESSAGE_FIELDS = ("response_message", "respmsg")
SERVER_DATETIME_FIELDS = ("server_datetime", "sysdtm")


@dataclass
class Customer:
    customer_id: Optional[str]
    name: str
    email: str
    phone: str
    created_at: Optional[str]
    response_code: str
    raw_response: Dict[str, Any] = field(repr=False)


@dataclass
class PaymentIntent:
    payment_intent_id: Optional[str]
    out_trade_no: Optional[str]
    amount: int
    currency: str
    status: str
    created_at: Optional[str]
    expires_at: Optional[str]
    response_code: str
    raw_response: Dict[str, Any] = field(repr=False)


@dataclass
class TokenIntent:
    token_intent_id: str
    customer_id: str
    created_at: str
    expires_at: str
    response_code: str
    raw_response: Dict[str, Any] = field(repr=False)


@dataclass
class Product:
    product_id: Optional[str]
    name: str
    type: str
    txamt: int
    txcurrcd: str
    description: Optional[str]
    interval: Optional[str]
    interval_count: Optional[int]
    usage_type: str
    created_at: Optional[str]
    raw_response: Dict[str, Any] = field(repr=False)


@dataclass
class Subscription:
    subscription_id: Optional[str]
    customer_id: str
    token_id: str
    products: List[Dict[str, Any]]
    total_billing_cycles: Optional[int]
    start_time: Optional[str]
    state: str
    created_at: Optional[str]
    raw_response: Dict[str, Any] = field(repr=False)


@dataclass
class SubscriptionQueryResult:
    subscriptions: List[Any]
    total_count: int
    page: int
    page_size: int
    query_params: Dict[str, str]
    raw_response: Dict[str, Any] = field(repr=False)


def _first(raw: Mapping[str, Any], names: tuple) -> Any:
    for name in names:
        if raw.get(name) is not None:
            return raw[name]
    return None


def _data(raw: Mapping[str, Any]) -> Mapping[str, Any]:
    data = raw.get("data")
    return data if isinstance(data, Mapping) else {}


def response_code(raw: Mapping[str, Any]) -> Optional[str]:
    code = _first(raw, RESPONSE_CODE_FIELDS)
    return None if code is None else str(code)


def server_datetime(raw: Mapping[str, Any]) -> Optional[str]:
    return _first(raw, SERVER_DATETIME_FIELDS)


def _optional_int(value: Any) -> Optional[int]:
    if value in (None, ""):
        return None
    return int(value)


_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _lenient_int(value: Any, fallback: int) -> int:
    """Leading integer of a gateway value (``"5.00"`` -> 5), else ``fallback``"""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    match = _LEADING_INT.match(value) if isinstance(value, str) else None
    return int(match.group(1)) if match else fallback


# ==================== Projections ====================

def _customer(raw: Dict[str, Any], params: Mapping[str, str]) -> Customer:
    return Customer(
        customer_id=_data(raw).get("customer_id"),
        name=params.get("name", ""),
        email=params.get("email", ""),
        phone=params.get("phone", ""),
        created_at=server_datetime(raw),
        response_code=SUCCESS_CODE,
        raw_response=raw,
    )


def _payment_intent(raw: Dict[str, Any], params: Mapping[str, str]) -> PaymentIntent:
    return PaymentIntent(
        payment_intent_id=raw.get("payment_intent"),
        out_trade_no=raw.get("out_trade_no") or params.get("out_trade_no"),
        amount=_lenient_int(raw.get("txamt"), int(params["txamt"])),
        currency=raw.get("txcurrcd") or params.get("txcurrcd", ""),
        status="requires_payment_method",
        created_at=server_datetime(raw),
        expires_at=raw.get("intent_expiry"),
        response_code=SUCCESS_CODE,
        raw_response=raw,
    )


def _token_intent(raw: Dict[str, Any], params: Mapping[str, str]) -> TokenIntent:
    return TokenIntent(
        token_intent_id=raw.get("token_intent") or NOT_AVAILABLE,
        customer_id=params.get("customer_id", ""),
        created_at=server_datetime(raw) or datetime.now(timezone.utc).isoformat(),
        expires_at=raw.get("intent_expiry") or NOT_AVAILABLE,
        response_code=SUCCESS_CODE,
        raw_response=raw,
    )


def _product(raw: Dict[str, Any], params: Mapping[str, str]) -> Product:
    return Product(
        product_id=_data(raw).get("product_id"),
        name=params["name"],
        type=params.get("type") or "onetime",
        txamt=int(params["txamt"]),
        txcurrcd=params["txcurrcd"],
        description=params.get("description"),
        interval=params.get("interval"),
        interval_count=_optional_int(params.get("interval_count")),
        usage_type=params.get("usage_type") or "licensed",
        created_at=server_datetime(raw),
        raw_response=raw,
    )


def _subscription(raw: Dict[str, Any], params: Mapping[str, str]) -> Subscription:
    data = _data(raw)
    return Subscription(
        subscription_id=data.get("subscription_id") or raw.get("subscription_id"),
        customer_id=params["customer_id"],
        token_id=params["token_id"],
        products=json.loads(params["products"]),
        total_billing_cycles=_optional_int(params.get("total_billing_cycles")),
        start_time=params.get("start_time"),
        state=data.get("state") or raw.get("state") or "ACTIVE",
        created_at=server_datetime(raw),
        raw_response=raw,
    )


def _subscription_query(raw: Dict[str, Any], params: Mapping[str, str]) -> SubscriptionQueryResult:
    return SubscriptionQueryResult(
        subscriptions=raw.get("data") or [],
        total_count=_lenient_int(raw.get("total_count"), 0),
        page=int(params.get("page", "1")),
        page_size=int(params.get("page_size", "10")),
        query_params=dict(params),
        raw_response=raw,
    )


PROJECTIONS: Dict[str, Callable[[Dict[str, Any], Mapping[str, str]], Any]] = {
    "customer": _customer,
    "payment_intent": _payment_intent,
    "token_intent": _token_intent,
    "product": _product,
    "subscription": _subscription,
    "subscription_query": _subscription_query,
}


def map_response(
    status: int,
    raw: Any,
    operation: str,
    params: Mapping[str, str],
) -> Any:
    """Validate a gateway reply and project it for ``operation``.

    Args:
        status: HTTP status code.
        raw: Decoded JSON body (or the raw text when it was not JSON).
        operation: OperationSpec name.
        params: The parameter set that was sent.

    Raises:
        TransportError: status outside 2xx, or a 2xx body that is not a
            JSON object.
        GatewayError: response code other than ``0000``.
    """
    if not 200 <= status < 300:
        raise TransportError(
            f"QFPay {operation} API error: HTTP {status}",
            status=status,
            body=raw,
        )

    if not isinstance(raw, dict):
        raise TransportError(
            f"QFPay {operation} API returned a non-JSON body",
            status=status,
            body=raw,
        )

    code = response_code(raw)
    if code != SUCCESS_CODE:
        raise GatewayError(
            code=code if code is not None else "missing",
            message=_first(raw, RESPONSE_MESSAGE_FIELDS) or "unknown",
            operation=operation,
            body=raw,
        )

    return PROJECTIONS[operation](raw, params)
