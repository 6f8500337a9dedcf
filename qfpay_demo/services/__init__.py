from .base import OperationResult
from .signing import build_auth_headers, canonicalize, sign
from .qfpay import (
    QFPayAPI,
    qfpay_api,
    generate_signature,
    create_customer,
    create_payment_intent,
    create_token_intent,
    create_product,
    create_subscription,
    query_subscriptions,
)

__all__ = [
    "OperationResult",
    "build_auth_headers",
    "canonicalize",
    "sign",
    "QFPayAPI",
    "qfpay_api",
    "generate_signature",
    "create_customer",
    "create_payment_intent",
    "create_token_intent",
    "create_product",
    "create_subscription",
    "query_subscriptions",
]
