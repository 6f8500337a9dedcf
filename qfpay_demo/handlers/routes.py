"""
QFPay Demo - HTTP Routes
Thin JSON wrappers around the gateway operations
"""
from __future__ import annotations

import json
from typing import Any, Dict, Optional

from aiohttp import web

from qfpay_demo.logging import get_logger
from qfpay_demo.services.base import OperationResult
from qfpay_demo.services.qfpay import QFPayAPI, qfpay_api
from qfpay_demo.services.requests import sample_products

logger = get_logger(__name__)

API_KEY = web.AppKey("qfpay_api", QFPayAPI)

# HTTP status per failure kind; transport failures reuse the gateway status
FAILURE_STATUS = {
    "validation": 400,
    "application": 400,
    "signing": 500,
    "unexpected": 500,
}

ENDPOINTS: Dict[str, Dict[str, Any]] = {
    "/api/qfpay/signature": {
        "description": "Sign a parameter set for a QFPay open API call",
        "required_fields": ["params", "appcode"],
        "optional_fields": ["algorithm", "secretKey"],
    },
    "/api/qfpay/customer/create": {
        "description": "Create QFPay customer",
        "required_fields": ["appcode"],
        "optional_fields": ["name", "phone", "email", "secretKey"],
    },
    "/api/qfpay/payment-intent/create": {
        "description": "Create QFPay card payment intent",
        "required_fields": ["amount", "appcode"],
        "optional_fields": ["currency", "customer_id", "expiry", "secretKey"],
    },
    "/api/qfpay/token-intent/create": {
        "description": "Create QFPay token intent for card tokenization",
        "required_fields": ["appcode"],
        "optional_fields": ["customer_id", "secretKey"],
    },
    "/api/qfpay/product/create": {
        "description": "Create QFPay product for recurring payments",
        "required_fields": ["name", "txamt", "txcurrcd", "appcode"],
        "optional_fields": [
            "type", "description", "interval", "interval_count", "usage_type", "secretKey",
        ],
    },
    "/api/qfpay/subscription/create": {
        "description": "Create QFPay subscription with products",
        "required_fields": ["customer_id", "token_id", "products", "appcode"],
        "optional_fields": ["total_billing_cycles", "start_time", "secretKey"],
        "products_format": [{"product_id": "prod_xxx", "quantity": 1}],
    },
    "/api/qfpay/subscription/query": {
        "description": "Query existing QFPay subscriptions with optional filters",
        "required_fields": ["appcode"],
        "optional_fields": [
            "page", "page_size", "subscription_id", "customer_id", "state", "secretKey",
        ],
    },
}


def result_response(result: OperationResult, result_key: Optional[str]) -> web.Response:
    """Render an OperationResult as JSON with a matching HTTP status"""
    if result.success:
        status = 200
    elif result.error_kind == "transport":
        status = result.status if result.status and result.status >= 400 else 502
    else:
        status = FAILURE_STATUS.get(result.error_kind or "unexpected", 500)
    return web.json_response(result.to_dict(result_key), status=status)


async def _read_body(request: web.Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise web.HTTPBadRequest(
            text=json.dumps({"success": False, "error": f"Invalid JSON body: {e}"}),
            content_type="application/json",
        )
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(
            text=json.dumps({"success": False, "error": "JSON body must be an object"}),
            content_type="application/json",
        )
    return body


def _api(request: web.Request) -> QFPayAPI:
    return request.app[API_KEY]


# ============== Operation Routes ==============

async def handle_signature(request: web.Request) -> web.Response:
    body = await _read_body(request)
    result = _api(request).generate_signature(
        body.get("params") or {},
        body.get("appcode"),
        body.get("algorithm"),
        body.get("secretKey"),
    )
    return result_response(result, None)


async def handle_customer_create(request: web.Request) -> web.Response:
    body = await _read_body(request)
    result = await _api(request).create_customer(
        body, body.get("appcode"), body.get("secretKey")
    )
    return result_response(result, "customer")


async def handle_payment_intent_create(request: web.Request) -> web.Response:
    body = await _read_body(request)
    result = await _api(request).create_payment_intent(
        body.get("amount"),
        body.get("currency"),
        body.get("appcode"),
        body.get("secretKey"),
        body.get("customer_id"),
        body.get("expiry"),
    )
    return result_response(result, "paymentIntent")


async def handle_token_intent_create(request: web.Request) -> web.Response:
    body = await _read_body(request)
    result = await _api(request).create_token_intent(
        body.get("customer_id"), body.get("appcode"), body.get("secretKey")
    )
    return result_response(result, "tokenIntent")


async def handle_product_create(request: web.Request) -> web.Response:
    body = await _read_body(request)
    result = await _api(request).create_product(
        body, body.get("appcode"), body.get("secretKey")
    )
    return result_response(result, "product")


async def handle_subscription_create(request: web.Request) -> web.Response:
    body = await _read_body(request)
    result = await _api(request).create_subscription(
        body, body.get("appcode"), body.get("secretKey")
    )
    return result_response(result, "subscription")


async def handle_subscription_query(request: web.Request) -> web.Response:
    body = await _read_body(request)
    result = await _api(request).query_subscriptions(
        body, body.get("appcode"), body.get("secretKey")
    )
    return result_response(result, "result")


# ============== Info Routes ==============

async def handle_describe(request: web.Request) -> web.Response:
    path = request.match_info.route.resource.canonical
    return web.json_response({"endpoint": path, "method": "POST", **ENDPOINTS[path]})


async def handle_product_samples(request: web.Request) -> web.Response:
    return web.json_response({"success": True, "testProducts": sample_products()})


async def handle_health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


POST_HANDLERS = {
    "/api/qfpay/signature": handle_signature,
    "/api/qfpay/customer/create": handle_customer_create,
    "/api/qfpay/payment-intent/create": handle_payment_intent_create,
    "/api/qfpay/token-intent/create": handle_token_intent_create,
    "/api/qfpay/product/create": handle_product_create,
    "/api/qfpay/subscription/create": handle_subscription_create,
    "/api/qfpay/subscription/query": handle_subscription_query,
}


def create_app(api: Optional[QFPayAPI] = None) -> web.Application:
    """Build the aiohttp application; ``api`` defaults to the global client"""
    app = web.Application()
    app[API_KEY] = api or qfpay_api

    for path, handler in POST_HANDLERS.items():
        app.router.add_post(path, handler)
        app.router.add_get(path, handle_describe)
    app.router.add_get("/api/qfpay/product/samples", handle_product_samples)
    app.router.add_get("/health", handle_health)

    logger.info("routes_registered", count=len(POST_HANDLERS))
    return app
