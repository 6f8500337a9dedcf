"""
QFPay Demo - Gateway Service (QFPay open API)
Customers, payment/token intents, products and subscriptions
API Documentation: https://sdk.qfapi.com
"""
from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, Mapping, Optional, Tuple

import aiohttp

from qfpay_demo.config import config
from qfpay_demo.exceptions import (
    QFPayDemoError,
    SigningError,
    TransportError,
    ValidationError,
)
from qfpay_demo.logging import get_logger
from qfpay_demo.services import requests as builders
from qfpay_demo.services.base import OperationResult
from qfpay_demo.services.responses import (
    Customer,
    PaymentIntent,
    Product,
    Subscription,
    SubscriptionQueryResult,
    TokenIntent,
    map_response,
)
from qfpay_demo.services.signing import build_auth_headers

logger = get_logger(__name__)


class QFPayAPI:
    """QFPay open API client.

    Stateless apart from configuration: each public method signs one
    parameter set, performs one POST and returns an OperationResult.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        client_key: Optional[str] = None,
        appcode: Optional[str] = None,
        sign_type: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.api_url = (api_url or config.qfpay_api_url).rstrip("/")
        self.client_key = client_key if client_key is not None else config.qfpay_client_key
        self.appcode = appcode if appcode is not None else config.qfpay_appcode
        self.sign_type = sign_type or config.qfpay_sign_type
        self.timeout = timeout or config.qfpay_timeout
        self._session = session

    def is_configured(self) -> bool:
        """Check if default credentials are available"""
        return bool(self.appcode and self.client_key)

    def _resolve_secret(self, secret: Optional[str]) -> str:
        resolved = secret or self.client_key
        if not resolved:
            raise SigningError(
                "QFPay client key is missing: pass secretKey or set QFPAY_CLIENT_KEY"
            )
        return resolved

    def _resolve_appcode(self, appcode: Optional[str]) -> str:
        resolved = (appcode or self.appcode or "").strip()
        if not resolved:
            raise ValidationError("appcode")
        return resolved

    async def _send(self, url: str, headers: Dict[str, str], body: str) -> Tuple[int, Any]:
        """
        POST a form body and return (status, decoded body).

        The body is the decoded JSON when it parses, the raw text otherwise.
        Network failures raise TransportError.
        """
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            if self._session is not None:
                return await self._read(self._session, url, headers, body, timeout)
            async with aiohttp.ClientSession() as session:
                return await self._read(session, url, headers, body, timeout)
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"QFPay request timed out after {self.timeout}s", original_error=e
            ) from e
        except aiohttp.ClientError as e:
            raise TransportError(f"Network error: {e}", original_error=e) from e

    @staticmethod
    async def _read(
        session: aiohttp.ClientSession,
        url: str,
        headers: Dict[str, str],
        body: str,
        timeout: aiohttp.ClientTimeout,
    ) -> Tuple[int, Any]:
        async with session.post(url, data=body, headers=headers, timeout=timeout) as response:
            # Proxies may answer with non-UTF-8 error pages; keep the status either way
            text = (await response.read()).decode("utf-8", errors="replace")
            try:
                payload = json.loads(text)
            except json.JSONDecodeError:
                payload = text
            return response.status, payload

    async def _call(
        self,
        spec: builders.OperationSpec,
        params: Dict[str, str],
        appcode: Optional[str],
        secret: Optional[str],
    ) -> Any:
        """Sign, send and map one gateway call. Raises QFPayDemoError."""
        signed = build_auth_headers(
            params,
            self._resolve_appcode(appcode),
            self._resolve_secret(secret),
            self.sign_type,
        )
        headers = {**signed.headers, "Accept": "application/json"}
        body = builders.encode_form(params)
        url = f"{self.api_url}{spec.path}"

        logger.debug("qfpay_signed", operation=spec.name, canonical=signed.canonical, headers=headers)
        logger.info("qfpay_request", operation=spec.name, url=url, params=params)
        status, raw = await self._send(url, headers, body)
        logger.info("qfpay_response", operation=spec.name, status=status, body=raw)

        return map_response(status, raw, spec.name, params)

    async def _run(self, spec: builders.OperationSpec, build, appcode, secret) -> OperationResult:
        try:
            params = build()
            data = await self._call(spec, params, appcode, secret)
        except QFPayDemoError as e:
            logger.warning(
                "qfpay_operation_failed",
                operation=spec.name,
                kind=e.kind,
                error=e.message,
            )
            return OperationResult.from_exception(e)
        except Exception as e:
            logger.exception("qfpay_operation_error", operation=spec.name, error=str(e))
            return OperationResult.from_exception(e)

        logger.info("qfpay_operation_succeeded", operation=spec.name)
        return OperationResult.ok(data)

    # ==================== Public API Methods ====================

    def generate_signature(
        self,
        params: Mapping[str, Any],
        appcode: Optional[str] = None,
        algorithm: Optional[str] = None,
        secret: Optional[str] = None,
    ) -> OperationResult[Dict[str, Any]]:
        """
        Sign an arbitrary parameter set.

        Result data: {"signature": ..., "headers": {...}}
        """
        try:
            signed = build_auth_headers(
                params,
                self._resolve_appcode(appcode),
                self._resolve_secret(secret),
                algorithm or self.sign_type,
            )
        except QFPayDemoError as e:
            logger.warning("qfpay_signature_failed", kind=e.kind, error=e.message)
            return OperationResult.from_exception(e)
        except Exception as e:
            logger.exception("qfpay_signature_error", error=str(e))
            return OperationResult.from_exception(e)

        logger.debug(
            "qfpay_signature_generated",
            algorithm=signed.signature_type,
            keys=sorted(params),
        )
        return OperationResult.ok({"signature": signed.signature, "headers": signed.headers})

    async def create_customer(
        self,
        data: Optional[Mapping[str, Any]] = None,
        appcode: Optional[str] = None,
        secret: Optional[str] = None,
    ) -> OperationResult[Customer]:
        """
        Create a customer record.

        API: /customer/v1/create
        """
        return await self._run(
            builders.CUSTOMER,
            lambda: builders.customer_params(data or {}),
            appcode,
            secret,
        )

    async def create_payment_intent(
        self,
        amount: Any,
        currency: Optional[str] = builders.DEFAULT_CURRENCY,
        appcode: Optional[str] = None,
        secret: Optional[str] = None,
        customer_id: Optional[str] = None,
        expiry: Optional[str] = None,
    ) -> OperationResult[PaymentIntent]:
        """
        Create a card payment intent.

        API: /payment_element/v1/create_payment_intent

        Args:
            amount: Amount in minor units (cents)
            currency: ISO currency code
            customer_id: Attach the intent to an existing customer
            expiry: Intent expiry, sent exactly as given
        """
        return await self._run(
            builders.PAYMENT_INTENT,
            lambda: builders.payment_intent_params(amount, currency, customer_id, expiry),
            appcode,
            secret,
        )

    async def create_token_intent(
        self,
        customer_id: Optional[str] = None,
        appcode: Optional[str] = None,
        secret: Optional[str] = None,
    ) -> OperationResult[TokenIntent]:
        """
        Create a token intent for card tokenization.

        API: /payment_element/v1/create_token_intent
        """
        return await self._run(
            builders.TOKEN_INTENT,
            lambda: builders.token_intent_params(customer_id),
            appcode,
            secret,
        )

    async def create_product(
        self,
        data: Mapping[str, Any],
        appcode: Optional[str] = None,
        secret: Optional[str] = None,
    ) -> OperationResult[Product]:
        """
        Create a product for recurring payments.

        API: /product/v1/create
        """
        return await self._run(
            builders.PRODUCT,
            lambda: builders.product_params(data),
            appcode,
            secret,
        )

    async def create_subscription(
        self,
        data: Mapping[str, Any],
        appcode: Optional[str] = None,
        secret: Optional[str] = None,
    ) -> OperationResult[Subscription]:
        """
        Subscribe a customer's token to one or more products.

        API: /subscription/v1/create
        """
        return await self._run(
            builders.SUBSCRIPTION_CREATE,
            lambda: builders.subscription_params(data),
            appcode,
            secret,
        )

    async def query_subscriptions(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        appcode: Optional[str] = None,
        secret: Optional[str] = None,
    ) -> OperationResult[SubscriptionQueryResult]:
        """
        Page through subscriptions, optionally filtered.

        API: /subscription/v1/query
        """
        return await self._run(
            builders.SUBSCRIPTION_QUERY,
            lambda: builders.subscription_query_params(filters),
            appcode,
            secret,
        )


# Global instance
qfpay_api = QFPayAPI()


# ==================== Module-level Entry Points ====================

def generate_signature(params, appcode=None, algorithm="MD5", secret=None) -> OperationResult:
    return qfpay_api.generate_signature(params, appcode, algorithm, secret)


async def create_customer(data, appcode=None, secret=None) -> OperationResult:
    return await qfpay_api.create_customer(data, appcode, secret)


async def create_payment_intent(
    amount,
    currency=builders.DEFAULT_CURRENCY,
    appcode=None,
    secret=None,
    customer_id=None,
    expiry=None,
) -> OperationResult:
    return await qfpay_api.create_payment_intent(
        amount, currency, appcode, secret, customer_id, expiry
    )


async def create_token_intent(customer_id=None, appcode=None, secret=None) -> OperationResult:
    return await qfpay_api.create_token_intent(customer_id, appcode, secret)


async def create_product(data, appcode=None, secret=None) -> OperationResult:
    return await qfpay_api.create_product(data, appcode, secret)


async def create_subscription(data, appcode=None, secret=None) -> OperationResult:
    return await qfpay_api.create_subscription(data, appcode, secret)


async def query_subscriptions(filters=None, appcode=None, secret=None) -> OperationResult:
    return await qfpay_api.query_subscriptions(filters, appcode, secret)
