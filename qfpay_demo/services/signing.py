"""Request signing for the QFPay open API.

The gateway authenticates every call with a digest of the request
parameters:

1. Sort the parameters by key (plain code-point order).
2. Join them as ``key=value`` pairs with ``&``. Nothing is escaped here;
   form encoding happens separately when the request body is built.
3. Append the client key directly, with no separator.
4. Hash the result with MD5 or SHA256 and hex-encode it.

The signature and the merchant app code travel as request headers.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from qfpay_demo.exceptions import SigningError, ValidationError

HEADER_APPCODE = "X-Auth-AppCode"
HEADER_SIGNATURE = "X-Auth-Signature"
HEADER_SIGNATURE_TYPE = "X-Auth-SignatureType"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

_DIGESTS = {
    "MD5": hashlib.md5,
    "SHA256": hashlib.sha256,
}


@dataclass(frozen=True)
class SignedRequest:
    """Signature plus the auth headers derived from it"""
    canonical: str
    signature: str
    signature_type: str
    headers: Dict[str, str]


def stringify(key: str, value: Any) -> str:
    """Render a scalar parameter value the way the gateway expects it.

    Numbers are plain decimals; whole floats drop their ``.0``.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(
            key,
            f"Parameter {key} must be a string or number, got {type(value).__name__}",
        )
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def canonicalize(params: Mapping[str, Any]) -> str:
    """Return the canonical ``a=1&b=2`` form of ``params``.

    Keys are sorted ascending; values are used as-is. An empty mapping
    gives an empty string.
    """
    return "&".join(f"{key}={stringify(key, params[key])}" for key in sorted(params))


def normalize_algorithm(algorithm: str) -> str:
    """Return the upper-cased algorithm name or raise ValidationError."""
    name = (algorithm or "").strip().upper()
    if name not in _DIGESTS:
        raise ValidationError(
            "algorithm",
            f"Unsupported signature algorithm: {algorithm!r} (expected MD5 or SHA256)",
        )
    return name


def sign(canonical: str, secret: str, algorithm: str = "MD5") -> str:
    """Hex digest of ``canonical + secret``. An empty secret raises SigningError."""
    if not secret:
        raise SigningError()
    digest = _DIGESTS[normalize_algorithm(algorithm)]
    return digest((canonical + secret).encode("utf-8")).hexdigest()


def build_auth_headers(
    params: Mapping[str, Any],
    appcode: str,
    secret: str,
    algorithm: str = "MD5",
) -> SignedRequest:
    """Sign ``params`` and build the headers sent with every gateway call."""
    if not appcode:
        raise ValidationError("appcode")
    if not params:
        raise ValidationError("params", "Refusing to sign an empty parameter set")

    signature_type = normalize_algorithm(algorithm)
    canonical = canonicalize(params)
    signature = sign(canonical, secret, signature_type)

    headers = {
        HEADER_APPCODE: appcode,
        HEADER_SIGNATURE: signature,
        HEADER_SIGNATURE_TYPE: signature_type,
        "Content-Type": FORM_CONTENT_TYPE,
    }
    return SignedRequest(
        canonical=canonical,
        signature=signature,
        signature_type=signature_type,
        headers=headers,
    )


__all__ = [
    "HEADER_APPCODE",
    "HEADER_SIGNATURE",
    "HEADER_SIGNATURE_TYPE",
    "FORM_CONTENT_TYPE",
    "SignedRequest",
    "stringify",
    "canonicalize",
    "normalize_algorithm",
    "sign",
    "build_auth_headers",
]
