"""
QFPay Demo - Configuration
Loads settings from environment variables
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_API_URL = "https://openapi-int.qfapi.com"
SUPPORTED_SIGN_TYPES = ("MD5", "SHA256")


@dataclass
class Config:
    """Backend configuration from environment variables"""

    # Payment gateway (QFPay open API)
    qfpay_api_url: str
    qfpay_appcode: Optional[str]
    qfpay_client_key: Optional[str]
    qfpay_sign_type: str
    qfpay_timeout: float

    # Route server
    host: str
    port: int

    # Logging
    log_level: str
    log_format: str
    log_file: Optional[str]
    log_retention_days: int

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment variables"""
        return cls(
            qfpay_api_url=os.getenv("QFPAY_API_URL", DEFAULT_API_URL).rstrip("/"),
            qfpay_appcode=os.getenv("QFPAY_APPCODE"),
            qfpay_client_key=os.getenv("QFPAY_CLIENT_KEY"),
            qfpay_sign_type=os.getenv("QFPAY_SIGN_TYPE", "MD5").upper(),
            qfpay_timeout=float(os.getenv("QFPAY_TIMEOUT", "30")),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8080")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
            log_file=os.getenv("LOG_FILE") or None,
            log_retention_days=int(os.getenv("LOG_RETENTION_DAYS", "30")),
        )

    def is_configured(self) -> bool:
        """Check if default gateway credentials are available"""
        return bool(self.qfpay_appcode and self.qfpay_client_key)

    def validate(self) -> None:
        """Validate configuration values"""
        if not self.qfpay_api_url.startswith(("http://", "https://")):
            raise ValueError(f"QFPAY_API_URL must be an http(s) URL: {self.qfpay_api_url}")
        if self.qfpay_sign_type not in SUPPORTED_SIGN_TYPES:
            raise ValueError(
                f"QFPAY_SIGN_TYPE must be one of {', '.join(SUPPORTED_SIGN_TYPES)}"
            )
        if self.qfpay_timeout <= 0:
            raise ValueError("QFPAY_TIMEOUT must be positive")


# Global config instance
config = Config.from_env()
