"""
QFPay Demo - Main Entry Point
Serves the gateway operations over HTTP
"""
import sys

from aiohttp import web

from qfpay_demo.config import config
from qfpay_demo.handlers import create_app
from qfpay_demo.logging import configure_from_config, get_logger

logger = get_logger(__name__)


def main() -> None:
    """Configure logging, validate configuration and run the server"""
    configure_from_config(config)

    try:
        config.validate()
    except ValueError as e:
        logger.error("config_invalid", error=str(e))
        sys.exit(1)

    if not config.is_configured():
        logger.warning(
            "qfpay_credentials_missing",
            hint="set QFPAY_APPCODE and QFPAY_CLIENT_KEY or pass appcode/secretKey per request",
        )

    logger.info(
        "server_starting",
        host=config.host,
        port=config.port,
        api_url=config.qfpay_api_url,
    )
    web.run_app(create_app(), host=config.host, port=config.port, print=None)


if __name__ == "__main__":
    main()
