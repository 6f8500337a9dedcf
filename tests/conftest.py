"""
Pytest configuration for QFPay demo tests

Configures:
- A QFPayAPI client with fixed test credentials
- Helpers for canned gateway replies
"""
import pytest

from qfpay_demo.services.qfpay import QFPayAPI

TEST_API_URL = "https://openapi-test.qfapi.example"
TEST_APPCODE = "TEST_APPCODE"
TEST_CLIENT_KEY = "test_client_key"


def gateway_ok(**fields):
    """Successful gateway reply with the given payload fields"""
    return {
        "response_code": "0000",
        "response_message": "success",
        "server_datetime": "2026-01-15 12:00:00",
        **fields,
    }


@pytest.fixture
def api():
    """QFPayAPI with test credentials"""
    return QFPayAPI(
        api_url=TEST_API_URL,
        client_key=TEST_CLIENT_KEY,
        appcode=TEST_APPCODE,
        sign_type="MD5",
        timeout=5,
    )


@pytest.fixture
def keyless_api():
    """QFPayAPI without a client key"""
    return QFPayAPI(
        api_url=TEST_API_URL,
        client_key="",
        appcode=TEST_APPCODE,
        sign_type="MD5",
        timeout=5,
    )
