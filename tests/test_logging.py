"""
Tests for structured logging and redaction

Covers:
- Key matching and recursive redaction
- The configured chain writing JSON lines to a log file
- Gateway calls never leaking keys, signatures or tokens
"""
import json
import logging
from unittest.mock import AsyncMock, patch

import pytest
import structlog

from qfpay_demo.config import Config
from qfpay_demo.logging import (
    MASK,
    SensitiveDataFilter,
    _get_log_level,
    configure_from_config,
    get_logger,
    redact,
)

from tests.conftest import TEST_CLIENT_KEY, gateway_ok


@pytest.fixture
def log_file(tmp_path):
    """Logging configured at DEBUG into a temporary JSON file"""
    path = tmp_path / "logs" / "qfpay.log"
    settings = Config.from_env()
    settings.log_level = "DEBUG"
    settings.log_format = "json"
    settings.log_file = str(path)
    configure_from_config(settings)
    structlog.configure(cache_logger_on_first_use=False)
    yield path
    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)
    structlog.reset_defaults()


def _events(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


class TestRedact:
    def test_top_level_keys(self):
        event = SensitiveDataFilter()(None, "info", {
            "event": "qfpay_request",
            "secretKey": "abc",
            "client_key": "0123456789abcdef",
            "canonical": "a=1&b=2",
            "appcode": "APP",
        })

        assert event["secretKey"] == MASK
        assert event["client_key"] == MASK
        assert event["canonical"] == MASK
        assert event["appcode"] == "APP"
        assert event["event"] == "qfpay_request"

    def test_signed_headers(self):
        headers = {
            "X-Auth-AppCode": "APP",
            "X-Auth-Signature": "af97cb1e07cd9f9f1279e0bae215015d",
            "X-Auth-SignatureType": "MD5",
        }
        masked = redact({"headers": headers})["headers"]

        assert masked["X-Auth-Signature"] == MASK
        assert masked["X-Auth-SignatureType"] == "MD5"
        assert masked["X-Auth-AppCode"] == "APP"
        assert headers["X-Auth-Signature"] != MASK

    def test_nested_params_and_lists(self):
        masked = redact({
            "params": {"token_id": "tk_1", "customer_id": "c1"},
            "items": [{"password": "pw"}, "plain"],
        })
        assert masked["params"] == {"token_id": MASK, "customer_id": "c1"}
        assert masked["items"] == [{"password": MASK}, "plain"]

    def test_only_whole_key_matches(self):
        masked = redact({"token_intent": "ti_1", "token_count": 3, "secret": None})
        assert masked == {"token_intent": "ti_1", "token_count": 3, "secret": None}


class TestConfiguredChain:
    def test_writes_json_lines(self, log_file):
        get_logger("tests").info("qfpay_request", secretKey="s3cr3t", appcode="APP")

        events = _events(log_file)
        assert events[0]["event"] == "logging_configured"
        request = events[-1]
        assert request["event"] == "qfpay_request"
        assert request["level"] == "info"
        assert request["appcode"] == "APP"
        assert request["secretKey"] == MASK
        assert "timestamp" in request

    def test_stdlib_records_share_the_chain(self, log_file):
        logging.getLogger("aiohttp.client").warning("upstream slow")
        assert _events(log_file)[-1]["event"] == "upstream slow"

    @pytest.mark.asyncio
    async def test_gateway_call_does_not_leak(self, log_file, api):
        with patch.object(api, "_send", new_callable=AsyncMock) as mock_send:
            mock_send.return_value = (200, gateway_ok(data={"subscription_id": "sub_1"}))
            result = await api.create_subscription({
                "customer_id": "cust_1",
                "token_id": "tk_live_card",
                "products": [{"product_id": "prod_1", "quantity": 1}],
            })

        assert result.success is True
        text = log_file.read_text(encoding="utf-8")
        signature = mock_send.call_args[0][1]["X-Auth-Signature"]
        assert signature not in text
        assert "tk_live_card" not in text
        assert TEST_CLIENT_KEY not in text

        signed = next(e for e in _events(log_file) if e["event"] == "qfpay_signed")
        assert signed["canonical"] == MASK
        assert signed["headers"]["X-Auth-SignatureType"] == "MD5"


def test_log_level_names():
    assert _get_log_level("debug") == logging.DEBUG
    assert _get_log_level("WARNING") == logging.WARNING
    assert _get_log_level("verbose") == logging.INFO
