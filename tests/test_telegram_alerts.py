"""
Tests for Telegram liquidation alerts.

HTTP is mocked at requests.post; message formatting is checked through the
synchronous send path.
"""

import threading
import time
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import Mock, patch

import pytest
import requests

from liquidator.alerts import AlertConfig, TelegramAlerts
from liquidator.alerts.telegram import MAX_ALERTS_PER_MINUTE
from liquidator.config import Config


@pytest.fixture
def alerts():
    return TelegramAlerts(AlertConfig(bot_token="token", chat_id="chat", min_message_interval=0))


def ok_response(message_id=42):
    response = Mock()
    response.json.return_value = {"ok": True, "result": {"message_id": message_id}}
    response.raise_for_status.return_value = None
    return response


class TestConfig:

    def test_requires_token_unless_dry_run(self):
        with pytest.raises(ValueError):
            TelegramAlerts(AlertConfig(bot_token="", chat_id="chat"))
        TelegramAlerts(AlertConfig(bot_token="", chat_id="", dry_run=True))

    def test_requires_chat_id(self):
        with pytest.raises(ValueError):
            TelegramAlerts(AlertConfig(bot_token="token", chat_id=""))


class TestSendMessage:

    def test_posts_html_message(self, alerts):
        with patch("liquidator.alerts.telegram.requests.post", return_value=ok_response()) as post:
            assert alerts._send_message("<b>hi</b>") == 42

        url = post.call_args[0][0]
        payload = post.call_args[1]["json"]
        assert url.endswith("/bottoken/sendMessage")
        assert payload == {"chat_id": "chat", "text": "<b>hi</b>", "parse_mode": "HTML"}

    def test_dry_run_does_not_post(self):
        alerts = TelegramAlerts(AlertConfig(bot_token="", chat_id="", dry_run=True))
        with patch("liquidator.alerts.telegram.requests.post") as post:
            assert alerts._send_message("hello") == 0
        post.assert_not_called()

    def test_timeout_returns_none(self, alerts):
        with patch("liquidator.alerts.telegram.requests.post", side_effect=requests.exceptions.Timeout()):
            assert alerts._send_message("hello") is None

    def test_http_error_returns_none(self, alerts):
        response = Mock(status_code=400)
        error = requests.exceptions.HTTPError(response=response)
        bad = Mock()
        bad.raise_for_status.side_effect = error
        with patch("liquidator.alerts.telegram.requests.post", return_value=bad):
            assert alerts._send_message("hello") is None

    def test_rate_limited_after_burst(self, alerts):
        with patch("liquidator.alerts.telegram.requests.post", return_value=ok_response()) as post:
            for _ in range(MAX_ALERTS_PER_MINUTE):
                alerts._send_message("x")
            assert alerts._send_message("one too many") is None
            assert alerts._send_message("status", skip_rate_limit=True) == 42
        assert post.call_count == MAX_ALERTS_PER_MINUTE + 1

    def test_long_message_truncated(self, alerts):
        text = alerts._truncate_message("x" * 5000)
        assert len(text) <= alerts.config.max_message_length
        assert text.endswith("(truncated)")


class TestAlertMessages:

    def test_liquidation_alert(self, alerts):
        alerts._send_message_async = Mock()
        ts = datetime(2026, 3, 2, 15, 30, tzinfo=timezone.utc)
        alerts.send_liquidation_alert("Victim1111111111", Decimal("3.5"), "sig123", timestamp=ts)

        text = alerts._send_message_async.call_args[0][0]
        assert "LIQUIDATED at 10:30:00 EST" in text
        assert "<code>Victim1111111111</code>" in text
        assert "Fee margin: 3.5" in text
        assert "sig123" in text

    def test_failure_alert_cooldown_per_account(self, alerts):
        alerts._send_message_async = Mock()
        alerts.send_liquidation_failed_alert("a", "LiquidationError: rejected")
        alerts.send_liquidation_failed_alert("a", "LiquidationError: rejected")
        alerts.send_liquidation_failed_alert("b", "LiquidationError: rejected")

        assert alerts._send_message_async.call_count == 2

    @pytest.mark.parametrize("status,title", [
        ("started", "Liquidator started"),
        ("stopped", "Liquidator stopped"),
        ("error", "Liquidator error"),
        ("paused", "Status: paused"),
    ])
    def test_service_status_skips_rate_limit(self, alerts, status, title):
        alerts._send_message_async = Mock()
        alerts.send_service_status(status, "details here")

        text = alerts._send_message_async.call_args[0][0]
        assert title in text
        assert "details here" in text
        assert alerts._send_message_async.call_args[1] == {"skip_rate_limit": True}


class TestNonBlocking:

    def test_failure_alert_returns_while_send_in_flight(self, alerts):
        entered = threading.Event()
        release = threading.Event()
        both_sent = threading.Event()
        posted = []

        def slow_post(*args, **kwargs):
            posted.append(kwargs["json"]["text"])
            entered.set()
            release.wait(5)
            if len(posted) == 2:
                both_sent.set()
            return ok_response()

        with patch("liquidator.alerts.telegram.requests.post", side_effect=slow_post):
            alerts.send_liquidation_failed_alert("x", "LiquidationError: rejected")
            assert entered.wait(2)

            start = time.monotonic()
            alerts.send_liquidation_failed_alert("y", "LiquidationError: rejected")
            elapsed = time.monotonic() - start

            release.set()
            assert both_sent.wait(5)

        assert elapsed < 0.5
        assert len(posted) == 2


class TestFromConfig:

    def _config(self, **overrides):
        values = dict(
            rpc_url="http://localhost:8899",
            private_key="key",
            liquidator_margin_account="liq-margin",
            gateway_factory="tests.helpers.gateway_stubs:build_gateway",
        )
        values.update(overrides)
        return Config(**values)

    def test_not_configured(self):
        assert TelegramAlerts.from_config(self._config()) is None

    def test_configured(self):
        alerts = TelegramAlerts.from_config(self._config(telegram_bot_token="t", telegram_chat_id="c"))
        assert alerts.config.bot_token == "t"
        assert alerts.config.chat_id == "c"
        assert alerts.config.dry_run is False

    def test_dry_run_never_posts(self):
        alerts = TelegramAlerts.from_config(
            self._config(telegram_bot_token="t", telegram_chat_id="c"), dry_run=True
        )
        assert alerts.config.dry_run is True
        with patch("liquidator.alerts.telegram.requests.post") as post:
            assert alerts._send_message("Liquidator started") == 0
        post.assert_not_called()

    def test_dry_run_without_telegram_logs_to_console(self):
        alerts = TelegramAlerts.from_config(self._config(), dry_run=True)
        assert alerts is not None
        assert alerts.config.dry_run is True
