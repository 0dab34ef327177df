import json
import logging

import pytest
import requests

from leverage_alerts.telegram_notifier import TelegramNotifier
from tests.helpers.fakes import FakeResponse, FakeSession

pytestmark = pytest.mark.unit


def test_dry_run_without_token(caplog):
    notifier = TelegramNotifier()
    caplog.set_level(logging.INFO, logger="leverage_alerts.telegram_notifier")

    assert notifier.dry_run is True
    assert notifier.send("hello") is True

    records = [json.loads(rec.message) for rec in caplog.records]
    assert len(records) == 1
    assert records[0]["type"] == "TELEGRAM_DRY_RUN"
    assert records[0]["method"] == "sendMessage"
    assert records[0]["payload"]["text"] == "hello"
    assert records[0]["payload"]["parse_mode"] == "HTML"


def test_dry_run_env_switch(monkeypatch):
    monkeypatch.setenv("TELEGRAM_DRY_RUN", "true")
    notifier = TelegramNotifier(token="t", chat_id="@chan", session=FakeSession())
    assert notifier.dry_run is True


def test_empty_message_is_not_sent():
    session = FakeSession()
    notifier = TelegramNotifier(token="t", chat_id="@chan", session=session)
    assert notifier.send("") is False
    assert session.calls == []


def test_send_photo_when_chart_exists(tmp_path):
    chart = tmp_path / "chart.png"
    chart.write_bytes(b"\x89PNG")
    session = FakeSession([FakeResponse({"ok": True})])
    notifier = TelegramNotifier(token="abc", chat_id="@chan", session=session)

    assert notifier.send("<b>hi</b>", photo=chart) is True

    call = session.calls[0]
    assert call["url"].endswith("/botabc/sendPhoto")
    assert call["data"]["caption"] == "<b>hi</b>"
    assert call["data"]["chat_id"] == "@chan"
    assert call["files"]["photo"] == str(chart)


def test_missing_chart_falls_back_to_text(tmp_path):
    session = FakeSession([FakeResponse({"ok": True})])
    notifier = TelegramNotifier(token="abc", chat_id="@chan", session=session)

    assert notifier.send("hi", photo=tmp_path / "missing.png") is True
    assert session.calls[0]["url"].endswith("/sendMessage")


def test_http_failure_returns_false(caplog):
    session = FakeSession([FakeResponse({"ok": False}, status_code=500)])
    notifier = TelegramNotifier(token="abc", chat_id="@chan", session=session)
    caplog.set_level(logging.WARNING, logger="leverage_alerts.telegram_notifier")

    assert notifier.send("hi") is False
    assert any("sendMessage failed" in rec.message for rec in caplog.records)


def test_connection_error_returns_false():
    class BrokenSession(FakeSession):
        def post(self, url, **kwargs):
            raise requests.ConnectionError("offline")

    notifier = TelegramNotifier(token="abc", chat_id="@chan", session=BrokenSession())
    assert notifier.send("hi") is False
