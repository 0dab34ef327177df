import json
from pathlib import Path

import pytest

from leverage_alerts.models import AlertCategory
from leverage_alerts.state_store import StateStore

pytestmark = pytest.mark.unit


def test_in_memory_store_starts_at_no_alert():
    store = StateStore()
    assert store.get() is AlertCategory.NO_ALERT
    store.set(AlertCategory.HEAVY_LONGS)
    assert store.get() is AlertCategory.HEAVY_LONGS


def test_file_store_round_trip(tmp_path: Path):
    path = tmp_path / "state" / "alerts.json"
    StateStore(path).set(AlertCategory.EXTREME_SHORTS)

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["last_alert"] == AlertCategory.EXTREME_SHORTS.value
    assert StateStore(path).get() is AlertCategory.EXTREME_SHORTS


def test_unreadable_state_falls_back_to_no_alert(tmp_path: Path):
    path = tmp_path / "alerts.json"
    path.write_text("{not json", encoding="utf-8")
    assert StateStore(path).get() is AlertCategory.NO_ALERT

    path.write_text(json.dumps({"last_alert": "SOMETHING ELSE"}), encoding="utf-8")
    assert StateStore(path).get() is AlertCategory.NO_ALERT
