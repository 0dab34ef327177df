import importlib
import json
import os
from pathlib import Path

import pytest


def reload_config_with(path: Path):
    os.environ["ALERTS_CONFIG_JSON"] = str(path)
    import config as cfg

    return importlib.reload(cfg)


def test_config_json_overrides(tmp_path):
    good = {
        "positions_csv": "data/positions.csv",
        "debug_flags": ["HOURLY", "EXTREME_LONGS"],
        "hints_enabled": "no",
        "poll_sec": 60,
        "thresholds": {"leverage": 40000000, "low_tf_scale": 0.5},
    }
    p = tmp_path / "config.json"
    p.write_text(json.dumps(good), encoding="utf-8")
    try:
        cfg = reload_config_with(p)
        assert cfg.POSITIONS_CSV == "data/positions.csv"
        assert cfg.DEBUG_FLAGS == ["HOURLY", "EXTREME_LONGS"]
        assert cfg.HINTS_ENABLED is False
        assert cfg.POLL_SEC == 60
        assert cfg.LEVERAGE_THRESHOLD == 40000000
        assert cfg.EXTREME_LEVERAGE_THRESHOLD == 70000000
        assert cfg.LOW_TF_THRESHOLD_SCALE == pytest.approx(0.5)
    finally:
        os.environ.pop("ALERTS_CONFIG_JSON", None)
        import config as cfg

        importlib.reload(cfg)


def test_config_json_parse_failure(tmp_path):
    p = tmp_path / "config.json"
    p.write_text("{broken", encoding="utf-8")
    try:
        with pytest.raises(RuntimeError) as excinfo:
            reload_config_with(p)
        assert "Failed to parse" in str(excinfo.value)
    finally:
        os.environ.pop("ALERTS_CONFIG_JSON", None)
        import sys

        sys.modules.pop("config", None)
        import config  # noqa: F401


def test_cycle_settings_from_config(tmp_path):
    p = tmp_path / "config.json"
    p.write_text(json.dumps({"debug_flags": "LOW_TF_LEVERAGE", "chart_path": ""}), encoding="utf-8")
    try:
        reload_config_with(p)
        from leverage_alerts.cycle import CycleSettings
        from leverage_alerts.models import DebugFlag

        settings = CycleSettings.from_config()
        assert settings.flags == frozenset({DebugFlag.LOW_TF_LEVERAGE})
        assert settings.debug is True
        assert settings.chart_path is None
        assert settings.thresholds.leverage == 50_000_000
    finally:
        os.environ.pop("ALERTS_CONFIG_JSON", None)
        import config as cfg

        importlib.reload(cfg)
