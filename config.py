import os
import json
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

def _coerce_bool(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)

def _coerce_list(value):
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(item).strip() for item in value if str(item).strip()]
    raise TypeError("expected a list or comma-separated string")


# Sources
POSITIONS_CSV = os.getenv("POSITIONS_CSV", "positions.csv")
CONTENTFUL_SPACE_ID = os.getenv("SPACE_ID", "")
CONTENTFUL_ACCESS_TOKEN = os.getenv("ACCESS_TOKEN", "")
CONTENTFUL_ENVIRONMENT = os.getenv("CONTENTFUL_ENVIRONMENT", "master")
CONTENTFUL_CONTENT_TYPE = os.getenv("CONTENTFUL_CONTENT_TYPE", "positions")
CONTENTFUL_LOCALE = os.getenv("CONTENTFUL_LOCALE", "en-US")

# Telegram delivery; any debug flag routes to the test chat
TG_BOT_TOKEN = os.getenv("TG_BOT_TOKEN", "")
TG_CHAT_ID = os.getenv("TG_CHAT_ID", "@LeverageRatioAlerts")
TG_TEST_CHAT_ID = os.getenv("TG_TEST_CHAT_ID", "")
TG_TEST_BOT_TOKEN = os.getenv("TG_TEST_BOT_TOKEN", "")

# Debug switches: EXTREME_LONGS, HOURLY, EXTREME_SHORTS, LOW_TF_LEVERAGE
DEBUG_FLAGS = _coerce_list(os.getenv("DEBUG_FLAGS", ""))

# Message options
HINTS_ENABLED = os.getenv("HINTS_ENABLED", "true").lower() == "true"
CHART_PATH = os.getenv("CHART_PATH", "chart.png")

# Runtime
POLL_SEC = int(os.getenv("POLL_SEC", "1800"))
STATE_STORE_PATH = os.getenv("STATE_STORE_PATH", "")
METRICS_PORT = int(os.getenv("METRICS_PORT", "0"))

# Thresholds (USD notional)
LEVERAGE_THRESHOLD = int(os.getenv("LEVERAGE_THRESHOLD", "50000000"))
EXTREME_LEVERAGE_THRESHOLD = int(os.getenv("EXTREME_LEVERAGE_THRESHOLD", "70000000"))
VOLATILITY_PCT = int(os.getenv("VOLATILITY_PCT", "50"))
# 0 disables the |diff| gate on the 1h volatility alert
VOLATILITY_MIN_IMBALANCE = int(os.getenv("VOLATILITY_MIN_IMBALANCE", "0"))
LOW_TF_THRESHOLD_SCALE = float(os.getenv("LOW_TF_THRESHOLD_SCALE", "0.1"))

CONFIG_JSON_PATH = Path(os.getenv("ALERTS_CONFIG_JSON", "config.json"))

if CONFIG_JSON_PATH.exists():
    try:
        _json_config = json.loads(CONFIG_JSON_PATH.read_text(encoding="utf-8"))
    except Exception as exc:
        raise RuntimeError(f"Failed to parse {CONFIG_JSON_PATH}: {exc}") from exc

    if 'positions_csv' in _json_config:
        POSITIONS_CSV = str(_json_config['positions_csv'])
    if 'contentful_space_id' in _json_config:
        CONTENTFUL_SPACE_ID = str(_json_config['contentful_space_id'])
    if 'contentful_environment' in _json_config:
        CONTENTFUL_ENVIRONMENT = str(_json_config['contentful_environment'])
    if 'contentful_content_type' in _json_config:
        CONTENTFUL_CONTENT_TYPE = str(_json_config['contentful_content_type'])
    if 'contentful_locale' in _json_config:
        CONTENTFUL_LOCALE = str(_json_config['contentful_locale'])
    if 'tg_chat_id' in _json_config:
        TG_CHAT_ID = str(_json_config['tg_chat_id'])
    if 'tg_test_chat_id' in _json_config:
        TG_TEST_CHAT_ID = str(_json_config['tg_test_chat_id'])
    if 'debug_flags' in _json_config:
        DEBUG_FLAGS = _coerce_list(_json_config['debug_flags'])
    if 'hints_enabled' in _json_config:
        HINTS_ENABLED = _coerce_bool(_json_config['hints_enabled'])
    if 'chart_path' in _json_config:
        CHART_PATH = str(_json_config['chart_path'])
    if 'poll_sec' in _json_config:
        POLL_SEC = int(_json_config['poll_sec'])
    if 'state_store_path' in _json_config:
        STATE_STORE_PATH = str(_json_config['state_store_path'])
    if 'metrics_port' in _json_config:
        METRICS_PORT = int(_json_config['metrics_port'])
    if 'thresholds' in _json_config:
        th = _json_config['thresholds'] or {}
        if 'leverage' in th:
            LEVERAGE_THRESHOLD = int(th['leverage'])
        if 'extreme_leverage' in th:
            EXTREME_LEVERAGE_THRESHOLD = int(th['extreme_leverage'])
        if 'volatility_pct' in th:
            VOLATILITY_PCT = int(th['volatility_pct'])
        if 'volatility_min_imbalance' in th:
            VOLATILITY_MIN_IMBALANCE = int(th['volatility_min_imbalance'])
        if 'low_tf_scale' in th:
            LOW_TF_THRESHOLD_SCALE = float(th['low_tf_scale'])

    del _json_config
