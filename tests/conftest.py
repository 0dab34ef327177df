from pathlib import Path

import pytest


@pytest.fixture(scope="session")
def repo_root() -> Path:
    return Path(__file__).resolve().parents[1]


@pytest.fixture(autouse=True)
def isolate_delivery_env(monkeypatch):
    # never reach Telegram from tests unless a test opts in
    for key in ("TG_BOT_TOKEN", "TG_CHAT_ID", "TELEGRAM_DRY_RUN"):
        monkeypatch.delenv(key, raising=False)
    yield
