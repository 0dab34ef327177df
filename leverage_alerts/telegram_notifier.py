from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import requests

API_BASE = "https://api.telegram.org"


class TelegramNotifier:
    """Minimal Telegram Bot API adapter (dry-run friendly)."""

    def __init__(
        self,
        token: Optional[str] = None,
        chat_id: Optional[str] = None,
        *,
        dry_run: Optional[bool] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
        logger_name: str = __name__,
    ) -> None:
        self._logger = logging.getLogger(logger_name)
        self._token = token if token is not None else os.environ.get("TG_BOT_TOKEN", "")
        self._chat_id = chat_id if chat_id is not None else os.environ.get("TG_CHAT_ID", "")
        if dry_run is None:
            dry_run = os.environ.get("TELEGRAM_DRY_RUN", "false").strip().lower() == "true"
        self._dry = bool(dry_run) or not self._token or not self._chat_id
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def dry_run(self) -> bool:
        return self._dry

    @property
    def chat_id(self) -> str:
        return self._chat_id

    def _url(self, method: str) -> str:
        return f"{API_BASE}/bot{self._token}/{method}"

    def _dispatch(self, method: str, payload: Dict[str, Any], photo: Optional[Path] = None) -> bool:
        if self._dry:
            body = {"type": "TELEGRAM_DRY_RUN", "method": method, "payload": payload}
            if photo is not None:
                body["photo"] = str(photo)
            self._logger.info(json.dumps(body, sort_keys=True))
            return True
        try:
            if photo is not None:
                with open(photo, "rb") as fh:
                    resp = self._session.post(
                        self._url(method), data=payload, files={"photo": fh}, timeout=self._timeout
                    )
            else:
                resp = self._session.post(self._url(method), data=payload, timeout=self._timeout)
            resp.raise_for_status()
            return True
        except (requests.RequestException, OSError) as exc:
            self._logger.warning("Telegram %s failed: %s", method, exc)
            return False

    def send_message(self, text: str) -> bool:
        payload = {"chat_id": self._chat_id, "text": text, "parse_mode": "HTML"}
        return self._dispatch("sendMessage", payload)

    def send_photo(self, caption: str, photo: Path) -> bool:
        payload = {"chat_id": self._chat_id, "caption": caption, "parse_mode": "HTML"}
        return self._dispatch("sendPhoto", payload, photo=photo)

    def send(self, text: str, *, photo: Optional[Path] = None) -> bool:
        if not text:
            return False
        if photo is not None and Path(photo).exists():
            return self.send_photo(text, Path(photo))
        return self.send_message(text)
