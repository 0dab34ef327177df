from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from .models import AlertCategory

logger = logging.getLogger(__name__)


@dataclass
class StateStore:
    """Holds the last announced alert category between cycles.

    With ``path`` unset the value lives in memory only and every process starts
    at ``NO_ALERT``.
    """

    path: Optional[Path] = None
    _current: AlertCategory = field(default=AlertCategory.NO_ALERT, init=False)
    _loaded: bool = field(default=False, init=False)

    def _load(self) -> Dict:
        if self.path is None or not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except Exception as exc:
            logger.warning("Ignoring unreadable alert state %s: %s", self.path, exc)
            return {}

    def _save(self, data: Dict) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

    def get(self) -> AlertCategory:
        if not self._loaded:
            raw = self._load().get("last_alert")
            try:
                self._current = AlertCategory(raw) if raw else AlertCategory.NO_ALERT
            except ValueError:
                logger.warning("Unknown alert state %r; starting from NO_ALERT", raw)
                self._current = AlertCategory.NO_ALERT
            self._loaded = True
        return self._current

    def set(self, category: AlertCategory) -> None:
        previous = self.get()
        self._current = category
        if category != previous:
            self._save(
                {
                    "last_alert": category.value,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                }
            )
