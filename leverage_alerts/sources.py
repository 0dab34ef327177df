"""Raw readers for the two position sources.

Both return unparsed rows; normalisation happens in ``reconciler``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
import requests

from .errors import FetchError

__all__ = ["HistoricalFileSource", "ContentStoreClient", "CMA_BASE"]

logger = logging.getLogger(__name__)

CMA_BASE = "https://api.contentful.com"
PAGE_LIMIT = 1000


class HistoricalFileSource:
    """Reads the exported ``positions.csv`` snapshot history."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def fetch(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            raise FetchError(f"historical positions file not found: {self.path}")
        try:
            df = pd.read_csv(self.path, dtype=str, keep_default_na=False)
        except pd.errors.EmptyDataError:
            logger.info("Historical positions file %s is empty", self.path)
            return []
        except (OSError, UnicodeDecodeError, pd.errors.ParserError) as exc:
            raise FetchError(f"failed to read {self.path}: {exc}") from exc
        df.columns = [str(col).strip() for col in df.columns]
        rows = df.to_dict(orient="records")
        logger.debug("Loaded %d historical rows from %s", len(rows), self.path)
        return rows


class ContentStoreClient:
    """Pages through position entries of the Contentful management API."""

    def __init__(
        self,
        space_id: str,
        access_token: str,
        *,
        environment: str = "master",
        content_type: str = "positions",
        base_url: str = CMA_BASE,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.space_id = space_id
        self.environment = environment
        self.content_type = content_type
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._headers = {"Authorization": f"Bearer {access_token}"}

    @property
    def entries_url(self) -> str:
        return f"{self.base_url}/spaces/{self.space_id}/environments/{self.environment}/entries"

    def _get_page(self, skip: int) -> Dict[str, Any]:
        params = {"content_type": self.content_type, "skip": skip, "limit": PAGE_LIMIT}
        try:
            resp = self._session.get(self.entries_url, params=params, headers=self._headers, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise FetchError(f"content store request failed: {exc}") from exc
        if not isinstance(data, dict) or not isinstance(data.get("items"), list):
            raise FetchError("content store response has no 'items' list")
        return data

    def fetch(self) -> List[Dict[str, Any]]:
        if not self.space_id:
            raise FetchError("content store space id is not configured")
        items: List[Dict[str, Any]] = []
        skip = 0
        while True:
            page = self._get_page(skip)
            batch = page["items"]
            items.extend(batch)
            total = int(page.get("total", len(items)) or 0)
            skip += len(batch)
            if not batch or skip >= total:
                break
        logger.debug("Fetched %d content-store entries", len(items))
        return items
