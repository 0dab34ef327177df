from __future__ import annotations

import argparse
import logging
import threading
import time
from pathlib import Path
from typing import Callable, Optional

from .cycle import AlertCycle, CycleResult, CycleSettings
from .metrics import start_metrics_server
from .sources import ContentStoreClient, HistoricalFileSource
from .state_store import StateStore
from .telegram_notifier import TelegramNotifier

logger = logging.getLogger(__name__)


class CycleScheduler(threading.Thread):
    """Runs one cycle per interval; a cycle never starts before the last one ends."""

    def __init__(
        self,
        cycle: AlertCycle,
        *,
        interval_sec: float = 1800.0,
        sleep_fn: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(name="cycle-scheduler", daemon=True)
        self.cycle = cycle
        self.interval = interval_sec
        self.sleep_fn = sleep_fn
        self._stop_event = threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    def run(self) -> None:  # pragma: no cover - exercised in integration
        while not self._stop_event.is_set():
            self.run_step()
            self.sleep_fn(self.interval)

    def run_step(self) -> CycleResult:
        try:
            return self.cycle.run_once()
        except Exception as exc:
            # keep the loop alive; next interval is the retry
            logger.exception("Unexpected cycle failure: %s", exc)
            return CycleResult(error=f"{type(exc).__name__}: {exc}")


def build_notifier(settings: CycleSettings) -> TelegramNotifier:
    import config as cfg

    if settings.debug:
        token = cfg.TG_TEST_BOT_TOKEN or cfg.TG_BOT_TOKEN
        return TelegramNotifier(token=token, chat_id=cfg.TG_TEST_CHAT_ID)
    return TelegramNotifier(token=cfg.TG_BOT_TOKEN, chat_id=cfg.TG_CHAT_ID)


def build_cycle(*, background: bool = True) -> AlertCycle:
    import config as cfg

    settings = CycleSettings.from_config()
    notifier = build_notifier(settings)
    historical = HistoricalFileSource(Path(cfg.POSITIONS_CSV))
    live = ContentStoreClient(
        cfg.CONTENTFUL_SPACE_ID,
        cfg.CONTENTFUL_ACCESS_TOKEN,
        environment=cfg.CONTENTFUL_ENVIRONMENT,
        content_type=cfg.CONTENTFUL_CONTENT_TYPE,
    )
    store = StateStore(Path(cfg.STATE_STORE_PATH) if cfg.STATE_STORE_PATH else None)
    if background:
        return AlertCycle(historical, live, store=store, settings=settings, sender=notifier.send)
    return AlertCycle(
        historical,
        live,
        store=store,
        settings=settings,
        dispatch=lambda message, photo: notifier.send(message, photo=photo),
    )


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Leverage ratio alert scheduler")
    parser.add_argument("job", choices=["once", "loop"], help="Run a single cycle or loop forever")
    parser.add_argument("--interval", type=float, default=None, help="Seconds between cycles (default: POLL_SEC)")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    import config as cfg

    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    if args.job == "once":
        build_cycle(background=False).run_once()
        return

    start_metrics_server(cfg.METRICS_PORT)
    interval = args.interval if args.interval is not None else cfg.POLL_SEC
    scheduler = CycleScheduler(build_cycle(), interval_sec=interval)
    scheduler.start()
    try:
        while scheduler.is_alive():
            scheduler.join(timeout=1.0)
    except KeyboardInterrupt:
        logger.info("Stopping scheduler")
        scheduler.stop()


if __name__ == "__main__":
    main()
