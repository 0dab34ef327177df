"""One evaluation cycle: fetch, reconcile, derive, classify, compose, hand off.

Developer tip:
    python -m leverage_alerts.schedulers once --log-level DEBUG
runs a single cycle against the configured sources and logs the decision.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Protocol

from . import metrics
from .classifier import Decision, Thresholds, Transition, classify
from .composer import compose
from .deriver import MetricsBundle, derive_metrics
from .errors import LeverageAlertError
from .models import AlertCategory, DebugFlag
from .reconciler import DEFAULT_LOCALE, reconcile
from .state_store import StateStore

__all__ = [
    "CycleSettings",
    "CycleResult",
    "AlertCycle",
    "evaluate",
    "parse_debug_flags",
]

logger = logging.getLogger(__name__)


class Source(Protocol):
    def fetch(self) -> List[Dict[str, Any]]: ...


Dispatcher = Callable[[str, Optional[Path]], Any]


def parse_debug_flags(values: Iterable[str]) -> FrozenSet[DebugFlag]:
    flags = set()
    for value in values:
        key = str(value).strip().upper()
        if not key:
            continue
        try:
            flags.add(DebugFlag(key))
        except ValueError:
            logger.warning("Ignoring unknown debug flag %r", value)
    return frozenset(flags)


@dataclass(frozen=True)
class CycleSettings:
    thresholds: Thresholds = field(default_factory=Thresholds)
    flags: FrozenSet[DebugFlag] = frozenset()
    hints: bool = True
    locale: str = DEFAULT_LOCALE
    chart_path: Optional[Path] = None

    @property
    def debug(self) -> bool:
        return bool(self.flags)

    @classmethod
    def from_config(cls) -> "CycleSettings":
        import config as cfg

        thresholds = Thresholds(
            leverage=cfg.LEVERAGE_THRESHOLD,
            extreme_leverage=cfg.EXTREME_LEVERAGE_THRESHOLD,
            volatility_pct=cfg.VOLATILITY_PCT,
            volatility_min_imbalance=cfg.VOLATILITY_MIN_IMBALANCE,
            low_tf_threshold_scale=cfg.LOW_TF_THRESHOLD_SCALE,
        )
        return cls(
            thresholds=thresholds,
            flags=parse_debug_flags(cfg.DEBUG_FLAGS),
            hints=cfg.HINTS_ENABLED,
            locale=cfg.CONTENTFUL_LOCALE,
            chart_path=Path(cfg.CHART_PATH) if cfg.CHART_PATH else None,
        )


@dataclass(frozen=True)
class CycleResult:
    message: str = ""
    decision: Optional[Decision] = None
    bundle: Optional[MetricsBundle] = None
    error: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self.error is not None

    @property
    def should_deliver(self) -> bool:
        return bool(self.message)


def _log_json(level: int, payload: Dict[str, Any]) -> None:
    logger.log(level, json.dumps(payload, sort_keys=True, default=str))


def evaluate(
    historical: Iterable[Mapping[str, Any]],
    live: Iterable[Mapping[str, Any]],
    state: AlertCategory,
    settings: Optional[CycleSettings] = None,
) -> CycleResult:
    """Run the pure part of a cycle. Errors from reconcile/derive propagate."""
    settings = settings or CycleSettings()
    series = reconcile(historical, live, locale=settings.locale)
    bundle = derive_metrics(series)
    decision = classify(series, bundle, state, settings.thresholds, settings.flags)

    _log_json(
        logging.INFO,
        {
            "type": "CYCLE_INPUT",
            "records": len(series),
            "latest_ts": bundle.latest.timestamp,
            "short_long_diff": bundle.latest.short_long_diff,
            "change_1h": bundle.change_1h,
            "change_24h": bundle.change_24h,
            "ratio": bundle.ratio,
            "diff_stddev": round(bundle.diff_stddev, 2),
            "missing_windows": sorted(bundle.window_errors),
            "qualified": [category.name for category in decision.qualified],
            "debug_flags": sorted(flag.value for flag in settings.flags),
        },
    )
    message = compose(decision, bundle, debug=settings.debug, hints=settings.hints)
    return CycleResult(message=message, decision=decision, bundle=bundle)


def _background_dispatch(sender: Callable[..., Any]) -> Dispatcher:
    def dispatch(message: str, photo: Optional[Path]) -> threading.Thread:
        thread = threading.Thread(
            target=sender,
            args=(message,),
            kwargs={"photo": photo},
            name="alert-delivery",
            daemon=True,
        )
        thread.start()
        return thread

    return dispatch


class AlertCycle:
    """Binds sources, notification state and delivery for the scheduler."""

    def __init__(
        self,
        historical: Source,
        live: Source,
        *,
        store: Optional[StateStore] = None,
        settings: Optional[CycleSettings] = None,
        dispatch: Optional[Dispatcher] = None,
        sender: Optional[Callable[..., Any]] = None,
    ) -> None:
        if dispatch is None and sender is None:
            raise ValueError("either dispatch or sender is required")
        self.historical = historical
        self.live = live
        self.store = store or StateStore()
        self.settings = settings or CycleSettings()
        self._dispatch = dispatch or _background_dispatch(sender)

    def _fetch(self):
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="fetch") as pool:
            historical = pool.submit(self.historical.fetch)
            live = pool.submit(self.live.fetch)
            return historical.result(), live.result()

    def run_once(self) -> CycleResult:
        started = time.monotonic()
        state = self.store.get()
        try:
            historical_rows, live_entries = self._fetch()
            result = evaluate(historical_rows, live_entries, state, self.settings)
        except LeverageAlertError as exc:
            logger.exception("Evaluation cycle aborted: %s", exc)
            _log_json(
                logging.WARNING,
                {"type": "CYCLE_ABORTED", "error": type(exc).__name__, "detail": str(exc), "state": state.name},
            )
            metrics.record_cycle("aborted", (time.monotonic() - started) * 1000.0)
            return CycleResult(error=f"{type(exc).__name__}: {exc}")

        decision = result.decision
        self.store.set(decision.state)
        bundle = result.bundle
        if bundle is not None:
            metrics.record_snapshot(bundle.latest.short_long_diff, bundle.ratio, bundle.diff_stddev)
        metrics.record_decision(decision.state, decision.category, decision.transition.value)
        _log_json(
            logging.INFO,
            {
                "type": "ALERT_DECISION",
                "previous": decision.previous.name,
                "state": decision.state.name,
                "transition": decision.transition.value,
                "category": decision.category.name if decision.category else None,
            },
        )

        if result.should_deliver:
            self._dispatch(result.message, self.settings.chart_path)
            outcome = "recovery" if decision.transition is Transition.RECOVERY else "alert"
        else:
            outcome = "quiet"
        metrics.record_cycle(outcome, (time.monotonic() - started) * 1000.0)
        return result
