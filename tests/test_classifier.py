import pytest

from leverage_alerts.classifier import Thresholds, Transition, classify, count_beyond, has_sign_flip
from leverage_alerts.deriver import derive_metrics
from leverage_alerts.models import AlertCategory, DebugFlag
from tests.helpers.fakes import M, make_series, with_history

pytestmark = pytest.mark.unit


def _classify(series, state=AlertCategory.NO_ALERT, **kwargs):
    return classify(series, derive_metrics(series), state, **kwargs)


CALM_SHORTS = [10 * M] * 10
HEAVY_LONGS = [-10 * M] * 5 + [-60 * M] * 5
FOUR_HEAVY_LONGS = [-10 * M] * 6 + [-60 * M] * 4
EXTREME_LONGS = [-10 * M] * 3 + [-60 * M] * 5 + [-75 * M] * 2


def test_sign_flip_detected_in_recent_window():
    assert has_sign_flip(make_series([5, 5, 5, -3, 2]))
    assert not has_sign_flip(make_series([5, 5, 5, 3, 2]))

    decision = _classify(with_history([5 * M, -3 * M, 2 * M], history_diff=5 * M))
    assert AlertCategory.SL_DIFF_SIGN_FLIP in decision.qualified
    assert decision.category is AlertCategory.SL_DIFF_SIGN_FLIP

    decision = _classify(with_history([5 * M, 3 * M, 2 * M], history_diff=5 * M))
    assert AlertCategory.SL_DIFF_SIGN_FLIP not in decision.qualified


def test_sign_flip_outside_window_is_ignored():
    series = make_series([-5 * M] * 5 + [5 * M] * 60)
    assert not has_sign_flip(series[-49:])
    assert AlertCategory.SL_DIFF_SIGN_FLIP not in _classify(series).qualified


def test_heavy_longs_threshold():
    decision = _classify(with_history(HEAVY_LONGS))
    assert decision.transition is Transition.ALERT
    assert decision.category is AlertCategory.HEAVY_LONGS
    assert decision.state is AlertCategory.HEAVY_LONGS

    decision = _classify(with_history(FOUR_HEAVY_LONGS))
    assert decision.qualified == ()
    assert decision.transition is Transition.NONE
    assert decision.state is AlertCategory.NO_ALERT


def test_heavy_shorts_threshold():
    decision = _classify(with_history([10 * M] * 5 + [60 * M] * 5))
    assert decision.category is AlertCategory.HEAVY_SHORTS


def test_extreme_takes_precedence_over_heavy():
    decision = _classify(with_history(EXTREME_LONGS))
    assert decision.category is AlertCategory.EXTREME_LONGS
    assert decision.extreme_longs is True
    assert AlertCategory.HEAVY_LONGS not in decision.qualified


def test_debounce_keeps_state_and_stays_quiet():
    decision = _classify(with_history(HEAVY_LONGS), state=AlertCategory.HEAVY_LONGS)
    assert decision.transition is Transition.NONE
    assert decision.state is AlertCategory.HEAVY_LONGS
    assert decision.should_notify is False


def test_escalation_from_heavy_to_extreme_notifies():
    decision = _classify(with_history(EXTREME_LONGS), state=AlertCategory.HEAVY_LONGS)
    assert decision.transition is Transition.ALERT
    assert decision.state is AlertCategory.EXTREME_LONGS


def test_recovery_from_elevated_state_notifies_once():
    series = with_history(CALM_SHORTS)
    decision = _classify(series, state=AlertCategory.EXTREME_SHORTS)
    assert decision.transition is Transition.RECOVERY
    assert decision.state is AlertCategory.NO_ALERT

    again = _classify(series, state=decision.state)
    assert again.transition is Transition.NONE
    assert again.state is AlertCategory.NO_ALERT


def test_non_elevated_state_resets_silently():
    decision = _classify(with_history(CALM_SHORTS), state=AlertCategory.SL_DIFF_SIGN_FLIP)
    assert decision.transition is Transition.NONE
    assert decision.state is AlertCategory.NO_ALERT


def test_hourly_volatility():
    decision = _classify(with_history([10 * M] * 9 + [20 * M]))
    assert decision.category is AlertCategory.SL_1H_EXTREME_CHANGE


def test_hourly_volatility_skipped_without_window():
    series = make_series([10 * M, 30 * M], spacing=60)
    decision = _classify(series)
    assert "1h" in derive_metrics(series).window_errors
    assert AlertCategory.SL_1H_EXTREME_CHANGE not in decision.qualified


def test_volatility_imbalance_gate():
    series = with_history([1 * M] * 9 + [2 * M])
    assert _classify(series).category is AlertCategory.SL_1H_EXTREME_CHANGE
    gated = _classify(series, thresholds=Thresholds(volatility_min_imbalance=30 * M))
    assert AlertCategory.SL_1H_EXTREME_CHANGE not in gated.qualified


def test_debug_hourly_lowers_threshold():
    series = with_history([100 * M // 10] * 9 + [102 * M // 10])
    assert _classify(series).qualified == ()
    decision = _classify(series, flags=[DebugFlag.HOURLY])
    assert decision.category is AlertCategory.SL_1H_EXTREME_CHANGE


def test_debug_forces_extreme_categories():
    series = with_history(CALM_SHORTS)
    assert _classify(series, flags=[DebugFlag.EXTREME_SHORTS]).category is AlertCategory.EXTREME_SHORTS
    assert _classify(series, flags=[DebugFlag.EXTREME_LONGS]).category is AlertCategory.EXTREME_LONGS


def test_low_tf_leverage_scales_thresholds():
    series = with_history(CALM_SHORTS)
    assert _classify(series).qualified == ()
    decision = _classify(series, flags=[DebugFlag.LOW_TF_LEVERAGE])
    assert decision.category is AlertCategory.EXTREME_SHORTS


def test_sign_flip_outranks_positioning():
    series = with_history([-60 * M] * 9 + [1 * M], history_diff=-60 * M)
    decision = _classify(series)
    assert decision.qualified[0] is AlertCategory.SL_DIFF_SIGN_FLIP
    assert decision.category is AlertCategory.SL_DIFF_SIGN_FLIP


def test_active_sign_flip_does_not_mask_new_positioning_alert():
    series = with_history([-60 * M] * 10, history_diff=5 * M)
    decision = _classify(series, state=AlertCategory.SL_DIFF_SIGN_FLIP)
    assert decision.qualified == (AlertCategory.SL_DIFF_SIGN_FLIP, AlertCategory.HEAVY_LONGS)
    assert decision.transition is Transition.ALERT
    assert decision.category is AlertCategory.HEAVY_LONGS
    assert decision.state is AlertCategory.HEAVY_LONGS


def test_debounce_when_only_active_condition_qualifies():
    series = with_history([-60 * M] * 10)
    decision = _classify(series, state=AlertCategory.HEAVY_LONGS)
    assert decision.qualified == (AlertCategory.HEAVY_LONGS,)
    assert decision.transition is Transition.NONE
    assert decision.state is AlertCategory.HEAVY_LONGS


def test_count_beyond_sides():
    series = make_series([-80 * M, -55 * M, 0, 55 * M, 80 * M])
    assert count_beyond(series, 50 * M, longs=True) == 2
    assert count_beyond(series, 70 * M, longs=False) == 1
