# tests/closure/test_triggers.py
"""Tests for closure trigger evaluation."""
from datetime import datetime, timedelta, timezone

import pytest

from tradex_risk.closure.models import ClosureReason, ClosureStatus
from tradex_risk.closure.triggers import (
    check_stop_loss_triggered,
    check_take_profit_triggered,
    check_time_based_expiry_triggered,
    check_trailing_stop_triggered,
    check_trigger,
    get_primary_closure_trigger,
    trailing_stop_level,
    update_trailing_stop,
)
from tradex_risk.exceptions import InvalidInputError
from tradex_risk.positions.models import Position, PositionStatus, Side

OPENED_AT = datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc)


def make_position(**overrides) -> Position:
    """Create the EURUSD buy position used across trigger tests."""
    defaults = dict(
        id="pos-1",
        symbol="EURUSD",
        side=Side.BUY,
        quantity=1.0,
        entry_price=1.1000,
        current_price=1.1050,
        leverage=100,
        opened_at=OPENED_AT,
        stop_loss=1.0980,
        take_profit=1.1100,
    )
    defaults.update(overrides)
    return Position(**defaults)


class TestPriceTriggers:
    """Tests for take-profit and stop-loss checks."""

    def test_eurusd_example_between_levels(self):
        position = make_position()

        assert check_take_profit_triggered(position) is False
        assert check_stop_loss_triggered(position) is False
        assert get_primary_closure_trigger(position, now=OPENED_AT) is None

    def test_eurusd_example_take_profit_fires(self):
        position = make_position(current_price=1.1100)

        assert check_take_profit_triggered(position) is True
        assert get_primary_closure_trigger(position, now=OPENED_AT) is ClosureReason.TAKE_PROFIT

    def test_buy_stop_loss_fires_at_level(self):
        assert check_stop_loss_triggered(make_position(current_price=1.0980)) is True

    def test_sell_levels_are_mirrored(self):
        position = make_position(side=Side.SELL, stop_loss=1.1100, take_profit=1.0900)

        assert check_take_profit_triggered(position.with_price(1.0900)) is True
        assert check_take_profit_triggered(position.with_price(1.0950)) is False
        assert check_stop_loss_triggered(position.with_price(1.1100)) is True
        assert check_stop_loss_triggered(position.with_price(1.1000)) is False

    def test_unset_levels_never_trigger(self):
        position = make_position(stop_loss=None, take_profit=None, current_price=5.0)

        assert check_take_profit_triggered(position) is False
        assert check_stop_loss_triggered(position) is False


class TestTrailingStop:
    """Tests for the trailing stop high-water mark."""

    def test_unarmed_until_price_moves_into_profit(self):
        position = make_position(entry_price=100.0, current_price=98.0, stop_loss=None, take_profit=None)

        assert update_trailing_stop(position, None) is None
        assert update_trailing_stop(position.with_price(100.0), None) is None
        assert update_trailing_stop(position.with_price(101.0), None) == 101.0

    def test_sell_unarmed_until_price_falls_below_entry(self):
        position = make_position(
            side=Side.SELL, entry_price=100.0, stop_loss=None, take_profit=None, current_price=102.0
        )

        assert update_trailing_stop(position, None) is None
        assert update_trailing_stop(position.with_price(99.0), None) == 99.0

    def test_losing_position_does_not_fire_before_arming(self):
        position = make_position(
            entry_price=100.0,
            current_price=98.0,
            stop_loss=None,
            take_profit=None,
            trailing_stop_distance=1.0,
        )

        assert check_trailing_stop_triggered(position, None) is False
        assert get_primary_closure_trigger(position, now=OPENED_AT) is None

    def test_buy_mark_only_advances(self):
        position = make_position(entry_price=100.0, stop_loss=None, take_profit=None, current_price=105.0)

        assert update_trailing_stop(position, 110.0) == 110.0
        assert update_trailing_stop(position.with_price(112.0), 110.0) == 112.0

    def test_sell_mark_only_advances_downward(self):
        position = make_position(
            side=Side.SELL, entry_price=100.0, stop_loss=None, take_profit=None, current_price=95.0
        )

        assert update_trailing_stop(position, 90.0) == 90.0
        assert update_trailing_stop(position.with_price(85.0), 90.0) == 85.0

    def test_mark_sequence_never_retreats(self):
        position = make_position(entry_price=100.0, stop_loss=None, take_profit=None, current_price=100.0)
        mark = None
        marks = []
        for price in [101.0, 104.0, 102.0, 99.0, 106.0, 103.0]:
            mark = update_trailing_stop(position.with_price(price), mark)
            marks.append(mark)

        assert marks == [101.0, 104.0, 104.0, 104.0, 106.0, 106.0]

    def test_buy_triggers_on_retrace(self):
        position = make_position(
            entry_price=100.0, stop_loss=None, take_profit=None, trailing_stop_distance=5.0
        )

        assert check_trailing_stop_triggered(position.with_price(105.0), 110.0) is True
        assert check_trailing_stop_triggered(position.with_price(106.0), 110.0) is False

    def test_sell_triggers_on_retrace(self):
        position = make_position(
            side=Side.SELL,
            entry_price=100.0,
            stop_loss=None,
            take_profit=None,
            trailing_stop_distance=5.0,
        )

        assert check_trailing_stop_triggered(position.with_price(95.0), 90.0) is True
        assert check_trailing_stop_triggered(position.with_price(94.0), 90.0) is False

    def test_without_distance_never_triggers(self):
        position = make_position(entry_price=100.0, current_price=50.0, stop_loss=None, take_profit=None)
        assert check_trailing_stop_triggered(position, 200.0) is False

    def test_trailing_stop_level(self):
        position = make_position(trailing_stop_distance=0.002)

        assert trailing_stop_level(position, 1.1100) == pytest.approx(1.1080)
        assert trailing_stop_level(make_position(), 1.1100) is None


class TestTimeExpiry:
    """Tests for time-based expiry."""

    def test_expires_at_max_hold(self):
        position = make_position()

        assert check_time_based_expiry_triggered(
            position, OPENED_AT + timedelta(hours=24), timedelta(hours=24)
        ) is True
        assert check_time_based_expiry_triggered(
            position, OPENED_AT + timedelta(hours=23), timedelta(hours=24)
        ) is False

    def test_no_limit_never_expires(self):
        position = make_position()
        assert check_time_based_expiry_triggered(position, OPENED_AT + timedelta(days=999), None) is False

    def test_non_positive_limit_rejected(self):
        with pytest.raises(InvalidInputError):
            check_time_based_expiry_triggered(make_position(), OPENED_AT, timedelta(0))

    def test_naive_now_rejected(self):
        with pytest.raises(InvalidInputError):
            check_time_based_expiry_triggered(make_position(), datetime(2024, 1, 3, 9, 0), timedelta(hours=1))

    def test_check_trigger_rejects_naive_now(self):
        with pytest.raises(InvalidInputError):
            check_trigger(make_position(), now=datetime(2024, 1, 3, 9, 0))


class TestPrimaryTrigger:
    """Tests for trigger priority."""

    def test_stop_loss_beats_take_profit(self):
        # Levels inverted so both conditions hold at once
        position = make_position(current_price=1.1000, stop_loss=1.1050, take_profit=1.0950)

        assert check_stop_loss_triggered(position) is True
        assert check_take_profit_triggered(position) is True
        assert get_primary_closure_trigger(position, now=OPENED_AT) is ClosureReason.STOP_LOSS

    def test_forced_beats_everything(self):
        position = make_position(current_price=1.0900)

        assert get_primary_closure_trigger(position, force=True, now=OPENED_AT) is ClosureReason.FORCED

    def test_margin_below_stop_out_forces_closure(self):
        position = make_position()

        reason = get_primary_closure_trigger(position, margin_level=40.0, now=OPENED_AT)
        assert reason is ClosureReason.FORCED

    def test_margin_at_stop_out_does_not_force(self):
        position = make_position()
        assert get_primary_closure_trigger(position, margin_level=50.0, now=OPENED_AT) is None

    def test_take_profit_beats_trailing_stop(self):
        position = make_position(current_price=1.1100, trailing_stop_distance=0.0001)

        reason = get_primary_closure_trigger(position, high_water_mark=1.1200, now=OPENED_AT)
        assert reason is ClosureReason.TAKE_PROFIT

    def test_trailing_stop_beats_time_expiry(self):
        position = make_position(trailing_stop_distance=0.0010)

        reason = get_primary_closure_trigger(
            position,
            high_water_mark=1.1070,
            now=OPENED_AT + timedelta(days=10),
            max_hold_duration=timedelta(days=1),
        )
        assert reason is ClosureReason.TRAILING_STOP

    def test_time_expiry(self):
        reason = get_primary_closure_trigger(
            make_position(),
            now=OPENED_AT + timedelta(days=2),
            max_hold_duration=timedelta(days=1),
        )
        assert reason is ClosureReason.TIME_EXPIRY

    @pytest.mark.parametrize("status", [PositionStatus.CLOSING, PositionStatus.CLOSED])
    def test_non_open_positions_never_trigger(self, status):
        position = make_position(current_price=1.2000).with_status(status)
        assert get_primary_closure_trigger(position, force=True) is None

    def test_check_trigger_wraps_result(self):
        check = check_trigger(make_position(current_price=1.1100), now=OPENED_AT)

        assert check.triggered is True
        assert check.status is ClosureStatus.TRIGGERED
        assert check.reason is ClosureReason.TAKE_PROFIT
        assert check.market_price == 1.1100
        assert check.checked_at == OPENED_AT

    def test_check_trigger_not_triggered(self):
        check = check_trigger(make_position(), now=OPENED_AT)

        assert check.triggered is False
        assert check.status is ClosureStatus.NOT_TRIGGERED
        assert check.reason is None
