# tests/margin/test_engine.py
"""Tests for the margin engine."""
import math

import pytest

from tradex_risk.config.assets import AssetRegistry
from tradex_risk.config.settings import MarginSettings
from tradex_risk.exceptions import ConfigurationError, InvalidInputError, InvalidQuantityError
from tradex_risk.margin.engine import (
    calculate_movement_to_liquidation,
    can_open_position,
    classify_margin_level,
    free_margin,
    is_liquidation_adverse,
    liquidation_needed,
    liquidation_price,
    margin_level,
    margin_required,
    margin_required_for_symbol,
    margin_status,
    margin_summary,
    max_position_size,
    position_liquidation_price,
    position_value,
    select_positions_for_liquidation,
)
from tradex_risk.margin.models import MarginHealth, MarginStatus
from tradex_risk.positions.models import Position, PositionStatus, Side


def make_position(position_id: str, side: Side, entry: float, current: float, **overrides) -> Position:
    """Create a position with sensible defaults for liquidation tests."""
    defaults = dict(
        id=position_id,
        symbol=f"SYM{position_id}",
        side=side,
        quantity=1.0,
        entry_price=entry,
        current_price=current,
        leverage=10,
    )
    defaults.update(overrides)
    return Position(**defaults)


class TestMarginRequired:
    """Tests for margin_required."""

    def test_basic_formula(self):
        assert margin_required(2.0, 100.0, 10) == pytest.approx(20.0)

    def test_contract_size_scales_margin(self):
        assert margin_required(1.0, 1.1, 100, contract_size=100000) == pytest.approx(1100.0)

    @pytest.mark.parametrize("leverage", [0, -1])
    def test_non_positive_leverage_rejected(self, leverage):
        with pytest.raises(InvalidInputError):
            margin_required(1.0, 100.0, leverage)

    @pytest.mark.parametrize(
        "quantity, price",
        [(0, 100.0), (-1.0, 100.0), (1.0, 0), (1.0, -5.0), (1.0, math.nan)],
    )
    def test_invalid_quantity_or_price_rejected(self, quantity, price):
        with pytest.raises(InvalidInputError):
            margin_required(quantity, price, 10)


class TestMarginLevel:
    """Tests for free_margin and margin_level."""

    def test_free_margin_may_be_negative(self):
        assert free_margin(900.0, 1000.0) == pytest.approx(-100.0)

    def test_example_healthy_account(self):
        level = margin_level(10000.0, 2000.0)

        assert level == pytest.approx(500.0)
        assert classify_margin_level(level, 100.0, 50.0) is MarginHealth.HEALTHY

    def test_example_warning_account(self):
        level = margin_level(900.0, 1000.0)

        assert level == pytest.approx(90.0)
        assert classify_margin_level(level, 100.0, 50.0) is MarginHealth.WARNING

    def test_no_margin_used_is_infinite(self):
        assert margin_level(1000.0, 0.0) == math.inf

    def test_negative_margin_used_rejected(self):
        with pytest.raises(InvalidInputError):
            margin_level(1000.0, -1.0)

    def test_monotonically_decreasing_in_margin_used(self):
        equity = 5000.0
        levels = [margin_level(equity, used) for used in (100.0, 500.0, 1000.0, 2500.0, 9000.0)]

        assert all(a > b for a, b in zip(levels, levels[1:]))


class TestClassifyMarginLevel:
    """Tests for three-band margin classification."""

    def test_below_stop_out_is_critical(self):
        assert classify_margin_level(49.99, 100.0, 50.0) is MarginHealth.CRITICAL

    def test_at_stop_out_is_warning_by_default(self):
        assert classify_margin_level(50.0, 100.0, 50.0) is MarginHealth.WARNING

    def test_at_stop_out_inclusive_is_critical(self):
        result = classify_margin_level(50.0, 100.0, 50.0, stop_out_inclusive=True)
        assert result is MarginHealth.CRITICAL

    def test_at_call_level_is_healthy(self):
        assert classify_margin_level(100.0, 100.0, 50.0) is MarginHealth.HEALTHY

    def test_infinite_level_is_healthy(self):
        assert classify_margin_level(math.inf) is MarginHealth.HEALTHY

    def test_misordered_thresholds_rejected(self):
        with pytest.raises(InvalidInputError):
            classify_margin_level(75.0, call_level=50.0, stop_out_level=100.0)


class TestMarginStatus:
    """Tests for the four-band status."""

    @pytest.mark.parametrize(
        "level, expected",
        [
            (math.inf, MarginStatus.SAFE),
            (200.0, MarginStatus.SAFE),
            (199.9, MarginStatus.WARNING),
            (100.0, MarginStatus.WARNING),
            (99.9, MarginStatus.CRITICAL),
            (50.0, MarginStatus.CRITICAL),
            (49.9, MarginStatus.LIQUIDATION),
            (-10.0, MarginStatus.LIQUIDATION),
        ],
    )
    def test_bands(self, level, expected):
        assert margin_status(level) is expected

    def test_inclusive_stop_out(self):
        settings = MarginSettings(stop_out_inclusive=True)
        assert margin_status(50.0, settings) is MarginStatus.LIQUIDATION


class TestLiquidationPrice:
    """Tests for liquidation_price."""

    def test_buy(self):
        assert liquidation_price(100.0, Side.BUY, 10, 0.05) == pytest.approx(95.0)

    def test_sell(self):
        assert liquidation_price(100.0, "short", 10, 0.05) == pytest.approx(105.0)

    def test_buy_below_entry_sell_above(self):
        assert liquidation_price(1.1, Side.BUY, 100, 0.005) < 1.1
        assert liquidation_price(1.1, Side.SELL, 100, 0.005) > 1.1

    def test_maintenance_above_initial_margin_lands_on_favourable_side(self):
        buy = liquidation_price(1.1, Side.BUY, 100, 0.02)
        sell = liquidation_price(1.1, Side.SELL, 100, 0.02)

        assert buy == pytest.approx(1.111)
        assert sell == pytest.approx(1.089)
        assert is_liquidation_adverse(Side.BUY, 1.1, buy) is False
        assert is_liquidation_adverse(Side.SELL, 1.1, sell) is False

    def test_adverse_side(self):
        assert is_liquidation_adverse(Side.BUY, 100.0, 95.0) is True
        assert is_liquidation_adverse("sell", 100.0, 105.0) is True
        assert is_liquidation_adverse(Side.BUY, 100.0, 100.0) is False

    def test_ratio_must_be_fraction(self):
        with pytest.raises(InvalidInputError):
            liquidation_price(100.0, Side.BUY, 10, 5)


class TestMovementToLiquidation:
    """Tests for calculate_movement_to_liquidation."""

    def test_buy(self):
        assert calculate_movement_to_liquidation(100.0, 95.0, Side.BUY) == pytest.approx(5.0)

    def test_sell(self):
        assert calculate_movement_to_liquidation(100.0, 105.0, Side.SELL) == pytest.approx(5.0)

    def test_already_past_liquidation_is_negative(self):
        assert calculate_movement_to_liquidation(90.0, 95.0, Side.BUY) == pytest.approx(-5.0 / 90.0 * 100)


class TestAssetAwareMargin:
    """Tests for margin helpers that read per-symbol asset specs."""

    @pytest.fixture
    def registry(self):
        return AssetRegistry()

    def test_margin_required_for_symbol(self, registry):
        assert margin_required_for_symbol(registry, "eurusd", 1.0, 1.1, 100) == pytest.approx(0.011)

    def test_leverage_above_asset_cap(self, registry):
        with pytest.raises(InvalidInputError):
            margin_required_for_symbol(registry, "EURUSD", 1.0, 1.1, 600)

    def test_quantity_below_asset_minimum(self, registry):
        with pytest.raises(InvalidQuantityError):
            margin_required_for_symbol(registry, "EURUSD", 0.001, 1.1, 100)

    def test_unknown_symbol(self, registry):
        with pytest.raises(ConfigurationError):
            margin_required_for_symbol(registry, "DOGEUSD", 1.0, 0.1, 2)

    def test_position_liquidation_price_uses_asset_ratio(self, registry):
        position = make_position("1", Side.BUY, 100.0, 100.0, symbol="BTCUSD", leverage=5)

        assert position_liquidation_price(position, registry) == pytest.approx(95.0)


class TestSizingHelpers:
    """Tests for position_value, max_position_size and can_open_position."""

    def test_position_value(self):
        assert position_value(2.0, 50.0) == pytest.approx(100.0)

    def test_max_position_size(self):
        assert max_position_size(1000.0, 10, 50.0) == pytest.approx(200.0)

    def test_can_open_position(self):
        assert can_open_position(100.0, 100.0) is True
        assert can_open_position(100.01, 100.0) is False


class TestMarginSummary:
    """Tests for margin_summary and liquidation_needed."""

    def test_summary(self):
        summary = margin_summary(10000.0, 2000.0)

        assert summary.free_margin == pytest.approx(8000.0)
        assert summary.margin_level == pytest.approx(500.0)
        assert summary.health is MarginHealth.HEALTHY
        assert summary.status is MarginStatus.SAFE
        assert summary.can_open_new_position is True

    def test_summary_in_crisis_blocks_new_positions(self):
        summary = margin_summary(400.0, 1000.0)

        assert summary.status is MarginStatus.LIQUIDATION
        assert summary.can_open_new_position is False

    def test_liquidation_needed_below_stop_out(self):
        plan = liquidation_needed(400.0, 1000.0)

        assert plan.is_needed is True
        assert plan.margin_level == pytest.approx(40.0)
        assert plan.margin_to_free == pytest.approx(600.0)

    def test_liquidation_not_needed_when_healthy(self):
        plan = liquidation_needed(5000.0, 1000.0)

        assert plan.is_needed is False
        assert plan.margin_to_free == 0.0

    def test_liquidation_not_needed_without_margin(self):
        plan = liquidation_needed(100.0, 0.0)

        assert plan.is_needed is False
        assert plan.margin_level == math.inf


class TestSelectPositionsForLiquidation:
    """Tests for liquidation ordering."""

    def test_largest_losing_exposure_first(self):
        small_loss = make_position("1", Side.BUY, 100.0, 99.0)
        big_loss = make_position("2", Side.SELL, 100.0, 110.0)
        winner = make_position("3", Side.BUY, 100.0, 120.0)

        selected = select_positions_for_liquidation([small_loss, winner, big_loss], 5.0)

        assert [p.id for p in selected] == ["2"]

    def test_selects_until_target_covered(self):
        positions = [
            make_position("1", Side.BUY, 100.0, 90.0),
            make_position("2", Side.BUY, 100.0, 95.0),
            make_position("3", Side.BUY, 100.0, 99.0),
        ]

        selected = select_positions_for_liquidation(positions, 15.0)

        assert [p.id for p in selected] == ["1", "2"]

    def test_nothing_to_free(self):
        positions = [make_position("1", Side.BUY, 100.0, 90.0)]
        assert select_positions_for_liquidation(positions, 0.0) == []

    def test_closed_positions_skipped(self):
        closed = make_position("1", Side.BUY, 100.0, 50.0).with_status(PositionStatus.CLOSED)
        open_position = make_position("2", Side.BUY, 100.0, 99.0)

        selected = select_positions_for_liquidation([closed, open_position], 100.0)

        assert [p.id for p in selected] == ["2"]
