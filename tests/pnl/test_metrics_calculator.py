# tests/pnl/test_metrics_calculator.py
"""Tests for MetricsCalculator."""
import math
from datetime import datetime, timedelta, timezone

import pytest

from tradex_risk.exceptions import InvalidInputError
from tradex_risk.pnl.metrics_calculator import MetricsCalculator
from tradex_risk.pnl.models import PerformanceMetrics, TradeRecord

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_trade(trade_id: str, pnl: float, pnl_percent: float, day: int) -> TradeRecord:
    """Create a closed trade for testing."""
    return TradeRecord(
        trade_id=trade_id,
        symbol="EURUSD",
        pnl=pnl,
        pnl_percent=pnl_percent,
        closed_at=START + timedelta(days=day),
    )


class TestMetricsCalculator:
    """Tests for MetricsCalculator.calculate."""

    @pytest.fixture
    def calculator(self):
        return MetricsCalculator()

    @pytest.fixture
    def trades(self):
        # Deliberately out of order; metrics sort by closed_at
        return [
            make_trade("t3", 200.0, 4.0, 3),
            make_trade("t1", 100.0, 2.0, 1),
            make_trade("t2", -150.0, -3.0, 2),
            make_trade("t4", -50.0, -1.0, 4),
        ]

    def test_empty_trades(self, calculator):
        metrics = calculator.calculate([])

        assert isinstance(metrics, PerformanceMetrics)
        assert metrics.total_trades == 0
        assert metrics.win_rate == 0.0
        assert metrics.best_trade is None
        assert metrics.worst_trade is None

    def test_counts_and_rates(self, calculator, trades):
        metrics = calculator.calculate(trades)

        assert metrics.total_trades == 4
        assert metrics.winning_trades == 2
        assert metrics.losing_trades == 2
        assert metrics.win_rate == pytest.approx(0.5)
        assert metrics.profit_factor == pytest.approx(1.5)
        assert metrics.expectancy == pytest.approx(25.0)

    def test_averages_and_extremes(self, calculator, trades):
        metrics = calculator.calculate(trades)

        assert metrics.average_win == pytest.approx(150.0)
        assert metrics.average_loss == pytest.approx(100.0)
        assert metrics.largest_win == 200.0
        assert metrics.largest_loss == -150.0
        assert metrics.best_trade.trade_id == "t3"
        assert metrics.worst_trade.trade_id == "t2"

    def test_drawdown_and_roi_with_initial_equity(self, calculator, trades):
        metrics = calculator.calculate(trades, initial_equity=1000.0)

        # Equity: 1000 -> 1100 -> 950 -> 1150 -> 1100
        assert metrics.total_pnl == pytest.approx(100.0)
        assert metrics.roi_percent == pytest.approx(10.0)
        assert metrics.max_drawdown == pytest.approx(150.0)
        assert metrics.max_drawdown_percent == pytest.approx(150.0 / 1100.0 * 100)

    def test_roi_zero_without_initial_equity(self, calculator, trades):
        metrics = calculator.calculate(trades)

        assert metrics.roi_percent == 0.0
        assert metrics.max_drawdown_percent == 0.0

    def test_invalid_initial_equity(self, calculator, trades):
        with pytest.raises(InvalidInputError):
            calculator.calculate(trades, initial_equity=0.0)

    def test_sharpe_ratio(self, calculator, trades):
        metrics = calculator.calculate(trades)

        returns = [2.0, -3.0, 4.0, -1.0]
        mean = sum(returns) / 4
        std = math.sqrt(sum((r - mean) ** 2 for r in returns) / 3)
        assert metrics.sharpe_ratio == pytest.approx(mean / std * math.sqrt(252))

    def test_sharpe_ratio_single_trade(self, calculator):
        metrics = calculator.calculate([make_trade("t1", 10.0, 1.0, 1)])
        assert metrics.sharpe_ratio == 0.0


class TestTradeRecord:
    """Tests for TradeRecord validation."""

    def test_naive_closed_at_rejected(self):
        with pytest.raises(InvalidInputError):
            TradeRecord(trade_id="t1", symbol="EURUSD", pnl=1.0, pnl_percent=0.1, closed_at=datetime(2024, 1, 1))
