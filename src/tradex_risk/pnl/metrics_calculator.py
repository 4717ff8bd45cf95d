# src/tradex_risk/pnl/metrics_calculator.py
"""Calculator for trading performance metrics."""
import math

from tradex_risk.pnl.engine import (
    analyze_drawdown,
    average_loss,
    average_win,
    expectancy,
    profit_factor,
    win_rate,
)
from tradex_risk.pnl.models import PerformanceMetrics, TradeRecord
from tradex_risk.validation import require_positive


class MetricsCalculator:
    """Calculates trading performance metrics from closed trades."""

    def calculate(
        self,
        trades: list[TradeRecord],
        initial_equity: float | None = None,
    ) -> PerformanceMetrics:
        """Calculate performance metrics from closed trades.

        Args:
            trades: Closed trades to analyze, in any order.
            initial_equity: Starting equity. Enables ROI and a drawdown
                percentage relative to the equity curve.

        Returns:
            PerformanceMetrics with all calculated values.
        """
        if initial_equity is not None:
            require_positive("initial_equity", initial_equity)

        if not trades:
            return self._empty_metrics()

        ordered = sorted(trades, key=lambda t: t.closed_at)
        pnls = [t.pnl for t in ordered]

        winners = [p for p in pnls if p > 0]
        losers = [p for p in pnls if p < 0]
        total = math.fsum(pnls)

        drawdown = analyze_drawdown(self._equity_curve(pnls, initial_equity or 0.0))
        roi_percent = total / initial_equity * 100 if initial_equity else 0.0

        best_trade = max(ordered, key=lambda t: t.pnl)
        worst_trade = min(ordered, key=lambda t: t.pnl)

        return PerformanceMetrics(
            total_trades=len(ordered),
            winning_trades=len(winners),
            losing_trades=len(losers),
            win_rate=win_rate(pnls),
            profit_factor=profit_factor(pnls),
            expectancy=expectancy(pnls),
            average_win=average_win(pnls),
            average_loss=average_loss(pnls),
            largest_win=max(winners) if winners else 0.0,
            largest_loss=min(losers) if losers else 0.0,
            total_pnl=total,
            roi_percent=roi_percent,
            max_drawdown=drawdown.max_drawdown,
            max_drawdown_percent=drawdown.max_drawdown_percent if initial_equity else 0.0,
            sharpe_ratio=self._calculate_sharpe_ratio(ordered),
            best_trade=best_trade,
            worst_trade=worst_trade,
        )

    def _empty_metrics(self) -> PerformanceMetrics:
        """Return metrics with zero values for an empty trade list."""
        return PerformanceMetrics(
            total_trades=0,
            winning_trades=0,
            losing_trades=0,
            win_rate=0.0,
            profit_factor=0.0,
            expectancy=0.0,
            average_win=0.0,
            average_loss=0.0,
            largest_win=0.0,
            largest_loss=0.0,
            total_pnl=0.0,
            roi_percent=0.0,
            max_drawdown=0.0,
            max_drawdown_percent=0.0,
            sharpe_ratio=0.0,
            best_trade=None,
            worst_trade=None,
        )

    def _equity_curve(self, pnls: list[float], initial_equity: float) -> list[float]:
        """Cumulative equity after each trade, starting from initial_equity."""
        curve = [initial_equity]
        for pnl in pnls:
            curve.append(curve[-1] + pnl)
        return curve

    def _calculate_sharpe_ratio(self, trades: list[TradeRecord]) -> float:
        """Calculate Sharpe ratio from per-trade percentage returns.

        Args:
            trades: Closed trades.

        Returns:
            Annualized Sharpe ratio, 0.0 with fewer than two trades or no variance.
        """
        if len(trades) < 2:
            return 0.0

        returns = [t.pnl_percent for t in trades]
        avg_return = sum(returns) / len(returns)

        variance = sum((r - avg_return) ** 2 for r in returns) / (len(returns) - 1)
        std_dev = math.sqrt(variance)

        if std_dev == 0:
            return 0.0

        annualization_factor = math.sqrt(252)
        return (avg_return / std_dev) * annualization_factor
