"""P&L engine: position P&L, portfolio aggregates and performance metrics."""

from tradex_risk.pnl.engine import (
    analyze_drawdown,
    average_loss,
    average_win,
    drawdown_percentage,
    expectancy,
    gross_loss,
    gross_profit,
    max_drawdown,
    pnl_percentage,
    portfolio_pnl,
    position_pnl,
    profit_factor,
    realized_pnl,
    recovery_factor,
    roi,
    total_pnl,
    unrealized_pnl,
    win_rate,
)
from tradex_risk.pnl.metrics_calculator import MetricsCalculator
from tradex_risk.pnl.models import (
    DrawdownAnalysis,
    PerformanceMetrics,
    PortfolioPnL,
    PositionPnL,
    TradeRecord,
)

__all__ = [
    "DrawdownAnalysis",
    "MetricsCalculator",
    "PerformanceMetrics",
    "PortfolioPnL",
    "PositionPnL",
    "TradeRecord",
    "analyze_drawdown",
    "average_loss",
    "average_win",
    "drawdown_percentage",
    "expectancy",
    "gross_loss",
    "gross_profit",
    "max_drawdown",
    "pnl_percentage",
    "portfolio_pnl",
    "position_pnl",
    "profit_factor",
    "realized_pnl",
    "recovery_factor",
    "roi",
    "total_pnl",
    "unrealized_pnl",
    "win_rate",
]
