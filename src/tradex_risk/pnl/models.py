"""Data models for P&L and performance reporting."""
from dataclasses import dataclass
from datetime import datetime

from tradex_risk.validation import require_aware


@dataclass(frozen=True)
class PositionPnL:
    """P&L breakdown for a single position.

    Attributes:
        unrealized: Mark-to-market P&L on the open quantity.
        realized: P&L already booked by earlier partial closes.
        total: unrealized + realized.
        is_profit: True when total is strictly positive.
        pnl_percentage: Price change since entry in percent, sign-flipped for sells.
    """

    unrealized: float
    realized: float
    total: float
    is_profit: bool
    pnl_percentage: float


@dataclass(frozen=True)
class PortfolioPnL:
    """Aggregated P&L across a set of positions."""

    unrealized: float
    realized: float
    total: float
    profitable_positions: int
    losing_positions: int
    breakeven_positions: int


@dataclass(frozen=True)
class DrawdownAnalysis:
    """Peak-to-trough statistics for an equity curve.

    Attributes:
        max_drawdown: Largest peak-to-trough decline in account currency.
        max_drawdown_percent: That decline as a percentage of its peak.
        peak_equity: Peak preceding the largest decline.
        trough_equity: Lowest equity reached during the largest decline.
        current_drawdown: Distance of the last point below the running peak.
        current_drawdown_percent: current_drawdown as a percentage of the running peak.
        is_recovering: Last point is above the trough of the largest decline.
    """

    max_drawdown: float
    max_drawdown_percent: float
    peak_equity: float
    trough_equity: float
    current_drawdown: float
    current_drawdown_percent: float
    is_recovering: bool


@dataclass(frozen=True)
class TradeRecord:
    """A closed trade as consumed by MetricsCalculator."""

    trade_id: str
    symbol: str
    pnl: float
    pnl_percent: float
    closed_at: datetime

    def __post_init__(self) -> None:
        require_aware("closed_at", self.closed_at)


@dataclass
class PerformanceMetrics:
    """Calculated trading performance metrics."""

    total_trades: int
    winning_trades: int
    losing_trades: int

    win_rate: float
    profit_factor: float
    expectancy: float

    average_win: float
    average_loss: float
    largest_win: float
    largest_loss: float

    total_pnl: float
    roi_percent: float
    max_drawdown: float
    max_drawdown_percent: float
    sharpe_ratio: float

    best_trade: TradeRecord | None
    worst_trade: TradeRecord | None
