"""P&L engine.

Per-position and aggregate profit and loss. Trade lists are plain sequences of
net P&L per closed trade; equity curves are sequences of equity values in time
order. Nothing is rounded here; use tradex_risk.display for output.
"""
import math
from collections.abc import Iterable, Sequence

from tradex_risk.exceptions import InvalidInputError
from tradex_risk.pnl.models import DrawdownAnalysis, PortfolioPnL, PositionPnL
from tradex_risk.positions.models import Position, PositionStatus, Side
from tradex_risk.validation import require_finite, require_positive


def unrealized_pnl(
    side: Side | str,
    quantity: float,
    entry_price: float,
    current_price: float,
    contract_size: float = 1.0,
) -> float:
    """Mark-to-market P&L of an open exposure.

    Buy: (current - entry) * quantity * contract_size. Sell is the negation.
    """
    require_positive("quantity", quantity)
    require_positive("entry_price", entry_price)
    require_positive("current_price", current_price)
    require_positive("contract_size", contract_size)
    return (current_price - entry_price) * quantity * contract_size * Side.parse(side).direction


def realized_pnl(
    side: Side | str,
    quantity: float,
    entry_price: float,
    exit_price: float,
    contract_size: float = 1.0,
) -> float:
    """P&L booked when quantity is closed at exit_price."""
    return unrealized_pnl(side, quantity, entry_price, exit_price, contract_size)


def pnl_percentage(entry_price: float, current_price: float, side: Side | str) -> float:
    """Percentage price move since entry, positive when it favours the position."""
    require_positive("entry_price", entry_price)
    require_positive("current_price", current_price)
    return (current_price - entry_price) / entry_price * 100 * Side.parse(side).direction


def position_pnl(position: Position) -> PositionPnL:
    """Combine unrealized P&L with P&L realized by earlier partial closes.

    A closed position carries no unrealized P&L.
    """
    if position.status is PositionStatus.CLOSED:
        unrealized = 0.0
    else:
        unrealized = unrealized_pnl(
            position.side,
            position.quantity,
            position.entry_price,
            position.current_price,
            position.contract_size,
        )
    total = unrealized + position.realized_pnl
    return PositionPnL(
        unrealized=unrealized,
        realized=position.realized_pnl,
        total=total,
        is_profit=total > 0,
        pnl_percentage=pnl_percentage(position.entry_price, position.current_price, position.side),
    )


def roi(net_pnl: float, invested: float) -> float:
    """Return on investment as a percentage of invested capital or margin."""
    require_finite("net_pnl", net_pnl)
    require_positive("invested", invested)
    return net_pnl / invested * 100


def total_pnl(trade_pnls: Iterable[float]) -> float:
    return math.fsum(trade_pnls)


def portfolio_pnl(positions: Iterable[Position]) -> PortfolioPnL:
    """Aggregate position P&L across a portfolio."""
    breakdowns = [position_pnl(p) for p in positions]
    return PortfolioPnL(
        unrealized=math.fsum(b.unrealized for b in breakdowns),
        realized=math.fsum(b.realized for b in breakdowns),
        total=math.fsum(b.total for b in breakdowns),
        profitable_positions=sum(1 for b in breakdowns if b.total > 0),
        losing_positions=sum(1 for b in breakdowns if b.total < 0),
        breakeven_positions=sum(1 for b in breakdowns if b.total == 0),
    )


def gross_profit(trade_pnls: Iterable[float]) -> float:
    return math.fsum(p for p in trade_pnls if p > 0)


def gross_loss(trade_pnls: Iterable[float]) -> float:
    """Sum of losing trades as a positive number."""
    return -math.fsum(p for p in trade_pnls if p < 0)


def win_rate(trade_pnls: Sequence[float]) -> float:
    """Fraction of trades with positive P&L, 0.0 when there are no trades."""
    if not trade_pnls:
        return 0.0
    return sum(1 for p in trade_pnls if p > 0) / len(trade_pnls)


def profit_factor(trade_pnls: Sequence[float]) -> float:
    """Gross profit divided by gross loss.

    Returns math.inf when there are profits but no losses, and 0.0 when there
    are neither.
    """
    profit = gross_profit(trade_pnls)
    loss = gross_loss(trade_pnls)
    if loss == 0:
        return math.inf if profit > 0 else 0.0
    return profit / loss


def average_win(trade_pnls: Sequence[float]) -> float:
    winners = [p for p in trade_pnls if p > 0]
    return math.fsum(winners) / len(winners) if winners else 0.0


def average_loss(trade_pnls: Sequence[float]) -> float:
    """Mean losing trade as a positive number."""
    losers = [p for p in trade_pnls if p < 0]
    return -math.fsum(losers) / len(losers) if losers else 0.0


def expectancy(trade_pnls: Sequence[float]) -> float:
    """Expected P&L per trade: p(win) * average win - p(loss) * average loss.

    Breakeven trades count toward the total but neither probability.
    """
    if not trade_pnls:
        return 0.0
    total = len(trade_pnls)
    p_win = sum(1 for p in trade_pnls if p > 0) / total
    p_loss = sum(1 for p in trade_pnls if p < 0) / total
    return p_win * average_win(trade_pnls) - p_loss * average_loss(trade_pnls)


def analyze_drawdown(equity_curve: Sequence[float]) -> DrawdownAnalysis:
    """Find the largest peak-to-trough decline in an equity curve.

    Args:
        equity_curve: Equity values in time order.

    Returns:
        DrawdownAnalysis. An empty or monotonically rising curve has zero drawdown.
    """
    if not equity_curve:
        return DrawdownAnalysis(
            max_drawdown=0.0,
            max_drawdown_percent=0.0,
            peak_equity=0.0,
            trough_equity=0.0,
            current_drawdown=0.0,
            current_drawdown_percent=0.0,
            is_recovering=False,
        )

    for value in equity_curve:
        require_finite("equity", value)

    running_peak = equity_curve[0]
    max_dd = 0.0
    max_dd_peak = equity_curve[0]
    trough = equity_curve[0]

    for equity in equity_curve:
        if equity > running_peak:
            running_peak = equity
        drawdown = running_peak - equity
        if drawdown > max_dd:
            max_dd = drawdown
            max_dd_peak = running_peak
            trough = equity

    last = equity_curve[-1]
    current_dd = running_peak - last

    return DrawdownAnalysis(
        max_drawdown=max_dd,
        max_drawdown_percent=max_dd / max_dd_peak * 100 if max_dd_peak > 0 else 0.0,
        peak_equity=max_dd_peak,
        trough_equity=trough,
        current_drawdown=current_dd,
        current_drawdown_percent=current_dd / running_peak * 100 if running_peak > 0 else 0.0,
        is_recovering=max_dd > 0 and last > trough,
    )


def max_drawdown(equity_curve: Sequence[float]) -> float:
    """Largest peak-to-trough decline in account currency."""
    return analyze_drawdown(equity_curve).max_drawdown


def drawdown_percentage(current_equity: float, peak_equity: float) -> float:
    """Current decline below a peak, as a percentage of the peak. Never negative."""
    require_finite("current_equity", current_equity)
    if peak_equity <= 0:
        return 0.0
    return max(0.0, (peak_equity - current_equity) / peak_equity * 100)


def recovery_factor(net_profit: float, max_drawdown_amount: float) -> float:
    """Net profit divided by max drawdown.

    Returns math.inf for a profitable record with no drawdown and 0.0 for a
    flat or losing one.
    """
    require_finite("net_profit", net_profit)
    if max_drawdown_amount < 0:
        raise InvalidInputError(f"max_drawdown must be >= 0, got {max_drawdown_amount!r}")
    if max_drawdown_amount == 0:
        return math.inf if net_profit > 0 else 0.0
    return net_profit / max_drawdown_amount
