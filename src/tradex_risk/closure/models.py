"""Data models for position closures."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from tradex_risk.pnl.models import TradeRecord
from tradex_risk.positions.models import Position


class ClosureReason(Enum):
    TAKE_PROFIT = "take_profit"
    STOP_LOSS = "stop_loss"
    TRAILING_STOP = "trailing_stop"
    TIME_EXPIRY = "time_expiry"
    MANUAL = "manual"
    FORCED = "forced"


class ClosureStatus(Enum):
    TRIGGERED = "triggered"
    NOT_TRIGGERED = "not_triggered"
    EXECUTED = "executed"
    FAILED = "failed"


@dataclass(frozen=True)
class TriggerCheck:
    """Outcome of evaluating every closure trigger for one position."""

    position_id: str
    status: ClosureStatus
    reason: ClosureReason | None
    market_price: float
    checked_at: datetime

    @property
    def triggered(self) -> bool:
        return self.status is ClosureStatus.TRIGGERED


@dataclass(frozen=True)
class ClosureResult:
    """Complete record of an executed full or partial closure.

    Attributes:
        reason: Why the position was closed.
        status: Always EXECUTED; failures raise instead.
        position_id: Identifier of the position that was closed.
        quantity_closed: Lots closed by this execution.
        quantity_remaining: Lots left open (0 for a full close).
        entry_price: Entry price of the position.
        execution_price: Fill price after slippage.
        market_price: Market price before slippage.
        gross_pnl: P&L at execution_price before commission.
        commission: Commission charged on the closed notional.
        realized_pnl: gross_pnl minus commission.
        pnl_percentage: Move from entry to execution_price in percent, signed by side.
        slippage: Per-unit price difference between market and execution price.
        margin_recovered: Margin released by the closed quantity.
        hold_duration_seconds: Time from open to close.
        closed_at: Execution timestamp.
        position: Snapshot of the closed lot with status CLOSED.
        remaining_position: Snapshot of the lot still open after a partial close.
    """

    reason: ClosureReason
    status: ClosureStatus
    position_id: str
    quantity_closed: float
    quantity_remaining: float
    entry_price: float
    execution_price: float
    market_price: float
    gross_pnl: float
    commission: float
    realized_pnl: float
    pnl_percentage: float
    slippage: float
    margin_recovered: float
    hold_duration_seconds: float
    closed_at: datetime
    position: Position
    remaining_position: Position | None = None

    @property
    def is_partial(self) -> bool:
        return self.remaining_position is not None

    def to_trade_record(self) -> TradeRecord:
        """Convert to the record MetricsCalculator consumes."""
        return TradeRecord(
            trade_id=self.position.id,
            symbol=self.position.symbol,
            pnl=self.realized_pnl,
            pnl_percent=self.pnl_percentage,
            closed_at=self.closed_at,
        )


@dataclass(frozen=True)
class ClosureFailure:
    """A position that could not be closed in a batch."""

    position_id: str
    error: str
    status: ClosureStatus = ClosureStatus.FAILED


@dataclass(frozen=True)
class ClosureSummary:
    """Aggregate of closures executed against one position."""

    position_id: str
    total_closures: int
    total_quantity_closed: float
    total_realized_pnl: float
    total_commission: float
    average_hold_seconds: float
    winning_closures: int
    losing_closures: int
    win_rate: float
