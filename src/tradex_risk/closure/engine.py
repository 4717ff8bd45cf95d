# src/tradex_risk/closure/engine.py
"""Closure execution: slippage, fill price, commission and realized P&L."""
import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from tradex_risk.closure.models import (
    ClosureFailure,
    ClosureReason,
    ClosureResult,
    ClosureStatus,
    ClosureSummary,
)
from tradex_risk.closure.slippage import AssetSlippageModel
from tradex_risk.closure.triggers import get_primary_closure_trigger
from tradex_risk.config.assets import AssetRegistry
from tradex_risk.config.settings import ClosureSettings, MarginSettings
from tradex_risk.exceptions import (
    AlreadyClosedError,
    InvalidInputError,
    InvalidQuantityError,
    TradingRiskError,
)
from tradex_risk.pnl.engine import pnl_percentage, realized_pnl
from tradex_risk.positions.models import Position, PositionStatus, Side
from tradex_risk.validation import require_aware, require_non_negative, require_positive

logger = logging.getLogger(__name__)


def calculate_closure_slippage(
    quantity: float,
    volatility_factor: float = 1.0,
    *,
    base_slippage_percent: float = 0.1,
    size_impact: float = 0.01,
    max_slippage_percent: float = 1.0,
) -> float:
    """Model execution slippage for closing an order.

    slippage = base * volatility * (1 + quantity * size_impact), capped at max.

    Args:
        quantity: Lots being closed.
        volatility_factor: Multiplier for market conditions (1.0 is normal).
        base_slippage_percent: Slippage for a minimal order in normal conditions.
        size_impact: Extra slippage fraction per lot.
        max_slippage_percent: Upper bound on the result.

    Returns:
        Slippage as a percentage of price.
    """
    require_positive("quantity", quantity)
    require_positive("volatility_factor", volatility_factor)
    require_non_negative("base_slippage_percent", base_slippage_percent)
    require_non_negative("size_impact", size_impact)
    require_non_negative("max_slippage_percent", max_slippage_percent)

    slippage = base_slippage_percent * volatility_factor * (1 + quantity * size_impact)
    return min(slippage, max_slippage_percent)


def slippage_multiplier(reason: ClosureReason, settings: ClosureSettings) -> float:
    """Forced closures fill worst, stop-losses fire into moving markets."""
    if reason is ClosureReason.FORCED:
        return settings.forced_slippage_multiplier
    if reason is ClosureReason.STOP_LOSS:
        return settings.stop_loss_slippage_multiplier
    return 1.0


def calculate_closure_price(position: Position, slippage_percent: float) -> float:
    """Move the current price against the trader by slippage_percent.

    Closing a buy sells into the bid, so the fill is lower; closing a sell
    buys back higher.
    """
    require_non_negative("slippage_percent", slippage_percent)
    if slippage_percent >= 100:
        raise InvalidInputError(f"slippage_percent must be below 100, got {slippage_percent!r}")
    factor = slippage_percent / 100
    if position.side is Side.BUY:
        return position.current_price * (1 - factor)
    return position.current_price * (1 + factor)


def calculate_realized_pnl_on_closure(
    position: Position,
    closure_price: float,
    quantity: float | None = None,
) -> float:
    """Gross P&L of closing quantity (default: all of it) at closure_price."""
    return realized_pnl(
        position.side,
        position.quantity if quantity is None else quantity,
        position.entry_price,
        closure_price,
        position.contract_size,
    )


def calculate_commission_on_closure(
    quantity: float,
    exit_price: float,
    commission_rate: float = 0.1,
    contract_size: float = 1.0,
) -> float:
    """Commission charged on the closed notional.

    Args:
        quantity: Lots closed.
        exit_price: Fill price.
        commission_rate: Percentage of notional (0.1 = 0.1%).
        contract_size: Units per lot.
    """
    require_positive("quantity", quantity)
    require_positive("exit_price", exit_price)
    require_non_negative("commission_rate", commission_rate)
    require_positive("contract_size", contract_size)
    return quantity * contract_size * exit_price * commission_rate / 100


class ClosureEngine:
    """Executes full, partial and triggered position closures.

    Every execution returns a complete ClosureResult or raises; nothing is
    half-applied. The engine holds only configuration, so one instance can
    be shared across threads.

    Attributes:
        settings: Slippage, commission and time-expiry configuration.
        margin_settings: Stop-out level used for forced closure checks.
        slippage_model: Per-asset slippage model; when None the flat
            size-based model from settings applies.
    """

    def __init__(
        self,
        settings: ClosureSettings | None = None,
        registry: AssetRegistry | None = None,
        margin_settings: MarginSettings | None = None,
        slippage_model: AssetSlippageModel | None = None,
    ):
        """Initialize ClosureEngine.

        Args:
            settings: Closure settings. Defaults to ClosureSettings().
            registry: Asset registry for per-symbol commission rates. When
                None, settings.commission_rate_percent applies to every symbol.
            margin_settings: Margin thresholds. Defaults to MarginSettings().
            slippage_model: Per-asset slippage model. Its estimate is scaled
                by volatility_factor and the closure reason, then capped at
                settings.max_slippage_percent.
        """
        self.settings = settings or ClosureSettings()
        self.margin_settings = margin_settings or MarginSettings()
        self.slippage_model = slippage_model
        self._registry = registry

    def execute_position_closure(
        self,
        position: Position,
        reason: ClosureReason = ClosureReason.MANUAL,
        *,
        volatility_factor: float = 1.0,
        closed_at: datetime | None = None,
    ) -> ClosureResult:
        """Close the whole position.

        Args:
            position: Open position marked to the latest price.
            reason: Why the position is being closed.
            volatility_factor: Market condition multiplier for slippage.
            closed_at: Execution time, defaults to now (UTC).

        Returns:
            ClosureResult whose position snapshot is CLOSED.

        Raises:
            AlreadyClosedError: If the position is closing or closed.
            ConfigurationError: If a registry is set and has no spec for the symbol.
        """
        self._ensure_closable(position)
        return self._execute(position, position.quantity, reason, volatility_factor, closed_at)

    def execute_partial_closure(
        self,
        position: Position,
        close_quantity: float,
        reason: ClosureReason = ClosureReason.MANUAL,
        *,
        volatility_factor: float = 1.0,
        closed_at: datetime | None = None,
    ) -> ClosureResult:
        """Close part of a position, splitting it into a closed and an open lot.

        Margin is released in proportion to the closed quantity. The remaining
        lot keeps the realized P&L it already carried; the closed lot carries
        only what this execution realized.

        Raises:
            AlreadyClosedError: If the position is closing or closed.
            InvalidQuantityError: Unless 0 < close_quantity < position.quantity.
        """
        self._ensure_closable(position)
        if close_quantity is None or not 0 < close_quantity < position.quantity:
            raise InvalidQuantityError(
                f"Partial close quantity must be between 0 and {position.quantity} "
                f"(exclusive), got {close_quantity!r}"
            )
        return self._execute(position, close_quantity, reason, volatility_factor, closed_at)

    def evaluate_and_close(
        self,
        position: Position,
        *,
        high_water_mark: float | None = None,
        now: datetime | None = None,
        margin_level: float | None = None,
        force: bool = False,
        volatility_factor: float = 1.0,
    ) -> ClosureResult | None:
        """Check triggers and close the position if one fires.

        Returns:
            ClosureResult, or None when no trigger fires.
        """
        now = now or datetime.now(timezone.utc)
        reason = get_primary_closure_trigger(
            position,
            high_water_mark=high_water_mark,
            now=now,
            max_hold_duration=self._max_hold_duration(),
            margin_level=margin_level,
            stop_out_level=self.margin_settings.stop_out_level,
            force=force,
        )
        if reason is None:
            return None
        return self.execute_position_closure(
            position,
            reason,
            volatility_factor=volatility_factor,
            closed_at=now,
        )

    def close_positions(
        self,
        positions: Iterable[Position],
        reason: ClosureReason,
        *,
        volatility_factor: float = 1.0,
        closed_at: datetime | None = None,
    ) -> tuple[list[ClosureResult], list[ClosureFailure]]:
        """Close many positions independently.

        A failure on one position does not stop the others; it is reported
        as a ClosureFailure.

        Returns:
            Tuple of (executed results, failures).
        """
        results: list[ClosureResult] = []
        failures: list[ClosureFailure] = []
        for position in positions:
            try:
                results.append(
                    self.execute_position_closure(
                        position,
                        reason,
                        volatility_factor=volatility_factor,
                        closed_at=closed_at,
                    )
                )
            except TradingRiskError as e:
                logger.warning(f"Failed to close position {position.id}: {e}")
                failures.append(ClosureFailure(position_id=position.id, error=str(e)))
        return results, failures

    def _ensure_closable(self, position: Position) -> None:
        if position.status is not PositionStatus.OPEN:
            raise AlreadyClosedError(
                f"Position {position.id} is {position.status.value} and cannot be closed again"
            )

    def _commission_rate(self, position: Position) -> float:
        if self._registry is None:
            return self.settings.commission_rate_percent
        return self._registry.get(position.symbol).commission_rate

    def _max_hold_duration(self) -> timedelta | None:
        if self.settings.max_hold_hours is None:
            return None
        return timedelta(hours=self.settings.max_hold_hours)

    def _slippage_percent(
        self,
        position: Position,
        quantity: float,
        reason: ClosureReason,
        volatility_factor: float,
    ) -> float:
        multiplier = volatility_factor * slippage_multiplier(reason, self.settings)
        if self.slippage_model is None:
            return calculate_closure_slippage(
                quantity,
                multiplier,
                base_slippage_percent=self.settings.base_slippage_percent,
                size_impact=self.settings.size_impact,
                max_slippage_percent=self.settings.max_slippage_percent,
            )

        require_positive("volatility_factor", volatility_factor)
        closing_side = Side.SELL if position.side is Side.BUY else Side.BUY
        estimate = self.slippage_model.estimate(position.symbol, position.current_price, closing_side)
        return min(estimate.slippage_percent * multiplier, self.settings.max_slippage_percent)

    def _execute(
        self,
        position: Position,
        quantity: float,
        reason: ClosureReason,
        volatility_factor: float,
        closed_at: datetime | None,
    ) -> ClosureResult:
        closed_at = closed_at or datetime.now(timezone.utc)
        require_aware("closed_at", closed_at)
        commission_rate = self._commission_rate(position)

        slippage_percent = self._slippage_percent(position, quantity, reason, volatility_factor)
        execution_price = calculate_closure_price(position, slippage_percent)
        gross_pnl = calculate_realized_pnl_on_closure(position, execution_price, quantity)
        commission = calculate_commission_on_closure(
            quantity, execution_price, commission_rate, position.contract_size
        )
        net_pnl = gross_pnl - commission

        is_partial = quantity < position.quantity
        margin_recovered = position.margin_used * quantity / position.quantity

        if is_partial:
            closed_lot = replace(
                position,
                id=f"{position.id}-closed-{int(closed_at.timestamp() * 1_000_000)}",
                quantity=quantity,
                current_price=execution_price,
                margin_used=margin_recovered,
                realized_pnl=net_pnl,
            ).with_status(PositionStatus.CLOSED, closed_at)
            remaining = replace(
                position,
                quantity=position.quantity - quantity,
                margin_used=position.margin_used - margin_recovered,
            )
        else:
            closed_lot = replace(
                position,
                current_price=execution_price,
                realized_pnl=position.realized_pnl + net_pnl,
            ).with_status(PositionStatus.CLOSED, closed_at)
            remaining = None

        result = ClosureResult(
            reason=reason,
            status=ClosureStatus.EXECUTED,
            position_id=position.id,
            quantity_closed=quantity,
            quantity_remaining=position.quantity - quantity,
            entry_price=position.entry_price,
            execution_price=execution_price,
            market_price=position.current_price,
            gross_pnl=gross_pnl,
            commission=commission,
            realized_pnl=net_pnl,
            pnl_percentage=pnl_percentage(position.entry_price, execution_price, position.side),
            slippage=abs(position.current_price - execution_price),
            margin_recovered=margin_recovered,
            hold_duration_seconds=(closed_at - position.opened_at).total_seconds(),
            closed_at=closed_at,
            position=closed_lot,
            remaining_position=remaining,
        )

        if reason is ClosureReason.FORCED:
            logger.warning(
                f"Forced closure of {position.symbol} position {position.id}: "
                f"{quantity} @ {execution_price}, realized {net_pnl:.2f}"
            )
        else:
            logger.info(
                f"Closed {'partial ' if is_partial else ''}{position.symbol} position "
                f"{position.id} ({reason.value}): {quantity} @ {execution_price}, "
                f"realized {net_pnl:.2f}"
            )
        return result


def summarize_closures(position_id: str, results: Sequence[ClosureResult]) -> ClosureSummary:
    """Aggregate the closures executed against one position."""
    relevant = [r for r in results if r.position_id == position_id]
    if not relevant:
        return ClosureSummary(
            position_id=position_id,
            total_closures=0,
            total_quantity_closed=0.0,
            total_realized_pnl=0.0,
            total_commission=0.0,
            average_hold_seconds=0.0,
            winning_closures=0,
            losing_closures=0,
            win_rate=0.0,
        )

    winners = sum(1 for r in relevant if r.realized_pnl > 0)
    return ClosureSummary(
        position_id=position_id,
        total_closures=len(relevant),
        total_quantity_closed=sum(r.quantity_closed for r in relevant),
        total_realized_pnl=sum(r.realized_pnl for r in relevant),
        total_commission=sum(r.commission for r in relevant),
        average_hold_seconds=sum(r.hold_duration_seconds for r in relevant) / len(relevant),
        winning_closures=winners,
        losing_closures=sum(1 for r in relevant if r.realized_pnl < 0),
        win_rate=winners / len(relevant),
    )
