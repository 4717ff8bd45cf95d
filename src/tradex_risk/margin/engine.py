"""Margin engine.

Key formulas:
    margin required  = quantity * entry price / leverage
    free margin      = equity - margin used
    margin level     = equity / margin used * 100
    liquidation (buy)  = entry * (1 - 1/leverage + maintenance ratio)
    liquidation (sell) = entry * (1 + 1/leverage - maintenance ratio)

All functions are pure; nothing is rounded here.
"""
import math
from collections.abc import Sequence

from tradex_risk.config.assets import AssetRegistry
from tradex_risk.config.settings import MarginSettings
from tradex_risk.exceptions import InvalidInputError
from tradex_risk.margin.models import LiquidationPlan, MarginHealth, MarginStatus, MarginSummary
from tradex_risk.positions.models import Position, Side
from tradex_risk.validation import require_finite, require_non_negative, require_positive


def margin_required(
    quantity: float,
    entry_price: float,
    leverage: float,
    contract_size: float = 1.0,
) -> float:
    """Calculate the margin needed to open a position.

    Args:
        quantity: Lot size.
        entry_price: Entry price per unit.
        leverage: Leverage multiplier.
        contract_size: Units per lot.

    Returns:
        Margin required in account currency.

    Raises:
        InvalidInputError: If any input is zero or negative.
    """
    require_positive("quantity", quantity)
    require_positive("entry_price", entry_price)
    require_positive("leverage", leverage)
    require_positive("contract_size", contract_size)
    return quantity * contract_size * entry_price / leverage


def free_margin(equity: float, margin_used: float) -> float:
    """Equity minus margin used. A negative result signals a margin crisis."""
    require_finite("equity", equity)
    require_non_negative("margin_used", margin_used)
    return equity - margin_used


def margin_level(equity: float, margin_used: float) -> float:
    """Equity as a percentage of margin used.

    Returns math.inf when no margin is in use, since nothing is at risk.
    """
    require_finite("equity", equity)
    require_non_negative("margin_used", margin_used)
    if margin_used == 0:
        return math.inf
    return equity / margin_used * 100


def classify_margin_level(
    level: float,
    call_level: float = 100.0,
    stop_out_level: float = 50.0,
    stop_out_inclusive: bool = False,
) -> MarginHealth:
    """Classify a margin level against call and stop-out thresholds.

    Below stop-out is CRITICAL, from stop-out up to (not including) the call
    level is WARNING, anything at or above the call level is HEALTHY.

    Args:
        level: Margin level percentage.
        call_level: Margin call threshold.
        stop_out_level: Forced liquidation threshold.
        stop_out_inclusive: Treat level == stop_out_level as CRITICAL.

    Raises:
        InvalidInputError: If stop_out_level is not below call_level.
    """
    if math.isnan(level):
        raise InvalidInputError("margin level cannot be NaN")
    if stop_out_level >= call_level:
        raise InvalidInputError(
            f"stop_out_level ({stop_out_level}) must be below call_level ({call_level})"
        )

    if level < stop_out_level or (stop_out_inclusive and level == stop_out_level):
        return MarginHealth.CRITICAL
    if level < call_level:
        return MarginHealth.WARNING
    return MarginHealth.HEALTHY


def classify_with_settings(level: float, settings: MarginSettings) -> MarginHealth:
    return classify_margin_level(
        level,
        call_level=settings.call_level,
        stop_out_level=settings.stop_out_level,
        stop_out_inclusive=settings.stop_out_inclusive,
    )


def margin_status(level: float, settings: MarginSettings | None = None) -> MarginStatus:
    """Four-band status: safe, warning, critical, liquidation.

    SAFE:        level >= safe_level (200%)
    WARNING:     call_level <= level < safe_level
    CRITICAL:    stop_out_level <= level < call_level
    LIQUIDATION: level < stop_out_level
    """
    settings = settings or MarginSettings()
    if math.isnan(level):
        raise InvalidInputError("margin level cannot be NaN")

    if level >= settings.safe_level:
        return MarginStatus.SAFE
    if level >= settings.call_level:
        return MarginStatus.WARNING
    if level > settings.stop_out_level or (
        level == settings.stop_out_level and not settings.stop_out_inclusive
    ):
        return MarginStatus.CRITICAL
    return MarginStatus.LIQUIDATION


def liquidation_price(
    entry_price: float,
    side: Side | str,
    leverage: float,
    maintenance_margin_ratio: float,
) -> float:
    """Price at which equity on the position falls to maintenance margin.

    When maintenance_margin_ratio >= 1 / leverage the initial margin is already
    below maintenance, so the result lies on the favourable side of entry
    (above it for a buy, below it for a sell). Callers that cap losses at
    this price must check which side of the market it sits on.

    Args:
        entry_price: Entry price.
        side: BUY or SELL.
        leverage: Leverage multiplier.
        maintenance_margin_ratio: Maintenance margin as a fraction (0.05 = 5%).
    """
    require_positive("entry_price", entry_price)
    require_positive("leverage", leverage)
    if not 0 <= maintenance_margin_ratio < 1:
        raise InvalidInputError(
            f"maintenance_margin_ratio must be in [0, 1), got {maintenance_margin_ratio!r}"
        )

    if Side.parse(side) is Side.BUY:
        return entry_price * (1 - 1 / leverage + maintenance_margin_ratio)
    return entry_price * (1 + 1 / leverage - maintenance_margin_ratio)


def is_liquidation_adverse(side: Side | str, price: float, liquidation: float) -> bool:
    """True when liquidation sits below price for a buy or above it for a sell."""
    if Side.parse(side) is Side.BUY:
        return liquidation < price
    return liquidation > price


def calculate_movement_to_liquidation(
    current_price: float,
    liquidation: float,
    side: Side | str,
) -> float:
    """Adverse price move, in percent of current_price, that reaches liquidation.

    Negative when the market is already past the liquidation price.
    """
    require_positive("current_price", current_price)
    require_finite("liquidation", liquidation)
    if Side.parse(side) is Side.BUY:
        return (current_price - liquidation) / current_price * 100
    return (liquidation - current_price) / current_price * 100


def margin_required_for_symbol(
    registry: AssetRegistry,
    symbol: str,
    quantity: float,
    entry_price: float,
    leverage: int,
) -> float:
    """Margin for a new order, checked against the symbol's AssetSpec.

    Raises:
        ConfigurationError: If the registry has no spec for symbol.
        InvalidQuantityError: If quantity is outside the asset's lot limits.
        InvalidInputError: If leverage exceeds the asset's cap.
    """
    spec = registry.get(symbol)
    spec.validate_quantity(quantity)
    spec.validate_leverage(leverage)
    return margin_required(quantity, entry_price, leverage, spec.contract_size)


def position_liquidation_price(position: Position, registry: AssetRegistry) -> float:
    """Liquidation price using the maintenance ratio configured for the symbol.

    Raises:
        ConfigurationError: If the registry has no spec for the position's symbol.
    """
    spec = registry.get(position.symbol)
    return liquidation_price(
        position.entry_price, position.side, position.leverage, spec.maintenance_margin_ratio
    )


def position_value(quantity: float, price: float, contract_size: float = 1.0) -> float:
    require_positive("quantity", quantity)
    require_positive("price", price)
    return quantity * contract_size * price


def max_position_size(available_equity: float, leverage: float, price: float) -> float:
    """Largest lot size the available equity can carry at the given leverage."""
    require_non_negative("available_equity", available_equity)
    require_positive("leverage", leverage)
    require_positive("price", price)
    return available_equity * leverage / price


def can_open_position(required_margin: float, available_margin: float) -> bool:
    return required_margin <= available_margin


def margin_summary(
    equity: float,
    margin_used: float,
    settings: MarginSettings | None = None,
) -> MarginSummary:
    """Build a full margin summary for an account."""
    settings = settings or MarginSettings()
    level = margin_level(equity, margin_used)
    free = free_margin(equity, margin_used)
    status = margin_status(level, settings)

    return MarginSummary(
        equity=equity,
        margin_used=margin_used,
        free_margin=free,
        margin_level=level,
        health=classify_with_settings(level, settings),
        status=status,
        can_open_new_position=free > 0 and status is not MarginStatus.LIQUIDATION,
    )


def liquidation_needed(
    equity: float,
    margin_used: float,
    settings: MarginSettings | None = None,
) -> LiquidationPlan:
    """Decide whether forced liquidation is required.

    Liquidation is needed below the stop-out level. The margin to free is
    what brings the margin level back to 100% (equity == margin used).
    """
    settings = settings or MarginSettings()
    level = margin_level(equity, margin_used)
    if margin_used == 0:
        return LiquidationPlan(
            is_needed=False,
            margin_level=level,
            margin_to_free=0.0,
            target_margin_level=100.0,
        )

    is_needed = classify_with_settings(level, settings) is MarginHealth.CRITICAL
    return LiquidationPlan(
        is_needed=is_needed,
        margin_level=level,
        margin_to_free=max(0.0, margin_used - equity),
        target_margin_level=100.0,
    )


def select_positions_for_liquidation(
    positions: Sequence[Position],
    margin_to_free: float,
) -> list[Position]:
    """Pick positions to liquidate, biggest losing exposure first.

    Priority is max(0, -unrealized P&L) * notional value. Positions are taken
    in priority order until the freed margin covers margin_to_free.
    """
    require_non_negative("margin_to_free", margin_to_free)
    if margin_to_free == 0:
        return []

    def priority(position: Position) -> float:
        unrealized = (
            (position.current_price - position.entry_price)
            * position.quantity
            * position.contract_size
            * position.side.direction
        )
        return max(0.0, -unrealized) * position.notional_value

    candidates = sorted(
        (p for p in positions if p.is_open),
        key=priority,
        reverse=True,
    )

    selected: list[Position] = []
    freed = 0.0
    for position in candidates:
        if freed >= margin_to_free:
            break
        selected.append(position)
        freed += position.margin_used
    return selected
