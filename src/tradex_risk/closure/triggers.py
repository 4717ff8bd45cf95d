"""Closure trigger evaluation.

Every check is a pure function of a Position snapshot. The trailing stop
high-water mark is passed in and returned explicitly; callers persist it
between ticks. All price comparisons are inclusive.

Trigger priority, highest first:
    forced > stop_loss > take_profit > trailing_stop > time_expiry
"""
from datetime import datetime, timedelta, timezone

from tradex_risk.closure.models import ClosureReason, ClosureStatus, TriggerCheck
from tradex_risk.exceptions import InvalidInputError
from tradex_risk.positions.models import Position, Side
from tradex_risk.validation import require_aware


def check_take_profit_triggered(position: Position) -> bool:
    if position.take_profit is None:
        return False
    if position.side is Side.BUY:
        return position.current_price >= position.take_profit
    return position.current_price <= position.take_profit


def check_stop_loss_triggered(position: Position) -> bool:
    if position.stop_loss is None:
        return False
    if position.side is Side.BUY:
        return position.current_price <= position.stop_loss
    return position.current_price >= position.stop_loss


def update_trailing_stop(
    position: Position,
    prior_high_water_mark: float | None = None,
) -> float | None:
    """Advance the best price seen since the position moved into profit.

    For a buy the mark is the highest price seen, for a sell the lowest. The
    mark only starts once price has moved past entry in the trader's favour;
    until then there is no mark and the trailing stop is not armed.

    Args:
        position: Position marked to the latest price.
        prior_high_water_mark: Mark from the previous tick, None while unarmed.

    Returns:
        The new high-water mark, or None if the stop is still unarmed.
    """
    price = position.current_price
    if prior_high_water_mark is None:
        if position.side is Side.BUY:
            return price if price > position.entry_price else None
        return price if price < position.entry_price else None
    if position.side is Side.BUY:
        return max(prior_high_water_mark, price)
    return min(prior_high_water_mark, price)


def trailing_stop_level(position: Position, high_water_mark: float) -> float | None:
    """Stop price implied by a high-water mark, None without a trailing distance."""
    if position.trailing_stop_distance is None:
        return None
    if position.side is Side.BUY:
        return high_water_mark - position.trailing_stop_distance
    return high_water_mark + position.trailing_stop_distance


def check_trailing_stop_triggered(position: Position, high_water_mark: float | None) -> bool:
    """True when price has retraced the trailing distance from the best price.

    The current price is folded into the mark first, so a stale mark can
    never sit behind the market. An unarmed stop never fires.
    """
    if position.trailing_stop_distance is None:
        return False
    mark = update_trailing_stop(position, high_water_mark)
    if mark is None:
        return False
    stop = trailing_stop_level(position, mark)
    if position.side is Side.BUY:
        return position.current_price <= stop
    return position.current_price >= stop


def check_time_based_expiry_triggered(
    position: Position,
    now: datetime,
    max_hold_duration: timedelta | None,
) -> bool:
    require_aware("now", now)
    if max_hold_duration is None:
        return False
    if max_hold_duration <= timedelta(0):
        raise InvalidInputError(f"max_hold_duration must be positive, got {max_hold_duration}")
    return now - position.opened_at >= max_hold_duration


def get_primary_closure_trigger(
    position: Position,
    *,
    high_water_mark: float | None = None,
    now: datetime | None = None,
    max_hold_duration: timedelta | None = None,
    margin_level: float | None = None,
    stop_out_level: float = 50.0,
    force: bool = False,
) -> ClosureReason | None:
    """Return the highest-priority trigger that fires, or None.

    Args:
        position: Position marked to the latest price.
        high_water_mark: Trailing stop mark from the previous tick.
        now: Evaluation time, defaults to the current UTC time.
        max_hold_duration: Maximum time a position may stay open.
        margin_level: Account margin level; below stop_out_level forces closure.
        stop_out_level: Stop-out threshold in percent.
        force: Force closure regardless of price.

    Returns:
        The ClosureReason to close with, or None. Positions that are not
        open never trigger.
    """
    if not position.is_open:
        return None

    if force or (margin_level is not None and margin_level < stop_out_level):
        return ClosureReason.FORCED
    if check_stop_loss_triggered(position):
        return ClosureReason.STOP_LOSS
    if check_take_profit_triggered(position):
        return ClosureReason.TAKE_PROFIT
    if check_trailing_stop_triggered(position, high_water_mark):
        return ClosureReason.TRAILING_STOP

    now = now or datetime.now(timezone.utc)
    if check_time_based_expiry_triggered(position, now, max_hold_duration):
        return ClosureReason.TIME_EXPIRY
    return None


def check_trigger(
    position: Position,
    *,
    high_water_mark: float | None = None,
    now: datetime | None = None,
    max_hold_duration: timedelta | None = None,
    margin_level: float | None = None,
    stop_out_level: float = 50.0,
    force: bool = False,
) -> TriggerCheck:
    """Evaluate triggers and wrap the outcome in a TriggerCheck."""
    now = now or datetime.now(timezone.utc)
    require_aware("now", now)
    reason = get_primary_closure_trigger(
        position,
        high_water_mark=high_water_mark,
        now=now,
        max_hold_duration=max_hold_duration,
        margin_level=margin_level,
        stop_out_level=stop_out_level,
        force=force,
    )
    return TriggerCheck(
        position_id=position.id,
        status=ClosureStatus.TRIGGERED if reason is not None else ClosureStatus.NOT_TRIGGERED,
        reason=reason,
        market_price=position.current_price,
        checked_at=now,
    )
