"""Margin call detection, escalation and close-only order checks.

Bands, with the default MarginSettings:
    >= 150%      no margin call
    100 - 150%   STANDARD call, new orders still allowed
    50 - 100%    URGENT call, close-only mode
    < 50%        CRITICAL call, forced liquidation
"""
import logging
import math

from tradex_risk.config.settings import MarginSettings
from tradex_risk.exceptions import InvalidInputError
from tradex_risk.margin.engine import margin_level
from tradex_risk.margin.models import (
    ActionUrgency,
    MarginCallAction,
    MarginCallDetection,
    MarginCallSeverity,
    MarginCallState,
    MarginCallTransition,
    OrderCheckResult,
)
from tradex_risk.validation import require_non_negative

logger = logging.getLogger(__name__)


def _require_level(level: float) -> None:
    if math.isnan(level):
        raise InvalidInputError("margin level cannot be NaN")


def _below_stop_out(level: float, settings: MarginSettings) -> bool:
    if settings.stop_out_inclusive:
        return level <= settings.stop_out_level
    return level < settings.stop_out_level


def is_margin_call_triggered(level: float, settings: MarginSettings | None = None) -> bool:
    settings = settings or MarginSettings()
    _require_level(level)
    return level < settings.margin_call_level


def classify_margin_call_severity(
    level: float,
    settings: MarginSettings | None = None,
) -> MarginCallSeverity | None:
    """Severity band for a margin level, None when no call is active."""
    settings = settings or MarginSettings()
    if not is_margin_call_triggered(level, settings):
        return None
    if _below_stop_out(level, settings):
        return MarginCallSeverity.CRITICAL
    if level < settings.call_level:
        return MarginCallSeverity.URGENT
    return MarginCallSeverity.STANDARD


def estimate_time_to_liquidation(level: float, settings: MarginSettings | None = None) -> int | None:
    """Rough minutes left before liquidation, assuming one point of level lost per minute.

    None when the level is at or above the call level.
    """
    settings = settings or MarginSettings()
    _require_level(level)
    if level >= settings.call_level:
        return None
    return max(1, math.ceil(level))


def detect_margin_call(level: float, settings: MarginSettings | None = None) -> MarginCallDetection:
    """Check a margin level for an active margin call.

    Args:
        level: Margin level percentage (math.inf with no margin in use).
        settings: Margin thresholds. Defaults to MarginSettings().

    Returns:
        MarginCallDetection describing the call, if any.
    """
    settings = settings or MarginSettings()
    severity = classify_margin_call_severity(level, settings)

    if severity is None:
        message = f"Margin level {level:.2f}% is above the margin call level"
    elif severity is MarginCallSeverity.CRITICAL:
        message = f"Margin level {level:.2f}% is below stop-out; positions will be liquidated"
    elif severity is MarginCallSeverity.URGENT:
        message = f"Margin level {level:.2f}% is below {settings.call_level:.0f}%; close-only mode"
    else:
        message = f"Margin level {level:.2f}% is below {settings.margin_call_level:.0f}%; add funds"

    if severity is not None:
        logger.warning(f"Margin call ({severity.value}): {message}")

    return MarginCallDetection(
        is_triggered=severity is not None,
        margin_level=level,
        severity=severity,
        should_escalate=severity is MarginCallSeverity.CRITICAL,
        close_only=level < settings.call_level,
        minutes_to_liquidation=estimate_time_to_liquidation(level, settings),
        message=message,
    )


def should_escalate_to_liquidation(
    level: float,
    minutes_in_call: float,
    settings: MarginSettings | None = None,
) -> bool:
    """Whether a margin call has run long enough, or deep enough, to force liquidation.

    Escalates when the level has been below stop-out for at least
    escalation_grace_minutes, or at once below immediate_liquidation_level.
    """
    settings = settings or MarginSettings()
    _require_level(level)
    require_non_negative("minutes_in_call", minutes_in_call)
    if level < settings.immediate_liquidation_level:
        return True
    return _below_stop_out(level, settings) and minutes_in_call >= settings.escalation_grace_minutes


def update_margin_call_state(
    previous_level: float,
    current_level: float,
    settings: MarginSettings | None = None,
) -> MarginCallTransition:
    """Work out how a margin call changed between two observations."""
    settings = settings or MarginSettings()
    previous = classify_margin_call_severity(previous_level, settings)
    current = classify_margin_call_severity(current_level, settings)

    if previous is None and current is None:
        return MarginCallTransition(
            previous_state=None,
            new_state=None,
            changed=False,
            reason="No margin call",
            escalation_required=False,
        )

    if previous is None:
        return MarginCallTransition(
            previous_state=MarginCallState.PENDING,
            new_state=MarginCallState.NOTIFIED,
            changed=True,
            reason=f"Margin level fell below {settings.margin_call_level:.0f}%",
            escalation_required=current is not MarginCallSeverity.STANDARD,
        )

    if current is None:
        return MarginCallTransition(
            previous_state=MarginCallState.NOTIFIED,
            new_state=MarginCallState.RESOLVED,
            changed=True,
            reason=f"Margin level recovered above {settings.margin_call_level:.0f}%",
            escalation_required=False,
        )

    if previous is not current:
        escalated = current is MarginCallSeverity.CRITICAL
        return MarginCallTransition(
            previous_state=MarginCallState.NOTIFIED,
            new_state=MarginCallState.ESCALATED if escalated else MarginCallState.NOTIFIED,
            changed=True,
            reason=f"Severity changed from {previous.value} to {current.value}",
            escalation_required=escalated,
        )

    return MarginCallTransition(
        previous_state=MarginCallState.NOTIFIED,
        new_state=MarginCallState.NOTIFIED,
        changed=False,
        reason=f"Margin call unchanged at {current.value}",
        escalation_required=current is MarginCallSeverity.CRITICAL,
    )


def margin_call_actions(level: float, settings: MarginSettings | None = None) -> list[MarginCallAction]:
    """Recommended actions for the margin call band the level falls in."""
    severity = classify_margin_call_severity(level, settings)
    if severity is MarginCallSeverity.CRITICAL:
        return [
            MarginCallAction(
                "Deposit funds immediately",
                ActionUrgency.HIGH,
                "Add funds to bring the margin level above stop-out and prevent forced liquidation",
            ),
            MarginCallAction(
                "Close all non-essential positions",
                ActionUrgency.HIGH,
                "Close positions with the lowest margin contribution to free margin quickly",
            ),
            MarginCallAction(
                "Reduce leverage",
                ActionUrgency.HIGH,
                "Lower leverage to reduce margin requirements",
            ),
        ]
    if severity is MarginCallSeverity.URGENT:
        return [
            MarginCallAction(
                "Deposit funds",
                ActionUrgency.HIGH,
                "Add funds to lift the margin level above the call level",
            ),
            MarginCallAction(
                "Close largest losing positions",
                ActionUrgency.HIGH,
                "Close positions with the largest unrealized losses to free margin",
            ),
            MarginCallAction(
                "Set tight stop losses",
                ActionUrgency.MEDIUM,
                "Protect remaining positions with protective stops",
            ),
        ]
    if severity is MarginCallSeverity.STANDARD:
        return [
            MarginCallAction(
                "Monitor margin level closely",
                ActionUrgency.MEDIUM,
                "Watch the margin level throughout the session",
            ),
            MarginCallAction(
                "Be ready to deposit funds",
                ActionUrgency.MEDIUM,
                "Have a deposit method ready in case the margin level drops further",
            ),
            MarginCallAction(
                "Avoid new high-leverage trades",
                ActionUrgency.LOW,
                "Reduce position size on new trades to preserve margin",
            ),
        ]
    return []


def check_new_order(
    equity: float,
    margin_used: float,
    required_margin: float,
    reduces_exposure: bool = False,
    settings: MarginSettings | None = None,
) -> OrderCheckResult:
    """Decide whether a new order may be placed given the account's margin state.

    Orders that reduce exposure are always accepted. Orders that add exposure
    are rejected in close-only mode and when free margin cannot cover them.

    Args:
        equity: Account equity.
        margin_used: Margin held by open positions.
        required_margin: Margin the new order would consume.
        reduces_exposure: True for orders that close or shrink a position.
        settings: Margin thresholds. Defaults to MarginSettings().
    """
    settings = settings or MarginSettings()
    require_non_negative("required_margin", required_margin)
    level = margin_level(equity, margin_used)

    if reduces_exposure:
        return OrderCheckResult(approved=True, required_margin=0.0, rejection_reason=None)

    detection = detect_margin_call(level, settings)
    if detection.close_only:
        reason = f"Account is in close-only mode (margin level {level:.2f}%)"
        logger.warning(f"Order rejected: {reason}")
        return OrderCheckResult(approved=False, required_margin=required_margin, rejection_reason=reason)

    available = equity - margin_used
    if required_margin > available:
        reason = f"Insufficient free margin: need {required_margin:.2f}, have {available:.2f}"
        logger.warning(f"Order rejected: {reason}")
        return OrderCheckResult(approved=False, required_margin=required_margin, rejection_reason=reason)

    warnings = []
    if detection.is_triggered:
        warnings.append(detection.message)
    projected = margin_level(equity, margin_used + required_margin)
    if projected < settings.margin_call_level:
        warnings.append(f"Order would leave margin level at {projected:.2f}%")

    return OrderCheckResult(
        approved=True,
        required_margin=required_margin,
        rejection_reason=None,
        warnings=warnings,
    )
