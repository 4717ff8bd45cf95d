"""Margin engine: margin required, free margin, margin level and liquidation."""

from tradex_risk.margin.engine import (
    calculate_movement_to_liquidation,
    can_open_position,
    classify_margin_level,
    classify_with_settings,
    free_margin,
    is_liquidation_adverse,
    liquidation_needed,
    liquidation_price,
    margin_level,
    margin_required,
    margin_required_for_symbol,
    margin_status,
    margin_summary,
    max_position_size,
    position_liquidation_price,
    position_value,
    select_positions_for_liquidation,
)
from tradex_risk.margin.margin_call import (
    check_new_order,
    classify_margin_call_severity,
    detect_margin_call,
    estimate_time_to_liquidation,
    is_margin_call_triggered,
    margin_call_actions,
    should_escalate_to_liquidation,
    update_margin_call_state,
)
from tradex_risk.margin.models import (
    ActionUrgency,
    LiquidationPlan,
    MarginCallAction,
    MarginCallDetection,
    MarginCallSeverity,
    MarginCallState,
    MarginCallTransition,
    MarginHealth,
    MarginStatus,
    MarginSummary,
    OrderCheckResult,
)

__all__ = [
    "ActionUrgency",
    "LiquidationPlan",
    "MarginCallAction",
    "MarginCallDetection",
    "MarginCallSeverity",
    "MarginCallState",
    "MarginCallTransition",
    "MarginHealth",
    "MarginStatus",
    "MarginSummary",
    "OrderCheckResult",
    "calculate_movement_to_liquidation",
    "can_open_position",
    "check_new_order",
    "classify_margin_call_severity",
    "classify_margin_level",
    "classify_with_settings",
    "detect_margin_call",
    "estimate_time_to_liquidation",
    "free_margin",
    "is_liquidation_adverse",
    "is_margin_call_triggered",
    "liquidation_needed",
    "liquidation_price",
    "margin_call_actions",
    "margin_level",
    "margin_required",
    "margin_required_for_symbol",
    "margin_status",
    "margin_summary",
    "max_position_size",
    "position_liquidation_price",
    "position_value",
    "select_positions_for_liquidation",
    "should_escalate_to_liquidation",
    "update_margin_call_state",
]
