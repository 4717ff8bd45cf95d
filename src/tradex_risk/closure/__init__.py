"""Closure trigger engine: trigger checks and closure execution."""

from tradex_risk.closure.engine import (
    ClosureEngine,
    calculate_closure_price,
    calculate_closure_slippage,
    calculate_commission_on_closure,
    calculate_realized_pnl_on_closure,
    slippage_multiplier,
    summarize_closures,
)
from tradex_risk.closure.models import (
    ClosureFailure,
    ClosureReason,
    ClosureResult,
    ClosureStatus,
    ClosureSummary,
    TriggerCheck,
)
from tradex_risk.closure.slippage import (
    DEFAULT_SLIPPAGE_PROFILES,
    AssetSlippageModel,
    AssetSlippageProfile,
    Liquidity,
    MarketConditions,
    SlippageEstimate,
    calculate_size_multiplier,
    calculate_volatility_multiplier,
)
from tradex_risk.closure.triggers import (
    check_stop_loss_triggered,
    check_take_profit_triggered,
    check_time_based_expiry_triggered,
    check_trailing_stop_triggered,
    check_trigger,
    get_primary_closure_trigger,
    trailing_stop_level,
    update_trailing_stop,
)

__all__ = [
    "DEFAULT_SLIPPAGE_PROFILES",
    "AssetSlippageModel",
    "AssetSlippageProfile",
    "ClosureEngine",
    "ClosureFailure",
    "ClosureReason",
    "ClosureResult",
    "ClosureStatus",
    "ClosureSummary",
    "Liquidity",
    "MarketConditions",
    "SlippageEstimate",
    "TriggerCheck",
    "calculate_closure_price",
    "calculate_closure_slippage",
    "calculate_commission_on_closure",
    "calculate_realized_pnl_on_closure",
    "calculate_size_multiplier",
    "calculate_volatility_multiplier",
    "check_stop_loss_triggered",
    "check_take_profit_triggered",
    "check_time_based_expiry_triggered",
    "check_trailing_stop_triggered",
    "check_trigger",
    "get_primary_closure_trigger",
    "slippage_multiplier",
    "summarize_closures",
    "trailing_stop_level",
    "update_trailing_stop",
]
