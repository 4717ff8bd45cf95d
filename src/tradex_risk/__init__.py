"""Trading risk and position lifecycle library.

Pure, deterministic margin, P&L, closure trigger and portfolio risk
calculations over immutable position snapshots.
"""

from tradex_risk.closure import AssetSlippageModel, ClosureEngine, ClosureReason, ClosureResult, ClosureStatus
from tradex_risk.config import AssetRegistry, Settings
from tradex_risk.exceptions import (
    AlreadyClosedError,
    ConfigurationError,
    InvalidInputError,
    InvalidQuantityError,
    TradingRiskError,
)
from tradex_risk.margin import MarginCallSeverity, MarginHealth, MarginStatus, detect_margin_call
from tradex_risk.pnl import MetricsCalculator
from tradex_risk.portfolio import PortfolioRiskClassifier, RiskStatus
from tradex_risk.positions import AssetClass, AssetSpec, PortfolioSnapshot, Position, PositionStatus, Side

__all__ = [
    "AlreadyClosedError",
    "AssetClass",
    "AssetRegistry",
    "AssetSlippageModel",
    "AssetSpec",
    "ClosureEngine",
    "ClosureReason",
    "ClosureResult",
    "ClosureStatus",
    "ConfigurationError",
    "InvalidInputError",
    "InvalidQuantityError",
    "MarginCallSeverity",
    "MarginHealth",
    "MarginStatus",
    "MetricsCalculator",
    "PortfolioRiskClassifier",
    "PortfolioSnapshot",
    "Position",
    "PositionStatus",
    "RiskStatus",
    "Settings",
    "Side",
    "TradingRiskError",
    "detect_margin_call",
]
