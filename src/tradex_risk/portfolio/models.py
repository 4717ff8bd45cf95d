"""Data models for portfolio-level risk."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from tradex_risk.margin.models import MarginHealth, MarginStatus


class RiskStatus(Enum):
    """Overall account risk, ordered from least to most severe."""

    SAFE = "safe"
    MONITOR = "monitor"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def severity(self) -> int:
        return list(RiskStatus).index(self)


class ConcentrationRisk(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RiskThreshold(Enum):
    """Account-level limits checked by find_threshold_violations."""

    DAILY_LOSS = "daily_loss"
    DRAWDOWN = "drawdown"
    CONCENTRATION = "concentration"
    CORRELATION = "correlation"
    VAR = "var"


@dataclass(frozen=True)
class ThresholdViolation:
    """One breached limit.

    Attributes:
        threshold: Which limit was breached.
        value: Observed value, in the same units as limit.
        limit: Configured limit.
        severity: Status this breach implies on its own.
        message: Human readable description.
    """

    threshold: RiskThreshold
    value: float
    limit: float
    severity: RiskStatus
    message: str


@dataclass(frozen=True)
class StressScenarioResult:
    """Projected account state after shocking every price by one percentage.

    Attributes:
        name: Scenario label, e.g. "-10% Movement".
        price_movement_percent: Shock applied to every position's price.
        projected_equity: Equity after the shock.
        estimated_loss: Equity lost under the shock, 0 when the shock helps.
        margin_level: Margin level after the shock, inf with no margin used.
        margin_status: Four-band status of that margin level.
        liquidated_symbols: Symbols whose shocked price crosses their liquidation price.
    """

    name: str
    price_movement_percent: float
    projected_equity: float
    estimated_loss: float
    margin_level: float
    margin_status: MarginStatus
    liquidated_symbols: tuple[str, ...] = ()


@dataclass
class PortfolioRiskAssessment:
    """Account-wide risk picture produced by PortfolioRiskClassifier."""

    equity: float
    margin_used: float
    margin_level: float
    margin_health: MarginHealth
    concentration: dict[str, float]
    herfindahl_index: float
    concentration_risk: ConcentrationRisk
    effective_positions: float
    correlation: float
    value_at_risk: float
    var_percentage: float
    drawdown_percent: float
    status: RiskStatus
    assessed_at: datetime
    daily_pnl: float | None = None
    violations: list[ThresholdViolation] = field(default_factory=list)
    stress_results: dict[str, float] = field(default_factory=dict)
    recommendations: list[str] = field(default_factory=list)
