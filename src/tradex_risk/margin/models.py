"""Data models for margin calculations."""
from dataclasses import dataclass, field
from enum import Enum


class MarginHealth(Enum):
    """Three-band classification against margin call and stop-out levels."""

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


class MarginStatus(Enum):
    """Four-band account status used for alerts and close-only mode."""

    SAFE = "safe"
    WARNING = "warning"
    CRITICAL = "critical"
    LIQUIDATION = "liquidation"


@dataclass(frozen=True)
class MarginSummary:
    """Margin state of an account at one instant.

    Attributes:
        equity: Account equity (balance plus unrealized P&L).
        margin_used: Total margin held by open positions.
        free_margin: Equity minus margin used; negative in a margin crisis.
        margin_level: Equity / margin used as a percentage, inf with no margin used.
        health: Three-band classification of margin_level.
        status: Four-band classification of margin_level.
        can_open_new_position: Whether new exposure may be added.
    """

    equity: float
    margin_used: float
    free_margin: float
    margin_level: float
    health: MarginHealth
    status: MarginStatus
    can_open_new_position: bool


@dataclass(frozen=True)
class LiquidationPlan:
    """Whether forced liquidation is needed and how much margin it must free."""

    is_needed: bool
    margin_level: float
    margin_to_free: float
    target_margin_level: float


class MarginCallSeverity(Enum):
    """How far below the margin call level an account has fallen.

    STANDARD: call_level <= level < margin_call_level
    URGENT:   stop_out_level <= level < call_level
    CRITICAL: level < stop_out_level
    """

    STANDARD = "standard"
    URGENT = "urgent"
    CRITICAL = "critical"


class MarginCallState(Enum):
    """Lifecycle of a margin call between two observations."""

    PENDING = "pending"
    NOTIFIED = "notified"
    RESOLVED = "resolved"
    ESCALATED = "escalated"


class ActionUrgency(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class MarginCallAction:
    action: str
    urgency: ActionUrgency
    description: str


@dataclass(frozen=True)
class MarginCallDetection:
    """Result of checking an account for a margin call.

    Attributes:
        is_triggered: Margin level is below the margin call level.
        margin_level: Margin level percentage that was checked.
        severity: Severity band, None when not triggered.
        should_escalate: Level is below stop-out and forced liquidation applies.
        close_only: New exposure is blocked; only closing orders are accepted.
        minutes_to_liquidation: Rough countdown, None at or above 100%.
        message: Human readable summary.
    """

    is_triggered: bool
    margin_level: float
    severity: MarginCallSeverity | None
    should_escalate: bool
    close_only: bool
    minutes_to_liquidation: int | None
    message: str


@dataclass(frozen=True)
class MarginCallTransition:
    """State change between two consecutive margin call detections."""

    previous_state: MarginCallState | None
    new_state: MarginCallState | None
    changed: bool
    reason: str
    escalation_required: bool


@dataclass
class OrderCheckResult:
    """Result of checking a new order against the account's margin state.

    Attributes:
        approved: Whether the order may be placed.
        required_margin: Margin the order would consume.
        rejection_reason: Explanation if the order was rejected (None if approved).
        warnings: Non-blocking warnings about the order.
    """

    approved: bool
    required_margin: float
    rejection_reason: str | None
    warnings: list[str] = field(default_factory=list)
