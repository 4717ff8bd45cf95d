"""Shared data models for positions, asset configuration and portfolio snapshots."""
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum

from tradex_risk.exceptions import (
    AlreadyClosedError,
    InvalidInputError,
    InvalidQuantityError,
)
from tradex_risk.validation import require_aware, require_non_negative, require_positive


class Side(Enum):
    """Direction of a leveraged exposure."""

    BUY = "buy"
    SELL = "sell"

    @classmethod
    def parse(cls, value: "str | Side") -> "Side":
        """Parse a side, accepting the long/short aliases used by the client.

        Args:
            value: "buy", "sell", "long", "short" or a Side.

        Returns:
            The matching Side.

        Raises:
            InvalidInputError: If the value is not a recognised side.
        """
        if isinstance(value, Side):
            return value
        normalized = str(value).strip().lower()
        aliases = {"buy": cls.BUY, "long": cls.BUY, "sell": cls.SELL, "short": cls.SELL}
        if normalized not in aliases:
            raise InvalidInputError(f"Unknown position side: {value!r}")
        return aliases[normalized]

    @property
    def direction(self) -> int:
        """+1 for buy, -1 for sell."""
        return 1 if self is Side.BUY else -1


class PositionStatus(Enum):
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


_ALLOWED_TRANSITIONS = {
    PositionStatus.OPEN: {PositionStatus.CLOSING, PositionStatus.CLOSED},
    PositionStatus.CLOSING: {PositionStatus.CLOSED},
    PositionStatus.CLOSED: set(),
}


class AssetClass(Enum):
    FOREX = "forex"
    INDEX = "index"
    COMMODITY = "commodity"
    STOCK = "stock"
    CRYPTO = "crypto"
    ETF = "etf"
    BOND = "bond"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _optional_level(name: str, value: float | None) -> float | None:
    if value is None:
        return None
    return require_positive(name, value)


@dataclass(frozen=True)
class Position:
    """Immutable snapshot of one open leveraged exposure.

    Attributes:
        id: Position identifier.
        symbol: Trading symbol (e.g. "EURUSD").
        side: BUY (long) or SELL (short).
        quantity: Lot size, always positive.
        entry_price: Average fill price.
        current_price: Latest market price.
        leverage: Integer leverage multiplier, at least 1.
        opened_at: When the order filled.
        stop_loss: Stop-loss price, None when not set.
        take_profit: Take-profit price, None when not set.
        trailing_stop_distance: Trailing distance in price units, None when not set.
        status: Lifecycle status.
        realized_pnl: P&L already realized by earlier partial closes.
        contract_size: Units per lot used to scale P&L and margin.
        asset_class: Asset class, when known.
        closed_at: When the position was closed, None while open.
        margin_used: Margin held; derived from size, entry and leverage when omitted.
    """

    id: str
    symbol: str
    side: Side
    quantity: float
    entry_price: float
    current_price: float
    leverage: int = 1
    opened_at: datetime = field(default_factory=_utcnow)
    stop_loss: float | None = None
    take_profit: float | None = None
    trailing_stop_distance: float | None = None
    status: PositionStatus = PositionStatus.OPEN
    realized_pnl: float = 0.0
    contract_size: float = 1.0
    asset_class: AssetClass | None = None
    closed_at: datetime | None = None
    margin_used: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "side", Side.parse(self.side))
        require_positive("quantity", self.quantity)
        require_positive("entry_price", self.entry_price)
        require_positive("current_price", self.current_price)
        require_positive("contract_size", self.contract_size)
        if isinstance(self.leverage, bool) or int(self.leverage) != self.leverage or self.leverage < 1:
            raise InvalidInputError(f"leverage must be an integer >= 1, got {self.leverage!r}")
        object.__setattr__(self, "leverage", int(self.leverage))
        _optional_level("stop_loss", self.stop_loss)
        _optional_level("take_profit", self.take_profit)
        _optional_level("trailing_stop_distance", self.trailing_stop_distance)
        require_aware("opened_at", self.opened_at)
        require_aware("closed_at", self.closed_at)

        if self.margin_used is None:
            derived = self.quantity * self.contract_size * self.entry_price / self.leverage
            object.__setattr__(self, "margin_used", derived)
        else:
            require_non_negative("margin_used", self.margin_used)

    @property
    def is_open(self) -> bool:
        return self.status is PositionStatus.OPEN

    @property
    def notional_value(self) -> float:
        """Current market value of the exposure."""
        return self.quantity * self.contract_size * self.current_price

    def with_price(self, current_price: float) -> "Position":
        """Return a copy marked to a new market price."""
        return replace(self, current_price=current_price)

    def with_status(self, status: PositionStatus, closed_at: datetime | None = None) -> "Position":
        """Return a copy moved to a new lifecycle status.

        Raises:
            AlreadyClosedError: If the position is already closed.
            InvalidInputError: If the transition would reopen the position.
        """
        if self.status is PositionStatus.CLOSED:
            raise AlreadyClosedError(f"Position {self.id} is already closed")
        if status not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidInputError(
                f"Position {self.id} cannot move from {self.status.value} to {status.value}"
            )
        if status is PositionStatus.CLOSED and closed_at is None:
            closed_at = _utcnow()
        return replace(self, status=status, closed_at=closed_at)


@dataclass(frozen=True)
class AssetSpec:
    """Static per-symbol trading configuration.

    Attributes:
        symbol: Trading symbol.
        asset_class: Asset class of the symbol.
        max_leverage: Highest leverage allowed for new positions.
        pip_size: Minimum meaningful price increment.
        min_quantity: Smallest allowed lot size.
        max_quantity: Largest allowed lot size.
        commission_rate: Commission as a percentage of notional (0.1 = 0.1%).
        maintenance_margin_ratio: Maintenance margin as a fraction (0.02 = 2%).
        contract_size: Units per lot.
    """

    symbol: str
    asset_class: AssetClass
    max_leverage: int
    pip_size: float
    min_quantity: float
    max_quantity: float
    commission_rate: float = 0.0
    maintenance_margin_ratio: float = 0.1
    contract_size: float = 1.0

    def __post_init__(self) -> None:
        if self.max_leverage < 1:
            raise InvalidInputError(f"max_leverage must be >= 1, got {self.max_leverage!r}")
        require_positive("pip_size", self.pip_size)
        require_positive("min_quantity", self.min_quantity)
        require_positive("max_quantity", self.max_quantity)
        if self.min_quantity > self.max_quantity:
            raise InvalidInputError(
                f"min_quantity ({self.min_quantity}) exceeds max_quantity ({self.max_quantity})"
            )
        require_non_negative("commission_rate", self.commission_rate)
        if not 0 <= self.maintenance_margin_ratio < 1:
            raise InvalidInputError(
                f"maintenance_margin_ratio must be in [0, 1), got {self.maintenance_margin_ratio!r}"
            )
        require_positive("contract_size", self.contract_size)

    def validate_quantity(self, quantity: float) -> float:
        """Check a requested lot size against the asset limits.

        Raises:
            InvalidQuantityError: If quantity is outside [min_quantity, max_quantity].
        """
        if not self.min_quantity <= quantity <= self.max_quantity:
            raise InvalidQuantityError(
                f"{self.symbol} quantity {quantity} outside allowed range "
                f"[{self.min_quantity}, {self.max_quantity}]"
            )
        return quantity

    def validate_leverage(self, leverage: int) -> int:
        """Check a requested leverage against the asset cap.

        Raises:
            InvalidInputError: If leverage is below 1 or above max_leverage.
        """
        if not 1 <= leverage <= self.max_leverage:
            raise InvalidInputError(
                f"{self.symbol} leverage {leverage} outside allowed range [1, {self.max_leverage}]"
            )
        return leverage


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Positions plus account equity and margin totals at one instant."""

    positions: tuple[Position, ...]
    equity: float
    margin_used: float | None = None
    taken_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        object.__setattr__(self, "positions", tuple(self.positions))
        require_aware("taken_at", self.taken_at)
        if self.margin_used is None:
            total = sum(p.margin_used for p in self.positions if p.status is not PositionStatus.CLOSED)
            object.__setattr__(self, "margin_used", total)
        else:
            require_non_negative("margin_used", self.margin_used)

    @property
    def open_positions(self) -> tuple[Position, ...]:
        return tuple(p for p in self.positions if p.is_open)
