"""Per-asset slippage model.

Slippage is measured in price steps (pips, points or cents depending on the
asset) and scaled by market conditions:

    total = base * volatility multiplier * size multiplier * after-hours penalty

capped at twice the asset's max_slippage. The price offset is total *
price_step; a buy fills above the market and a sell below it.
"""
import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from tradex_risk.exceptions import ConfigurationError, InvalidInputError
from tradex_risk.positions.models import Side
from tradex_risk.validation import require_non_negative, require_positive

logger = logging.getLogger(__name__)

HIGH_VOLATILITY_FACTOR = 1.5
LOW_LIQUIDITY_FACTOR = 2.0
SIZE_EXPONENT = 1.5
MIN_SIZE_RATIO = 0.1
MAX_SLIPPAGE_FACTOR = 2.0


class Liquidity(Enum):
    """Market depth of an asset.

    The threshold is the order size, as a percentage of daily volume, at which
    the order starts to move the price.
    """

    VERY_HIGH = "very_high"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def size_threshold_percent(self) -> float:
        return {
            Liquidity.VERY_HIGH: 10.0,
            Liquidity.HIGH: 5.0,
            Liquidity.MEDIUM: 2.0,
            Liquidity.LOW: 0.5,
        }[self]


@dataclass(frozen=True)
class AssetSlippageProfile:
    """Slippage characteristics of one symbol.

    Attributes:
        symbol: Trading symbol.
        base_spread: Typical slippage in price steps under normal conditions.
        min_slippage: Lower bound of the base slippage in price steps.
        max_slippage: Upper bound of the base slippage in price steps.
        volatility_multiplier: How strongly slippage grows with volatility.
        price_step: Price value of one step.
        liquidity: Market depth.
        after_hours_penalty: Multiplier applied outside trading hours.
    """

    symbol: str
    base_spread: float
    min_slippage: float
    max_slippage: float
    volatility_multiplier: float
    price_step: float
    liquidity: Liquidity
    after_hours_penalty: float

    def __post_init__(self) -> None:
        require_non_negative("base_spread", self.base_spread)
        require_non_negative("min_slippage", self.min_slippage)
        if self.min_slippage > self.max_slippage:
            raise InvalidInputError(
                f"min_slippage ({self.min_slippage}) exceeds max_slippage ({self.max_slippage})"
            )
        require_positive("volatility_multiplier", self.volatility_multiplier)
        require_positive("price_step", self.price_step)
        if self.after_hours_penalty < 1:
            raise InvalidInputError(
                f"after_hours_penalty must be >= 1, got {self.after_hours_penalty!r}"
            )

    @property
    def base_slippage(self) -> float:
        """The typical spread, held inside [min_slippage, max_slippage]."""
        return min(max(self.base_spread, self.min_slippage), self.max_slippage)


def _profile(
    symbol: str,
    base_spread: float,
    min_slippage: float,
    max_slippage: float,
    volatility_multiplier: float,
    price_step: float,
    liquidity: Liquidity,
    after_hours_penalty: float,
) -> AssetSlippageProfile:
    return AssetSlippageProfile(
        symbol, base_spread, min_slippage, max_slippage,
        volatility_multiplier, price_step, liquidity, after_hours_penalty,
    )


DEFAULT_SLIPPAGE_PROFILES: tuple[AssetSlippageProfile, ...] = (
    # Forex majors
    _profile("EURUSD", 0.2, 0, 0.6, 3, 0.0001, Liquidity.VERY_HIGH, 2),
    _profile("USDJPY", 0.2, 0, 0.6, 3, 0.001, Liquidity.VERY_HIGH, 2),
    _profile("GBPUSD", 0.3, 0, 0.6, 3, 0.0001, Liquidity.VERY_HIGH, 2),
    _profile("USDCHF", 0.2, 0, 0.6, 3, 0.0001, Liquidity.VERY_HIGH, 2),
    # Forex minors
    _profile("NZDCAD", 1, 0.5, 2, 2.5, 0.0001, Liquidity.HIGH, 3),
    _profile("AUDCAD", 1, 0.5, 2, 2.5, 0.0001, Liquidity.HIGH, 3),
    # Forex exotics
    _profile("USDTRY", 5, 2, 15, 4, 0.0001, Liquidity.LOW, 5),
    _profile("USDRUB", 5, 2, 15, 4, 0.0001, Liquidity.LOW, 5),
    # Index CFDs
    _profile("US500", 0.5, 0.5, 2, 2, 0.1, Liquidity.VERY_HIGH, 2),
    _profile("US100", 0.5, 0.5, 2, 2, 0.1, Liquidity.VERY_HIGH, 2),
    _profile("UK100", 1, 0.5, 2, 2, 0.1, Liquidity.HIGH, 2.5),
    _profile("GER40", 1, 0.5, 2, 2, 0.1, Liquidity.HIGH, 2.5),
    # Commodities
    _profile("XAUUSD", 0.3, 0.1, 1, 3, 0.01, Liquidity.VERY_HIGH, 2),
    _profile("XAGUSD", 0.5, 0.2, 1.5, 3, 0.001, Liquidity.HIGH, 2.5),
    _profile("WTIUSD", 0.2, 0.1, 0.8, 3, 0.01, Liquidity.VERY_HIGH, 2),
    _profile("BRENTUSD", 0.2, 0.1, 0.8, 3, 0.01, Liquidity.VERY_HIGH, 2),
    # Stocks
    _profile("AAPL", 0.05, 0.03, 0.15, 2, 0.01, Liquidity.VERY_HIGH, 3),
    _profile("TSLA", 0.05, 0.03, 0.2, 2.5, 0.01, Liquidity.VERY_HIGH, 3),
    _profile("MSFT", 0.05, 0.03, 0.15, 2, 0.01, Liquidity.VERY_HIGH, 3),
    _profile("GOOGL", 0.05, 0.03, 0.15, 2, 0.01, Liquidity.VERY_HIGH, 3),
    # Crypto, traded around the clock
    _profile("BTCUSD", 30, 20, 50, 2.5, 1, Liquidity.VERY_HIGH, 1.5),
    _profile("ETHUSD", 20, 15, 40, 2.5, 0.1, Liquidity.VERY_HIGH, 1.5),
    _profile("XRPUSD", 0.0005, 0.0003, 0.001, 2, 0.00001, Liquidity.HIGH, 1.3),
    # ETFs
    _profile("SPY", 0.05, 0.03, 0.15, 2, 0.01, Liquidity.VERY_HIGH, 3),
    _profile("QQQ", 0.05, 0.03, 0.15, 2, 0.01, Liquidity.VERY_HIGH, 3),
    # Bonds
    _profile("US10Y", 0.01, 0.005, 0.05, 2, 0.001, Liquidity.VERY_HIGH, 2),
)


@dataclass(frozen=True)
class MarketConditions:
    """Market state an order executes into.

    Attributes:
        current_volatility: Current implied volatility in percent.
        average_volatility: Longer-run average volatility in percent.
        order_size_percent: Order size as a percentage of daily volume.
        is_high_volatility: News, earnings or similar events in progress.
        is_low_liquidity: Thin market, e.g. weekends.
        is_after_hours: Outside the asset's normal trading hours.
    """

    current_volatility: float = 15.0
    average_volatility: float = 15.0
    order_size_percent: float = 1.0
    is_high_volatility: bool = False
    is_low_liquidity: bool = False
    is_after_hours: bool = False

    def __post_init__(self) -> None:
        require_non_negative("current_volatility", self.current_volatility)
        require_positive("average_volatility", self.average_volatility)
        require_non_negative("order_size_percent", self.order_size_percent)


@dataclass(frozen=True)
class SlippageEstimate:
    """Breakdown of the slippage expected for one order.

    Attributes:
        symbol: Trading symbol.
        base_slippage: Base slippage in price steps.
        volatility_multiplier: Scaling from volatility, at least 1.
        size_multiplier: Scaling from order size and liquidity, at least 1.
        after_hours_multiplier: Penalty outside trading hours, 1 otherwise.
        total_slippage: Capped total in price steps.
        price_offset: total_slippage converted to price.
        slippage_percent: price_offset as a percentage of the market price.
        execution_price: Expected fill price for the order side.
    """

    symbol: str
    base_slippage: float
    volatility_multiplier: float
    size_multiplier: float
    after_hours_multiplier: float
    total_slippage: float
    price_offset: float
    slippage_percent: float
    execution_price: float


def calculate_volatility_multiplier(
    current_volatility: float,
    average_volatility: float,
    asset_multiplier: float,
    is_high_volatility: bool = False,
) -> float:
    """Scale slippage by how far volatility is above its average, never below 1."""
    require_non_negative("current_volatility", current_volatility)
    require_positive("average_volatility", average_volatility)
    multiplier = current_volatility / average_volatility * asset_multiplier
    if is_high_volatility:
        multiplier *= HIGH_VOLATILITY_FACTOR
    return max(1.0, multiplier)


def calculate_size_multiplier(
    order_size_percent: float,
    liquidity: Liquidity,
    is_low_liquidity: bool = False,
) -> float:
    """Non-linear size impact, relative to the liquidity threshold, never below 1.

    Order size is capped at 100% of daily volume.
    """
    require_non_negative("order_size_percent", order_size_percent)
    ratio = max(MIN_SIZE_RATIO, min(order_size_percent, 100.0) / liquidity.size_threshold_percent)
    multiplier = ratio**SIZE_EXPONENT
    if is_low_liquidity:
        multiplier *= LOW_LIQUIDITY_FACTOR
    return max(1.0, multiplier)


class AssetSlippageModel:
    """Estimates slippage per symbol from AssetSlippageProfile entries.

    Unknown symbols raise ConfigurationError; there is no fallback profile.
    """

    def __init__(
        self,
        profiles: Iterable[AssetSlippageProfile] = DEFAULT_SLIPPAGE_PROFILES,
        conditions: MarketConditions | None = None,
    ):
        """Initialize AssetSlippageModel.

        Args:
            profiles: Slippage profiles keyed by their symbol.
            conditions: Conditions used when estimate() is given none.
                Defaults to MarketConditions().
        """
        self._profiles = {profile.symbol.upper(): profile for profile in profiles}
        self.conditions = conditions or MarketConditions()

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and symbol.upper() in self._profiles

    @property
    def symbols(self) -> list[str]:
        return sorted(self._profiles)

    def profile(self, symbol: str) -> AssetSlippageProfile:
        try:
            return self._profiles[symbol.upper()]
        except KeyError:
            raise ConfigurationError(f"No slippage profile configured for {symbol}") from None

    def estimate(
        self,
        symbol: str,
        market_price: float,
        side: Side | str,
        conditions: MarketConditions | None = None,
    ) -> SlippageEstimate:
        """Estimate slippage for an order.

        Args:
            symbol: Trading symbol.
            market_price: Price the order is sent at.
            side: Side of the order itself (a closing sell for a long position).
            conditions: Market state, defaults to the model's conditions.

        Raises:
            ConfigurationError: If no profile exists for symbol.
            InvalidInputError: If market_price is not positive.
        """
        require_positive("market_price", market_price)
        profile = self.profile(symbol)
        conditions = conditions or self.conditions

        volatility = calculate_volatility_multiplier(
            conditions.current_volatility,
            conditions.average_volatility,
            profile.volatility_multiplier,
            conditions.is_high_volatility,
        )
        size = calculate_size_multiplier(
            conditions.order_size_percent, profile.liquidity, conditions.is_low_liquidity
        )
        after_hours = profile.after_hours_penalty if conditions.is_after_hours else 1.0

        base = profile.base_slippage
        total = min(base * volatility * size * after_hours, profile.max_slippage * MAX_SLIPPAGE_FACTOR)
        offset = total * profile.price_step
        if Side.parse(side) is Side.BUY:
            execution_price = market_price + offset
        else:
            execution_price = market_price - offset

        if not math.isfinite(execution_price) or execution_price <= 0:
            raise InvalidInputError(
                f"{profile.symbol} slippage of {offset} would push the fill to {execution_price}"
            )

        logger.debug(
            f"{profile.symbol} slippage: {total:.4f} steps ({offset} in price) "
            f"vol x{volatility:.2f}, size x{size:.2f}, after-hours x{after_hours:.2f}"
        )
        return SlippageEstimate(
            symbol=profile.symbol,
            base_slippage=base,
            volatility_multiplier=volatility,
            size_multiplier=size,
            after_hours_multiplier=after_hours,
            total_slippage=total,
            price_offset=offset,
            slippage_percent=offset / market_price * 100,
            execution_price=execution_price,
        )
