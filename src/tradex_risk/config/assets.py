"""Per-symbol asset configuration registry."""
import logging
from collections.abc import Iterable, Mapping

from tradex_risk.config.settings import AssetSpecConfig
from tradex_risk.exceptions import ConfigurationError
from tradex_risk.positions.models import AssetClass, AssetSpec

logger = logging.getLogger(__name__)


def _spec(
    symbol: str,
    asset_class: AssetClass,
    max_leverage: int,
    maintenance_percent: float,
    min_quantity: float,
    max_quantity: float,
    pip_size: float,
    commission_rate: float = 0.0,
) -> AssetSpec:
    return AssetSpec(
        symbol=symbol,
        asset_class=asset_class,
        max_leverage=max_leverage,
        pip_size=pip_size,
        min_quantity=min_quantity,
        max_quantity=max_quantity,
        commission_rate=commission_rate,
        maintenance_margin_ratio=maintenance_percent / 100,
    )


DEFAULT_ASSET_SPECS: tuple[AssetSpec, ...] = (
    # Forex majors
    _spec("EURUSD", AssetClass.FOREX, 500, 2, 0.01, 1000, 0.0001),
    _spec("USDJPY", AssetClass.FOREX, 500, 2, 0.01, 1000, 0.01),
    _spec("GBPUSD", AssetClass.FOREX, 500, 2, 0.01, 1000, 0.0001),
    _spec("USDCHF", AssetClass.FOREX, 500, 2, 0.01, 1000, 0.0001),
    # Forex minors
    _spec("NZDCAD", AssetClass.FOREX, 300, 5, 0.01, 500, 0.0001),
    _spec("AUDCAD", AssetClass.FOREX, 300, 5, 0.01, 500, 0.0001),
    # Forex exotics
    _spec("USDTRY", AssetClass.FOREX, 100, 10, 0.01, 100, 0.0001),
    _spec("USDRUB", AssetClass.FOREX, 100, 10, 0.01, 100, 0.0001),
    # Index CFDs
    _spec("US500", AssetClass.INDEX, 200, 5, 0.1, 10000, 0.1),
    _spec("US100", AssetClass.INDEX, 200, 5, 0.1, 10000, 0.1),
    _spec("UK100", AssetClass.INDEX, 200, 5, 0.1, 10000, 0.1),
    _spec("GER40", AssetClass.INDEX, 200, 5, 0.1, 10000, 0.1),
    # Commodities
    _spec("XAUUSD", AssetClass.COMMODITY, 500, 5, 0.01, 1000, 0.01),
    _spec("XAGUSD", AssetClass.COMMODITY, 500, 5, 1, 10000, 0.001),
    _spec("WTIUSD", AssetClass.COMMODITY, 500, 5, 0.01, 1000, 0.01),
    _spec("BRENTUSD", AssetClass.COMMODITY, 500, 5, 0.01, 1000, 0.01),
    # Stocks
    _spec("AAPL", AssetClass.STOCK, 20, 25, 0.1, 100000, 0.01, commission_rate=0.1),
    _spec("TSLA", AssetClass.STOCK, 20, 25, 0.1, 100000, 0.01, commission_rate=0.1),
    _spec("MSFT", AssetClass.STOCK, 20, 25, 0.1, 100000, 0.01, commission_rate=0.1),
    _spec("GOOGL", AssetClass.STOCK, 20, 25, 0.1, 100000, 0.01, commission_rate=0.1),
    # Crypto
    _spec("BTCUSD", AssetClass.CRYPTO, 5, 15, 0.001, 100, 0.01),
    _spec("ETHUSD", AssetClass.CRYPTO, 5, 15, 0.01, 1000, 0.01),
    _spec("XRPUSD", AssetClass.CRYPTO, 5, 15, 1, 1000000, 0.0001),
    # ETFs
    _spec("SPY", AssetClass.ETF, 20, 25, 0.1, 100000, 0.01, commission_rate=0.1),
    _spec("QQQ", AssetClass.ETF, 20, 25, 0.1, 100000, 0.01, commission_rate=0.1),
    # Bonds
    _spec("US10Y", AssetClass.BOND, 50, 3, 0.01, 10000, 0.001),
)


class AssetRegistry:
    """Read-only lookup of AssetSpec by symbol.

    Unknown symbols raise ConfigurationError; there is no default spec.
    """

    def __init__(self, specs: Iterable[AssetSpec] = DEFAULT_ASSET_SPECS):
        self._specs: dict[str, AssetSpec] = {spec.symbol.upper(): spec for spec in specs}

    @classmethod
    def from_config(
        cls,
        configured: Mapping[str, AssetSpecConfig],
        include_defaults: bool = True,
    ) -> "AssetRegistry":
        """Build a registry from settings entries, overriding the defaults.

        Args:
            configured: Mapping of symbol to AssetSpecConfig (Settings.assets).
            include_defaults: Start from DEFAULT_ASSET_SPECS when True.

        Returns:
            AssetRegistry containing the merged specs.
        """
        registry = cls(DEFAULT_ASSET_SPECS if include_defaults else ())
        for symbol, config in configured.items():
            registry._specs[symbol.upper()] = config.to_spec(symbol)
        logger.debug(f"Loaded asset registry with {len(registry)} symbols")
        return registry

    def get(self, symbol: str) -> AssetSpec:
        """Return the AssetSpec for symbol.

        Raises:
            ConfigurationError: If no spec is configured for symbol.
        """
        try:
            return self._specs[symbol.upper()]
        except KeyError:
            raise ConfigurationError(f"No asset specification configured for {symbol}") from None

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and symbol.upper() in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    @property
    def symbols(self) -> list[str]:
        return sorted(self._specs)
