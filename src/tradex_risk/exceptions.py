"""Error taxonomy for the risk and position lifecycle library."""


class TradingRiskError(Exception):
    """Base class for every error raised by tradex_risk."""


class InvalidInputError(TradingRiskError, ValueError):
    """A price, quantity, leverage or other numeric input is out of range."""


class AlreadyClosedError(TradingRiskError):
    """A closure was attempted on a position that is closing or closed."""


class InvalidQuantityError(TradingRiskError, ValueError):
    """A close quantity or order quantity falls outside the allowed range."""


class ConfigurationError(TradingRiskError):
    """Required configuration is missing or unreadable (e.g. no AssetSpec)."""
