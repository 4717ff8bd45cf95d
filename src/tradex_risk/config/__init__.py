"""Configuration for the risk library."""

from tradex_risk.config.assets import DEFAULT_ASSET_SPECS, AssetRegistry
from tradex_risk.config.settings import (
    AssetSpecConfig,
    ClosureSettings,
    LoggingSettings,
    MarginSettings,
    PortfolioRiskSettings,
    Settings,
)

__all__ = [
    "AssetRegistry",
    "AssetSpecConfig",
    "ClosureSettings",
    "DEFAULT_ASSET_SPECS",
    "LoggingSettings",
    "MarginSettings",
    "PortfolioRiskSettings",
    "Settings",
]
