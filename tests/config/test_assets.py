# tests/config/test_assets.py
"""Tests for AssetRegistry."""

import pytest

from tradex_risk.config.assets import DEFAULT_ASSET_SPECS, AssetRegistry
from tradex_risk.config.settings import AssetSpecConfig
from tradex_risk.exceptions import ConfigurationError
from tradex_risk.positions.models import AssetClass


class TestAssetRegistry:
    """Tests for symbol lookup."""

    def test_default_table_loaded(self):
        registry = AssetRegistry()

        assert len(registry) == len(DEFAULT_ASSET_SPECS)
        assert "EURUSD" in registry
        assert "BTCUSD" in registry.symbols

    def test_lookup_is_case_insensitive(self):
        spec = AssetRegistry().get("eurusd")

        assert spec.symbol == "EURUSD"
        assert spec.asset_class is AssetClass.FOREX
        assert spec.max_leverage == 500
        assert spec.maintenance_margin_ratio == pytest.approx(0.02)

    def test_stock_commission(self):
        assert AssetRegistry().get("AAPL").commission_rate == 0.1

    def test_unknown_symbol_raises(self):
        with pytest.raises(ConfigurationError):
            AssetRegistry().get("DOGEUSD")

    def test_from_config_overrides_defaults(self):
        configured = {
            "EURUSD": AssetSpecConfig(asset_class=AssetClass.FOREX, max_leverage=30),
            "eurgbp": AssetSpecConfig(asset_class=AssetClass.FOREX, max_leverage=300),
        }

        registry = AssetRegistry.from_config(configured)

        assert registry.get("EURUSD").max_leverage == 30
        assert registry.get("EURGBP").max_leverage == 300
        assert len(registry) == len(DEFAULT_ASSET_SPECS) + 1

    def test_from_config_without_defaults(self):
        configured = {"EURGBP": AssetSpecConfig(asset_class=AssetClass.FOREX, max_leverage=300)}

        registry = AssetRegistry.from_config(configured, include_defaults=False)

        assert registry.symbols == ["EURGBP"]
        assert "EURUSD" not in registry
