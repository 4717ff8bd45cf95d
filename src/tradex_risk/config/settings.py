# src/tradex_risk/config/settings.py
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tradex_risk.exceptions import ConfigurationError
from tradex_risk.positions.models import AssetClass, AssetSpec


class MarginSettings(BaseModel):
    """Margin level thresholds, all expressed as percentages."""

    safe_level: float = Field(default=200.0, gt=0)
    call_level: float = Field(default=100.0, gt=0)
    stop_out_level: float = Field(default=50.0, gt=0)
    # When True a level exactly at stop-out classifies as critical
    stop_out_inclusive: bool = False
    margin_call_level: float = Field(default=150.0, gt=0)
    immediate_liquidation_level: float = Field(default=30.0, gt=0)
    escalation_grace_minutes: float = Field(default=30.0, ge=0)

    @model_validator(mode="after")
    def validate_ordering(self) -> "MarginSettings":
        """Require stop_out_level < call_level <= safe_level."""
        if not self.stop_out_level < self.call_level <= self.safe_level:
            raise ValueError(
                "Margin levels must satisfy stop_out_level < call_level <= safe_level "
                f"(got {self.stop_out_level}, {self.call_level}, {self.safe_level})"
            )
        if self.call_level > self.margin_call_level:
            raise ValueError("call_level must not exceed margin_call_level")
        if self.immediate_liquidation_level > self.stop_out_level:
            raise ValueError("immediate_liquidation_level must not exceed stop_out_level")
        return self


class ClosureSettings(BaseModel):
    """Execution modelling for position closures."""

    base_slippage_percent: float = Field(default=0.1, ge=0, le=10)
    size_impact: float = Field(default=0.01, ge=0)
    max_slippage_percent: float = Field(default=1.0, ge=0, le=50)
    stop_loss_slippage_multiplier: float = Field(default=1.2, ge=1.0, le=5.0)
    forced_slippage_multiplier: float = Field(default=1.5, ge=1.0, le=5.0)
    commission_rate_percent: float = Field(default=0.1, ge=0, le=10)
    max_hold_hours: float | None = Field(default=None, gt=0)


class PortfolioRiskSettings(BaseModel):
    """Thresholds used by the portfolio risk classifier."""

    herfindahl_medium: float = Field(default=1500.0, gt=0, le=10000)
    herfindahl_high: float = Field(default=2500.0, gt=0, le=10000)
    drawdown_warning_percent: float = Field(default=5.0, ge=0, le=100)
    drawdown_critical_percent: float = Field(default=10.0, ge=0, le=100)
    var_confidence: Literal[0.90, 0.95, 0.99] = 0.95
    var_volatility: float = Field(default=0.15, gt=0, le=5)
    daily_loss_limit: float = Field(default=1000.0, gt=0)
    asset_class_concentration_limit_percent: float = Field(default=25.0, gt=0, le=100)
    correlation_limit: float = Field(default=0.85, gt=0, le=1)
    var_limit: float = Field(default=0.05, gt=0, le=1)
    stress_scenarios: dict[str, float] = Field(
        default_factory=lambda: {
            "-20% Movement": -20.0,
            "-10% Movement": -10.0,
            "-5% Movement": -5.0,
            "+5% Movement": 5.0,
            "+10% Movement": 10.0,
            "+20% Movement": 20.0,
        }
    )

    @model_validator(mode="after")
    def validate_thresholds(self) -> "PortfolioRiskSettings":
        if self.herfindahl_medium >= self.herfindahl_high:
            raise ValueError("herfindahl_medium must be below herfindahl_high")
        if self.drawdown_warning_percent > self.drawdown_critical_percent:
            raise ValueError("drawdown_warning_percent must not exceed drawdown_critical_percent")
        return self


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TRADEX_LOG_")

    level: str = "INFO"
    format: str = "[%(asctime)s] %(levelname)s: %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"


class AssetSpecConfig(BaseModel):
    """Per-symbol asset configuration as it appears in a settings file."""

    asset_class: AssetClass
    max_leverage: int = Field(ge=1, le=1000)
    pip_size: float = Field(default=0.0001, gt=0)
    min_quantity: float = Field(default=0.01, gt=0)
    max_quantity: float = Field(default=10000.0, gt=0)
    commission_rate: float = Field(default=0.0, ge=0)
    maintenance_margin_ratio: float = Field(default=0.1, ge=0, lt=1)
    contract_size: float = Field(default=1.0, gt=0)

    def to_spec(self, symbol: str) -> AssetSpec:
        return AssetSpec(symbol=symbol.upper(), **self.model_dump())


class Settings(BaseModel):
    margin: MarginSettings = Field(default_factory=MarginSettings)
    closure: ClosureSettings = Field(default_factory=ClosureSettings)
    portfolio: PortfolioRiskSettings = Field(default_factory=PortfolioRiskSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    assets: dict[str, AssetSpecConfig] = Field(default_factory=dict)

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from a YAML file.

        Logging values missing from the file fall back to TRADEX_LOG_* env vars.

        Raises:
            ConfigurationError: If the file is missing, unparsable or invalid.
        """
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigurationError(f"Cannot read settings file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings file {path} must contain a mapping")

        logging_data = data.pop("logging", None) or {}

        try:
            logging_settings = LoggingSettings(**logging_data)
            return cls(**data, logging=logging_settings)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings in {path}: {e}") from e
