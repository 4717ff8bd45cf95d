"""Shared position, asset and portfolio data types."""

from tradex_risk.positions.models import (
    AssetClass,
    AssetSpec,
    PortfolioSnapshot,
    Position,
    PositionStatus,
    Side,
)

__all__ = [
    "AssetClass",
    "AssetSpec",
    "PortfolioSnapshot",
    "Position",
    "PositionStatus",
    "Side",
]
