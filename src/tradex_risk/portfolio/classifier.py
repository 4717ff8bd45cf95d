# src/tradex_risk/portfolio/classifier.py
"""Portfolio risk classifier.

Concentration, correlation and Value-at-Risk here are simple
heuristics: correlation is inferred from symbol, asset class and side rather
than price history, and VaR is parametric over an assumed volatility.
"""
import logging
import math
from collections.abc import Iterable, Mapping, Sequence

from tradex_risk.config.assets import AssetRegistry
from tradex_risk.config.settings import MarginSettings, PortfolioRiskSettings
from tradex_risk.exceptions import InvalidInputError
from tradex_risk.margin.engine import (
    classify_with_settings,
    is_liquidation_adverse,
    liquidation_price,
    margin_level,
    margin_status,
)
from tradex_risk.margin.models import MarginHealth
from tradex_risk.pnl.engine import drawdown_percentage
from tradex_risk.portfolio.models import (
    ConcentrationRisk,
    PortfolioRiskAssessment,
    RiskStatus,
    RiskThreshold,
    StressScenarioResult,
    ThresholdViolation,
)
from tradex_risk.positions.models import Position, PortfolioSnapshot, PositionStatus
from tradex_risk.validation import require_finite, require_non_negative, require_positive

logger = logging.getLogger(__name__)

# One-tailed z-scores of the standard normal distribution
Z_SCORES = {
    0.90: 1.282,
    0.95: 1.645,
    0.99: 2.326,
}

SAME_SYMBOL_CORRELATION = 1.0
SAME_ASSET_CLASS_CORRELATION = 0.6
CROSS_ASSET_CORRELATION = 0.2


def _active(positions: Iterable[Position]) -> list[Position]:
    return [p for p in positions if p.status is not PositionStatus.CLOSED]


def calculate_concentration(positions: Iterable[Position]) -> dict[str, float]:
    """Share of total margin used held in each symbol, in percent.

    Positions in the same symbol are combined. Closed positions are ignored.
    When no margin is in use every symbol maps to 0.0.
    """
    margin_by_symbol: dict[str, float] = {}
    for position in _active(positions):
        margin_by_symbol[position.symbol] = margin_by_symbol.get(position.symbol, 0.0) + position.margin_used

    total = math.fsum(margin_by_symbol.values())
    if total == 0:
        return {symbol: 0.0 for symbol in margin_by_symbol}
    return {symbol: margin / total * 100 for symbol, margin in margin_by_symbol.items()}


def concentration_by_asset_class(positions: Iterable[Position]) -> dict[str, float]:
    """Share of total notional held in each asset class, in percent."""
    value_by_class: dict[str, float] = {}
    for position in _active(positions):
        key = position.asset_class.value if position.asset_class else "other"
        value_by_class[key] = value_by_class.get(key, 0.0) + position.notional_value

    total = math.fsum(value_by_class.values())
    if total == 0:
        return {key: 0.0 for key in value_by_class}
    return {key: value / total * 100 for key, value in value_by_class.items()}


def calculate_herfindahl_index(concentration: Mapping[str, float]) -> float:
    """Sum of squared percentage shares: 10000 for one holding, lower when spread."""
    return math.fsum(pct**2 for pct in concentration.values())


def classify_concentration_risk(
    herfindahl_index: float,
    settings: PortfolioRiskSettings | None = None,
) -> ConcentrationRisk:
    settings = settings or PortfolioRiskSettings()
    require_non_negative("herfindahl_index", herfindahl_index)
    if herfindahl_index < settings.herfindahl_medium:
        return ConcentrationRisk.LOW
    if herfindahl_index < settings.herfindahl_high:
        return ConcentrationRisk.MEDIUM
    return ConcentrationRisk.HIGH


def effective_number_of_positions(concentration: Mapping[str, float]) -> float:
    """1 / sum of squared weights; equals n for n equal holdings."""
    weight_squares = math.fsum((pct / 100) ** 2 for pct in concentration.values())
    if weight_squares == 0:
        return 0.0
    return 1 / weight_squares


def estimate_correlation(a: Position, b: Position) -> float:
    """Heuristic correlation between two positions.

    Same symbol is fully correlated, same asset class moderately, anything
    else weakly. Opposite sides flip the sign. This is an approximation, not
    a statistical estimate.
    """
    if a.symbol == b.symbol:
        magnitude = SAME_SYMBOL_CORRELATION
    elif a.asset_class is not None and a.asset_class is b.asset_class:
        magnitude = SAME_ASSET_CLASS_CORRELATION
    else:
        magnitude = CROSS_ASSET_CORRELATION
    return magnitude if a.side is b.side else -magnitude


def estimate_portfolio_correlation(positions: Sequence[Position]) -> float:
    """Fraction of position pairs on the same side, 0.0 with fewer than two positions."""
    active = _active(positions)
    if len(active) < 2:
        return 0.0

    pairs = 0
    aligned = 0
    for i, first in enumerate(active):
        for second in active[i + 1:]:
            pairs += 1
            if first.side is second.side:
                aligned += 1
    return aligned / pairs


def estimate_var(
    positions: Iterable[Position],
    confidence_level: float = 0.95,
    volatility: float = 0.15,
) -> float:
    """Parametric VaR: total notional exposure * volatility * z-score.

    Raises:
        InvalidInputError: If confidence_level has no tabulated z-score.
    """
    require_positive("volatility", volatility)
    z_score = Z_SCORES.get(confidence_level)
    if z_score is None:
        raise InvalidInputError(
            f"Unsupported confidence level {confidence_level!r}, expected one of {sorted(Z_SCORES)}"
        )
    exposure = math.fsum(p.notional_value for p in _active(positions))
    return exposure * volatility * z_score


def var_percentage(value_at_risk: float, equity: float) -> float:
    """VaR as a fraction of equity, capped at 1.0."""
    require_non_negative("value_at_risk", value_at_risk)
    require_finite("equity", equity)
    if equity <= 0:
        return 1.0 if value_at_risk > 0 else 0.0
    return min(value_at_risk / equity, 1.0)


def classify_drawdown(
    drawdown_percent: float,
    settings: PortfolioRiskSettings | None = None,
) -> RiskStatus:
    settings = settings or PortfolioRiskSettings()
    require_non_negative("drawdown_percent", drawdown_percent)
    if drawdown_percent >= settings.drawdown_critical_percent:
        return RiskStatus.CRITICAL
    if drawdown_percent >= settings.drawdown_warning_percent:
        return RiskStatus.WARNING
    return RiskStatus.SAFE


def classify_risk_status(
    margin_level_percent: float,
    drawdown_percent: float,
    concentration_risk: ConcentrationRisk,
    *,
    margin_settings: MarginSettings | None = None,
    settings: PortfolioRiskSettings | None = None,
) -> RiskStatus:
    """Worst of the margin, drawdown and concentration signals.

    A critical margin level or critical drawdown makes the account critical;
    a margin warning, drawdown warning or high concentration makes it a
    warning. Signals are never averaged.
    """
    margin_settings = margin_settings or MarginSettings()
    health = classify_with_settings(margin_level_percent, margin_settings)

    signals = [classify_drawdown(drawdown_percent, settings)]
    if health is MarginHealth.CRITICAL:
        signals.append(RiskStatus.CRITICAL)
    elif health is MarginHealth.WARNING:
        signals.append(RiskStatus.WARNING)
    if concentration_risk is ConcentrationRisk.HIGH:
        signals.append(RiskStatus.WARNING)

    return max(signals, key=lambda status: status.severity)


def _maintenance_ratio(
    position: Position,
    registry: AssetRegistry | None,
    default: float,
) -> float:
    if registry is None:
        return default
    return registry.get(position.symbol).maintenance_margin_ratio


def simulate_stress_scenario(
    positions: Iterable[Position],
    price_movement_percent: float,
    equity: float,
    *,
    name: str | None = None,
    margin_used: float | None = None,
    maintenance_margin_ratio: float = 0.0,
    registry: AssetRegistry | None = None,
    margin_settings: MarginSettings | None = None,
) -> StressScenarioResult:
    """Shock every position's price by the same percentage.

    A position whose shocked price moves through a liquidation price lying on
    the adverse side of the current price is counted as liquidated; its loss
    stops at the liquidation price. When the liquidation price is not adverse
    (maintenance at or above initial margin, or the market already past it)
    the full shock applies and the position is not listed.

    Args:
        positions: Positions to shock. Closed positions are ignored.
        price_movement_percent: Shock in percent, e.g. -10 for a 10% fall.
        equity: Equity before the shock.
        name: Scenario label, defaults to "<+/-N>% Movement".
        margin_used: Margin used, defaults to the sum over the positions.
        maintenance_margin_ratio: Fraction used for liquidation prices when
            no registry is given.
        registry: Per-symbol asset specs; their maintenance ratios take
            precedence over maintenance_margin_ratio.
        margin_settings: Thresholds for the post-shock margin status.

    Raises:
        InvalidInputError: If the shock would take prices to zero or below.
        ConfigurationError: If a registry is given and lacks a position's symbol.
    """
    require_finite("price_movement_percent", price_movement_percent)
    require_finite("equity", equity)
    if price_movement_percent <= -100:
        raise InvalidInputError(
            f"price_movement_percent must be above -100, got {price_movement_percent!r}"
        )

    active = _active(positions)
    if margin_used is None:
        margin_used = math.fsum(p.margin_used for p in active)

    pnl_change = 0.0
    liquidated: list[str] = []
    for position in active:
        shocked = position.current_price * (1 + price_movement_percent / 100)
        liq_price = liquidation_price(
            position.entry_price,
            position.side,
            position.leverage,
            _maintenance_ratio(position, registry, maintenance_margin_ratio),
        )
        adverse = is_liquidation_adverse(position.side, position.current_price, liq_price)
        # shocked strictly beyond liquidation
        if adverse and is_liquidation_adverse(position.side, liq_price, shocked):
            liquidated.append(position.symbol)
            shocked = liq_price
        pnl_change += (
            (shocked - position.current_price)
            * position.quantity
            * position.contract_size
            * position.side.direction
        )

    projected_equity = equity + pnl_change
    level = margin_level(projected_equity, margin_used) if margin_used > 0 else math.inf

    if name is None:
        sign = "+" if price_movement_percent > 0 else ""
        name = f"{sign}{price_movement_percent:g}% Movement"

    return StressScenarioResult(
        name=name,
        price_movement_percent=price_movement_percent,
        projected_equity=projected_equity,
        estimated_loss=max(0.0, -pnl_change),
        margin_level=level,
        margin_status=margin_status(level, margin_settings),
        liquidated_symbols=tuple(liquidated),
    )


def run_stress_tests(
    positions: Sequence[Position],
    scenarios: Mapping[str, float],
    equity: float,
    *,
    maintenance_margin_ratio: float = 0.0,
    registry: AssetRegistry | None = None,
) -> dict[str, float]:
    """Projected equity under each named price-shock scenario.

    Args:
        positions: Positions to shock.
        scenarios: Mapping of scenario name to price shock in percent.
        equity: Equity before any shock.
        maintenance_margin_ratio: Fallback ratio for liquidation prices.
        registry: Per-symbol asset specs for maintenance ratios.

    Returns:
        Mapping of scenario name to projected equity, in scenario order.
    """
    return {
        name: simulate_stress_scenario(
            positions,
            movement,
            equity,
            name=name,
            maintenance_margin_ratio=maintenance_margin_ratio,
            registry=registry,
        ).projected_equity
        for name, movement in scenarios.items()
    }


def is_daily_loss_limit_exceeded(daily_pnl: float, limit: float) -> bool:
    """True once the day's P&L reaches the loss limit (a loss of exactly limit counts)."""
    require_finite("daily_pnl", daily_pnl)
    require_positive("limit", limit)
    return daily_pnl <= -limit


def find_threshold_violations(
    *,
    drawdown_percent: float,
    asset_class_concentration: Mapping[str, float],
    correlation: float,
    var_fraction: float,
    daily_pnl: float | None = None,
    settings: PortfolioRiskSettings | None = None,
) -> list[ThresholdViolation]:
    """Check account figures against the configured limits.

    Daily loss and drawdown breaches are critical, an asset class above its
    concentration limit is a warning, high correlation or VaR only needs
    monitoring.

    Args:
        drawdown_percent: Current drawdown from peak equity, in percent.
        asset_class_concentration: Percent of notional per asset class.
        correlation: Portfolio correlation estimate in [0, 1].
        var_fraction: VaR as a fraction of equity.
        daily_pnl: Realized plus unrealized P&L for the day; skipped when None.
        settings: Limits. Defaults to PortfolioRiskSettings().
    """
    settings = settings or PortfolioRiskSettings()
    violations = []

    if daily_pnl is not None and is_daily_loss_limit_exceeded(daily_pnl, settings.daily_loss_limit):
        violations.append(
            ThresholdViolation(
                threshold=RiskThreshold.DAILY_LOSS,
                value=daily_pnl,
                limit=-settings.daily_loss_limit,
                severity=RiskStatus.CRITICAL,
                message=f"Daily loss {-daily_pnl:.2f} reached limit {settings.daily_loss_limit:.2f}",
            )
        )

    if drawdown_percent >= settings.drawdown_critical_percent:
        violations.append(
            ThresholdViolation(
                threshold=RiskThreshold.DRAWDOWN,
                value=drawdown_percent,
                limit=settings.drawdown_critical_percent,
                severity=RiskStatus.CRITICAL,
                message=f"Drawdown {drawdown_percent:.1f}% exceeds {settings.drawdown_critical_percent:.1f}%",
            )
        )

    for asset_class, pct in asset_class_concentration.items():
        if pct > settings.asset_class_concentration_limit_percent:
            violations.append(
                ThresholdViolation(
                    threshold=RiskThreshold.CONCENTRATION,
                    value=pct,
                    limit=settings.asset_class_concentration_limit_percent,
                    severity=RiskStatus.WARNING,
                    message=f"{asset_class} holds {pct:.1f}% of exposure",
                )
            )

    if correlation > settings.correlation_limit:
        violations.append(
            ThresholdViolation(
                threshold=RiskThreshold.CORRELATION,
                value=correlation,
                limit=settings.correlation_limit,
                severity=RiskStatus.MONITOR,
                message=f"Portfolio correlation {correlation:.2f} is above {settings.correlation_limit:.2f}",
            )
        )

    if var_fraction > settings.var_limit:
        violations.append(
            ThresholdViolation(
                threshold=RiskThreshold.VAR,
                value=var_fraction,
                limit=settings.var_limit,
                severity=RiskStatus.MONITOR,
                message=f"VaR is {var_fraction:.1%} of equity",
            )
        )

    return violations


def classify_threshold_violations(violations: Iterable[ThresholdViolation]) -> RiskStatus:
    """Worst severity among the violations, SAFE when there are none."""
    return max(
        (violation.severity for violation in violations),
        key=lambda status: status.severity,
        default=RiskStatus.SAFE,
    )


class PortfolioRiskClassifier:
    """Builds a PortfolioRiskAssessment from a PortfolioSnapshot.

    Attributes:
        settings: Concentration, drawdown, VaR and stress thresholds.
        margin_settings: Margin call and stop-out levels.
        registry: Asset specs supplying per-symbol maintenance ratios for
            stress tests. Without one, liquidation prices use a ratio of 0.
    """

    def __init__(
        self,
        settings: PortfolioRiskSettings | None = None,
        margin_settings: MarginSettings | None = None,
        registry: AssetRegistry | None = None,
    ):
        self.settings = settings or PortfolioRiskSettings()
        self.margin_settings = margin_settings or MarginSettings()
        self.registry = registry

    def assess(
        self,
        snapshot: PortfolioSnapshot,
        peak_equity: float | None = None,
        daily_pnl: float | None = None,
    ) -> PortfolioRiskAssessment:
        """Assess account-wide risk.

        Args:
            snapshot: Positions and account totals at one instant.
            peak_equity: Highest equity seen so far; drawdown is 0 when None.
            daily_pnl: P&L for the trading day; the daily loss limit is
                skipped when None.

        Returns:
            PortfolioRiskAssessment with status, violations and recommendations.

        Raises:
            ConfigurationError: If a registry is set and lacks a position's symbol.
        """
        positions = snapshot.positions
        level = margin_level(snapshot.equity, snapshot.margin_used)
        health = classify_with_settings(level, self.margin_settings)

        concentration = calculate_concentration(positions)
        herfindahl = calculate_herfindahl_index(concentration)
        concentration_risk = classify_concentration_risk(herfindahl, self.settings)

        drawdown = 0.0 if peak_equity is None else drawdown_percentage(snapshot.equity, peak_equity)

        value_at_risk = estimate_var(
            positions, self.settings.var_confidence, self.settings.var_volatility
        )
        var_fraction = var_percentage(value_at_risk, snapshot.equity)
        correlation = estimate_portfolio_correlation(positions)
        violations = find_threshold_violations(
            drawdown_percent=drawdown,
            asset_class_concentration=concentration_by_asset_class(positions),
            correlation=correlation,
            var_fraction=var_fraction,
            daily_pnl=daily_pnl,
            settings=self.settings,
        )
        status = max(
            classify_risk_status(
                level,
                drawdown,
                concentration_risk,
                margin_settings=self.margin_settings,
                settings=self.settings,
            ),
            classify_threshold_violations(violations),
            key=lambda s: s.severity,
        )

        assessment = PortfolioRiskAssessment(
            equity=snapshot.equity,
            margin_used=snapshot.margin_used,
            margin_level=level,
            margin_health=health,
            concentration=concentration,
            herfindahl_index=herfindahl,
            concentration_risk=concentration_risk,
            effective_positions=effective_number_of_positions(concentration),
            correlation=correlation,
            value_at_risk=value_at_risk,
            var_percentage=var_fraction,
            drawdown_percent=drawdown,
            status=status,
            assessed_at=snapshot.taken_at,
            daily_pnl=daily_pnl,
            violations=violations,
            stress_results=run_stress_tests(
                positions,
                self.settings.stress_scenarios,
                snapshot.equity,
                registry=self.registry,
            ),
        )
        assessment.recommendations = self._recommendations(assessment)

        if status is RiskStatus.CRITICAL:
            logger.warning(
                f"Portfolio risk CRITICAL: margin level {level:.1f}%, drawdown {drawdown:.1f}%"
            )
        else:
            logger.debug(f"Portfolio risk {status.value}: margin level {level:.1f}%")
        return assessment

    def _recommendations(self, assessment: PortfolioRiskAssessment) -> list[str]:
        recommendations = []
        breached = {violation.threshold for violation in assessment.violations}

        if RiskThreshold.DAILY_LOSS in breached:
            recommendations.append("Stop opening positions until the next trading day")

        if assessment.margin_health is MarginHealth.CRITICAL:
            recommendations.append("Close positions immediately to avoid liquidation")
            recommendations.append("Deposit additional funds to increase margin level")
        elif assessment.margin_health is MarginHealth.WARNING:
            recommendations.append("Monitor margin level closely")
            recommendations.append("Consider closing smaller positions")

        if assessment.drawdown_percent >= self.settings.drawdown_warning_percent:
            recommendations.append("Reduce position sizes until drawdown recovers")

        if assessment.concentration_risk is ConcentrationRisk.HIGH:
            recommendations.append("Reduce position concentration for diversification")

        if assessment.var_percentage > 0.8:
            recommendations.append("Reduce overall capital at risk")

        return recommendations
