"""Portfolio risk classifier: concentration, correlation, VaR and stress tests."""

from tradex_risk.portfolio.classifier import (
    PortfolioRiskClassifier,
    calculate_concentration,
    calculate_herfindahl_index,
    classify_concentration_risk,
    classify_drawdown,
    classify_risk_status,
    classify_threshold_violations,
    concentration_by_asset_class,
    effective_number_of_positions,
    estimate_correlation,
    estimate_portfolio_correlation,
    estimate_var,
    find_threshold_violations,
    is_daily_loss_limit_exceeded,
    run_stress_tests,
    simulate_stress_scenario,
    var_percentage,
)
from tradex_risk.portfolio.models import (
    ConcentrationRisk,
    PortfolioRiskAssessment,
    RiskStatus,
    RiskThreshold,
    StressScenarioResult,
    ThresholdViolation,
)

__all__ = [
    "ConcentrationRisk",
    "PortfolioRiskAssessment",
    "PortfolioRiskClassifier",
    "RiskStatus",
    "RiskThreshold",
    "StressScenarioResult",
    "ThresholdViolation",
    "calculate_concentration",
    "calculate_herfindahl_index",
    "classify_concentration_risk",
    "classify_drawdown",
    "classify_risk_status",
    "classify_threshold_violations",
    "concentration_by_asset_class",
    "effective_number_of_positions",
    "estimate_correlation",
    "estimate_portfolio_correlation",
    "estimate_var",
    "find_threshold_violations",
    "is_daily_loss_limit_exceeded",
    "run_stress_tests",
    "simulate_stress_scenario",
    "var_percentage",
]
