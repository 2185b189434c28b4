"""
Cash Flow Forecasting

Holt-Winters triple exponential smoothing (multiplicative seasonality) for
monthly net cash flow, with a linear-trend fallback for short histories,
confidence bands and cash health metrics.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence

import numpy as np
from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

SEASON_LENGTH = 12
DEFAULT_ALPHA = 0.3
DEFAULT_BETA = 0.1
DEFAULT_GAMMA = 0.3
DEFAULT_HORIZON_MONTHS = 6

Z_80 = 1.28
Z_95 = 1.96

# Sigma fallback when there are too few residuals to estimate a variance
SIGMA_LEVEL_FRACTION = 0.1

METRIC_WINDOW_MONTHS = 3

# Monthly multipliers used when the caller supplies no seasonality
DEFAULT_SEASONALITY = [
    1.05,  # Jan - benefit reset
    1.0,  # Feb
    1.02,  # Mar
    1.0,  # Apr
    0.98,  # May
    0.9,  # Jun - summer dip
    0.85,  # Jul - summer low
    0.88,  # Aug
    0.95,  # Sep
    0.98,  # Oct
    1.08,  # Nov - year-end rush
    1.12,  # Dec - insurance rush
]


@dataclass
class MonthlyCashFlow:
    """One month of aggregated business cash flow."""

    month: Optional[str]  # "YYYY-MM"
    revenue: float
    expenses: float

    @property
    def net(self) -> float:
        return self.revenue - self.expenses


@dataclass
class SeasonalModel:
    """Fitted forecast model and its point forecasts."""

    level: float
    trend: float
    seasonal: List[float]
    sigma: float
    method: str
    forecast: List[float] = field(default_factory=list)


def resolve_seasonality(
    seasonality: Optional[Sequence[float]], season_length: int = SEASON_LENGTH
) -> List[float]:
    """
    Seasonal multipliers to use for a fit.

    No seasonality means the built-in default; a malformed array (wrong
    length) is replaced by a flat, non-seasonal one.
    """
    if seasonality is None:
        if len(DEFAULT_SEASONALITY) == season_length:
            return list(DEFAULT_SEASONALITY)
        return [1.0] * season_length
    if len(seasonality) != season_length:
        logger.warning(
            f"Seasonality has {len(seasonality)} entries, expected {season_length}; "
            "using a flat profile"
        )
        return [1.0] * season_length
    return [float(v) for v in seasonality]


def _estimate_sigma(residuals: Sequence[float], level: float) -> float:
    if len(residuals) < 2:
        return abs(level) * SIGMA_LEVEL_FRACTION
    return float(np.std(residuals, ddof=1))


def _project(level: float, trend: float, seasonal: List[float], n: int, periods: int) -> List[float]:
    season_length = len(seasonal)
    return [
        (level + h * trend) * seasonal[(n + h - 1) % season_length]
        for h in range(1, periods + 1)
    ]


def linear_projection(
    data: Sequence[float],
    periods: int,
    season_length: int = SEASON_LENGTH,
    seasonality: Optional[Sequence[float]] = None,
) -> SeasonalModel:
    """
    Fallback model for histories shorter than two seasons.

    Level is the series mean and trend the OLS slope; the seasonal profile is
    taken as given and not adapted to the data.
    """
    seasonal = resolve_seasonality(seasonality, season_length)
    n = len(data)

    if n == 0:
        return SeasonalModel(0.0, 0.0, seasonal, 0.0, "linear", [0.0] * periods)

    y = np.asarray(data, dtype=float)
    x = np.arange(n, dtype=float)
    level = float(y.mean())

    x_centered = x - x.mean()
    denominator = float((x_centered ** 2).sum())
    trend = float((x_centered * (y - level)).sum()) / denominator if denominator else 0.0

    residuals = y - (level + x_centered * trend)
    sigma = _estimate_sigma(residuals, level)

    return SeasonalModel(
        level, trend, seasonal, sigma, "linear", _project(level, trend, seasonal, n, periods)
    )


def holt_winters(
    data: Sequence[float],
    alpha: float = DEFAULT_ALPHA,
    beta: float = DEFAULT_BETA,
    gamma: float = DEFAULT_GAMMA,
    season_length: int = SEASON_LENGTH,
    periods: int = DEFAULT_HORIZON_MONTHS,
    seasonality: Optional[Sequence[float]] = None,
) -> SeasonalModel:
    """
    Fit Holt-Winters triple exponential smoothing and forecast.

    Needs at least two full seasons of history; shorter series fall back to
    ``linear_projection`` with the supplied seasonality.

    Args:
        data: Monthly values in calendar order
        alpha: Level smoothing factor
        beta: Trend smoothing factor
        gamma: Seasonal smoothing factor
        season_length: Periods per season
        periods: Forecast horizon
        seasonality: Seasonal profile for the fallback model

    Returns:
        Fitted model with point forecasts and residual sigma
    """
    n = len(data)
    if n < season_length * 2:
        return linear_projection(data, periods, season_length, seasonality)

    level = float(np.mean(data[:season_length]))

    trend = 0.0
    for i in range(season_length):
        trend += (data[season_length + i] - data[i]) / season_length
    trend /= season_length

    seasonal = [data[i] / (level or 1) for i in range(season_length)]

    residuals = []
    for t in range(season_length, n):
        idx = t % season_length
        prev_level = level

        residuals.append(data[t] - (prev_level + trend) * seasonal[idx])

        level = alpha * (data[t] / (seasonal[idx] or 1)) + (1 - alpha) * (prev_level + trend)
        trend = beta * (level - prev_level) + (1 - beta) * trend
        seasonal[idx] = gamma * (data[t] / (level or 1)) + (1 - gamma) * seasonal[idx]

    return SeasonalModel(
        level,
        trend,
        seasonal,
        _estimate_sigma(residuals, level),
        "holt-winters",
        _project(level, trend, seasonal, n, periods),
    )


def confidence_bands(
    forecast: Sequence[float],
    sigma: float,
    months: Optional[Sequence[Optional[str]]] = None,
) -> List[Dict]:
    """Forecast points with 80% and 95% bands that widen with sqrt(h)."""
    points = []
    for i, predicted in enumerate(forecast):
        h = i + 1
        sigma_h = sigma * math.sqrt(h)
        points.append(
            {
                "period": h,
                "month": months[i] if months else None,
                "predicted": round(predicted, 2),
                "lower_80": round(predicted - Z_80 * sigma_h, 2),
                "upper_80": round(predicted + Z_80 * sigma_h, 2),
                "lower_95": round(predicted - Z_95 * sigma_h, 2),
                "upper_95": round(predicted + Z_95 * sigma_h, 2),
            }
        )
    return points


def classify_trend(values: Sequence[float]) -> str:
    """Compare the last 3 months against the last 6."""
    if not values:
        return "stable"
    avg_3 = float(np.mean(values[-3:]))
    avg_6 = float(np.mean(values[-6:]))
    if avg_3 > avg_6 * 1.05:
        return "improving"
    if avg_3 < avg_6 * 0.95:
        return "declining"
    return "stable"


def calculate_cash_runway(
    history: Sequence[MonthlyCashFlow], cash_balance: Optional[float] = None
) -> float:
    """
    Months of expenses the current cash balance covers.

    Without an explicit balance the latest month's net cash flow is used.
    """
    if not history:
        return 0.0
    recent = history[-METRIC_WINDOW_MONTHS:]
    avg_expenses = sum(m.expenses for m in recent) / len(recent)
    if avg_expenses <= 0:
        return 0.0
    balance = history[-1].net if cash_balance is None else cash_balance
    return max(0.0, round(balance / avg_expenses, 1))


def calculate_projected_overhead_ratio(
    revenue_forecast: Sequence[float], expense_forecast: Sequence[float]
) -> float:
    """Projected expenses over projected revenue for the next 3 months."""
    revenue = sum(revenue_forecast[:METRIC_WINDOW_MONTHS])
    expenses = sum(expense_forecast[:METRIC_WINDOW_MONTHS])
    if revenue <= 0:
        return 0.0
    return round(expenses / revenue, 4)


def _projected_month_labels(last_month: Optional[str], periods: int) -> List[Optional[str]]:
    if not last_month:
        return [None] * periods
    year, month = (int(part) for part in last_month.split("-")[:2])
    start = date(year, month, 1)
    return [
        (start + relativedelta(months=h)).strftime("%Y-%m") for h in range(1, periods + 1)
    ]


def calculate_forecast(
    history: Sequence[MonthlyCashFlow],
    horizon_months: int = DEFAULT_HORIZON_MONTHS,
    seasonality: Optional[Sequence[float]] = None,
    cash_balance: Optional[float] = None,
    alpha: float = DEFAULT_ALPHA,
    beta: float = DEFAULT_BETA,
    gamma: float = DEFAULT_GAMMA,
) -> Dict:
    """
    Forecast monthly net cash flow.

    Pure function: callers that want to keep the result pass it to
    ``finengine.services.forecast_store.persist_forecast``.

    Args:
        history: Monthly revenue/expense totals in calendar order
        horizon_months: Number of months to forecast
        seasonality: 12 monthly multipliers (industry profile)
        cash_balance: Current cash on hand for the runway metric
        alpha: Level smoothing factor
        beta: Trend smoothing factor
        gamma: Seasonal smoothing factor

    Returns:
        Historical series, projected points with bands, metrics and the
        seasonal indices used
    """
    if horizon_months < 0:
        raise ValueError("horizon_months must be >= 0")
    for name, value in (("alpha", alpha), ("beta", beta), ("gamma", gamma)):
        if not 0 <= value <= 1:
            raise ValueError(f"{name} must be between 0 and 1")

    net = [m.net for m in history]
    model = holt_winters(net, alpha, beta, gamma, SEASON_LENGTH, horizon_months, seasonality)
    logger.debug(
        f"Forecast fitted with {model.method} on {len(net)} months (sigma={model.sigma:.2f})"
    )

    revenue_model = holt_winters(
        [m.revenue for m in history], alpha, beta, gamma, SEASON_LENGTH,
        METRIC_WINDOW_MONTHS, seasonality,
    )
    expense_model = holt_winters(
        [m.expenses for m in history], alpha, beta, gamma, SEASON_LENGTH,
        METRIC_WINDOW_MONTHS, seasonality,
    )

    last_month = history[-1].month if history else None

    return {
        "historical": [{"month": m.month, "actual": round(m.net, 2)} for m in history],
        "projected": confidence_bands(
            model.forecast, model.sigma, _projected_month_labels(last_month, horizon_months)
        ),
        "metrics": {
            "cash_runway_months": calculate_cash_runway(history, cash_balance),
            "projected_overhead_ratio": calculate_projected_overhead_ratio(
                revenue_model.forecast, expense_model.forecast
            ),
            "trend": classify_trend(net),
        },
        "seasonality_indices": [round(s, 4) for s in model.seasonal],
        "method": model.method,
        "sigma": round(model.sigma, 2),
        "parameters": {
            "alpha": alpha,
            "beta": beta,
            "gamma": gamma,
            "season_length": SEASON_LENGTH,
        },
    }
