"""
Financial Calculation Engine

Pure, stateless calculation modules for practice financial analysis:
forecasting, loan amortization and payoff planning, investment returns and
debt capacity. No module performs I/O.
"""

from finengine.calculations import (
    amortization,
    cost_of_capital,
    debt_capacity,
    forecast,
    irr,
    results,
    roi,
)

__all__ = [
    "amortization",
    "cost_of_capital",
    "debt_capacity",
    "forecast",
    "irr",
    "results",
    "roi",
]
