"""
Debt Capacity Calculations

DSCR, borrowing capacity at a target coverage ratio, maximum new loan sizes
and revenue-shock stress tests.

Key formulas:
- DSCR = NOI / annual debt service
- Max annual debt service = NOI / target DSCR
- Available capacity = max annual debt service - current debt service
- Max loan = PV of an annuity paying the available monthly capacity
"""

import logging
from typing import Dict, List, Optional, Sequence

from finengine.calculations.amortization import calculate_present_value

logger = logging.getLogger(__name__)

DEFAULT_TARGET_DSCR = 1.25
DEFAULT_MARKET_RATE = 0.075
UNCONSTRAINED_DSCR = 99.99

LOAN_TERM_OPTIONS = (5, 7, 10, 15, 20, 25, 30)
REVENUE_SHOCKS = (-0.1, -0.2, -0.3, -0.4, -0.5)

DISCLAIMER = (
    "This is not financial advice. Consult your CPA/financial advisor before "
    "making borrowing decisions."
)


def calculate_dscr(noi: float, debt_service: float) -> float:
    """
    Calculate Debt Service Coverage Ratio (DSCR).

    Args:
        noi: Net Operating Income for the period
        debt_service: Debt service for the period

    Returns:
        DSCR rounded to 2 decimals. With no debt service the ratio is
        unbounded; 99.99 is reported when NOI is positive and 0 otherwise.
    """
    if debt_service > 0:
        return round(noi / debt_service, 2)
    return UNCONSTRAINED_DSCR if noi > 0 else 0.0


def calculate_max_debt_service(noi: float, target_dscr: float) -> float:
    """Largest annual debt service the NOI supports at the target DSCR."""
    if target_dscr <= 0:
        return 0.0
    return noi / target_dscr


def size_new_loans(
    available_capacity: float,
    market_rate: float,
    term_options: Sequence[int] = LOAN_TERM_OPTIONS,
) -> List[Dict]:
    """Maximum new loan for each term, given annual debt service capacity."""
    monthly_capacity = available_capacity / 12
    return [
        {
            "term_years": term_years,
            "rate": market_rate,
            "max_loan_amount": (
                round(calculate_present_value(monthly_capacity, market_rate, term_years * 12), 2)
                if monthly_capacity > 0
                else 0.0
            ),
        }
        for term_years in term_options
    ]


def run_stress_tests(
    annual_revenue: float,
    annual_expenses: float,
    annual_debt_service: float,
    target_dscr: float,
    shocks: Sequence[float] = REVENUE_SHOCKS,
) -> List[Dict]:
    """
    Recompute coverage under revenue declines.

    Expenses are treated as fully sticky: revenue falls, expenses do not, so
    NOI drops by the full revenue loss.
    """
    results = []
    for shock in shocks:
        adjusted_noi = annual_revenue * (1 + shock) - annual_expenses
        adjusted_dscr = calculate_dscr(adjusted_noi, annual_debt_service)
        remaining = calculate_max_debt_service(adjusted_noi, target_dscr) - annual_debt_service
        results.append(
            {
                "revenue_change": shock,
                "adjusted_noi": round(adjusted_noi, 2),
                "adjusted_dscr": adjusted_dscr,
                "can_service_existing_debt": adjusted_dscr >= 1.0,
                "remaining_capacity": max(0.0, round(remaining, 2)),
            }
        )
    return results


def calculate_debt_capacity(
    annual_noi: float,
    annual_debt_service: float,
    target_dscr: float = DEFAULT_TARGET_DSCR,
    market_rate: float = DEFAULT_MARKET_RATE,
    annual_revenue: Optional[float] = None,
) -> Dict:
    """
    Build the debt capacity report.

    Args:
        annual_noi: Trailing twelve month NOI
        annual_debt_service: Current annual debt service (P+I)
        target_dscr: Coverage ratio lenders require
        market_rate: Annual rate for sizing new loans
        annual_revenue: Revenue behind the NOI; needed for stress tests

    Returns:
        Debt capacity report
    """
    if annual_debt_service < 0:
        raise ValueError("annual_debt_service must be >= 0")

    max_debt_service = round(calculate_max_debt_service(annual_noi, target_dscr), 2)
    available_capacity = max(0.0, round(max_debt_service - annual_debt_service, 2))

    if annual_revenue is None:
        logger.info("No annual revenue supplied; stress tests need revenue and were skipped")
        stress_tests = []
    else:
        stress_tests = run_stress_tests(
            annual_revenue,
            annual_revenue - annual_noi,
            annual_debt_service,
            target_dscr,
        )

    return {
        "annual_noi": round(annual_noi, 2),
        "annual_debt_service": round(annual_debt_service, 2),
        "current_dscr": calculate_dscr(annual_noi, annual_debt_service),
        "target_dscr": target_dscr,
        "max_annual_debt_service": max_debt_service,
        "available_capacity": available_capacity,
        "max_new_loan": size_new_loans(available_capacity, market_rate),
        "stress_tests": stress_tests,
        "disclaimer": DISCLAIMER,
    }
