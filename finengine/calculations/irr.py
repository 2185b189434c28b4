"""
IRR and NPV Calculations

Implements IRR using a damped Newton-Raphson method for periodic cash flows.
"""

import logging
import math
from typing import List

from finengine.calculations.results import Degenerate, Ok, Result

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 100
TOLERANCE = 1e-4
DERIVATIVE_EPSILON = 1e-10
DEFAULT_GUESS = 0.1

# Newton steps that leave this window are pulled back to a safe restart point
RATE_FLOOR = -0.99
RATE_CEILING = 10.0
RESTART_LOW = -0.5
RESTART_HIGH = 5.0

# Plausible IRR range; anything outside is reported as 0
MIN_IRR = -1.0
MAX_IRR = 10.0


def calculate_npv(cash_flows: List[float], discount_rate: float) -> float:
    """
    Calculate NPV (Net Present Value) of cash flows.

    Args:
        cash_flows: Array of cash flows (negative = outflow, positive = inflow)
        discount_rate: Periodic discount rate (e.g., 0.10 for 10%)

    Returns:
        NPV value
    """
    npv = 0.0
    for period, cf in enumerate(cash_flows):
        npv += cf / ((1 + discount_rate) ** period)
    return npv


def _npv_derivative(cash_flows: List[float], rate: float) -> float:
    """Calculate derivative of NPV with respect to rate (for Newton-Raphson)."""
    dnpv = 0.0
    for period, cf in enumerate(cash_flows):
        if period > 0:
            dnpv -= (period * cf) / ((1 + rate) ** (period + 1))
    return dnpv


def solve_irr(
    cash_flows: List[float],
    guess: float = DEFAULT_GUESS,
    max_iterations: int = MAX_ITERATIONS,
    tolerance: float = TOLERANCE,
) -> Result:
    """
    Solve for IRR (Internal Rate of Return).

    Newton-Raphson on NPV(r) starting at ``guess``. Steps below -99% restart
    at -50% and steps above 1000% restart at 500%. Iteration stops once
    |NPV| < ``tolerance`` or the derivative vanishes.

    Args:
        cash_flows: Array of periodic cash flows, period 0 first
        guess: Initial guess for rate (default 0.1 = 10%)
        max_iterations: Newton iteration cap
        tolerance: NPV tolerance for convergence

    Returns:
        ``Ok(rate)`` when NPV reached the tolerance, otherwise
        ``Degenerate(reason, rate)`` where rate is the last iterate, or 0 if
        that iterate is not finite or falls outside [-100%, 1000%]
    """
    if not cash_flows:
        return Degenerate("no_cash_flows", 0.0)

    rate = guess
    reason = "max_iterations_reached"

    try:
        for _ in range(max_iterations):
            npv = calculate_npv(cash_flows, rate)
            if abs(npv) < tolerance:
                reason = None
                break

            dnpv = _npv_derivative(cash_flows, rate)
            if abs(dnpv) < DERIVATIVE_EPSILON:
                reason = "derivative_too_small"
                break

            new_rate = rate - npv / dnpv

            if new_rate < RATE_FLOOR:
                rate = RESTART_LOW
            elif new_rate > RATE_CEILING:
                rate = RESTART_HIGH
            else:
                rate = new_rate
    except (OverflowError, ZeroDivisionError):
        reason = "overflow"
        rate = math.nan

    if not math.isfinite(rate) or rate < MIN_IRR or rate > MAX_IRR:
        logger.debug(f"IRR out of range ({rate}); reporting 0")
        return Degenerate(reason or "out_of_range", 0.0)

    if reason is not None:
        logger.debug(f"IRR did not converge: {reason}")
        return Degenerate(reason, rate)

    return Ok(rate)


def calculate_irr(cash_flows: List[float], guess: float = DEFAULT_GUESS) -> float:
    """
    IRR as a plain number.

    Returns 0 when the solver could not produce a usable rate; use
    ``solve_irr`` to tell a real 0% apart from a failed solve.
    """
    return solve_irr(cash_flows, guess).value


def calculate_payback_months(
    total_invested: float, monthly_cash_flow: float, horizon_months: int
) -> int:
    """
    Months of positive cash flow needed to recover the investment.

    A non-positive monthly cash flow never pays back; the full horizon is
    reported instead.
    """
    if monthly_cash_flow <= 0:
        return horizon_months
    return math.ceil(total_invested / monthly_cash_flow)
