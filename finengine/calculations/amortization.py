"""
Loan Amortization Calculations

Annuity math shared by every component (payment, remaining balance, present
value) plus the month-by-month loan simulators used for payoff planning.
"""

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterator, List, Optional

from dateutil.relativedelta import relativedelta

from finengine.calculations.results import Degenerate, Ok, Result

MAX_SIMULATION_MONTHS = 600  # 50 years
PAID_OFF_THRESHOLD = 0.01


@dataclass(frozen=True)
class PayoffSimulation:
    """Outcome of running a single loan to payoff."""

    months: int
    total_interest: float


def calculate_payment(
    principal: float, annual_rate: float, amortization_months: int
) -> float:
    """
    Calculate monthly loan payment.

    Matches Excel's PMT() function.

    Args:
        principal: Loan principal amount
        annual_rate: Annual interest rate as decimal (e.g., 0.05 for 5%)
        amortization_months: Total amortization period in months

    Returns:
        Monthly payment amount (positive number)
    """
    if principal <= 0:
        return 0.0
    if amortization_months <= 0:
        return 0.0

    monthly_rate = annual_rate / 12

    if monthly_rate == 0:
        return principal / amortization_months

    factor = (1 + monthly_rate) ** amortization_months
    return principal * monthly_rate * factor / (factor - 1)


def calculate_remaining_balance(
    principal: float,
    annual_rate: float,
    amortization_months: int,
    payments_completed: int,
) -> float:
    """Calculate remaining loan balance after N scheduled payments."""
    if principal <= 0 or amortization_months <= 0:
        return 0.0
    if payments_completed >= amortization_months:
        return 0.0

    monthly_rate = annual_rate / 12
    payment = calculate_payment(principal, annual_rate, amortization_months)

    if monthly_rate == 0:
        return max(0.0, principal - payment * payments_completed)

    balance = principal * ((1 + monthly_rate) ** payments_completed) - payment * (
        ((1 + monthly_rate) ** payments_completed - 1) / monthly_rate
    )

    return max(0.0, balance)


def calculate_present_value(
    monthly_payment: float, annual_rate: float, months: int
) -> float:
    """
    Present value of an ordinary annuity.

    PV = PMT * (1 - (1 + r)^-n) / r, or PMT * n when the rate is zero.
    This is the largest loan a given monthly payment can service.
    """
    if months <= 0:
        return 0.0

    monthly_rate = annual_rate / 12

    if monthly_rate == 0:
        return monthly_payment * months

    return monthly_payment * (1 - (1 + monthly_rate) ** -months) / monthly_rate


def amortize(
    balance: float,
    monthly_rate: float,
    monthly_payment: float,
    max_months: int,
) -> Iterator[Dict]:
    """
    Yield one row per month while a fixed payment is applied to a balance.

    Stops after ``max_months`` rows or once the balance reaches zero. The
    balance is floored at zero, so the last row's principal is whatever the
    payment actually retired.
    """
    current = balance
    for period in range(1, max_months + 1):
        if current <= 0:
            return
        interest = current * monthly_rate
        ending = max(0.0, current - (monthly_payment - interest))
        yield {
            "period": period,
            "beginning_balance": current,
            "interest": interest,
            "principal": current - ending,
            "ending_balance": ending,
        }
        current = ending


def calculate_remaining_interest(
    balance: float,
    monthly_rate: float,
    monthly_payment: float,
    remaining_months: int,
) -> float:
    """Total interest still owed over the remaining term of a loan."""
    total = sum(
        row["interest"]
        for row in amortize(balance, monthly_rate, monthly_payment, remaining_months)
    )
    return round(total, 2)


def simulate_payoff(
    balance: float,
    monthly_rate: float,
    monthly_payment: float,
    max_months: int = MAX_SIMULATION_MONTHS,
) -> Result:
    """
    Run a loan at its scheduled payment until it is paid off.

    Returns ``Ok(PayoffSimulation)`` on payoff. If the payment never covers
    the interest the loan cannot be retired; that case is reported as
    ``Degenerate("negative_amortization", ...)`` with the legacy fallback of
    ``max_months`` and ``balance * rate * max_months`` interest.
    """
    current = balance
    total_interest = 0.0
    months = 0

    while current > PAID_OFF_THRESHOLD and months < max_months:
        interest = current * monthly_rate
        principal = monthly_payment - interest
        if principal <= 0:
            return Degenerate(
                "negative_amortization",
                PayoffSimulation(max_months, balance * monthly_rate * max_months),
            )
        total_interest += interest
        current -= principal
        months += 1

    simulation = PayoffSimulation(months, round(total_interest, 2))
    if current > PAID_OFF_THRESHOLD:
        return Degenerate("max_months_reached", simulation)
    return Ok(simulation)


def generate_amortization_schedule(
    principal: float,
    annual_rate: float,
    amortization_months: int,
    start_date: Optional[date] = None,
) -> List[Dict]:
    """
    Display schedule for a fully amortizing loan.

    Rows come from ``amortize`` at the level payment, rounded to cents and
    dated from ``start_date`` when one is given.
    """
    payment = calculate_payment(principal, annual_rate, amortization_months)

    schedule = []
    for row in amortize(principal, annual_rate / 12, payment, amortization_months):
        period_date = (
            start_date + relativedelta(months=row["period"] - 1) if start_date else None
        )
        schedule.append(
            {
                "period": row["period"],
                "date": period_date.isoformat() if period_date else None,
                "beginning_balance": round(row["beginning_balance"], 2),
                "payment": round(row["interest"] + row["principal"], 2),
                "interest": round(row["interest"], 2),
                "principal": round(row["principal"], 2),
                "ending_balance": round(row["ending_balance"], 2),
            }
        )
    return schedule
