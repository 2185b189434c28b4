"""
Cost of Capital Calculations

Debt portfolio analysis: weighted average cost, refinance detection and
multi-loan payoff planning (avalanche / snowball with payment rollover).
"""

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from finengine.calculations.amortization import (
    MAX_SIMULATION_MONTHS,
    PAID_OFF_THRESHOLD,
    calculate_payment,
    calculate_remaining_interest,
    simulate_payoff,
)

logger = logging.getLogger(__name__)

# Benchmark market rates by loan type for refinance detection
DEFAULT_MARKET_RATES = {
    "practice_acquisition": 0.075,
    "equipment": 0.07,
    "real_estate": 0.065,
    "line_of_credit": 0.09,
    "sba": 0.075,
    "vehicle": 0.065,
    "other": 0.08,
}

REFINANCE_SPREAD = 0.01
CLOSING_COST_RATE = 0.015
DEFAULT_EXTRA_MONTHLY_PAYMENT = 500.0

AVALANCHE = "avalanche"
SNOWBALL = "snowball"

PAYOFF_METHOD_LABELS = {
    AVALANCHE: "Avalanche (Highest Rate First)",
    SNOWBALL: "Snowball (Lowest Balance First)",
}

DISCLAIMER = (
    "This is not financial advice. Consult your CPA/financial advisor before "
    "making refinancing or payoff decisions."
)


@dataclass(frozen=True)
class Loan:
    """A single outstanding loan as loaded by the caller."""

    id: str
    name: str
    balance: float
    annual_rate: float
    monthly_payment: float
    remaining_months: int
    loan_type: str = "other"

    def __post_init__(self):
        if self.balance < 0:
            raise ValueError(f"Loan {self.id}: balance must be >= 0")
        if self.annual_rate < 0:
            raise ValueError(f"Loan {self.id}: annual_rate must be >= 0")
        if self.monthly_payment < 0:
            raise ValueError(f"Loan {self.id}: monthly_payment must be >= 0")
        if self.remaining_months < 0:
            raise ValueError(f"Loan {self.id}: remaining_months must be >= 0")

    @property
    def monthly_rate(self) -> float:
        return self.annual_rate / 12


def _offset_date(as_of: Optional[date], months: int) -> Optional[str]:
    if as_of is None:
        return None
    return (as_of + relativedelta(months=months)).isoformat()


def calculate_weighted_average_cost(loans: Sequence[Loan]) -> float:
    """Balance-weighted average interest rate across all loans."""
    total_balance = sum(loan.balance for loan in loans)
    if total_balance <= 0:
        return 0.0
    return sum(loan.annual_rate * loan.balance for loan in loans) / total_balance


def calculate_annual_debt_service(loans: Sequence[Loan]) -> float:
    """Scheduled annual debt service (P+I) across all loans."""
    return sum(loan.monthly_payment for loan in loans) * 12


def order_loans(loans: Sequence[Loan], method: str) -> List[Loan]:
    """
    Order loans by payoff priority.

    Avalanche targets the highest rate first, snowball the lowest balance
    first. Loans that are already paid off are left out.
    """
    open_loans = [loan for loan in loans if loan.balance > 0]
    if method == AVALANCHE:
        return sorted(open_loans, key=lambda loan: loan.annual_rate, reverse=True)
    if method == SNOWBALL:
        return sorted(open_loans, key=lambda loan: loan.balance)
    raise ValueError(f"Unknown payoff method: {method}")


def build_payoff_plan(
    ordered_loans: Sequence[Loan],
    extra_monthly_payment: float,
    method: str,
    as_of: Optional[date] = None,
    max_months: int = MAX_SIMULATION_MONTHS,
) -> Dict:
    """
    Simulate an accelerated payoff of several loans.

    Each month every open loan accrues interest. The first open loan in
    ``ordered_loans`` receives its minimum payment plus the extra payment
    plus every minimum payment freed up by loans already retired; the others
    receive their minimum. A loan that is still open at ``max_months`` keeps
    its baseline (unaccelerated) payoff.

    Args:
        ordered_loans: Loans in priority order
        extra_monthly_payment: Extra cash applied each month
        method: Label for the plan
        as_of: Date the simulation starts; payoff dates are omitted without it
        max_months: Simulation cap

    Returns:
        Payoff plan with per-loan savings and the debt-free month
    """
    count = len(ordered_loans)

    baselines = []
    for loan in ordered_loans:
        result = simulate_payoff(
            loan.balance, loan.monthly_rate, loan.monthly_payment, max_months
        )
        if not result.ok:
            logger.debug(f"Loan {loan.id} baseline payoff is degenerate: {result.reason}")
        baselines.append(result.value)

    balances = [loan.balance for loan in ordered_loans]
    accelerated_interest = [0.0] * count
    payoff_month: List[Optional[int]] = [
        0 if balance <= PAID_OFF_THRESHOLD else None for balance in balances
    ]
    freed_payments = 0.0
    month = 0

    while month < max_months and any(m is None for m in payoff_month):
        month += 1
        target = payoff_month.index(None)

        for i, loan in enumerate(ordered_loans):
            if payoff_month[i] is not None:
                continue

            interest = balances[i] * loan.monthly_rate
            accelerated_interest[i] += interest

            payment = loan.monthly_payment
            if i == target:
                payment += extra_monthly_payment + freed_payments

            principal = payment - interest
            if principal > 0:
                balances[i] -= principal

            if balances[i] <= PAID_OFF_THRESHOLD:
                balances[i] = 0.0
                payoff_month[i] = month
                freed_payments += loan.monthly_payment

    loan_plans = []
    for i, loan in enumerate(ordered_loans):
        baseline = baselines[i]
        if payoff_month[i] is None:
            accelerated_months = baseline.months
            interest_paid = baseline.total_interest
        else:
            accelerated_months = payoff_month[i]
            interest_paid = accelerated_interest[i]

        loan_plans.append(
            {
                "loan_id": loan.id,
                "name": loan.name,
                "original_payoff_months": baseline.months,
                "original_payoff_date": _offset_date(as_of, baseline.months),
                "accelerated_payoff_months": accelerated_months,
                "accelerated_payoff_date": _offset_date(as_of, accelerated_months),
                "interest_saved": max(
                    0.0, round(baseline.total_interest - interest_paid, 2)
                ),
            }
        )

    debt_free_months = max(
        [plan["accelerated_payoff_months"] for plan in loan_plans], default=0
    )

    return {
        "method": method,
        "extra_monthly_payment": extra_monthly_payment,
        "loans": loan_plans,
        "total_interest_saved": round(
            sum(plan["interest_saved"] for plan in loan_plans), 2
        ),
        "debt_free_months": debt_free_months,
        "debt_free_date": _offset_date(as_of, debt_free_months),
    }


def find_refinance_opportunities(
    loans: Sequence[Loan],
    market_rates_by_type: Optional[Dict[str, float]] = None,
    spread: float = REFINANCE_SPREAD,
    closing_cost_rate: float = CLOSING_COST_RATE,
) -> List[Dict]:
    """
    Flag loans whose rate sits more than ``spread`` above the market rate.

    The new payment re-amortizes the current balance at the market rate over
    the same remaining term. Opportunities without a positive monthly saving
    are discarded.
    """
    rates = market_rates_by_type or DEFAULT_MARKET_RATES
    fallback_rate = rates.get("other", DEFAULT_MARKET_RATES["other"])

    opportunities = []
    for loan in loans:
        market_rate = rates.get(loan.loan_type, fallback_rate)
        if loan.balance <= 0 or loan.annual_rate <= market_rate + spread:
            continue
        if loan.remaining_months <= 0:
            logger.debug(f"Loan {loan.id} has no remaining term to refinance")
            continue

        new_payment = calculate_payment(loan.balance, market_rate, loan.remaining_months)
        monthly_savings = loan.monthly_payment - new_payment
        if monthly_savings <= 0:
            continue

        current_interest = calculate_remaining_interest(
            loan.balance, loan.monthly_rate, loan.monthly_payment, loan.remaining_months
        )
        new_interest = calculate_remaining_interest(
            loan.balance, market_rate / 12, new_payment, loan.remaining_months
        )

        closing_costs = loan.balance * closing_cost_rate
        break_even_months = math.ceil(closing_costs / monthly_savings)

        opportunities.append(
            {
                "loan_id": loan.id,
                "loan_name": loan.name,
                "current_rate": loan.annual_rate,
                "market_rate": market_rate,
                "new_monthly_payment": round(new_payment, 2),
                "monthly_savings": round(monthly_savings, 2),
                "total_savings": round(current_interest - new_interest, 2),
                "closing_costs": round(closing_costs, 2),
                "break_even_months": break_even_months,
            }
        )

    return opportunities


def calculate_cost_of_capital(
    loans: Sequence[Loan],
    extra_monthly_payment: float = DEFAULT_EXTRA_MONTHLY_PAYMENT,
    market_rates_by_type: Optional[Dict[str, float]] = None,
    as_of: Optional[date] = None,
) -> Dict:
    """
    Full cost-of-capital report for a debt portfolio.

    Args:
        loans: Outstanding loans
        extra_monthly_payment: Extra monthly cash for the payoff scenarios
        market_rates_by_type: Benchmark rates keyed by loan type
        as_of: Start date for payoff dates

    Returns:
        Report with loan details, totals, refinance opportunities and
        avalanche / snowball payoff plans
    """
    if extra_monthly_payment < 0:
        raise ValueError("extra_monthly_payment must be >= 0")

    loan_details = [
        {
            "id": loan.id,
            "name": loan.name,
            "balance": loan.balance,
            "rate": loan.annual_rate,
            "monthly_payment": loan.monthly_payment,
            "remaining_months": loan.remaining_months,
            "total_remaining_interest": (
                calculate_remaining_interest(
                    loan.balance,
                    loan.monthly_rate,
                    loan.monthly_payment,
                    loan.remaining_months,
                )
                if loan.balance > 0 and loan.monthly_payment > 0
                else 0.0
            ),
            "type": loan.loan_type,
        }
        for loan in loans
    ]

    total_monthly_debt_service = sum(loan.monthly_payment for loan in loans)

    payoff_scenarios = {
        method: build_payoff_plan(
            order_loans(loans, method),
            extra_monthly_payment,
            PAYOFF_METHOD_LABELS[method],
            as_of=as_of,
        )
        for method in (AVALANCHE, SNOWBALL)
    }

    return {
        "loans": loan_details,
        "total_debt": round(sum(loan.balance for loan in loans), 2),
        "weighted_average_cost": round(calculate_weighted_average_cost(loans), 4),
        "total_monthly_debt_service": round(total_monthly_debt_service, 2),
        "total_annual_debt_service": round(calculate_annual_debt_service(loans), 2),
        "refinance_opportunities": find_refinance_opportunities(
            loans, market_rates_by_type
        ),
        "payoff_scenarios": payoff_scenarios,
        "disclaimer": DISCLAIMER,
    }
