"""
Tests for debt portfolio analysis.
"""

import math
from datetime import date

import pytest

from finengine.calculations.amortization import calculate_payment
from finengine.calculations.cost_of_capital import (
    AVALANCHE,
    SNOWBALL,
    Loan,
    build_payoff_plan,
    calculate_cost_of_capital,
    calculate_weighted_average_cost,
    find_refinance_opportunities,
    order_loans,
)


def _loan(id, balance, rate, payment, months=120, loan_type="other"):
    return Loan(
        id=id,
        name=f"Loan {id}",
        balance=balance,
        annual_rate=rate,
        monthly_payment=payment,
        remaining_months=months,
        loan_type=loan_type,
    )


@pytest.fixture
def two_loans():
    """A high-rate large loan and a low-rate small loan."""
    return [
        _loan("A", 50000, 0.09, 600),
        _loan("B", 20000, 0.05, 400),
    ]


class TestLoan:
    """Test loan validation."""

    def test_negative_balance_rejected(self):
        with pytest.raises(ValueError):
            _loan("X", -1, 0.05, 100)

    def test_negative_rate_rejected(self):
        with pytest.raises(ValueError):
            _loan("X", 1000, -0.01, 100)

    def test_monthly_rate(self):
        assert _loan("X", 1000, 0.06, 100).monthly_rate == pytest.approx(0.005)


class TestPortfolioTotals:
    """Test weighted cost and ordering."""

    def test_weighted_average_cost(self):
        loans = [_loan("A", 100000, 0.06, 1000), _loan("B", 50000, 0.09, 800)]
        assert calculate_weighted_average_cost(loans) == pytest.approx(0.07)

    def test_weighted_average_cost_no_debt(self):
        assert calculate_weighted_average_cost([]) == 0.0
        assert calculate_weighted_average_cost([_loan("A", 0, 0.06, 0)]) == 0.0

    def test_avalanche_orders_by_rate(self, two_loans):
        assert [loan.id for loan in order_loans(two_loans, AVALANCHE)] == ["A", "B"]

    def test_snowball_orders_by_balance(self, two_loans):
        assert [loan.id for loan in order_loans(two_loans, SNOWBALL)] == ["B", "A"]

    def test_paid_off_loans_are_excluded(self, two_loans):
        loans = two_loans + [_loan("C", 0, 0.2, 0)]
        assert "C" not in [loan.id for loan in order_loans(loans, AVALANCHE)]

    def test_unknown_method(self, two_loans):
        with pytest.raises(ValueError):
            order_loans(two_loans, "fastest")


class TestPayoffPlan:
    """Test accelerated payoff simulation."""

    def test_no_extra_payment_matches_baseline(self):
        loan = _loan("A", 10000, 0.06, 300)
        plan = build_payoff_plan([loan], 0.0, "Avalanche")

        result = plan["loans"][0]
        assert result["accelerated_payoff_months"] == result["original_payoff_months"]
        assert result["interest_saved"] == 0

    def test_extra_payment_shortens_payoff(self):
        loan = _loan("A", 10000, 0.06, 300)
        plan = build_payoff_plan([loan], 200.0, "Avalanche")

        result = plan["loans"][0]
        assert result["accelerated_payoff_months"] < result["original_payoff_months"]
        assert result["interest_saved"] > 0
        assert plan["debt_free_months"] == result["accelerated_payoff_months"]

    def test_freed_payment_rolls_to_next_loan(self):
        """Retiring a loan frees its minimum payment for the next one."""
        small = _loan("S", 1000, 0.05, 500)
        large = _loan("L", 10000, 0.05, 200)
        plan = build_payoff_plan([small, large], 0.0, "Snowball")

        small_plan, large_plan = plan["loans"]
        assert small_plan["accelerated_payoff_months"] == 3
        assert large_plan["accelerated_payoff_months"] < large_plan["original_payoff_months"]
        assert large_plan["interest_saved"] > 0

    def test_avalanche_saves_at_least_as_much_as_snowball(self, two_loans):
        avalanche = build_payoff_plan(order_loans(two_loans, AVALANCHE), 500.0, AVALANCHE)
        snowball = build_payoff_plan(order_loans(two_loans, SNOWBALL), 500.0, SNOWBALL)
        assert avalanche["total_interest_saved"] >= snowball["total_interest_saved"]

    def test_payoff_dates(self):
        loan = _loan("A", 1000, 0.0, 100)
        plan = build_payoff_plan([loan], 0.0, "Avalanche", as_of=date(2026, 1, 15))

        result = plan["loans"][0]
        assert result["original_payoff_months"] == 10
        assert result["original_payoff_date"] == "2026-11-15"
        assert plan["debt_free_date"] == "2026-11-15"

    def test_no_dates_without_as_of(self):
        plan = build_payoff_plan([_loan("A", 1000, 0.0, 100)], 0.0, "Avalanche")
        assert plan["loans"][0]["original_payoff_date"] is None
        assert plan["debt_free_date"] is None

    def test_empty_portfolio(self):
        plan = build_payoff_plan([], 500.0, "Avalanche")
        assert plan["loans"] == []
        assert plan["debt_free_months"] == 0
        assert plan["total_interest_saved"] == 0

    def test_underwater_loan_keeps_baseline(self):
        """A loan whose payment never covers interest is not reported as paid."""
        loan = _loan("A", 100000, 0.12, 500)
        plan = build_payoff_plan([loan], 0.0, "Avalanche")
        assert plan["loans"][0]["accelerated_payoff_months"] == 600
        assert plan["loans"][0]["interest_saved"] == 0


class TestRefinance:
    """Test refinance detection."""

    def test_flags_expensive_loan(self):
        payment = calculate_payment(100000, 0.10, 120)
        loan = _loan("A", 100000, 0.10, payment, loan_type="real_estate")

        opportunities = find_refinance_opportunities([loan])

        assert len(opportunities) == 1
        opp = opportunities[0]
        assert opp["market_rate"] == 0.065
        assert opp["new_monthly_payment"] == pytest.approx(
            calculate_payment(100000, 0.065, 120), abs=0.01
        )
        assert opp["monthly_savings"] > 0
        assert opp["total_savings"] > 0
        assert opp["closing_costs"] == 1500.0
        assert opp["break_even_months"] == math.ceil(1500 / opp["monthly_savings"])

    def test_rate_within_spread_not_flagged(self):
        loan = _loan("A", 100000, 0.07, 1200, loan_type="real_estate")
        assert find_refinance_opportunities([loan]) == []

    def test_no_savings_discarded(self):
        """An underpaid loan would cost more to refinance; it is dropped."""
        loan = _loan("A", 100000, 0.10, 500)
        assert find_refinance_opportunities([loan]) == []

    def test_custom_market_rates(self):
        payment = calculate_payment(100000, 0.10, 120)
        loan = _loan("A", 100000, 0.10, payment)
        assert find_refinance_opportunities([loan], {"other": 0.12}) == []

    def test_unknown_type_uses_other_rate(self):
        payment = calculate_payment(100000, 0.10, 120)
        loan = _loan("A", 100000, 0.10, payment, loan_type="boat")
        assert find_refinance_opportunities([loan])[0]["market_rate"] == 0.08


class TestCostOfCapitalReport:
    """Test the full report."""

    def test_report_totals(self, two_loans):
        report = calculate_cost_of_capital(two_loans, extra_monthly_payment=500)

        assert report["total_debt"] == 70000
        assert report["total_monthly_debt_service"] == 1000
        assert report["total_annual_debt_service"] == 12000
        assert report["weighted_average_cost"] == pytest.approx(
            (50000 * 0.09 + 20000 * 0.05) / 70000, abs=1e-4
        )
        assert set(report["payoff_scenarios"]) == {AVALANCHE, SNOWBALL}
        assert report["payoff_scenarios"][AVALANCHE]["method"] == "Avalanche (Highest Rate First)"
        assert len(report["loans"]) == 2
        assert report["loans"][0]["total_remaining_interest"] > 0

    def test_report_carries_disclaimer(self, two_loans):
        report = calculate_cost_of_capital(two_loans)
        assert report["disclaimer"].startswith("This is not financial advice")
        assert "refinancing" in report["disclaimer"]

    def test_negative_extra_payment_rejected(self, two_loans):
        with pytest.raises(ValueError):
            calculate_cost_of_capital(two_loans, extra_monthly_payment=-1)

    def test_empty_portfolio(self):
        report = calculate_cost_of_capital([])
        assert report["total_debt"] == 0
        assert report["weighted_average_cost"] == 0
        assert report["refinance_opportunities"] == []
