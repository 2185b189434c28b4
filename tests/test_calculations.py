"""
Tests for shared amortization math and the IRR solver.
"""

import pytest
from datetime import date
from finengine.calculations.amortization import (
    amortize,
    calculate_payment,
    calculate_present_value,
    calculate_remaining_balance,
    calculate_remaining_interest,
    generate_amortization_schedule,
    simulate_payoff,
)
from finengine.calculations.irr import (
    calculate_irr,
    calculate_npv,
    calculate_payback_months,
    solve_irr,
)


class TestIRRCalculations:
    """Test IRR calculation functions."""

    def test_calculate_irr_simple(self):
        """Investment of 100 returning 110 one period later is a 10% IRR."""
        result = solve_irr([-100, 110])
        assert result.ok
        assert abs(result.value - 0.10) < 1e-4

    def test_calculate_irr_multi_period(self):
        """Test IRR with multiple periods."""
        # Investment of 100, annual returns of 20, sale of 100 at end
        cash_flows = [-100, 20, 20, 20, 20, 120]
        irr = calculate_irr(cash_flows)
        assert abs(irr - 0.20) < 0.001

    def test_calculate_npv(self):
        """Test NPV calculation."""
        cash_flows = [-100, 50, 50, 50]
        npv = calculate_npv(cash_flows, 0.10)
        # NPV should be positive since returns exceed cost
        assert npv > 0

    def test_irr_negative_returns(self):
        """Test IRR with negative return scenario."""
        cash_flows = [-100, 40, 40, 10]  # Total return < investment
        irr = calculate_irr(cash_flows)
        assert irr < 0

    def test_irr_zeroes_npv(self):
        """The solved rate discounts the cash flows to zero."""
        cash_flows = [-50000, 18000, 18000, 18000, 18000, 18000]
        result = solve_irr(cash_flows)
        assert result.ok
        assert abs(calculate_npv(cash_flows, result.value)) < 1e-4

    def test_irr_empty_cash_flows(self):
        """No cash flows cannot be solved and report 0."""
        result = solve_irr([])
        assert not result.ok
        assert result.reason == "no_cash_flows"
        assert result.value == 0.0

    def test_irr_without_sign_change_is_flagged(self):
        """All-positive cash flows have no IRR; the result says so."""
        result = solve_irr([100, 100, 100])
        assert not result.ok
        assert calculate_irr([100, 100, 100]) == result.value

    def test_payback_months(self):
        """Payback rounds up to whole months."""
        assert calculate_payback_months(1000, 300, 120) == 4

    def test_payback_never_recovers(self):
        """Non-positive cash flow reports the full horizon."""
        assert calculate_payback_months(1000, 0, 120) == 120
        assert calculate_payback_months(1000, -50, 60) == 60


class TestAmortization:
    """Test loan amortization calculations."""

    def test_calculate_payment(self):
        """Test monthly payment calculation."""
        # $1M loan at 5% for 30 years
        payment = calculate_payment(1000000, 0.05, 360)
        assert abs(payment - 5368.22) < 0.01

    def test_calculate_payment_zero_rate(self):
        """Zero rate payment is straight-line."""
        assert calculate_payment(120000, 0.0, 120) == 1000.0

    def test_calculate_payment_no_principal(self):
        assert calculate_payment(0, 0.05, 360) == 0.0

    def test_remaining_balance_endpoints(self):
        """Full principal before any payment, nothing after the last."""
        assert calculate_remaining_balance(100000, 0.06, 60, 0) == pytest.approx(100000)
        assert calculate_remaining_balance(100000, 0.06, 60, 60) == 0.0

    def test_remaining_balance_zero_rate(self):
        assert calculate_remaining_balance(12000, 0.0, 12, 6) == pytest.approx(6000)

    def test_present_value_zero_rate(self):
        """PV of an annuity at 0% is payment times months."""
        assert calculate_present_value(1000, 0.0, 60) == 60000

    def test_present_value_inverts_payment(self):
        """The PV of a loan's payment stream is the loan amount."""
        payment = calculate_payment(250000, 0.065, 360)
        assert calculate_present_value(payment, 0.065, 360) == pytest.approx(250000)

    def test_amortization_reconciles_to_balance(self):
        """Principal retired over a fully amortizing term equals the balance."""
        balance = 100000
        payment = calculate_payment(balance, 0.06, 60)
        rows = list(amortize(balance, 0.06 / 12, payment, 60))

        total_principal = sum(row["principal"] for row in rows)
        total_interest = sum(row["interest"] for row in rows)

        assert len(rows) == 60
        assert abs(total_principal - balance) < 0.01
        assert abs(total_interest + total_principal - payment * 60) < 0.01
        assert abs(
            calculate_remaining_interest(balance, 0.06 / 12, payment, 60) - total_interest
        ) < 0.01

    def test_remaining_interest_stops_at_term(self):
        """Only the remaining months are counted."""
        payment = calculate_payment(100000, 0.06, 60)
        first_year = calculate_remaining_interest(100000, 0.005, payment, 12)
        full_term = calculate_remaining_interest(100000, 0.005, payment, 60)
        assert 0 < first_year < full_term

    def test_simulate_payoff(self):
        """A correctly sized payment retires the loan on schedule."""
        payment = calculate_payment(100000, 0.06, 60)
        result = simulate_payoff(100000, 0.005, payment)
        assert result.ok
        assert result.value.months == 60
        assert result.value.total_interest == pytest.approx(payment * 60 - 100000, abs=0.01)

    def test_simulate_payoff_already_paid(self):
        result = simulate_payoff(0.0, 0.005, 500)
        assert result.ok
        assert result.value.months == 0
        assert result.value.total_interest == 0

    def test_simulate_payoff_negative_amortization(self):
        """A payment that never covers interest is flagged, not reported as payoff."""
        result = simulate_payoff(100000, 0.01, 900)
        assert not result.ok
        assert result.reason == "negative_amortization"
        assert result.value.months == 600
        assert result.value.total_interest == pytest.approx(100000 * 0.01 * 600)

    def test_amortization_schedule_length(self):
        """Test amortization schedule has correct number of periods."""
        schedule = generate_amortization_schedule(
            principal=100000,
            annual_rate=0.06,
            amortization_months=60,
        )
        assert len(schedule) == 60

    def test_amortization_schedule_level_payment(self):
        """Every row but the last pays the level payment."""
        payment = calculate_payment(100000, 0.06, 60)
        schedule = generate_amortization_schedule(
            principal=100000,
            annual_rate=0.06,
            amortization_months=60,
        )
        for row in schedule[:-1]:
            assert abs(row["payment"] - payment) < 0.01
            assert abs(row["interest"] + row["principal"] - row["payment"]) < 0.02
        assert schedule[0]["interest"] == 500.0

    def test_amortization_schedule_matches_fold(self):
        """Schedule rows are the rounded rows of ``amortize``."""
        payment = calculate_payment(100000, 0.06, 60)
        rows = list(amortize(100000, 0.005, payment, 60))
        schedule = generate_amortization_schedule(100000, 0.06, 60)

        assert [row["period"] for row in schedule] == [row["period"] for row in rows]
        for shown, raw in zip(schedule, rows):
            assert shown["interest"] == round(raw["interest"], 2)
            assert shown["ending_balance"] == round(raw["ending_balance"], 2)

    def test_amortization_final_balance(self):
        """Test that final balance is approximately zero."""
        schedule = generate_amortization_schedule(
            principal=100000,
            annual_rate=0.06,
            amortization_months=60,
        )
        assert abs(schedule[-1]["ending_balance"]) < 1

    def test_amortization_schedule_no_principal(self):
        assert generate_amortization_schedule(0, 0.06, 60) == []

    def test_amortization_schedule_dates(self):
        """Rows are dated only when a start date is given."""
        dated = generate_amortization_schedule(
            principal=10000,
            annual_rate=0.05,
            amortization_months=12,
            start_date=date(2026, 1, 1),
        )
        undated = generate_amortization_schedule(
            principal=10000, annual_rate=0.05, amortization_months=12
        )
        assert dated[0]["date"] == "2026-01-01"
        assert dated[11]["date"] == "2026-12-01"
        assert undated[0]["date"] is None
