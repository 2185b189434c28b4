"""
Investment Return Calculations

ROI, IRR and payback for three deal archetypes: real estate, practice
acquisition and equipment purchase. Every calculator returns the same result
shape so deals can be compared side by side.
"""

import logging
from dataclasses import dataclass, fields
from typing import Dict, List, Optional

from finengine.calculations.amortization import (
    calculate_payment,
    calculate_remaining_balance,
)
from finengine.calculations.irr import calculate_payback_months, solve_irr

logger = logging.getLogger(__name__)

REAL_ESTATE = "real_estate"
PRACTICE_ACQUISITION = "practice_acquisition"
EQUIPMENT = "equipment"

# Practice value is proxied as a 1.0x revenue multiple
PRACTICE_VALUE_MULTIPLE = 1.0
MIN_PRACTICE_PROJECTION_YEARS = 10

DISCLAIMER = (
    "This is not financial advice. Consult your CPA/financial advisor before "
    "making investment decisions."
)


@dataclass
class RealEstateInputs:
    """Rental property purchase."""

    purchase_price: float
    down_payment: float
    loan_rate: float  # Annual rate as decimal
    loan_term_years: int
    monthly_rental_income: float
    monthly_expenses: float  # Taxes, insurance, management, maintenance
    vacancy_rate: float = 0.0
    annual_appreciation: float = 0.0
    hold_period_years: int = 10
    closing_costs: float = 0.0


@dataclass
class PracticeAcquisitionInputs:
    """Purchase of an operating practice / business."""

    purchase_price: float
    down_payment: float
    loan_rate: float
    loan_term_years: int
    current_annual_revenue: float
    projected_growth_rate: float = 0.0
    operating_expense_ratio: float = 0.6
    additional_staff_cost: float = 0.0  # Annual


@dataclass
class EquipmentInputs:
    """Equipment purchase, optionally financed."""

    cost: float
    expected_revenue_increase: float  # Annual
    useful_life_years: int
    maintenance_cost_annual: float = 0.0
    financing_rate: Optional[float] = None
    financing_term_months: Optional[int] = None


def _projection_row(year: int, cash_flow: float, equity: float, cumulative: float) -> Dict:
    return {
        "year": year,
        "cash_flow": round(cash_flow, 2),
        "equity": round(equity, 2),
        "cumulative_return": round(cumulative, 2),
    }


def _build_result(
    name: str,
    deal_type: str,
    total_invested: float,
    annual_cash_flow: float,
    monthly_cash_flow: float,
    total_returns: float,
    irr_cash_flows: List[float],
    yearly_projection: List[Dict],
    horizon_years: int,
) -> Dict:
    net_profit = total_returns - total_invested
    irr_result = solve_irr(irr_cash_flows)
    if not irr_result.ok:
        logger.info(f"{deal_type} IRR not solved ({irr_result.reason})")

    return {
        "name": name,
        "deal_type": deal_type,
        "cash_on_cash_return": (
            annual_cash_flow / total_invested if total_invested > 0 else 0.0
        ),
        "total_roi": net_profit / total_invested if total_invested > 0 else 0.0,
        "irr": irr_result.value,
        "irr_converged": irr_result.ok,
        "payback_period_months": calculate_payback_months(
            total_invested, monthly_cash_flow, horizon_years * 12
        ),
        "monthly_cash_flow": round(monthly_cash_flow, 2),
        "annual_cash_flow": round(annual_cash_flow, 2),
        "yearly_projection": yearly_projection,
        "total_invested": round(total_invested, 2),
        "total_returns": round(total_returns, 2),
        "net_profit": round(net_profit, 2),
        "disclaimer": DISCLAIMER,
    }


def calculate_real_estate_roi(inputs: RealEstateInputs) -> Dict:
    """
    Rental property returns over the hold period.

    Cash flow is held flat year over year; the property appreciates and the
    mortgage amortizes, and the final year's IRR cash flow includes the net
    sale proceeds (value less the remaining loan).
    """
    loan_amount = inputs.purchase_price - inputs.down_payment
    term_months = inputs.loan_term_years * 12
    total_invested = inputs.down_payment + inputs.closing_costs
    mortgage = calculate_payment(loan_amount, inputs.loan_rate, term_months)

    effective_rent = inputs.monthly_rental_income * (1 - inputs.vacancy_rate)
    monthly_cf = effective_rent - inputs.monthly_expenses - mortgage
    annual_cf = monthly_cf * 12

    yearly_projection = []
    irr_cash_flows = [-total_invested]
    cumulative = 0.0
    exit_equity = 0.0

    for year in range(1, inputs.hold_period_years + 1):
        property_value = inputs.purchase_price * (1 + inputs.annual_appreciation) ** year
        remaining_loan = calculate_remaining_balance(
            loan_amount, inputs.loan_rate, term_months, year * 12
        )
        equity = property_value - remaining_loan
        cumulative += annual_cf

        yearly_projection.append(_projection_row(year, annual_cf, equity, cumulative))

        if year == inputs.hold_period_years:
            exit_equity = equity
            irr_cash_flows.append(annual_cf + equity)
        else:
            irr_cash_flows.append(annual_cf)

    return _build_result(
        name="Real Estate Investment",
        deal_type=REAL_ESTATE,
        total_invested=total_invested,
        annual_cash_flow=annual_cf,
        monthly_cash_flow=monthly_cf,
        total_returns=cumulative + exit_equity,
        irr_cash_flows=irr_cash_flows,
        yearly_projection=yearly_projection,
        horizon_years=inputs.hold_period_years,
    )


def calculate_practice_acquisition_roi(inputs: PracticeAcquisitionInputs) -> Dict:
    """
    Practice acquisition returns.

    Revenue compounds at the projected growth rate and every projected year
    carries the fixed annual debt service. The projection runs for the longer
    of the loan term and ten years; the loan balance is 0 past its term.
    """
    loan_amount = inputs.purchase_price - inputs.down_payment
    term_months = inputs.loan_term_years * 12
    total_invested = inputs.down_payment
    annual_debt_service = calculate_payment(loan_amount, inputs.loan_rate, term_months) * 12
    projection_years = max(inputs.loan_term_years, MIN_PRACTICE_PROJECTION_YEARS)

    yearly_projection = []
    irr_cash_flows = [-total_invested]
    cumulative = 0.0
    year_one_cf = 0.0

    for year in range(1, projection_years + 1):
        revenue = inputs.current_annual_revenue * (1 + inputs.projected_growth_rate) ** year
        noi = revenue * (1 - inputs.operating_expense_ratio) - inputs.additional_staff_cost
        year_cf = noi - annual_debt_service

        remaining_loan = (
            0.0
            if year * 12 >= term_months
            else calculate_remaining_balance(
                loan_amount, inputs.loan_rate, term_months, year * 12
            )
        )
        equity = revenue * PRACTICE_VALUE_MULTIPLE - remaining_loan
        cumulative += year_cf

        if year == 1:
            year_one_cf = year_cf

        yearly_projection.append(_projection_row(year, year_cf, equity, cumulative))
        irr_cash_flows.append(year_cf)

    return _build_result(
        name="Practice Acquisition",
        deal_type=PRACTICE_ACQUISITION,
        total_invested=total_invested,
        annual_cash_flow=year_one_cf,
        monthly_cash_flow=year_one_cf / 12,
        total_returns=cumulative,
        irr_cash_flows=irr_cash_flows,
        yearly_projection=yearly_projection,
        horizon_years=projection_years,
    )


def calculate_equipment_roi(inputs: EquipmentInputs) -> Dict:
    """
    Equipment purchase returns over its useful life.

    Financing (if any) is a fixed payment over the financing term; book value
    depreciates straight-line and stands in for equity.
    """
    monthly_debt_service = 0.0
    if inputs.financing_rate is not None and inputs.financing_term_months:
        monthly_debt_service = calculate_payment(
            inputs.cost, inputs.financing_rate, inputs.financing_term_months
        )
    annual_debt_service = monthly_debt_service * 12

    annual_net_benefit = (
        inputs.expected_revenue_increase
        - inputs.maintenance_cost_annual
        - annual_debt_service
    )
    annual_depreciation = (
        inputs.cost / inputs.useful_life_years if inputs.useful_life_years > 0 else 0.0
    )

    yearly_projection = []
    irr_cash_flows = [-inputs.cost]
    cumulative = 0.0

    for year in range(1, inputs.useful_life_years + 1):
        financed = (
            inputs.financing_term_months is not None
            and year * 12 <= inputs.financing_term_months
        )
        year_cf = (
            inputs.expected_revenue_increase
            - inputs.maintenance_cost_annual
            - (annual_debt_service if financed else 0.0)
        )
        book_value = max(inputs.cost - annual_depreciation * year, 0.0)
        cumulative += year_cf

        yearly_projection.append(_projection_row(year, year_cf, book_value, cumulative))
        irr_cash_flows.append(year_cf)

    return _build_result(
        name="Equipment Purchase",
        deal_type=EQUIPMENT,
        total_invested=inputs.cost,
        annual_cash_flow=annual_net_benefit,
        monthly_cash_flow=annual_net_benefit / 12,
        total_returns=cumulative,
        irr_cash_flows=irr_cash_flows,
        yearly_projection=yearly_projection,
        horizon_years=inputs.useful_life_years,
    )


CALCULATORS = {
    REAL_ESTATE: (RealEstateInputs, calculate_real_estate_roi),
    PRACTICE_ACQUISITION: (PracticeAcquisitionInputs, calculate_practice_acquisition_roi),
    EQUIPMENT: (EquipmentInputs, calculate_equipment_roi),
}


def calculate_roi(deal_type: str, inputs: Dict) -> Dict:
    """
    Dispatch a deal to its calculator.

    Args:
        deal_type: One of "real_estate", "practice_acquisition", "equipment"
        inputs: Field values for that deal type's input dataclass

    Raises:
        ValueError: Unknown deal type or unexpected input fields
    """
    if deal_type not in CALCULATORS:
        raise ValueError(f"Unknown deal type: {deal_type}")

    input_cls, calculator = CALCULATORS[deal_type]
    allowed = {f.name for f in fields(input_cls)}
    unexpected = set(inputs) - allowed
    if unexpected:
        raise ValueError(
            f"Unexpected inputs for {deal_type}: {', '.join(sorted(unexpected))}"
        )

    try:
        deal = input_cls(**inputs)
    except TypeError as e:
        raise ValueError(f"Invalid inputs for {deal_type}: {e}") from e

    return calculator(deal)
