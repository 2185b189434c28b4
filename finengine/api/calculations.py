"""
Financial calculation API endpoints.

These endpoints accept inputs and return calculated results. Nothing here is
stored; see ``finengine.api.forecasts`` for persisted forecasts.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from finengine.calculations import cost_of_capital, debt_capacity, forecast, irr, roi
from finengine.calculations.amortization import generate_amortization_schedule
from finengine.config import get_settings

router = APIRouter()
settings = get_settings()


class MonthlyCashFlowInput(BaseModel):
    """One month of aggregated revenue and expenses."""

    month: Optional[str] = Field(None, pattern=r"^\d{4}-\d{2}$")
    revenue: float = 0.0
    expenses: float = 0.0


class ForecastInput(BaseModel):
    """Input for cash flow forecasting."""

    history: List[MonthlyCashFlowInput]
    horizon_months: int = Field(settings.forecast_horizon_months, ge=0, le=60)
    seasonality: Optional[List[float]] = None
    cash_balance: Optional[float] = None


def run_forecast(inputs: ForecastInput) -> Dict:
    """Run the forecaster with configured smoothing parameters."""
    history = [
        forecast.MonthlyCashFlow(month=m.month, revenue=m.revenue, expenses=m.expenses)
        for m in inputs.history
    ]
    return forecast.calculate_forecast(
        history,
        horizon_months=inputs.horizon_months,
        seasonality=inputs.seasonality,
        cash_balance=inputs.cash_balance,
        alpha=settings.forecast_alpha,
        beta=settings.forecast_beta,
        gamma=settings.forecast_gamma,
    )


@router.post("/forecast")
async def calculate_forecast(inputs: ForecastInput):
    """Forecast monthly net cash flow with confidence bands."""
    try:
        return run_forecast(inputs)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


class LoanInput(BaseModel):
    """Loan input schema."""

    id: str
    name: str
    balance: float = Field(ge=0)
    annual_rate: float = Field(ge=0)
    monthly_payment: float = Field(ge=0)
    remaining_months: int = Field(ge=0)
    loan_type: str = "other"


class CostOfCapitalInput(BaseModel):
    """Input for cost of capital analysis."""

    loans: List[LoanInput]
    extra_monthly_payment: float = Field(settings.default_extra_monthly_payment, ge=0)
    market_rates_by_type: Optional[Dict[str, float]] = None
    as_of: Optional[date] = None


@router.post("/cost-of-capital")
async def calculate_cost_of_capital(inputs: CostOfCapitalInput):
    """Weighted cost of debt, refinance opportunities and payoff plans."""
    try:
        loans = [cost_of_capital.Loan(**loan.model_dump()) for loan in inputs.loans]
        return cost_of_capital.calculate_cost_of_capital(
            loans,
            extra_monthly_payment=inputs.extra_monthly_payment,
            market_rates_by_type=inputs.market_rates_by_type,
            as_of=inputs.as_of,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


class ROIInput(BaseModel):
    """Input for ROI calculation."""

    deal_type: str
    inputs: Dict[str, Any]


@router.post("/roi")
async def calculate_roi(inputs: ROIInput):
    """Calculate ROI, IRR and payback for a deal."""
    try:
        return roi.calculate_roi(inputs.deal_type, inputs.inputs)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


class DebtCapacityInput(BaseModel):
    """Input for debt capacity analysis."""

    annual_noi: float
    annual_debt_service: float = Field(ge=0)
    target_dscr: float = settings.default_target_dscr
    market_rate: float = Field(settings.default_market_rate, ge=0)
    annual_revenue: Optional[float] = Field(
        None,
        description="Revenue behind the NOI. Required for stress tests; without it stress_tests is empty.",
    )


@router.post("/debt-capacity")
async def calculate_debt_capacity(inputs: DebtCapacityInput):
    """DSCR, borrowing capacity and stress tests."""
    return debt_capacity.calculate_debt_capacity(
        annual_noi=inputs.annual_noi,
        annual_debt_service=inputs.annual_debt_service,
        target_dscr=inputs.target_dscr,
        market_rate=inputs.market_rate,
        annual_revenue=inputs.annual_revenue,
    )


class IRRInput(BaseModel):
    """Input for IRR calculation."""

    cash_flows: List[float]


class IRRResponse(BaseModel):
    """Response with IRR calculation."""

    irr: float
    converged: bool
    reason: Optional[str] = None
    npv_at_10_percent: float


@router.post("/irr", response_model=IRRResponse)
async def calculate_irr_endpoint(inputs: IRRInput):
    """Calculate IRR for given periodic cash flows."""
    result = irr.solve_irr(inputs.cash_flows)
    return IRRResponse(
        irr=result.value,
        converged=result.ok,
        reason=getattr(result, "reason", None),
        npv_at_10_percent=irr.calculate_npv(inputs.cash_flows, 0.10),
    )


class AmortizationInput(BaseModel):
    """Input for amortization calculation."""

    principal: float = Field(ge=0)
    annual_rate: float = Field(ge=0)
    amortization_years: int = Field(gt=0)
    start_date: Optional[date] = None


@router.post("/amortization")
async def calculate_amortization(inputs: AmortizationInput):
    """Generate loan amortization schedule."""
    schedule = generate_amortization_schedule(
        principal=inputs.principal,
        annual_rate=inputs.annual_rate,
        amortization_months=inputs.amortization_years * 12,
        start_date=inputs.start_date,
    )

    return {
        "schedule": schedule,
        "total_interest": round(sum(row["interest"] for row in schedule), 2),
        "total_principal": round(sum(row["principal"] for row in schedule), 2),
    }
