"""
Stored forecast API endpoints.

Runs the forecaster and then persists the result as a separate step.
"""

from datetime import datetime
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from finengine.api.calculations import ForecastInput, run_forecast
from finengine.db.database import get_db
from finengine.services.forecast_store import list_forecasts, persist_forecast

router = APIRouter()


class ForecastSnapshotResponse(BaseModel):
    """Schema for a stored forecast."""

    id: str
    practice_id: str
    forecast_date: datetime
    period_months: int
    method: str
    parameters_json: Dict[str, Any]
    results_json: Dict[str, Any]

    class Config:
        from_attributes = True


class ForecastSnapshotListResponse(BaseModel):
    """Response for listing stored forecasts."""

    forecasts: List[ForecastSnapshotResponse]


@router.post("/{practice_id}")
async def create_forecast(
    practice_id: str, inputs: ForecastInput, db: Session = Depends(get_db)
):
    """Forecast and store the result for a practice."""
    try:
        result = run_forecast(inputs)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    snapshot = persist_forecast(db, practice_id, result)
    return {"snapshot_id": snapshot.id, **result}


@router.get("/{practice_id}", response_model=ForecastSnapshotListResponse)
async def get_forecasts(practice_id: str, limit: int = 20, db: Session = Depends(get_db)):
    """List stored forecasts for a practice, newest first."""
    snapshots = list_forecasts(db, practice_id, limit=limit)
    return ForecastSnapshotListResponse(
        forecasts=[ForecastSnapshotResponse.model_validate(s) for s in snapshots]
    )
