"""
Forecast persistence.

Stores the output of ``calculate_forecast`` as a snapshot row. Kept apart
from the forecaster so the calculation stays free of side effects.
"""

import logging
from typing import Dict, List

from sqlalchemy.orm import Session

from finengine.db.models import ForecastSnapshot

logger = logging.getLogger(__name__)


def persist_forecast(db: Session, practice_id: str, result: Dict) -> ForecastSnapshot:
    """
    Save a forecast result.

    Args:
        db: Database session
        practice_id: Practice the forecast belongs to
        result: Output of ``calculate_forecast``

    Returns:
        The stored snapshot
    """
    snapshot = ForecastSnapshot(
        practice_id=practice_id,
        period_months=len(result["projected"]),
        method=result["method"],
        parameters_json=result["parameters"],
        results_json={
            "historical": result["historical"],
            "projected": result["projected"],
            "metrics": result["metrics"],
        },
    )
    db.add(snapshot)
    db.commit()
    db.refresh(snapshot)

    logger.info(f"Stored forecast {snapshot.id} for practice {practice_id}")
    return snapshot


def list_forecasts(db: Session, practice_id: str, limit: int = 20) -> List[ForecastSnapshot]:
    """Most recent forecast snapshots for a practice."""
    return (
        db.query(ForecastSnapshot)
        .filter(ForecastSnapshot.practice_id == practice_id)
        .order_by(ForecastSnapshot.forecast_date.desc())
        .limit(limit)
        .all()
    )
