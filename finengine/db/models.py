"""
SQLAlchemy ORM models for stored engine output.
"""

from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, JSON
from sqlalchemy.orm import declarative_base
import uuid

Base = declarative_base()


def generate_uuid():
    return str(uuid.uuid4())


class ForecastSnapshot(Base):
    """A stored cash flow forecast for a practice."""

    __tablename__ = "forecast_snapshots"

    id = Column(String, primary_key=True, default=generate_uuid)
    practice_id = Column(String(255), nullable=False, index=True)
    forecast_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    period_months = Column(Integer, nullable=False)
    method = Column(String(50), nullable=False)

    # Smoothing parameters used for the fit
    parameters_json = Column(JSON, default=dict)

    # Historical and projected series
    results_json = Column(JSON, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
