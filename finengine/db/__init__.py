"""
Database configuration and models.
"""

from finengine.db.database import engine, SessionLocal, build_engine, get_db, init_db
from finengine.db.models import Base, ForecastSnapshot

__all__ = [
    "engine",
    "SessionLocal",
    "build_engine",
    "get_db",
    "init_db",
    "Base",
    "ForecastSnapshot",
]
