"""
Application services module.
"""

from finengine.services.forecast_store import persist_forecast, list_forecasts

__all__ = ["persist_forecast", "list_forecasts"]
