"""Color Oracle - multi-predictor period forecasting service."""

__version__ = "1.0.0"
