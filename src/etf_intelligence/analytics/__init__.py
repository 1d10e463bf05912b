"""Metrics over stored price history and holdings."""

from .concentration import hhi, percent_to_fraction, top_n_holdings, top_n_weight
from .metrics import PricePoint, PriceRange
from .service import ConcentrationMetrics, MetricsRunSummary, MetricsService

__all__ = [
    # Concentration
    "hhi",
    "top_n_weight",
    "top_n_holdings",
    "percent_to_fraction",
    # Series
    "PricePoint",
    "PriceRange",
    # Service
    "MetricsService",
    "MetricsRunSummary",
    "ConcentrationMetrics",
]
