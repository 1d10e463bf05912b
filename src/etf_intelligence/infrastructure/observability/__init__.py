"""
Observability for the ETF sync pipeline: structured logging bound to
architectural layers so that a single run can be followed from universe
listing through persistence to metric computation.
"""

from .logging import (
    get_analytics_logger,
    get_infrastructure_logger,
    get_ingestion_logger,
    get_logger,
    get_pipeline_logger,
    get_storage_logger,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "get_infrastructure_logger",
    "get_ingestion_logger",
    "get_pipeline_logger",
    "get_storage_logger",
    "get_analytics_logger",
]
