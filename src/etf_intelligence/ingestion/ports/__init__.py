"""Ingestion ports (protocols and run data types)."""

from .http import HttpResponse, IHttpClient
from .sync import IFetchClient, ISyncReporter, SyncProgress, SyncStats, SyncSummary

__all__ = [
    "HttpResponse",
    "IHttpClient",
    "IFetchClient",
    "ISyncReporter",
    "SyncProgress",
    "SyncStats",
    "SyncSummary",
]
