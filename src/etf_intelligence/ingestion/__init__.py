"""
Ingestion layer.

Fetches the ETF universe and per-fund fundamentals from EODHD under a shared
rate limit and persists them through the storage repositories.
"""
