"""
ETF intelligence: universe ingestion and analytics.

Modules:
- ingestion: EODHD client, rate limiting, checkpointed universe sync
- storage: SQLAlchemy tables, records and repositories
- analytics: Price-series and concentration metrics
- infrastructure: Config, database, checkpoint store, logging
"""

__version__ = "0.1.0"
