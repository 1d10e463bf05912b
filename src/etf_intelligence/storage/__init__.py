"""
Storage layer: relational schema, record models and repositories for ETF
profiles, holdings, sector weights, price bars and metric snapshots.
"""

from .exceptions import PersistenceError

__all__ = ["PersistenceError"]
