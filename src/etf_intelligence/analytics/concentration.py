"""
Portfolio concentration utilities.
Pure functions over holding weights expressed as fractions of the portfolio.
"""

import math
from collections.abc import Iterable, Sequence

from etf_intelligence.storage.schemas.records import HoldingRecord

TOP_N_DEFAULT = 10


def _clean(weights: Iterable[float | None]) -> list[float]:
    return [w for w in weights if w is not None and math.isfinite(w) and w > 0]


def hhi(weights: Iterable[float | None]) -> float | None:
    """
    Herfindahl-Hirschman Index.

    HHI = sum(w_i^2). For n weights summing to 1 the result lies in [1/n, 1].
    An empty portfolio has no index (None).
    """
    cleaned = _clean(weights)
    if not cleaned:
        return None
    return float(sum(w * w for w in cleaned))


def top_n_weight(weights: Iterable[float | None], n: int = TOP_N_DEFAULT) -> float | None:
    """
    Combined weight of the n largest positions.

    With fewer than n positions every weight is summed; nothing is padded.
    Equal weights at the cut-off cannot change the sum, whichever is picked.
    """
    cleaned = _clean(weights)
    if not cleaned or n < 1:
        return None
    return float(sum(sorted(cleaned, reverse=True)[:n]))


def top_n_holdings(
    holdings: Sequence[HoldingRecord], n: int = TOP_N_DEFAULT
) -> list[HoldingRecord]:
    """
    The n heaviest holdings, ordered by weight descending then ticker ascending.

    The ticker tie-break makes the selection deterministic when weights tie
    at the cut-off.
    """
    usable = [h for h in holdings if h.weight is not None and h.weight > 0]
    ranked = sorted(usable, key=lambda h: (-h.weight, h.holding_ticker or ""))
    return ranked[:n]


def percent_to_fraction(weights: Iterable[float | None]) -> list[float]:
    """Provider weights are percentages (12.5 = 12.5%); concentration needs fractions."""
    return [w / 100.0 for w in _clean(weights)]
