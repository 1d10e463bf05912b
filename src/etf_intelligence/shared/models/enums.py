"""
Shared enumerations for ETF Intelligence.
"""

import enum


class AssetClass(str, enum.Enum):
    """Broad asset class an ETF is filed under."""

    EQUITY = "Equity"
    FIXED_INCOME = "Fixed Income"
    COMMODITY = "Commodity"
    REAL_ESTATE = "Real Estate"
    MULTI_ASSET = "Multi-Asset"


class TrailingWindow(str, enum.Enum):
    """Trailing return windows and their lookback in calendar days."""

    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    SIX_MONTHS = "6M"
    ONE_YEAR = "1Y"
    THREE_YEARS = "3Y"
    FIVE_YEARS = "5Y"

    @property
    def days(self) -> int:
        return _WINDOW_DAYS[self]


_WINDOW_DAYS = {
    TrailingWindow.ONE_MONTH: 21,
    TrailingWindow.THREE_MONTHS: 63,
    TrailingWindow.SIX_MONTHS: 126,
    TrailingWindow.ONE_YEAR: 252,
    TrailingWindow.THREE_YEARS: 756,
    TrailingWindow.FIVE_YEARS: 1260,
}
