"""Record models exchanged with the storage layer.

Models for:
- Instrument: ticker-keyed ETF profile with allocation/valuation snapshot
- Holding / SectorWeight: per-instrument composition rows
- PriceBar: daily end-of-day bar
- MetricSnapshot: analytics output per instrument per as-of date

All models use:
- Pydantic for validation
- float values (analytics runs on numpy/pandas); None marks unavailable data
- Optional fields for sparse provider data
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


class InstrumentRecord(BaseModel):
    """ETF profile as written by the sync pipeline.

    Stored in: instruments (unique ticker)
    """

    model_config = ConfigDict(from_attributes=True)

    ticker: str = Field(..., min_length=1, description="Exchange ticker (e.g., SPY)")
    name: str = Field(..., min_length=1)
    exchange: str | None = None
    country: str | None = None
    currency: str | None = None
    asset_class: str | None = None
    category: str | None = None
    description: str | None = None
    benchmark_index: str | None = None

    aum: float | None = Field(None, description="Total assets under management")
    net_expense_ratio: float | None = None
    inception_date: date | None = None
    annual_turnover: float | None = None

    # Allocations, percent of net assets
    equity_allocation: float | None = None
    bond_allocation: float | None = None
    cash_allocation: float | None = None
    other_allocation: float | None = None

    mega_cap_allocation: float | None = None
    big_cap_allocation: float | None = None
    medium_cap_allocation: float | None = None
    small_cap_allocation: float | None = None
    micro_cap_allocation: float | None = None

    price_to_book: float | None = None
    price_to_sales: float | None = None
    price_to_cash_flow: float | None = None
    projected_earnings_growth: float | None = None


class StoredInstrument(InstrumentRecord):
    """Instrument as read back, with identity and audit columns."""

    id: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class HoldingRecord(BaseModel):
    """One constituent of an ETF. Weight is percent of net assets."""

    model_config = ConfigDict(from_attributes=True)

    holding_ticker: str | None = None
    holding_name: str | None = None
    weight: float | None = None
    sector: str | None = None
    industry: str | None = None
    as_of_date: date | None = None


class SectorWeightRecord(BaseModel):
    """Sector exposure of an ETF. Weight is percent of equity."""

    model_config = ConfigDict(from_attributes=True)

    sector: str | None = None
    weight: float | None = None
    as_of_date: date | None = None


class PriceBarRecord(BaseModel):
    """Daily end-of-day bar.

    Stored in: price_bars (primary key symbol, date)
    """

    model_config = ConfigDict(from_attributes=True)

    symbol: str = Field(..., min_length=1)
    date: date
    open: float | None = None
    high: float | None = None
    low: float | None = None
    close: float
    adjusted_close: float
    volume: float | None = None


class MetricSnapshotRecord(BaseModel):
    """Derived analytics for one instrument as of one date.

    Written only by MetricsService. Unavailable metrics are None.
    """

    model_config = ConfigDict(from_attributes=True)

    instrument_id: int
    as_of_date: date

    return_1m: float | None = None
    return_3m: float | None = None
    return_6m: float | None = None
    return_1y: float | None = None
    return_3y: float | None = None
    return_5y: float | None = None
    return_ytd: float | None = None

    volatility: float | None = None
    sharpe: float | None = None
    max_drawdown: float | None = None
    beta: float | None = None

    rsi14: float | None = None
    ma20: float | None = None
    ma50: float | None = None
    ma200: float | None = None
    high_52w: float | None = None
    low_52w: float | None = None
    latest_price: float | None = None

    top10_weight: float | None = None
    hhi: float | None = None
    holdings_count: int | None = None
