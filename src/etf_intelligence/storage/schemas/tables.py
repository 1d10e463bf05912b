"""Relational schema for the ETF store.

Table layout:
  instruments        one row per ETF, unique ticker, upserted on every sync
  holdings           (instrument_id, holding_ticker, as_of_date) unique,
                     replaced wholesale per instrument
  sector_weights     (instrument_id, sector, as_of_date) unique, replaced
  price_bars         (symbol, date) primary key, append-only
  metric_snapshots   (instrument_id, as_of_date) unique, analytics output
"""

from datetime import datetime, timezone

from sqlalchemy import (
    TIMESTAMP,
    Column,
    Date,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Instrument(Base):
    __tablename__ = "instruments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ticker = Column(String(20), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    exchange = Column(String(20))
    country = Column(String(10))
    currency = Column(String(10))
    asset_class = Column(String(30))
    category = Column(String(100))
    description = Column(Text)
    benchmark_index = Column(String(255))

    aum = Column(Float)
    net_expense_ratio = Column(Float)
    inception_date = Column(Date)
    annual_turnover = Column(Float)

    equity_allocation = Column(Float)
    bond_allocation = Column(Float)
    cash_allocation = Column(Float)
    other_allocation = Column(Float)

    mega_cap_allocation = Column(Float)
    big_cap_allocation = Column(Float)
    medium_cap_allocation = Column(Float)
    small_cap_allocation = Column(Float)
    micro_cap_allocation = Column(Float)

    price_to_book = Column(Float)
    price_to_sales = Column(Float)
    price_to_cash_flow = Column(Float)
    projected_earnings_growth = Column(Float)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (Index("idx_instruments_asset_class", "asset_class"),)


class Holding(Base):
    __tablename__ = "holdings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    instrument_id = Column(
        Integer, ForeignKey("instruments.id", ondelete="CASCADE"), nullable=False
    )
    holding_ticker = Column(String(40), nullable=False)
    holding_name = Column(String(255))
    weight = Column(Float, nullable=False)
    sector = Column(String(100))
    industry = Column(String(150))
    as_of_date = Column(Date, nullable=False)

    __table_args__ = (
        UniqueConstraint("instrument_id", "holding_ticker", "as_of_date"),
        Index("idx_holdings_instrument", "instrument_id"),
        Index("idx_holdings_ticker", "holding_ticker"),
    )


class SectorWeight(Base):
    __tablename__ = "sector_weights"

    id = Column(Integer, primary_key=True, autoincrement=True)
    instrument_id = Column(
        Integer, ForeignKey("instruments.id", ondelete="CASCADE"), nullable=False
    )
    sector = Column(String(100), nullable=False)
    weight = Column(Float, nullable=False)
    as_of_date = Column(Date, nullable=False)

    __table_args__ = (
        UniqueConstraint("instrument_id", "sector", "as_of_date"),
        Index("idx_sector_weights_instrument", "instrument_id"),
    )


class PriceBar(Base):
    __tablename__ = "price_bars"

    symbol = Column(String(20), primary_key=True)
    date = Column(Date, primary_key=True)
    open = Column(Float)
    high = Column(Float)
    low = Column(Float)
    close = Column(Float, nullable=False)
    adjusted_close = Column(Float, nullable=False)
    volume = Column(Float)

    __table_args__ = (Index("idx_price_bars_date", "date"),)


class MetricSnapshot(Base):
    __tablename__ = "metric_snapshots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    instrument_id = Column(
        Integer, ForeignKey("instruments.id", ondelete="CASCADE"), nullable=False
    )
    as_of_date = Column(Date, nullable=False)

    return_1m = Column(Float)
    return_3m = Column(Float)
    return_6m = Column(Float)
    return_1y = Column(Float)
    return_3y = Column(Float)
    return_5y = Column(Float)
    return_ytd = Column(Float)

    volatility = Column(Float)
    sharpe = Column(Float)
    max_drawdown = Column(Float)
    beta = Column(Float)

    rsi14 = Column(Float)
    ma20 = Column(Float)
    ma50 = Column(Float)
    ma200 = Column(Float)
    high_52w = Column(Float)
    low_52w = Column(Float)
    latest_price = Column(Float)

    top10_weight = Column(Float)
    hhi = Column(Float)
    holdings_count = Column(Integer)

    computed_at = Column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        UniqueConstraint("instrument_id", "as_of_date"),
        Index("idx_metric_snapshots_instrument", "instrument_id"),
    )
