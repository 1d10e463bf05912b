"""
EODHD payload mappers.

Pure functions converting the typed intermediate schema into storage records.
Missing, renamed or malformed fields become None; nothing in here raises on
provider data.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from etf_intelligence.shared.models.enums import AssetClass
from etf_intelligence.storage.schemas.records import (
    HoldingRecord,
    InstrumentRecord,
    PriceBarRecord,
    SectorWeightRecord,
)

from .schemas import EodBar, EtfDataBlock, FundamentalsPayload, SymbolListing

logger = logging.getLogger(__name__)

HOLDING_WEIGHT_KEYS = ("Assets_%", "Assets_Percentage")
SECTOR_WEIGHT_KEYS = ("Equity_%", "Equity_Percentage")
NET_ASSETS_KEY = "Net_Assets_%"


@dataclass
class NormalizedFundamentals:
    """Everything one fundamentals payload contributes to the store."""

    instrument: InstrumentRecord
    holdings: list[HoldingRecord] = field(default_factory=list)
    sectors: list[SectorWeightRecord] = field(default_factory=list)


def safe_float(value: Any) -> float | None:
    """Parse a provider number. Empty, non-numeric and non-finite values give None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    else:
        text = str(value).strip().rstrip("%").replace(",", "")
        if not text:
            return None
        try:
            result = float(text)
        except ValueError:
            return None
    return result if math.isfinite(result) else None


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def safe_date(value: Any) -> date | None:
    """Parse YYYY-MM-DD (optionally with a time part). Sentinel dates give None."""
    text = safe_str(value)
    if not text or text.startswith("0000"):
        return None
    try:
        return datetime.fromisoformat(text[:10]).date()
    except ValueError:
        return None


def _dig(mapping: dict | None, *keys: str) -> Any:
    current: Any = mapping
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _first_float(mapping: Any, keys: tuple[str, ...]) -> float | None:
    if not isinstance(mapping, dict):
        return None
    for key in keys:
        value = safe_float(mapping.get(key))
        if value is not None:
            return value
    return None


def allocation(etf: EtfDataBlock | None, bucket: str) -> float | None:
    """Net-assets percentage of one Asset_Allocation bucket."""
    if etf is None:
        return None
    return safe_float(_dig(etf.asset_allocation, bucket, NET_ASSETS_KEY))


def equity_allocation(etf: EtfDataBlock | None) -> float | None:
    """US plus non-US stock allocation; None when neither bucket is reported."""
    us = allocation(etf, "Stock US")
    non_us = allocation(etf, "Stock non-US")
    if us is None and non_us is None:
        return None
    return (us or 0.0) + (non_us or 0.0)


def categorize_asset_class(category: str | None, etf: EtfDataBlock | None) -> AssetClass:
    """Classify a fund from its provider category, then from its allocation mix."""
    cat = (category or "").lower()
    if "bond" in cat or "fixed income" in cat:
        return AssetClass.FIXED_INCOME
    if "commodit" in cat or "gold" in cat or "precious metals" in cat:
        return AssetClass.COMMODITY
    if "real estate" in cat or "reit" in cat:
        return AssetClass.REAL_ESTATE
    if "balanced" in cat or "allocation" in cat:
        return AssetClass.MULTI_ASSET

    equity = equity_allocation(etf) or 0.0
    bond = allocation(etf, "Bond") or 0.0

    if equity > 80:
        return AssetClass.EQUITY
    if bond > 80:
        return AssetClass.FIXED_INCOME
    if equity > 40 and bond > 20:
        return AssetClass.MULTI_ASSET
    return AssetClass.EQUITY


def _holding_entries(raw: Any) -> list[dict]:
    if isinstance(raw, dict):
        values = raw.values()
    elif isinstance(raw, list):
        values = raw
    else:
        return []
    return [entry for entry in values if isinstance(entry, dict)]


def map_holdings(etf: EtfDataBlock | None, as_of: date) -> list[HoldingRecord]:
    """Map ETF_Data.Holdings to records. Filtering of unusable rows is left to storage."""
    if etf is None:
        return []
    rows = []
    for entry in _holding_entries(etf.holdings):
        code = safe_str(entry.get("Code"))
        rows.append(
            HoldingRecord(
                holding_ticker=code,
                holding_name=safe_str(entry.get("Name")) or code,
                weight=_first_float(entry, HOLDING_WEIGHT_KEYS),
                sector=safe_str(entry.get("Sector")),
                industry=safe_str(entry.get("Industry")),
                as_of_date=as_of,
            )
        )
    return rows


def map_sector_weights(etf: EtfDataBlock | None, as_of: date) -> list[SectorWeightRecord]:
    if etf is None or not etf.sector_weights:
        return []
    return [
        SectorWeightRecord(
            sector=safe_str(name),
            weight=_first_float(values, SECTOR_WEIGHT_KEYS),
            as_of_date=as_of,
        )
        for name, values in etf.sector_weights.items()
    ]


def map_instrument(
    ticker: str,
    payload: FundamentalsPayload,
    listing: SymbolListing | None = None,
) -> InstrumentRecord:
    general = payload.general
    etf = payload.etf_data
    valuations = etf.valuations_growth if etf else None
    market_cap = etf.market_capitalisation if etf else None

    category = safe_str(general.category) if general else None
    name = (
        (safe_str(general.name) if general else None)
        or (safe_str(listing.name) if listing else None)
        or ticker
    )

    return InstrumentRecord(
        ticker=ticker,
        name=name,
        exchange=safe_str(general.exchange) if general else None,
        country=safe_str(general.country_iso) if general else None,
        currency=safe_str(general.currency_code) if general else None,
        asset_class=categorize_asset_class(category, etf).value,
        category=category,
        description=safe_str(general.description) if general else None,
        benchmark_index=safe_str(etf.index_name) if etf else None,
        aum=safe_float(etf.total_assets) if etf else None,
        net_expense_ratio=safe_float(etf.net_expense_ratio) if etf else None,
        inception_date=safe_date(etf.inception_date) if etf else None,
        annual_turnover=safe_float(etf.annual_holdings_turnover) if etf else None,
        equity_allocation=equity_allocation(etf),
        bond_allocation=allocation(etf, "Bond"),
        cash_allocation=allocation(etf, "Cash"),
        other_allocation=allocation(etf, "Other"),
        mega_cap_allocation=safe_float(_dig(market_cap, "Mega")),
        big_cap_allocation=safe_float(_dig(market_cap, "Big")),
        medium_cap_allocation=safe_float(_dig(market_cap, "Medium")),
        small_cap_allocation=safe_float(_dig(market_cap, "Small")),
        micro_cap_allocation=safe_float(_dig(market_cap, "Micro")),
        price_to_book=safe_float(
            _dig(valuations, "Valuations_Rates_Portfolio", "Price/Book")
        ),
        price_to_sales=safe_float(
            _dig(valuations, "Valuations_Rates_Portfolio", "Price/Sales")
        ),
        price_to_cash_flow=safe_float(
            _dig(valuations, "Valuations_Rates_Portfolio", "Price/Cash Flow")
        ),
        projected_earnings_growth=safe_float(
            _dig(
                valuations,
                "Growth_Rates_Portfolio",
                "Long-Term Projected Earnings Growth",
            )
        ),
    )


def normalize_fundamentals(
    ticker: str,
    raw: dict[str, Any],
    as_of: date,
    listing: SymbolListing | None = None,
) -> NormalizedFundamentals | None:
    """
    Normalize a raw fundamentals payload.

    Returns None when the payload lacks the General block (nothing to store).
    """
    payload = FundamentalsPayload.model_validate(raw)
    if not payload.has_required_fields:
        return None

    result = NormalizedFundamentals(
        instrument=map_instrument(ticker, payload, listing),
        holdings=map_holdings(payload.etf_data, as_of),
        sectors=map_sector_weights(payload.etf_data, as_of),
    )
    logger.debug(
        f"Normalized {ticker}: {len(result.holdings)} holdings, "
        f"{len(result.sectors)} sectors"
    )
    return result


def map_listing(raw: list[Any]) -> list[SymbolListing]:
    """Parse the symbol list, dropping entries without a code."""
    listings = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        listing = SymbolListing.model_validate(entry)
        code = safe_str(listing.code)
        if code:
            listings.append(listing.model_copy(update={"code": code}))
    return listings


def map_price_bars(symbol: str, raw: list[Any]) -> list[PriceBarRecord]:
    """Map /eod rows to price bars. Rows without a date or close are skipped."""
    bars = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        bar = EodBar.model_validate(entry)
        bar_date = safe_date(bar.date)
        close = safe_float(bar.close)
        if bar_date is None or close is None:
            continue
        adjusted = safe_float(bar.adjusted_close)
        bars.append(
            PriceBarRecord(
                symbol=symbol,
                date=bar_date,
                open=safe_float(bar.open),
                high=safe_float(bar.high),
                low=safe_float(bar.low),
                close=close,
                adjusted_close=adjusted if adjusted is not None else close,
                volume=safe_float(bar.volume),
            )
        )
    return bars
