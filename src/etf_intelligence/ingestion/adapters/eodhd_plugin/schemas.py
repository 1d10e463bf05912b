"""Typed intermediate schema for EODHD payloads.

Every field is optional and every leaf is kept as the raw provider value;
numeric coercion happens in the mappers. Nested blocks that arrive with the
wrong shape (a list where a mapping was expected, an empty string...) are
replaced with None instead of failing validation, so parsing a real-world
payload never raises.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _mapping_or_none(value: Any) -> dict | None:
    return value if isinstance(value, dict) else None


class _ProviderModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class SymbolListing(_ProviderModel):
    """Entry of /exchange-symbol-list/{exchange}."""

    code: Any = Field(None, alias="Code")
    name: Any = Field(None, alias="Name")
    exchange: Any = Field(None, alias="Exchange")
    type: Any = Field(None, alias="Type")
    currency: Any = Field(None, alias="Currency")
    country: Any = Field(None, alias="Country")
    isin: Any = Field(None, alias="Isin")


class EodBar(_ProviderModel):
    """Entry of /eod/{symbol}."""

    date: Any = None
    open: Any = None
    high: Any = None
    low: Any = None
    close: Any = None
    adjusted_close: Any = None
    volume: Any = None


class GeneralBlock(_ProviderModel):
    code: Any = Field(None, alias="Code")
    name: Any = Field(None, alias="Name")
    exchange: Any = Field(None, alias="Exchange")
    country_iso: Any = Field(None, alias="CountryISO")
    currency_code: Any = Field(None, alias="CurrencyCode")
    category: Any = Field(None, alias="Category")
    description: Any = Field(None, alias="Description")


class EtfDataBlock(_ProviderModel):
    index_name: Any = Field(None, alias="Index_Name")
    total_assets: Any = Field(None, alias="TotalAssets")
    net_expense_ratio: Any = Field(None, alias="NetExpenseRatio")
    inception_date: Any = Field(None, alias="Inception_Date")
    annual_holdings_turnover: Any = Field(None, alias="AnnualHoldingsTurnover")
    asset_allocation: dict | None = Field(None, alias="Asset_Allocation")
    market_capitalisation: dict | None = Field(None, alias="Market_Capitalisation")
    valuations_growth: dict | None = Field(None, alias="Valuations_Growth")
    holdings: Any = Field(None, alias="Holdings")
    sector_weights: dict | None = Field(None, alias="Sector_Weights")

    @field_validator(
        "asset_allocation",
        "market_capitalisation",
        "valuations_growth",
        "sector_weights",
        mode="before",
    )
    @classmethod
    def coerce_mapping(cls, v: Any) -> dict | None:
        return _mapping_or_none(v)

    @field_validator("holdings", mode="before")
    @classmethod
    def coerce_holdings(cls, v: Any) -> Any:
        # Keyed by "CODE.EXCHANGE" on most funds, a plain list on a few
        if isinstance(v, (dict, list)):
            return v
        return None


class FundamentalsPayload(_ProviderModel):
    """Response of /fundamentals/{symbol} for an ETF."""

    general: GeneralBlock | None = Field(None, alias="General")
    etf_data: EtfDataBlock | None = Field(None, alias="ETF_Data")

    @field_validator("general", "etf_data", mode="before")
    @classmethod
    def coerce_block(cls, v: Any) -> dict | None:
        return _mapping_or_none(v)

    @property
    def has_required_fields(self) -> bool:
        """A payload without a General block carries nothing worth storing."""
        return self.general is not None
