"""Storage schemas: SQLAlchemy tables and the pydantic records written to them."""

from .records import (
    HoldingRecord,
    InstrumentRecord,
    MetricSnapshotRecord,
    PriceBarRecord,
    SectorWeightRecord,
    StoredInstrument,
)
from .tables import Base, Holding, Instrument, MetricSnapshot, PriceBar, SectorWeight

__all__ = [
    "Base",
    "Holding",
    "HoldingRecord",
    "Instrument",
    "InstrumentRecord",
    "MetricSnapshot",
    "MetricSnapshotRecord",
    "PriceBar",
    "PriceBarRecord",
    "SectorWeight",
    "SectorWeightRecord",
    "StoredInstrument",
]
