from .holdings import HoldingRepository, SectorWeightRepository
from .instruments import InstrumentRepository
from .metrics import MetricSnapshotRepository
from .prices import PriceBarRepository

__all__ = [
    "HoldingRepository",
    "InstrumentRepository",
    "MetricSnapshotRepository",
    "PriceBarRepository",
    "SectorWeightRepository",
]
