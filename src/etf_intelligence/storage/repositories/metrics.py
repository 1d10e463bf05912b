"""Metric snapshot repository, one row per (instrument, as-of date)."""

from sqlalchemy import select

from etf_intelligence.storage.schemas.records import MetricSnapshotRecord
from etf_intelligence.storage.schemas.tables import MetricSnapshot

from .base import BaseRepository


class MetricSnapshotRepository(BaseRepository):
    """Repository for analytics output."""

    component = "metric-snapshot-repository"

    def upsert(self, record: MetricSnapshotRecord) -> None:
        """Write the snapshot, overwriting a previous one for the same date."""
        values = record.model_dump()
        with self._transaction("upsert_metric_snapshot") as session:
            existing = session.execute(
                select(MetricSnapshot).where(
                    MetricSnapshot.instrument_id == record.instrument_id,
                    MetricSnapshot.as_of_date == record.as_of_date,
                )
            ).scalar_one_or_none()
            if existing is None:
                session.add(MetricSnapshot(**values))
            else:
                for key, value in values.items():
                    setattr(existing, key, value)

    def latest(self, instrument_id: int) -> MetricSnapshotRecord | None:
        with self._transaction("latest_metric_snapshot") as session:
            row = session.execute(
                select(MetricSnapshot)
                .where(MetricSnapshot.instrument_id == instrument_id)
                .order_by(MetricSnapshot.as_of_date.desc())
                .limit(1)
            ).scalar_one_or_none()
            return MetricSnapshotRecord.model_validate(row) if row else None
