"""Holdings and sector weight repositories.

Both follow replace-on-sync: the whole set for an instrument is deleted and
the new rows bulk-inserted in the same transaction, so re-running a sync with
unchanged upstream data leaves the tables unchanged.
"""

from datetime import date

from sqlalchemy import delete, func, insert, select

from etf_intelligence.storage.schemas.records import HoldingRecord, SectorWeightRecord
from etf_intelligence.storage.schemas.tables import Holding, SectorWeight

from .base import BaseRepository


def _clean_key(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class _ReplaceableRepository(BaseRepository):
    """Per-instrument replace semantics over one composition table."""

    model: type = None
    key_attr: str = ""
    record_type: type = None

    def _prepare(self, rows, as_of: date) -> list[dict]:
        """Drop rows with empty key or non-positive weight; first duplicate wins."""
        seen: set[str] = set()
        prepared = []
        dropped = 0
        for row in rows:
            key = _clean_key(getattr(row, self.key_attr))
            weight = row.weight
            if key is None or weight is None or weight <= 0 or key in seen:
                dropped += 1
                continue
            seen.add(key)
            values = row.model_dump()
            values[self.key_attr] = key
            values["as_of_date"] = as_of
            prepared.append(values)
        if dropped:
            self.log.debug("rows_dropped", dropped=dropped, kept=len(prepared))
        return prepared

    def replace(self, instrument_id: int, rows, as_of: date) -> int:
        """Replace every row of the instrument with ``rows``.

        Returns:
            Number of rows stored
        """
        prepared = self._prepare(rows, as_of)
        for values in prepared:
            values["instrument_id"] = instrument_id

        with self._transaction(f"replace_{self.model.__tablename__}") as session:
            session.execute(delete(self.model).where(self.model.instrument_id == instrument_id))
            if prepared:
                session.execute(insert(self.model), prepared)

        self.log.debug(
            "rows_replaced",
            table=self.model.__tablename__,
            instrument_id=instrument_id,
            rows=len(prepared),
        )
        return len(prepared)

    def latest(self, instrument_id: int) -> list:
        """Rows of the most recent as-of date, heaviest first."""
        with self._transaction(f"latest_{self.model.__tablename__}") as session:
            latest_date = session.execute(
                select(func.max(self.model.as_of_date)).where(
                    self.model.instrument_id == instrument_id
                )
            ).scalar_one_or_none()
            if latest_date is None:
                return []
            rows = session.execute(
                select(self.model)
                .where(
                    self.model.instrument_id == instrument_id,
                    self.model.as_of_date == latest_date,
                )
                .order_by(self.model.weight.desc(), getattr(self.model, self.key_attr))
            ).scalars()
            return [self.record_type.model_validate(row) for row in rows]

    def count(self, instrument_id: int | None = None) -> int:
        with self._transaction(f"count_{self.model.__tablename__}") as session:
            query = select(func.count()).select_from(self.model)
            if instrument_id is not None:
                query = query.where(self.model.instrument_id == instrument_id)
            return session.execute(query).scalar_one()


class HoldingRepository(_ReplaceableRepository):
    """Repository for ETF constituents."""

    component = "holding-repository"
    model = Holding
    key_attr = "holding_ticker"
    record_type = HoldingRecord

    def replace(self, instrument_id: int, rows: list[HoldingRecord], as_of: date) -> int:
        return super().replace(instrument_id, rows, as_of)

    def latest(self, instrument_id: int) -> list[HoldingRecord]:
        return super().latest(instrument_id)


class SectorWeightRepository(_ReplaceableRepository):
    """Repository for ETF sector exposure."""

    component = "sector-weight-repository"
    model = SectorWeight
    key_attr = "sector"
    record_type = SectorWeightRecord

    def replace(
        self, instrument_id: int, rows: list[SectorWeightRecord], as_of: date
    ) -> int:
        return super().replace(instrument_id, rows, as_of)

    def latest(self, instrument_id: int) -> list[SectorWeightRecord]:
        return super().latest(instrument_id)
