"""Instrument repository.

Instruments are keyed by ticker. Every successful sync upserts the full
profile; rows are never deleted by the pipeline.
"""

from datetime import datetime, timezone

from sqlalchemy import func, select

from etf_intelligence.storage.schemas.records import InstrumentRecord, StoredInstrument
from etf_intelligence.storage.schemas.tables import Instrument

from .base import BaseRepository


class InstrumentRepository(BaseRepository):
    """Repository for ETF profiles."""

    component = "instrument-repository"

    def upsert(self, record: InstrumentRecord) -> int:
        """Insert if absent by ticker, else overwrite every field and bump updated_at.

        Returns:
            The instrument id
        """
        values = record.model_dump()
        with self._transaction("upsert_instrument") as session:
            existing = session.execute(
                select(Instrument).where(Instrument.ticker == record.ticker)
            ).scalar_one_or_none()

            if existing is None:
                row = Instrument(**values)
                session.add(row)
                session.flush()
                self.log.debug("instrument_inserted", ticker=record.ticker, id=row.id)
                return row.id

            for key, value in values.items():
                setattr(existing, key, value)
            existing.updated_at = datetime.now(timezone.utc)
            session.flush()
            self.log.debug("instrument_updated", ticker=record.ticker, id=existing.id)
            return existing.id

    def get_by_ticker(self, ticker: str) -> StoredInstrument | None:
        with self._transaction("get_instrument") as session:
            row = session.execute(
                select(Instrument).where(Instrument.ticker == ticker)
            ).scalar_one_or_none()
            return StoredInstrument.model_validate(row) if row else None

    def get_id(self, ticker: str) -> int | None:
        with self._transaction("get_instrument_id") as session:
            return session.execute(
                select(Instrument.id).where(Instrument.ticker == ticker)
            ).scalar_one_or_none()

    def list_tickers(self) -> list[str]:
        with self._transaction("list_tickers") as session:
            return list(
                session.execute(select(Instrument.ticker).order_by(Instrument.ticker)).scalars()
            )

    def count(self) -> int:
        with self._transaction("count_instruments") as session:
            return session.execute(select(func.count()).select_from(Instrument)).scalar_one()
