"""Price bar repository.

Bars are append-only: a (symbol, date) pair is written once and never
rewritten, so re-fetching an overlapping window only adds the new days.
"""

from datetime import date

from sqlalchemy import func, insert, select

from etf_intelligence.storage.schemas.records import PriceBarRecord
from etf_intelligence.storage.schemas.tables import PriceBar

from .base import BaseRepository


class PriceBarRepository(BaseRepository):
    """Repository for daily end-of-day bars."""

    component = "price-bar-repository"

    def append(self, symbol: str, bars: list[PriceBarRecord]) -> int:
        """Insert bars whose (symbol, date) is not stored yet.

        Returns:
            Number of bars inserted
        """
        if not bars:
            return 0

        by_date: dict[date, PriceBarRecord] = {}
        for bar in bars:
            by_date.setdefault(bar.date, bar)

        with self._transaction("append_price_bars") as session:
            existing = set(
                session.execute(
                    select(PriceBar.date).where(
                        PriceBar.symbol == symbol,
                        PriceBar.date >= min(by_date),
                        PriceBar.date <= max(by_date),
                    )
                ).scalars()
            )
            new_rows = [
                {**bar.model_dump(), "symbol": symbol}
                for bar_date, bar in sorted(by_date.items())
                if bar_date not in existing
            ]
            if new_rows:
                session.execute(insert(PriceBar), new_rows)

        self.log.debug(
            "price_bars_appended",
            symbol=symbol,
            received=len(bars),
            inserted=len(new_rows),
        )
        return len(new_rows)

    def get_range(
        self, symbol: str, start: date | None = None, end: date | None = None
    ) -> list[PriceBarRecord]:
        """Bars for ``symbol`` in [start, end], oldest first."""
        with self._transaction("get_price_range") as session:
            query = select(PriceBar).where(PriceBar.symbol == symbol)
            if start is not None:
                query = query.where(PriceBar.date >= start)
            if end is not None:
                query = query.where(PriceBar.date <= end)
            rows = session.execute(query.order_by(PriceBar.date)).scalars()
            return [PriceBarRecord.model_validate(row) for row in rows]

    def latest_date(self, symbol: str) -> date | None:
        with self._transaction("latest_price_date") as session:
            return session.execute(
                select(func.max(PriceBar.date)).where(PriceBar.symbol == symbol)
            ).scalar_one_or_none()

    def count(self, symbol: str | None = None) -> int:
        with self._transaction("count_price_bars") as session:
            query = select(func.count()).select_from(PriceBar)
            if symbol is not None:
                query = query.where(PriceBar.symbol == symbol)
            return session.execute(query).scalar_one()
