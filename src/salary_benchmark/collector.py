"""Serialized market-data collection for target positions"""

import asyncio
from dataclasses import dataclass

from loguru import logger

from salary_benchmark.ingestion import fallback_records
from salary_benchmark.provider import MarketDataProvider, ProviderError
from salary_benchmark.session import BenchmarkSession


@dataclass(frozen=True)
class CollectionOutcome:
    """Result of one collection run for a target position"""

    position_id: str
    added: int
    used_fallback: bool = False
    error: str | None = None


class MarketDataCollector:
    """Fetches postings from a provider one position at a time and feeds the session"""

    def __init__(
        self,
        session: BenchmarkSession,
        provider: MarketDataProvider,
        use_fallback: bool = True,
        batch_delay: float = 0.5,
    ):
        self.session = session
        self.provider = provider
        self.use_fallback = use_fallback
        self.batch_delay = batch_delay
        self.errors: dict[str, str] = {}  # position_id → last error message
        self._lock = asyncio.Lock()  # one provider call at a time

    async def collect(self, position_id: str) -> CollectionOutcome:
        """
        Collect postings for a single target position

        On provider failure the fallback records are ingested instead (when enabled)
        and the error is recorded in the outcome.

        Raises:
            KeyError: If the position does not exist
        """
        target = self.session.get_position(position_id)

        async with self._lock:
            self.errors.pop(position_id, None)
            try:
                records = await self.provider.fetch_postings(target)
            except ProviderError as e:
                logger.error(f"Market data collection failed for position {position_id}: {e}")
                self.errors[position_id] = str(e)
                if not self.use_fallback:
                    return CollectionOutcome(position_id=position_id, added=0, error=str(e))

                postings = self.session.ingest(position_id, fallback_records(target))
                logger.warning(f"Ingested {len(postings)} fallback postings for position {position_id}")
                return CollectionOutcome(
                    position_id=position_id,
                    added=len(postings),
                    used_fallback=True,
                    error=str(e),
                )

            postings = self.session.ingest(position_id, records)
            return CollectionOutcome(position_id=position_id, added=len(postings))

    async def collect_all(self, position_ids: list[str] | None = None) -> list[CollectionOutcome]:
        """
        Collect postings for several positions sequentially

        Args:
            position_ids: Positions to collect, defaults to every session position

        Returns:
            list[CollectionOutcome]: One outcome per position, in order
        """
        if position_ids is None:
            position_ids = [p.id for p in self.session.positions]

        logger.info(f"Starting batch collection for {len(position_ids)} positions")
        outcomes = []
        for i, position_id in enumerate(position_ids):
            if i > 0 and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)
            outcomes.append(await self.collect(position_id))

        added = sum(o.added for o in outcomes)
        failed = sum(1 for o in outcomes if o.error)
        logger.info(f"Batch collection finished: {added} postings added, {failed} positions failed")
        return outcomes
