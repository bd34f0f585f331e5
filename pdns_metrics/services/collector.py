from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy import and_, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..metrics.fetcher import CounterFetcher, ExecutionError
from ..metrics.registry import GraphRegistry
from ..models import CounterSample
from ..output import MetricValue, metric_key

logger = logging.getLogger(__name__)


def per_minute_rate(
    value: float,
    now: datetime,
    previous: CounterSample,
    max_interval_seconds: int,
) -> Optional[float]:
    """Rate of change per minute since ``previous``, or None when it can't be trusted."""
    elapsed = (now - previous.timestamp).total_seconds()
    if elapsed <= 0 or elapsed > max_interval_seconds:
        return None
    if value < previous.value:
        # counter was reset, most likely a server restart
        return None
    return (value - previous.value) * 60 / elapsed


class MetricCollector:
    """Fetches counters, turns them into metric values and records the raw samples."""

    def __init__(
        self,
        fetcher: CounterFetcher,
        registry: GraphRegistry,
        session_factory: async_sessionmaker[AsyncSession],
        prefix: str,
        interval_seconds: int = 60,
        diff_max_interval_seconds: int = 600,
        retention_seconds: int = 86400,
    ) -> None:
        self.fetcher = fetcher
        self.registry = registry
        self.session_factory = session_factory
        self.prefix = prefix
        self.interval_seconds = max(interval_seconds, 1)
        self.diff_max_interval_seconds = diff_max_interval_seconds
        self.retention_seconds = retention_seconds
        self.latest: List[MetricValue] = []
        self._task: Optional[asyncio.Task[None]] = None
        self._stop_event = asyncio.Event()

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._stop_event.clear()
            self._task = asyncio.create_task(self._run(), name="metric-collector")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.collect_once()
            except ExecutionError as exc:
                logger.error("Collection cycle failed: %s", exc)
            except SQLAlchemyError:
                logger.exception("Collection cycle failed")
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue

    async def collect_once(self, now: Optional[datetime] = None) -> List[MetricValue]:
        counters = await asyncio.to_thread(self.fetcher.fetch)
        timestamp = now or datetime.now(timezone.utc)
        matched = self.registry.match(counters)
        names = {name for graph_values in matched for name in graph_values.values}

        async with self.session_factory() as session:
            async with session.begin():
                previous = await self._previous_samples(session, names)
                values: List[MetricValue] = []
                for graph_values in matched:
                    for metric in graph_values.graph.metrics:
                        if metric.name not in graph_values.values:
                            continue
                        value = graph_values.values[metric.name]
                        if metric.diff:
                            last = previous.get(metric.name)
                            if last is None:
                                continue
                            rate = per_minute_rate(
                                value, timestamp, last, self.diff_max_interval_seconds
                            )
                            if rate is None:
                                logger.debug("Skipping diff for %s this cycle", metric.name)
                                continue
                            value = rate
                        values.append(
                            MetricValue(
                                metric_key(self.prefix, graph_values.graph.key, metric.name),
                                value,
                                timestamp,
                            )
                        )
                for name in sorted(names):
                    session.add(CounterSample(name=name, timestamp=timestamp, value=counters[name]))
                await session.execute(
                    delete(CounterSample).where(
                        CounterSample.timestamp
                        < timestamp - timedelta(seconds=self.retention_seconds)
                    )
                )

        self.latest = values
        return values

    async def _previous_samples(
        self, session: AsyncSession, names: Iterable[str]
    ) -> Dict[str, CounterSample]:
        names = list(names)
        if not names:
            return {}
        latest = (
            select(CounterSample.name, func.max(CounterSample.timestamp).label("timestamp"))
            .where(CounterSample.name.in_(names))
            .group_by(CounterSample.name)
            .subquery()
        )
        stmt = select(CounterSample).join(
            latest,
            and_(
                CounterSample.name == latest.c.name,
                CounterSample.timestamp == latest.c.timestamp,
            ),
        )
        result = await session.execute(stmt)
        return {sample.name: sample for sample in result.scalars()}
