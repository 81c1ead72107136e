"""
Realtime Polling and Result Publication

A realtime view re-runs the pipeline at a fixed interval. Runs are
keyed by (server_id, range_hours); when several runs for the same key
overlap, the most recently started one wins and an older run that
finishes later is discarded instead of overwriting newer output.
"""

import asyncio
import itertools
from typing import AsyncIterator, Awaitable, Callable, Optional

from ..config import settings
from ..ingest import UpstreamError
from ..utils.logger import get_logger
from .engine import ChartPipeline, ChartResult

logger = get_logger("netchart.pipeline")

QueryKey = tuple[int, float]


class ChartRegistry:
    """
    Last-writer-wins tickets per query key.

    Only keys with a run in flight are tracked; the entry is removed
    once its newest run publishes.
    """

    def __init__(self) -> None:
        self._tickets = itertools.count(1)
        self._newest: dict[QueryKey, int] = {}

    def __len__(self) -> int:
        return len(self._newest)

    def begin(self, key: QueryKey) -> int:
        """Start a run for a key and return its ticket."""
        ticket = next(self._tickets)
        self._newest[key] = ticket
        return ticket

    def publish(self, key: QueryKey, ticket: int) -> bool:
        """
        Finish a run.

        Returns:
            False when a newer run was started for the key (result dropped)
        """
        if ticket != self._newest.get(key):
            logger.debug("Discarding superseded chart for %s (ticket %d)", key, ticket)
            return False
        del self._newest[key]
        return True

    async def run(
        self,
        pipeline: ChartPipeline,
        server_id: int,
        range_hours: float,
        **options,
    ) -> Optional[ChartResult]:
        """Run the pipeline for a key; None if a newer run superseded it."""
        key = (server_id, range_hours)
        ticket = self.begin(key)
        try:
            result = await pipeline.run(server_id, range_hours, **options)
        except BaseException:
            self.publish(key, ticket)
            raise
        if self.publish(key, ticket):
            return result
        return None


class RealtimePoller:
    """
    Re-runs the pipeline for a live view at a fixed interval.

    Each poller owns its registry, so one viewer's runs never supersede
    another's. A failed fetch is logged and the next tick retries.
    """

    def __init__(
        self,
        pipeline: ChartPipeline,
        registry: Optional[ChartRegistry] = None,
        interval_seconds: Optional[float] = None,
    ):
        self.pipeline = pipeline
        self.registry = registry or ChartRegistry()
        self.interval_seconds = interval_seconds or settings.realtime_poll_seconds
        self._stop = asyncio.Event()

    def stop(self) -> None:
        self._stop.set()

    async def stream(
        self,
        server_id: int,
        range_hours: float = 1,
        max_ticks: Optional[int] = None,
        **options,
    ) -> AsyncIterator[ChartResult]:
        """Yield a fresh chart every interval until stopped (or `max_ticks` runs)."""
        ticks = 0
        while not self._stop.is_set():
            try:
                result = await self.registry.run(self.pipeline, server_id, range_hours, **options)
            except UpstreamError as e:
                logger.warning("Realtime fetch for server %s failed: %s", server_id, e)
                result = None

            if result is not None:
                yield result

            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

    async def poll(
        self,
        server_id: int,
        on_result: Optional[Callable[[ChartResult], Awaitable[None]]] = None,
        range_hours: float = 1,
        max_ticks: Optional[int] = None,
        **options,
    ) -> int:
        """
        Poll until stopped (or for `max_ticks` iterations).

        Returns:
            Number of charts published
        """
        published = 0
        async for result in self.stream(server_id, range_hours, max_ticks, **options):
            published += 1
            if on_result is not None:
                await on_result(result)
        return published
