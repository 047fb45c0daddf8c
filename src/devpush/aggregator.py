from __future__ import annotations

from asyncio import Queue, TimeoutError, wait_for
from itertools import count

from devpush.changes import Batch, ChangeEvent


class ChangeAggregator:
    """
    Coalesces bursts of changes into batches.

    Every change restarts the quiet window. Once a full window passes without a change,
    everything collected since the previous batch is closed into the next batch, in arrival order.
    With no window (manual mode) a batch never closes on its own.

    The aggregator runs independently of whoever consumes the batches,
    so changes that arrive while a batch is deploying are collected into the following batch.
    """

    def __init__(
        self,
        window: float | None,
        changes: Queue[ChangeEvent],
        batches: Queue[Batch],
    ):
        self.window = window
        self.changes = changes
        self.batches = batches

        self.indexes = count(1)

    async def run(self) -> None:
        while True:
            await self.batches.put(await self.collect())

    async def collect(self) -> Batch:
        collected = [await self.changes.get()]

        while True:
            try:
                collected.append(await wait_for(self.changes.get(), timeout=self.window))
            except TimeoutError:
                return Batch(index=next(self.indexes), changes=tuple(collected))
