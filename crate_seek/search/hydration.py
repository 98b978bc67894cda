"""
Debounced hydration of the selected crate.
"""

import asyncio
import logging
from typing import Optional

from crate_seek.core.cancellation import CancellationHandle
from crate_seek.core.exceptions import HydrationError, TaskCancelled
from crate_seek.core.interfaces import CrateRecord, RecordHydrated
from crate_seek.fetcher.crates_io import CratesIoClient


logger = logging.getLogger(__name__)


class HydrationService:
    """
    Fetches full registry metadata for one crate at a time.

    Each request waits out a debounce delay first, so moving the selection
    quickly through a list only fetches the record it settles on. Fetched
    metadata is emitted as a RecordHydrated event; failures are only logged.
    """

    def __init__(self, client: CratesIoClient, events: asyncio.Queue, debounce: float = 0.7):
        self.client = client
        self.events = events
        self.debounce = debounce
        self._cancel_hydrate: Optional[CancellationHandle] = None
        self._task: Optional[asyncio.Task] = None

    @staticmethod
    def needs_hydration(record: Optional[CrateRecord]) -> bool:
        return record is not None and not record.hydrated

    def request_hydration(self, crate_id: str) -> asyncio.Task:
        """
        Schedule a metadata fetch for ``crate_id``, superseding any pending one.

        Must be called from within a running event loop.
        """
        self.cancel()

        handle = CancellationHandle(f"hydration of {crate_id}")
        self._cancel_hydrate = handle
        self._task = asyncio.get_running_loop().create_task(self._run(crate_id, handle))
        return self._task

    def cancel(self) -> None:
        if self._cancel_hydrate is not None:
            self._cancel_hydrate.cancel()
            self._cancel_hydrate = None

    async def _run(self, crate_id: str, handle: CancellationHandle) -> None:
        await asyncio.sleep(self.debounce)

        if handle.cancelled:
            logger.debug(f"Hydration of {crate_id} superseded before fetching")
            return

        try:
            detail = await self.client.fetch_detail_async(crate_id, cancellation=handle)
        except TaskCancelled:
            logger.debug(f"Hydration of {crate_id} superseded while waiting for the registry")
            return
        except HydrationError as e:
            logger.warning(f"Hydration of {crate_id} failed: {e}")
            return

        if handle.cancelled:
            logger.debug(f"Discarding metadata for {crate_id}: superseded")
            return

        self.events.put_nowait(RecordHydrated(crate_id=crate_id, detail=detail))
