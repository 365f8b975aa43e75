"""
Sample tracking - search, elapsed-time display and periodic refresh
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Union

from ..core.clock import utc_now
from ..models import Sample, SampleStatus
from ..stores import CatalogStore, SampleStore

logger = logging.getLogger(__name__)

ALL_STATUSES = "all"


def format_elapsed(received_at: datetime, now: Optional[datetime] = None) -> str:
    """Elapsed time since receipt, e.g. '2h 15m ago' or '40m ago'"""
    now = now or utc_now()
    seconds = max(0, int((now - received_at).total_seconds()))
    hours, remainder = divmod(seconds, 3600)
    minutes = remainder // 60

    if hours > 0:
        return f"{hours}h {minutes}m ago"
    return f"{minutes}m ago"


def filter_samples(samples: List[Sample], catalog: CatalogStore, search_term: str = "",
                   status: Union[SampleStatus, str, None] = None) -> List[Sample]:
    """Match search_term against sample id, patient name or test name"""
    term = (search_term or "").strip().lower()
    wanted = None if status in (None, "", ALL_STATUSES) else SampleStatus(status)

    matches = []
    for sample in samples:
        if wanted is not None and sample.status != wanted:
            continue
        if term:
            test = catalog.get_by_id(sample.test_definition_id)
            haystack = [sample.id, sample.patient_name, test.name if test else ""]
            if not any(term in field.lower() for field in haystack):
                continue
        matches.append(sample)
    return matches


class SampleTracker:
    """Re-reads the sample list on a fixed interval for live views"""

    def __init__(self, samples: SampleStore, interval: float = 5.0):
        self.samples = samples
        self.interval = interval
        self.running = False
        self.refresh_count = 0
        self.last_refresh: Optional[datetime] = None

    def snapshot(self) -> List[Sample]:
        self.refresh_count += 1
        self.last_refresh = utc_now()
        return self.samples.list()

    async def run(self, on_refresh: Callable[[List[Sample]], Optional[Awaitable[None]]],
                  max_refreshes: Optional[int] = None):
        """Call on_refresh with a fresh snapshot until stopped"""
        self.running = True
        logger.info(f"Sample tracking started (every {self.interval}s)")
        refreshes = 0

        try:
            while self.running:
                outcome = on_refresh(self.snapshot())
                if asyncio.iscoroutine(outcome):
                    await outcome

                refreshes += 1
                if max_refreshes is not None and refreshes >= max_refreshes:
                    break
                await asyncio.sleep(self.interval)
        finally:
            self.running = False
            logger.info(f"Sample tracking stopped after {refreshes} refreshes")

    def stop(self):
        self.running = False
