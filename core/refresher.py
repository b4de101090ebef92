"""
Background recomputation of analytics snapshots.

Recomputes run on a small thread pool so the request that asked for them
(or the ledger write that invalidated them) returns immediately. A running
recompute reads one snapshot of the ledger, so a request for the same
(tenant, period) that arrives while it runs may describe a newer write.
Such requests are folded into a single follow-up run once the current one
finishes; any number of them costs one extra recompute, never zero.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from uuid import UUID

from core.models import Period
from core.periods import PERIOD_DAYS, resolve_period
from utils.tenant_context import tenant_context
from utils.timezone import local_today

logger = logging.getLogger(__name__)


class SnapshotRefresher:
    """Schedules AnalyticsService.recompute off the request thread."""

    def __init__(self, analytics_service, max_workers: int = 4):
        self._analytics = analytics_service
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="analytics-refresh")
        self._in_flight: dict[tuple[UUID, Period], Future] = {}
        self._rerun: set[tuple[UUID, Period]] = set()
        self._lock = threading.Lock()

    def submit(self, company_id: UUID, period: Period) -> Future:
        """
        Schedule a recompute for one tenant and period.

        Returns:
            The job that will publish a snapshot reflecting every write
            committed before this call. While a job for the same key runs,
            that job is returned and marked to run once more.
        """
        key = (company_id, period)
        with self._lock:
            running = self._in_flight.get(key)
            if running is not None:
                self._rerun.add(key)
                logger.debug("Refresh for %s %s..%s coalesced", company_id, period.start_date, period.end_date)
                return running

            job = self._executor.submit(self._run, key)
            self._in_flight[key] = job
            return job

    def _run(self, key: tuple[UUID, Period]) -> None:
        company_id, period = key
        while True:
            try:
                with tenant_context(company_id):
                    self._analytics.recompute(period)
            except Exception:
                logger.exception(
                    "Analytics refresh failed for %s (%s..%s)",
                    company_id, period.start_date, period.end_date,
                )

            with self._lock:
                if key not in self._rerun:
                    del self._in_flight[key]
                    return
                self._rerun.discard(key)

    def submit_published(self, company_id: UUID) -> int:
        """
        Refresh every published snapshot of a tenant.

        Named periods are re-resolved against today so a "30days" snapshot
        rolls forward with the calendar.

        Returns:
            Number of periods submitted.
        """
        today = local_today(self._analytics.config.reporting_timezone)
        submitted = 0
        for published in self._analytics.snapshots.published_periods(company_id):
            period = published
            if published.label in PERIOD_DAYS:
                period = resolve_period(today, published.label)
            self.submit(company_id, period)
            submitted += 1
        return submitted

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
