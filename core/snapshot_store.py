"""
Published analytics snapshots, kept in Valkey.

One key per (tenant, period window). Publishing is a single SET of the full
serialized snapshot, so a reader gets either the previous snapshot or the
new one in its entirety; there is no moment where a half-built snapshot is
visible.
"""

import logging
from datetime import date
from uuid import UUID

from clients.valkey_client import ValkeyClient
from core.models import AnalyticsSnapshot, Period

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Read and atomically replace published snapshots."""

    KEY_PREFIX = "analytics:"

    def __init__(self, valkey: ValkeyClient, ttl_seconds: int):
        self._valkey = valkey
        self._ttl_seconds = ttl_seconds

    def _key(self, company_id: UUID, start_date: date, end_date: date) -> str:
        return f"{self.KEY_PREFIX}{company_id}:{start_date.isoformat()}:{end_date.isoformat()}"

    def get(self, company_id: UUID, period: Period) -> AnalyticsSnapshot | None:
        """Currently published snapshot for this window, if any."""
        raw = self._valkey.get(self._key(company_id, period.start_date, period.end_date))
        if raw is None:
            return None
        return AnalyticsSnapshot.model_validate_json(raw)

    def publish(self, snapshot: AnalyticsSnapshot) -> None:
        """Replace the published snapshot for the snapshot's window."""
        key = self._key(snapshot.company_id, snapshot.period.start_date, snapshot.period.end_date)
        self._valkey.set(key, snapshot.model_dump_json(), expire_seconds=self._ttl_seconds)
        logger.info(
            "Published analytics snapshot %s (%s..%s)",
            snapshot.company_id, snapshot.period.start_date, snapshot.period.end_date,
        )

    def published_periods(self, company_id: UUID) -> list[Period]:
        """Windows that currently have a published snapshot for a tenant."""
        keys = self._valkey.keys_matching(f"{self.KEY_PREFIX}{company_id}:*")
        return [
            AnalyticsSnapshot.model_validate_json(raw).period
            for raw in self._valkey.get_many(keys)
            # Expired between SCAN and MGET
            if raw is not None
        ]
