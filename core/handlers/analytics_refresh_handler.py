"""
Handler for ledger events that change analytics.

A payment settling or a credit note being applied changes the rollups, so
the tenant's published snapshots are queued for recomputation.
"""

import logging
from typing import Callable

from core.event_bus import EventBus
from core.events import LedgerEvent

logger = logging.getLogger(__name__)

REFRESH_EVENTS = ("PaymentCompleted", "CreditNoteApplied")


def handle_ledger_change(refresher) -> Callable:
    """
    Factory that returns a handler scheduling snapshot refreshes.

    Args:
        refresher: SnapshotRefresher instance

    Returns:
        Handler callable for REFRESH_EVENTS
    """

    def handler(event: LedgerEvent):
        if event.company_id is None:
            return
        scheduled = refresher.submit_published(event.company_id)
        logger.debug(
            "%s for %s: %d snapshot refresh(es) scheduled",
            event.__class__.__name__, event.company_id, scheduled,
        )

    return handler


def register(event_bus: EventBus, refresher) -> None:
    event_bus.subscribe_all(REFRESH_EVENTS, handle_ledger_change(refresher))
