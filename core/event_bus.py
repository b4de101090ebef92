"""
In-process pub/sub for ledger domain events.

Publishing happens after the write and its audit entry have committed, so a
failing handler must not turn a successful operation into an error: handler
exceptions are logged and swallowed. Handlers that do slow work (analytics
recompute) hand it to a worker instead of running inline.
"""

import logging
from collections import defaultdict
from typing import Callable, Iterable

from core.events import LedgerEvent

logger = logging.getLogger(__name__)

Handler = Callable[[LedgerEvent], None]


class EventBus:
    """
    Subscribe by event class name, publish by event instance.

    Handlers run synchronously on the publishing thread, in subscription order.
    """

    def __init__(self):
        self._subscribers: defaultdict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: str, callback: Handler):
        """Call ``callback`` for every published event whose class is named ``event_type``."""
        self._subscribers[event_type].append(callback)

    def subscribe_all(self, event_types: Iterable[str], callback: Handler):
        for event_type in event_types:
            self.subscribe(event_type, callback)

    def publish(self, event: LedgerEvent):
        event_type = type(event).__name__

        # Copy: a handler may subscribe further handlers while we iterate
        for callback in list(self._subscribers.get(event_type, ())):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Handler %s failed for %s (event_id=%s, company=%s)",
                    getattr(callback, "__name__", repr(callback)),
                    event_type,
                    event.event_id,
                    event.company_id,
                )
