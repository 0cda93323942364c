"""In-process record journal shared by every ledger component.

Each component keeps the records it emitted (newest last) so callers and tests
can inspect them without a Redis server. Only the newest `JOURNAL_SIZE` records
are kept in memory (`SETTLECORE_JOURNAL_SIZE`); every record is also handed to
the bus publisher, which is the durable trail for off-ledger observers.
"""
from __future__ import annotations

import os
import time
from collections import deque
from typing import Callable, Deque, List, Optional, Type, TypeVar

from .schema import BaseEvent, EventEnvelope
from .bus import publish as publish_event

E = TypeVar("E", bound=BaseEvent)

Clock = Callable[[], int]

JOURNAL_SIZE = int(os.getenv("SETTLECORE_JOURNAL_SIZE", "10000"))


def system_clock() -> int:
    return int(time.time())


class EventJournal:
    def __init__(self, address: str, clock: Optional[Clock] = None):
        self.address = address
        self.clock: Clock = clock or system_clock
        self.events: Deque[BaseEvent] = deque(maxlen=JOURNAL_SIZE)
        self._sequence = 0

    def now(self) -> int:
        return int(self.clock())

    def _emit(self, event_cls: Type[E], backend_id: Optional[int] = None, **fields) -> E:
        evt = event_cls(ts=self.now(), source=self.address, backend_id=backend_id, **fields)
        self.events.append(evt)
        self._sequence += 1
        correlation = f"{self.address}:{backend_id}" if backend_id is not None else self.address
        publish_event(EventEnvelope(correlation_id=correlation, sequence=self._sequence, event=evt))
        return evt

    def events_of(self, event_cls: Type[E]) -> List[E]:
        return [e for e in self.events if isinstance(e, event_cls)]
