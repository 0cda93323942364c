from __future__ import annotations

from typing import Optional
from prometheus_client import Counter

_events_total: Optional[Counter] = None
_events_dead_lettered_total: Optional[Counter] = None


def get_events_total():
    global _events_total
    if _events_total is None:
        _events_total = Counter("settlecore_events_total", "Ledger records published", ["type"])  # type: ignore[arg-type]
    return _events_total


def get_events_dead_lettered_total():
    global _events_dead_lettered_total
    if _events_dead_lettered_total is None:
        _events_dead_lettered_total = Counter(
            "settlecore_events_dead_lettered_total", "Ledger records routed to the DLQ stream", ["type"]
        )  # type: ignore[arg-type]
    return _events_dead_lettered_total
