"""
Off-ledger publication of ledger records.

Every record a component emits is written to a Redis stream for observers
(reconciliation jobs, dashboards) and logged as one compact JSON line. A record
that cannot reach the main stream goes to the dead-letter stream. Publishing
never raises into ledger code.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Iterator, Optional, Tuple

try:
    import redis
except Exception:  # pragma: no cover
    redis = None  # type: ignore

from .metrics import get_events_dead_lettered_total, get_events_total
from .schema import EventEnvelope

STREAM_EVENTS = os.getenv("LEDGER_EVENTS_STREAM", "settlecore.events")
STREAM_DLQ = os.getenv("LEDGER_EVENTS_DLQ", "settlecore.dlq")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

log = logging.getLogger("settlecore.events")

_clients: Dict[str, Any] = {}


def _stream_disabled() -> bool:
    return os.getenv("DISABLE_EVENT_STREAM", "0") == "1"


def configure(stream: Optional[str] = None, dlq: Optional[str] = None, redis_url: Optional[str] = None) -> None:
    """Point publishing at the streams and server named in settings."""
    global STREAM_EVENTS, STREAM_DLQ, REDIS_URL
    if stream:
        STREAM_EVENTS = stream
    if dlq:
        STREAM_DLQ = dlq
    if redis_url:
        REDIS_URL = redis_url
    log.info(f"record stream={STREAM_EVENTS} dlq={STREAM_DLQ} redis={REDIS_URL}")


def _get_redis():
    if redis is None:
        raise RuntimeError("redis client not available")
    url = REDIS_URL
    client = _clients.get(url)
    if client is None:
        client = redis.Redis.from_url(url, decode_responses=True)
        _clients[url] = client
    return client


def encode(env: EventEnvelope) -> str:
    doc = env.model_dump(exclude={"event"})
    doc["event"] = env.event.model_dump()
    return json.dumps(doc, separators=(",", ":"))


def decode(line: str) -> Dict[str, Any]:
    """Parse a stream entry back into a plain dict (envelope fields + `event`)."""
    return json.loads(line)


def _append(stream: str, line: str) -> None:
    _get_redis().xadd(stream, {"json": line})


def publish(env: EventEnvelope) -> None:
    """Send one record to the stream (or the DLQ) and log it for Loki."""
    event_type = env.event.event_type
    try:
        get_events_total().labels(event_type).inc()
    except Exception as e:
        log.debug(f"events_total not updated: {e}")

    line = encode(env)
    if not _stream_disabled():
        try:
            _append(STREAM_EVENTS, line)
        except Exception as e:
            log.warning(f"stream {STREAM_EVENTS} unavailable ({e}); routing {event_type} to {STREAM_DLQ}")
            try:
                _append(STREAM_DLQ, line)
                get_events_dead_lettered_total().labels(event_type).inc()
            except Exception as dlq_err:
                log.warning(f"dead-letter stream unavailable: {dlq_err}")
    log.info(line)


def ensure_group(group: str) -> None:
    try:
        _get_redis().xgroup_create(name=STREAM_EVENTS, groupname=group, id="$", mkstream=True)
    except Exception as e:
        if "BUSYGROUP" not in str(e):
            raise


def consume(group: str, consumer: str, block_ms: int = 15000) -> Iterator[Optional[Tuple[str, str]]]:
    """Yield (id, json_str) from the record stream, or None on an idle poll.

    The caller acknowledges processed ids with `ack`.
    """
    r = _get_redis()
    ensure_group(group)
    while True:
        resp = r.xreadgroup(group, consumer, {STREAM_EVENTS: ">"}, count=100, block=block_ms)
        if not resp:
            yield None
            continue
        for _stream, entries in resp:
            for msg_id, fields in entries:
                yield (msg_id, fields.get("json", ""))


def ack(group: str, *ids: str) -> int:
    return _get_redis().xack(STREAM_EVENTS, group, *ids)
