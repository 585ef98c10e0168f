from __future__ import annotations

import json
import os
import logging
import threading

import redis
from redis.backoff import NoBackoff
from redis.retry import Retry

from .schema import BaseEvent, EventEnvelope
from ..metrics.ledger import get_events_total


STREAM_EVENTS = os.getenv("EVENTS_STREAM", "fundme.events")
STREAM_DLQ = os.getenv("EVENTS_DLQ", "fundme.dlq")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

log = logging.getLogger("fundme.events")

_sequence = 0
_sequence_lock = threading.Lock()


def _bus_disabled() -> bool:
    return os.getenv("DISABLE_EVENT_BUS", "0") == "1"


def _get_redis():
    return redis.Redis.from_url(
        os.getenv("REDIS_URL", REDIS_URL),
        decode_responses=True,
        socket_connect_timeout=0.5,
        retry=Retry(NoBackoff(), 0),
    )


def envelope(event: BaseEvent, correlation_id: str) -> EventEnvelope:
    global _sequence
    with _sequence_lock:
        _sequence += 1
        seq = _sequence
    return EventEnvelope(correlation_id=correlation_id, sequence=seq, event=event)


def publish(env: EventEnvelope) -> None:
    """Publish an event to the Redis stream and log it as a single JSON line.

    Never raises: a ledger operation that already committed must not fail
    because Redis is unreachable. Undeliverable events go to the DLQ stream.
    """
    try:
        get_events_total().labels(env.event.event_type).inc()
    except Exception:
        pass

    line = json.dumps({
        "schema_version": env.schema_version,
        "correlation_id": env.correlation_id,
        "sequence": env.sequence,
        "event": env.event.model_dump(),
    }, separators=(",", ":"))
    if not _bus_disabled():
        try:
            r = _get_redis()
            r.xadd(STREAM_EVENTS, {"json": line})
        except Exception:
            try:
                r = _get_redis()
                r.xadd(STREAM_DLQ, {"json": line})
            except Exception:
                log.debug("event bus unreachable; event only logged")
    log.info(line)
