"""
Batch size policy for PutLogEvents.

The service charges every event its UTF-8 message length plus a fixed
overhead, caps a single message, and caps the sum per request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .errors import MessageTruncated
from .models import LogEvent

# The hard max is 262144; leave room for per-message overhead.
MAX_EVENT_MSG_SIZE_BYTES = 256_000
MAX_BATCH_SIZE_BYTES = 1_000_000
BASE_EVENT_SIZE_BYTES = 26


@dataclass(frozen=True)
class SizeLimits:
    max_event_bytes: int = MAX_EVENT_MSG_SIZE_BYTES
    max_batch_bytes: int = MAX_BATCH_SIZE_BYTES
    event_overhead_bytes: int = BASE_EVENT_SIZE_BYTES

    def __post_init__(self):
        if self.max_event_bytes <= 0 or self.max_batch_bytes <= 0:
            raise ValueError("size limits must be > 0")
        if self.max_event_bytes > self.max_batch_bytes:
            raise ValueError("max_event_bytes must not exceed max_batch_bytes")
        if self.event_overhead_bytes < 0:
            raise ValueError("event_overhead_bytes must be >= 0")


DEFAULT_LIMITS = SizeLimits()


@dataclass
class BatchSelection:
    """Result of carving the head of a queue.

    Either `events` holds the accepted prefix (already removed from the
    queue), or `error` is set and `truncated` references the queued event
    whose message was cut; in that case the queue is left as it was.
    """

    events: List[LogEvent] = field(default_factory=list)
    truncated: Optional[LogEvent] = None
    error: Optional[MessageTruncated] = None
    nbytes: int = 0


def message_bytes(event: LogEvent) -> int:
    return len(event.message.encode("utf-8"))


def event_cost(event: LogEvent, limits: SizeLimits = DEFAULT_LIMITS) -> int:
    """Bytes an event counts against the batch cap."""
    return min(message_bytes(event) + limits.event_overhead_bytes, limits.max_event_bytes)


def truncate_message(event: LogEvent, limits: SizeLimits = DEFAULT_LIMITS) -> None:
    """Cut event.message in place to at most max_event_bytes of UTF-8."""
    encoded = event.message.encode("utf-8")[: limits.max_event_bytes]
    # drop a code point split by the cut
    event.message = encoded.decode("utf-8", errors="ignore")


def carve_batch(
    queue: List[LogEvent], limits: SizeLimits = DEFAULT_LIMITS
) -> BatchSelection:
    """Remove and return the longest legal prefix of `queue`.

    An oversized event aborts the carve: its message is truncated in place,
    nothing is removed from the queue, and the selection carries the error.
    """
    count = 0
    total = 0
    for ev in queue:
        if message_bytes(ev) > limits.max_event_bytes:
            truncate_message(ev, limits)
            return BatchSelection(truncated=ev, error=MessageTruncated(ev))
        cost = event_cost(ev, limits)
        if total + cost > limits.max_batch_bytes:
            break
        total += cost
        count += 1

    events = list(queue[:count])
    del queue[:count]
    return BatchSelection(events=events, nbytes=total)
