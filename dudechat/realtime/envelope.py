"""
Outbound event envelope for DudeChat WebSocket frames.

Every server-to-client frame has the same shape:
- event_type: wire name of the event
- timestamp: ISO 8601 UTC with 'Z'
- sequence_number: monotonic per connection manager (per process as fallback)
- data: event payload
"""

from __future__ import annotations

import itertools
import threading
from datetime import UTC, datetime
from typing import Any

_global_sequence = itertools.count(1)
_sequence_lock = threading.Lock()


def _get_next_global_sequence() -> int:
    """Process-wide sequence numbers, used when no connection manager is supplied."""
    with _sequence_lock:
        return next(_global_sequence)


def utc_now_z() -> str:
    """Current UTC time as ISO 8601 with a 'Z' suffix, second precision."""
    return datetime.now(UTC).isoformat(timespec="seconds").replace("+00:00", "Z")


def build_event(
    event_type: str,
    data: dict[str, Any] | None = None,
    *,
    sequence_number: int | None = None,
    connection_manager=None,
) -> dict[str, Any]:
    """
    Wrap an outbound payload in the event envelope.

    Args:
        event_type: Wire name of the event
        data: Event payload
        sequence_number: Explicit sequence number, mainly for tests
        connection_manager: ConnectionManager whose counter numbers the event

    Without either of the last two, the process-wide counter is used.
    """
    if sequence_number is not None:
        seq = sequence_number
    elif connection_manager is not None:
        seq = connection_manager._get_next_sequence()  # noqa: SLF001
    else:
        seq = _get_next_global_sequence()
    return {
        "event_type": event_type,
        "timestamp": utc_now_z(),
        "sequence_number": seq,
        "data": data or {},
    }
