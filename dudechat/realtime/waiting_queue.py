"""
FIFO queue of connection IDs waiting for a partner.
"""

from collections.abc import Callable

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class WaitingQueue:
    """
    Ordered connection IDs in arrival order, each at most once.

    Entries can go stale when a session changes state without an explicit
    removal; pop_first_valid drops those as it scans.
    """

    def __init__(self) -> None:
        self._entries: list[str] = []

    def enqueue(self, connection_id: str) -> bool:
        """Append at the tail unless already queued. Returns True when appended."""
        if connection_id in self._entries:
            return False
        self._entries.append(connection_id)
        return True

    def remove(self, connection_id: str) -> None:
        """Remove every occurrence of connection_id."""
        self._entries = [entry for entry in self._entries if entry != connection_id]

    def pop_first_valid(self, exclude: str | None, is_valid: Callable[[str], bool]) -> str | None:
        """
        Pop the longest-waiting valid entry other than exclude.

        Entries scanned before it are removed for good: invalid ones because
        they are stale, and exclude because the caller already dequeued it.
        """
        while self._entries:
            entry = self._entries.pop(0)
            if entry == exclude:
                continue
            if not is_valid(entry):
                logger.debug("Dropping stale waiting queue entry", connection_id=entry)
                continue
            return entry
        return None

    def snapshot(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._entries
