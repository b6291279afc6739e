"""Process-local cursor and activity cache for the transfer monitor.

Entries are keyed by (telegram_id, normalized address), so two users
holding the same address each get their own cursor. They live only as
long as the MonitorState instance. After a restart every wallet is
scanned again from the start of its history.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from momo.chain.base import normalize_address


@dataclass
class ActivityEntry:
    """Whether an address exists on-chain, and when that was last checked."""

    active: bool
    last_checked_at: float


def _key(telegram_id: str, address: str) -> tuple[str, str]:
    return str(telegram_id), normalize_address(address)


class MonitorState:
    """Cursors and activity cache shared by the sweeps of one monitor."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._cursors: dict[tuple[str, str], int] = {}
        self._activity: dict[tuple[str, str], ActivityEntry] = {}

    def get_cursor(self, telegram_id: str, address: str) -> Optional[int]:
        """Highest sequence number already processed, None if never scanned."""
        return self._cursors.get(_key(telegram_id, address))

    def advance_cursor(self, telegram_id: str, address: str, sequence_number: int) -> int:
        """Move the cursor forward. It never moves backwards."""
        key = _key(telegram_id, address)
        current = self._cursors.get(key)
        if current is None or sequence_number > current:
            self._cursors[key] = sequence_number
        return self._cursors[key]

    def get_activity(self, telegram_id: str, address: str) -> Optional[ActivityEntry]:
        return self._activity.get(_key(telegram_id, address))

    def mark_active(self, telegram_id: str, address: str) -> None:
        self._activity[_key(telegram_id, address)] = ActivityEntry(True, self.clock())

    def mark_inactive(self, telegram_id: str, address: str) -> None:
        self._activity[_key(telegram_id, address)] = ActivityEntry(False, self.clock())

    def is_known_inactive(self, telegram_id: str, address: str, ttl_seconds: float) -> bool:
        """True if the address was found missing on-chain less than ttl ago."""
        entry = self.get_activity(telegram_id, address)
        if entry is None or entry.active:
            return False
        return self.clock() - entry.last_checked_at < ttl_seconds

    def snapshot(self) -> dict:
        """Counts for status reporting."""
        inactive = sum(1 for entry in self._activity.values() if not entry.active)
        return {
            "tracked_addresses": len(self._cursors),
            "cached_addresses": len(self._activity),
            "inactive_addresses": inactive,
        }

    def reset(self) -> None:
        self._cursors.clear()
        self._activity.clear()
