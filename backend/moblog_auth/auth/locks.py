"""Per-account lock registry serializing refresh-record writes."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class _Entry:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.holders = 0


class AccountLocks:
    """Hands out one re-entrant lock per account id.

    Entries are reference counted and dropped once the last holder or waiter
    leaves, so the registry only grows with concurrently active accounts.
    """

    def __init__(self) -> None:
        self._entries: dict[int, _Entry] = {}
        self._guard = threading.Lock()

    @contextmanager
    def hold(self, user_id: int) -> Iterator[None]:
        """Acquire the account's write lock for the duration of the block."""
        with self._guard:
            entry = self._entries.get(user_id)
            if entry is None:
                entry = self._entries[user_id] = _Entry()
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._entries[user_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)
