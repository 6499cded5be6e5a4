"""Per-account lock registry."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

from moblog_auth.auth.locks import AccountLocks


def test_entry_is_dropped_after_last_holder_leaves() -> None:
    locks = AccountLocks()

    with locks.hold(1):
        assert len(locks) == 1

    assert len(locks) == 0


def test_nested_hold_keeps_entry_until_outermost_exit() -> None:
    locks = AccountLocks()

    with locks.hold(1):
        with locks.hold(1):
            assert len(locks) == 1
        assert len(locks) == 1

    assert len(locks) == 0


def test_entry_is_dropped_when_block_raises() -> None:
    locks = AccountLocks()

    try:
        with locks.hold(7):
            raise RuntimeError("write failed")
    except RuntimeError:
        pass

    assert len(locks) == 0


def test_distinct_accounts_do_not_share_a_lock() -> None:
    locks = AccountLocks()
    entered = threading.Event()

    def _other_account() -> None:
        with locks.hold(2):
            entered.set()

    with locks.hold(1):
        with ThreadPoolExecutor(max_workers=1) as executor:
            executor.submit(_other_account).result(timeout=1)

    assert entered.is_set()
    assert len(locks) == 0


def test_concurrent_holders_are_serialized_and_leave_no_entries() -> None:
    """Contract: one holder at a time per account; the registry empties afterwards."""
    locks = AccountLocks()
    workers = 8
    barrier = threading.Barrier(workers)
    active: list[int] = []
    overlaps: list[int] = []

    def _worker(index: int) -> None:
        barrier.wait()
        with locks.hold(1):
            if active:
                overlaps.append(index)
            active.append(index)
            time.sleep(0.001)
            active.remove(index)

    with ThreadPoolExecutor(max_workers=workers) as executor:
        list(executor.map(_worker, range(workers)))

    assert overlaps == []
    assert len(locks) == 0
