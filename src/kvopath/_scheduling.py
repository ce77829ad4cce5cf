"""Delivery of publish/subscribe handlers.

Synchronous subscriptions are invoked on the spot. Deferred subscriptions are
handed to the scheduler hook installed with set_scheduler(); without one they
queue up here until flush_pending() runs them.

Deferred handlers carry no ordering guarantee relative to each other and
cannot be cancelled once queued.
"""

from __future__ import annotations

from collections import deque
from typing import Callable

# Installed scheduler hook. Receives a zero-argument callable.
_scheduler: Callable[[Callable[[], object]], object] | None = None

# Deferred calls awaiting flush_pending() when no hook is installed.
_pending: deque[tuple[Callable, tuple]] = deque()


def set_scheduler(scheduler: Callable[[Callable[[], object]], object] | None) -> None:
    """Route deferred handler calls through scheduler.

    Typical hooks are ``loop.call_soon`` or a UI toolkit's "run later" call:

        kvopath.set_scheduler(asyncio.get_running_loop().call_soon)

    Pass None to go back to the built-in queue drained by flush_pending().
    """
    global _scheduler
    _scheduler = scheduler


def invoke(fn: Callable, args: tuple) -> object:
    """Call fn right now."""
    return fn(*args)


def defer(fn: Callable, args: tuple) -> None:
    """Call fn on a later turn."""
    if _scheduler is not None:
        _scheduler(lambda: fn(*args))
    else:
        _pending.append((fn, args))


def flush_pending() -> int:
    """Run queued deferred calls in order, including ones queued while flushing.

    Each call is dequeued just before it runs. If one raises, the error
    propagates and the calls behind it stay queued for the next flush.
    Returns the number of calls made.
    """
    count = 0
    while _pending:
        fn, args = _pending.popleft()
        fn(*args)
        count += 1
    return count


def get_pending_count() -> int:
    """Number of deferred calls waiting to run. Useful for testing."""
    return len(_pending)
