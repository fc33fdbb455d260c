"""
=============================================================================
THREAD INTERRUPTION
=============================================================================

Python threads cannot be interrupted from the outside. This module gives
blocking waits a cooperative cancellation point instead: every thread has
an interrupt flag, another thread can raise it, and sleep() wakes up and
raises InterruptedError when it sees the flag.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    INTERRUPTING A SLEEPING WORKER                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   worker thread                        control thread               │
    │   ─────────────                        ──────────────               │
    │   sleep(30.0)                                                        │
    │     │  blocked on flag.wait()                                       │
    │     │                          ◄────── interrupt(worker)            │
    │     ▼                                                                │
    │   flag cleared                                                      │
    │   raise InterruptedError                                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The flag is sticky, like a pending signal: interrupting a thread before it
starts sleeping makes the next sleep() raise immediately.

=============================================================================
"""

import threading
import weakref
from typing import Optional


_lock = threading.Lock()
_flags: "weakref.WeakKeyDictionary[threading.Thread, threading.Event]" = (
    weakref.WeakKeyDictionary()
)


def _flag(thread: threading.Thread) -> threading.Event:
    with _lock:
        event = _flags.get(thread)
        if event is None:
            event = threading.Event()
            _flags[thread] = event
        return event


def interrupt(thread: threading.Thread) -> None:
    """Raise the interrupt flag of thread."""
    _flag(thread).set()


def is_interrupted(thread: Optional[threading.Thread] = None) -> bool:
    """Check a thread's interrupt flag without clearing it."""
    return _flag(thread or threading.current_thread()).is_set()


def interrupted() -> bool:
    """Check and clear the current thread's interrupt flag."""
    event = _flag(threading.current_thread())
    was_set = event.is_set()
    event.clear()
    return was_set


def sleep(seconds: float) -> None:
    """
    Block the current thread for seconds.

    Raises:
        InterruptedError: If the thread is interrupted before or during
            the wait. The flag is cleared before raising.
    """
    event = _flag(threading.current_thread())
    if event.wait(max(seconds, 0.0)):
        event.clear()
        raise InterruptedError("sleep interrupted")
