from __future__ import annotations

from collections import deque
from time import time

# In-memory sliding window (per process). Good enough for a single instance.
_attempts: dict = {}
_windows: dict = {}
# Every this many calls, keys whose window has fully expired are dropped
_SWEEP_EVERY = 100
_calls = 0


def _prune(q: deque, now: float, window_seconds: float) -> None:
    while q and q[0] <= now - window_seconds:
        q.popleft()


def _sweep(now: float) -> None:
    for key in list(_attempts):
        q = _attempts[key]
        _prune(q, now, _windows.get(key, 0))
        if not q:
            del _attempts[key]
            _windows.pop(key, None)


def allow(key: str, limit: int, window_seconds: int) -> bool:
    """Record an attempt for ``key``; False once ``limit`` is exceeded in the window."""
    global _calls
    now = time()
    _calls += 1
    if _calls % _SWEEP_EVERY == 0:
        _sweep(now)
    q = _attempts.get(key)
    if q is None:
        q = _attempts[key] = deque()
    _windows[key] = window_seconds
    _prune(q, now, window_seconds)
    if len(q) >= int(limit):
        return False
    q.append(now)
    return True


def reset(key: str | None = None) -> None:
    global _calls
    if key is None:
        _attempts.clear()
        _windows.clear()
        _calls = 0
    else:
        _attempts.pop(key, None)
        _windows.pop(key, None)
