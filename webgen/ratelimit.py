from __future__ import annotations
import threading
import time
from typing import Dict, Tuple

WINDOW_SECONDS: int = 60
MAX_REQUESTS: int = 30

_store: Dict[Tuple[str, str], Dict[str, int]] = {}
_lock = threading.Lock()


def configure(max_requests: int, window_seconds: int) -> None:
    global MAX_REQUESTS, WINDOW_SECONDS
    MAX_REQUESTS = max(1, int(max_requests))
    WINDOW_SECONDS = max(1, int(window_seconds))


def _now() -> int:
    return int(time.time())


def _bk(bucket: str, key: str) -> Tuple[str, str]:
    return (bucket or "default", key or "anon")


def _purge_expired(now: int) -> None:
    for k in [k for k, e in _store.items() if now >= e["reset_ts"]]:
        del _store[k]


def _ensure_entry(bucket: str, key: str) -> Dict[str, int]:
    k = _bk(bucket, key)
    now = _now()
    entry = _store.get(k)
    if entry is None or now >= entry["reset_ts"]:
        _purge_expired(now)
        entry = {"count": 0, "reset_ts": now + WINDOW_SECONDS}
        _store[k] = entry
    return entry


def check_and_increment(bucket: str, key: str) -> Tuple[bool, int, int]:
    """
    Count one request against the fixed window for (bucket, key).
    Returns (allowed, remaining, reset_ts).
    """
    with _lock:
        entry = _ensure_entry(bucket, key)
        if entry["count"] < MAX_REQUESTS:
            entry["count"] += 1
            return True, max(0, MAX_REQUESTS - entry["count"]), entry["reset_ts"]
        return False, 0, entry["reset_ts"]


def _reset() -> None:
    """Used by tests to clear state."""
    with _lock:
        _store.clear()
