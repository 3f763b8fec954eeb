"""
Shared per-stream state: continuation tokens and the in-flight guard.

Both stores are plain keyed maps behind a lock. Uploaders share the
process-wide instances by default so that every writer to a stream sees the
latest token; tests construct isolated instances instead.
"""

from __future__ import annotations

import threading
from typing import Dict, Optional, Set

from loguru import logger

from .models import StreamKey


class TokenStore:
    """(group, stream) -> continuation token cache with explicit invalidation.

    No TTL: a cached token is trusted until cleared.
    """

    def __init__(self) -> None:
        self._tokens: Dict[StreamKey, str] = {}
        self._lock = threading.Lock()

    def get(self, key: StreamKey) -> Optional[str]:
        with self._lock:
            return self._tokens.get(key)

    def set(self, key: StreamKey, token: Optional[str]) -> None:
        with self._lock:
            if token is None:
                self._tokens.pop(key, None)
            else:
                self._tokens[key] = token

    def clear(self, key: StreamKey) -> None:
        with self._lock:
            self._tokens.pop(key, None)

    def clear_all(self) -> None:
        with self._lock:
            self._tokens.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def __contains__(self, key: StreamKey) -> bool:
        with self._lock:
            return key in self._tokens


class InFlightGuard:
    """Membership set of streams with an append attempt underway.

    try_acquire() is the atomic check-then-mark; a caller that loses simply
    does nothing.
    """

    def __init__(self) -> None:
        self._active: Set[StreamKey] = set()
        self._lock = threading.Lock()

    def try_acquire(self, key: StreamKey) -> bool:
        with self._lock:
            if key in self._active:
                return False
            self._active.add(key)
            return True

    def release(self, key: StreamKey) -> None:
        with self._lock:
            self._active.discard(key)

    def clear_all(self) -> None:
        with self._lock:
            self._active.clear()

    def __contains__(self, key: StreamKey) -> bool:
        with self._lock:
            return key in self._active

    def __len__(self) -> int:
        with self._lock:
            return len(self._active)


# --- Singleton accessors for in-process use ---

_tokens: Optional[TokenStore] = None
_guard: Optional[InFlightGuard] = None


def token_store() -> TokenStore:
    """Process-wide TokenStore shared by default uploaders."""
    global _tokens
    if _tokens is None:
        _tokens = TokenStore()
        logger.debug("TokenStore singleton initialized")
    return _tokens


def inflight_guard() -> InFlightGuard:
    """Process-wide InFlightGuard shared by default uploaders."""
    global _guard
    if _guard is None:
        _guard = InFlightGuard()
        logger.debug("InFlightGuard singleton initialized")
    return _guard


def reset_state() -> None:
    """Drop all cached tokens and in-flight marks (tests only)."""
    token_store().clear_all()
    inflight_guard().clear_all()
