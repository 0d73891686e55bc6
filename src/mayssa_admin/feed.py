"""In-process change notification for committed records.

Paths follow the record layout used by the storefront: ``stock/{itemId}``,
``orders/{orderId}``, ``users/{userId}``, ``users/{userId}/rewards/{rewardId}``
and ``settings``. A subscriber registered on a prefix receives every
``(path, value)`` published at or below it; ``value`` is ``None`` on removal.
"""

from __future__ import annotations

import threading
from functools import lru_cache
from typing import Any, Callable

from .logging_utils import forget_warning, get_logger, warn_once

logger = get_logger(__name__)

Listener = Callable[[str, Any], None]


def _warning_key(prefix: str, callback: Listener) -> str:
    name = getattr(callback, "__qualname__", type(callback).__qualname__)
    return f"feed:{prefix}:{name}"


def _matches(prefix: str, path: str) -> bool:
    prefix = prefix.strip("/")
    return not prefix or path == prefix or path.startswith(prefix + "/")


class ChangeFeed:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: list[tuple[str, Listener]] = []

    def subscribe(self, path: str, callback: Listener) -> Callable[[], None]:
        """Register *callback* for *path* and return a function that removes it."""

        entry = (path, callback)
        with self._lock:
            self._listeners.append(entry)

        def unsubscribe() -> None:
            with self._lock:
                if entry in self._listeners:
                    self._listeners.remove(entry)
            forget_warning(_warning_key(path, callback))

        return unsubscribe

    def publish(self, path: str, value: Any) -> None:
        with self._lock:
            targets = [(prefix, cb) for prefix, cb in self._listeners if _matches(prefix, path)]
        for prefix, callback in targets:
            try:
                callback(path, value)
            except Exception:
                # Writes are committed before publishing; listener failures are only logged.
                warn_once(
                    logger,
                    _warning_key(prefix, callback),
                    "Subscriber on %s failed for %s",
                    prefix,
                    path,
                    exc_info=True,
                )


@lru_cache(maxsize=1)
def get_feed() -> ChangeFeed:
    return ChangeFeed()
