"""Storage key derivation for cached lookups.

Every persisted result lives under ``consultas/<route>/`` so that a lookup
only has to list a single prefix. Keys embed a millisecond timestamp and are
never reused, so repeated writes for the same request pile up side by side
and readers pick the newest one.
"""

import re
import threading
import time
from typing import Callable

KEY_ROOT = "consultas"

_UNSAFE_VALUE_CHARS = re.compile(r"[^A-Za-z0-9]")


def sanitize_route(route: str) -> str:
    safe = str(route).replace("/", "_")
    if safe.startswith("_"):
        safe = safe[1:]
    return safe


def sanitize_value(value) -> str:
    return _UNSAFE_VALUE_CHARS.sub("_", str(value))


def route_prefix(route: str) -> str:
    return f"{KEY_ROOT}/{sanitize_route(route)}/"


class KeyDeriver:
    """Builds storage keys with a per-process, strictly increasing timestamp."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._last_ms = 0
        self._lock = threading.Lock()

    def _next_timestamp(self) -> int:
        with self._lock:
            now_ms = int(self._clock() * 1000)
            if now_ms <= self._last_ms:
                now_ms = self._last_ms + 1
            self._last_ms = now_ms
            return now_ms

    def json_key(self, route: str, param_name: str, param_value) -> str:
        return (
            f"{route_prefix(route)}{param_name}_{sanitize_value(param_value)}"
            f"_{self._next_timestamp()}.json"
        )

    def media_key(self, route: str, param_name: str, param_value, extension: str) -> str:
        return (
            f"{route_prefix(route)}media/{param_name}_{sanitize_value(param_value)}"
            f"_{self._next_timestamp()}.{extension}"
        )


_default_deriver = KeyDeriver()


def derive_json_key(route: str, param_name: str, param_value) -> str:
    return _default_deriver.json_key(route, param_name, param_value)


def derive_media_key(route: str, param_name: str, param_value, extension: str) -> str:
    return _default_deriver.media_key(route, param_name, param_value, extension)
