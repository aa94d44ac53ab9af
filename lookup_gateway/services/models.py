from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class LogicalRequest:
    """A cacheable unit of work.

    For routes that need several parameters, ``param_name`` and
    ``param_value`` are the individual names and values joined with ``_``.
    """

    route: str
    param_name: str
    param_value: str


class RequestState(str, Enum):
    START = "START"
    CACHE_CHECK = "CACHE_CHECK"
    CACHE_HIT = "CACHE_HIT"
    CACHE_MISS = "CACHE_MISS"
    UPSTREAM_FETCH = "UPSTREAM_FETCH"
    FETCH_OK = "FETCH_OK"
    FETCH_ERROR = "FETCH_ERROR"


@dataclass(frozen=True)
class PersistJob:
    request: LogicalRequest
    result: Any


@dataclass
class LookupOutcome:
    state: RequestState
    value: Any
    persist_job: PersistJob | None = None
    cache_key: str | None = None

    @property
    def from_cache(self) -> bool:
        return self.state is RequestState.CACHE_HIT
