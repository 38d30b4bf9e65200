"""
iperf3_statuspage/core/query.py
Read side of the store. "No result yet" is a status, not an exception.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from iperf3_statuspage.core.cache import ResultStore
from iperf3_statuspage.core.models import Iperf3Report


class ResultStatus(str, Enum):
    AVAILABLE   = "available"
    STALE       = "stale"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class QueryResult:
    status:      ResultStatus
    report:      Optional[Iperf3Report] = None
    captured_at: Optional[float] = None
    age_s:       Optional[float] = None

    @property
    def available(self) -> bool:
        return self.status is not ResultStatus.UNAVAILABLE


UNAVAILABLE = QueryResult(ResultStatus.UNAVAILABLE)


class QueryService:
    def __init__(
        self,
        store: ResultStore,
        stale_after_s: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.stale_after_s = stale_after_s
        self._clock = clock

    def current_result(self) -> QueryResult:
        entry = self.store.get()
        if entry is None:
            return UNAVAILABLE

        age = entry.age(self._clock())
        stale = self.stale_after_s is not None and age > self.stale_after_s
        return QueryResult(
            status=ResultStatus.STALE if stale else ResultStatus.AVAILABLE,
            report=entry.report,
            captured_at=entry.captured_at,
            age_s=age,
        )
