# thetrains/schedule.py
from __future__ import annotations

import bisect
import logging
from typing import Dict, Iterable, List, Optional

from .errors import EmptySchedule
from .timetable_models import Trip

logger = logging.getLogger(__name__)


class Schedule:
    """
    全列車の運行（読み取り専用）。

    - trips_active_at() 用に begin 昇順のインデックスを持つ。
    """

    def __init__(self, trips: Iterable[Trip]) -> None:
        self._trips: Dict[str, Trip] = {}
        for trip in trips:
            if trip.trip_id in self._trips:
                logger.warning("Duplicate trip id %s; keeping the first one", trip.trip_id)
                continue
            self._trips[trip.trip_id] = trip

        self._by_begin: List[Trip] = sorted(self._trips.values(), key=lambda t: t.begin)
        self._begins: List[float] = [t.begin for t in self._by_begin]
        # 最長の運行時間（trips_active_at の走査範囲を絞る）
        self._longest: float = max((t.duration for t in self._by_begin), default=0.0)

    def __len__(self) -> int:
        return len(self._trips)

    def __iter__(self):
        return iter(self._by_begin)

    @property
    def trips(self) -> List[Trip]:
        return list(self._by_begin)

    def get(self, trip_id: str) -> Optional[Trip]:
        return self._trips.get(trip_id)

    def trips_active_at(self, time: float) -> List[Trip]:
        """
        time に運行中（begin <= time <= end）の列車を begin 順で返す。

        begin が time - 最長運行時間 より前の列車は運行中になりえないので、
        その範囲だけを走査する（浮動小数点誤差に備えて1秒の余裕を持たせる）。
        """
        lo = bisect.bisect_left(self._begins, time - self._longest - 1.0)
        hi = bisect.bisect_right(self._begins, time)
        return [t for t in self._by_begin[lo:hi] if t.is_active_at(time)]

    def time_span(self) -> tuple[float, float]:
        """全列車の (最小 begin, 最大 end)"""
        if not self._by_begin:
            raise EmptySchedule("Schedule has no trips")
        return (self._begins[0], max(t.end for t in self._by_begin))

    def longest_duration(self) -> float:
        return self._longest
